"""
Unit tests for the document ingestion pipeline.

OCR and the AI service are mocked; these tests cover how their outcomes are
combined into an IngestionResult.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from medisafe.models.ingestion import DocumentAnalysis, HealthFinding, IngestionStatus
from medisafe.services.ingestion import IngestionPipeline
from medisafe.services.ocr import PDF_PLACEHOLDER_TEXT
from medisafe.utils.exceptions import AIServiceError, OcrError, UnsupportedMediaType

REPORT_TEXT = "Hemoglobin: 8 g/dL. Platelets 250k. Patient reports fatigue."


def make_pipeline(text=REPORT_TEXT, analysis=None, findings=None):
    extractor = MagicMock()
    extractor.extract = AsyncMock(return_value=text)

    ai = MagicMock()
    ai.summarize_and_tag = AsyncMock(
        return_value=analysis or DocumentAnalysis(summary="Low hemoglobin noted.", suggested_tags=["Lab Report"])
    )
    ai.extract_health_findings = AsyncMock(
        return_value=findings if findings is not None else [
            HealthFinding(term="Hemoglobin: 8 g/dL", observation="This value may be below the typical range.")
        ]
    )
    return IngestionPipeline(extractor=extractor, ai_service=ai, min_text_length=10), extractor, ai


@pytest.mark.unit
class TestIngestionPipeline:

    @pytest.mark.asyncio
    async def test_complete_when_both_analyses_succeed(self):
        pipeline, _, _ = make_pipeline()

        result = await pipeline.process(b"img", "image/png")

        assert result.status == IngestionStatus.COMPLETE
        assert result.extracted_text == REPORT_TEXT
        assert result.summary == "Low hemoglobin noted."
        assert result.suggested_tags == ["Lab Report"]
        assert result.health_findings[0].term == "Hemoglobin: 8 g/dL"

    @pytest.mark.asyncio
    async def test_findings_passed_through_verbatim(self):
        finding = HealthFinding(term="Glucose 180 mg/dL", observation="Discuss this value with your doctor.")
        pipeline, _, _ = make_pipeline(findings=[finding])

        result = await pipeline.process(b"img", "image/png")

        assert result.health_findings == [finding]

    @pytest.mark.asyncio
    async def test_partial_when_summary_fails(self):
        pipeline, _, ai = make_pipeline()
        ai.summarize_and_tag.side_effect = AIServiceError("timeout")

        result = await pipeline.process(b"img", "image/png")

        assert result.status == IngestionStatus.PARTIAL
        assert result.summary is None
        assert result.suggested_tags is None
        assert len(result.health_findings) == 1

    @pytest.mark.asyncio
    async def test_partial_when_findings_fail(self):
        pipeline, _, ai = make_pipeline()
        ai.extract_health_findings.side_effect = AIServiceError("bad json")

        result = await pipeline.process(b"img", "image/png")

        assert result.status == IngestionStatus.PARTIAL
        assert result.summary == "Low hemoglobin noted."
        assert result.health_findings is None

    @pytest.mark.asyncio
    async def test_partial_when_summary_call_is_cancelled(self):
        pipeline, _, ai = make_pipeline()
        ai.summarize_and_tag.side_effect = asyncio.CancelledError()

        result = await pipeline.process(b"img", "image/png")

        assert result.status == IngestionStatus.PARTIAL
        assert result.summary is None
        assert len(result.health_findings) == 1

    @pytest.mark.asyncio
    async def test_partial_when_both_fail(self):
        pipeline, _, ai = make_pipeline()
        ai.summarize_and_tag.side_effect = AIServiceError("down")
        ai.extract_health_findings.side_effect = AIServiceError("down")

        result = await pipeline.process(b"img", "image/png")

        assert result.status == IngestionStatus.PARTIAL
        assert result.extracted_text == REPORT_TEXT

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "abc", "  short  ", PDF_PLACEHOLDER_TEXT])
    async def test_nothing_extracted_skips_ai(self, text):
        pipeline, _, ai = make_pipeline(text=text)

        result = await pipeline.process(b"data", "application/pdf")

        assert result.status == IngestionStatus.NOTHING_EXTRACTED
        ai.summarize_and_tag.assert_not_called()
        ai.extract_health_findings.assert_not_called()

    @pytest.mark.asyncio
    async def test_ocr_failure_aborts(self):
        pipeline, extractor, ai = make_pipeline()
        extractor.extract.side_effect = OcrError("unreadable")

        with pytest.raises(OcrError):
            await pipeline.process(b"img", "image/png")
        ai.summarize_and_tag.assert_not_called()

    @pytest.mark.asyncio
    async def test_unsupported_media_type_propagates(self):
        pipeline, extractor, _ = make_pipeline()
        extractor.extract.side_effect = UnsupportedMediaType("text/plain")

        with pytest.raises(UnsupportedMediaType):
            await pipeline.process(b"hello", "text/plain")

    @pytest.mark.asyncio
    async def test_analyses_run_concurrently(self):
        started = []
        release = asyncio.Event()

        async def slow_summary(text):
            started.append("summary")
            await release.wait()
            return DocumentAnalysis(summary="s", suggested_tags=[])

        async def slow_findings(text):
            started.append("findings")
            release.set()
            return []

        pipeline, _, ai = make_pipeline()
        ai.summarize_and_tag = slow_summary
        ai.extract_health_findings = slow_findings

        result = await asyncio.wait_for(pipeline.process(b"img", "image/png"), timeout=1)

        assert sorted(started) == ["findings", "summary"]
        assert result.status == IngestionStatus.COMPLETE

    @pytest.mark.asyncio
    async def test_progress_callback_forwarded_to_ocr(self):
        pipeline, extractor, _ = make_pipeline()
        callback = MagicMock()

        await pipeline.process(b"img", "image/png", on_progress=callback)

        extractor.extract.assert_awaited_once_with(b"img", "image/png", callback)
