"""
Document ingestion pipeline.

OCR first, then the two AI analyses side by side. A failed analysis does not
fail the upload; its fields are left empty and the result is marked partial.
"""

import asyncio
from typing import Optional

from ..config.settings import get_settings
from ..models.ingestion import IngestionResult, IngestionStatus
from ..utils.logging import get_logger
from .ai_service import DocumentAIService, get_ai_service
from .ocr import PDF_PLACEHOLDER_TEXT, ProgressCallback, TextExtractor, get_text_extractor

logger = get_logger(__name__, prefix="Ingest")


class IngestionPipeline:
    """Runs an uploaded file through OCR and the AI services."""

    def __init__(
        self,
        extractor: TextExtractor,
        ai_service: DocumentAIService,
        min_text_length: int = 10,
    ):
        self.extractor = extractor
        self.ai_service = ai_service
        self.min_text_length = min_text_length

    def has_usable_text(self, text: str) -> bool:
        stripped = text.strip()
        return len(stripped) >= self.min_text_length and stripped != PDF_PLACEHOLDER_TEXT

    async def process(
        self,
        data: bytes,
        content_type: Optional[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> IngestionResult:
        """Extract text and analyze it.

        Args:
            data: Raw file bytes
            content_type: Media type of the upload
            on_progress: Optional OCR progress callback, values in [0, 1]

        Returns:
            IngestionResult with status complete, partial or nothing_extracted

        Raises:
            UnsupportedMediaType: If the file is neither an image nor a PDF
            OcrError: If text extraction fails
        """
        text = await self.extractor.extract(data, content_type, on_progress)

        if not self.has_usable_text(text):
            logger.info(f"Nothing usable extracted ({len(text.strip())} chars), skipping analysis")
            return IngestionResult(status=IngestionStatus.NOTHING_EXTRACTED, extracted_text=text)

        analysis, findings = await asyncio.gather(
            self.ai_service.summarize_and_tag(text),
            self.ai_service.extract_health_findings(text),
            return_exceptions=True,
        )

        result = IngestionResult(status=IngestionStatus.COMPLETE, extracted_text=text)

        if isinstance(analysis, BaseException):
            logger.warning(f"Summary and tagging failed: {analysis}")
        else:
            result.summary = analysis.summary
            result.suggested_tags = analysis.suggested_tags

        if isinstance(findings, BaseException):
            logger.warning(f"Health findings extraction failed: {findings}")
        else:
            result.health_findings = findings

        if isinstance(analysis, BaseException) or isinstance(findings, BaseException):
            result.status = IngestionStatus.PARTIAL

        logger.info(f"Ingestion finished: {result.status.value}")
        return result


_pipeline: Optional[IngestionPipeline] = None


def get_ingestion_pipeline() -> IngestionPipeline:
    """Get the shared ingestion pipeline."""
    global _pipeline
    if _pipeline is None:
        _pipeline = IngestionPipeline(
            extractor=get_text_extractor(),
            ai_service=get_ai_service(),
            min_text_length=get_settings().MIN_EXTRACTED_TEXT_LENGTH,
        )
    return _pipeline
