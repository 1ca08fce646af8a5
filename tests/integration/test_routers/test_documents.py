"""
Integration tests for document endpoints.

OCR and the AI services are replaced through dependency overrides, so these
tests exercise routing, upload handling and storage only.
"""

import json
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

from medisafe.config.settings import get_settings
from medisafe.models.ingestion import IngestionResult, IngestionStatus
from medisafe.services.ai_service import get_ai_service
from medisafe.services.ingestion import IngestionPipeline, get_ingestion_pipeline
from medisafe.services.ocr import TextExtractor
from medisafe.utils.exceptions import AIServiceError, OcrError

PNG = ("scan.png", b"\x89PNG fake image", "image/png")


class FakePipeline:
    """Pipeline that reports two progress steps and returns a fixed result."""

    def __init__(self, result=None, error=None):
        self.result = result or IngestionResult(
            status=IngestionStatus.COMPLETE,
            extracted_text="Hemoglobin 14 g/dL",
            summary="Normal blood count.",
            suggested_tags=["Lab Report"],
            health_findings=[],
        )
        self.error = error

    async def process(self, data, content_type, on_progress=None):
        if on_progress:
            on_progress(0.0)
            on_progress(1.0)
        if self.error:
            raise self.error
        return self.result


def parse_sse(text: str) -> list:
    events = []
    for block in text.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        events.append((lines["event"], json.loads(lines["data"])))
    return events


@pytest.mark.integration
class TestListAndRead:

    def test_demo_account_sees_fixture_documents(self, demo_client: TestClient):
        response = demo_client.get("/api/documents")

        assert response.status_code == 200
        documents = response.json()
        assert len(documents) == 4
        assert "user_id" not in documents[0]
        assert "file_path" not in documents[0]

    def test_new_account_has_no_documents(self, client: TestClient):
        response = client.get("/api/documents")

        assert response.status_code == 200
        assert response.json() == []

    def test_requires_authentication(self, anonymous_client: TestClient):
        assert anonymous_client.get("/api/documents").status_code == 401

    def test_unknown_document(self, client: TestClient):
        assert client.get("/api/documents/missing").status_code == 404


@pytest.mark.integration
class TestSaveAndDelete:

    def test_save_get_download_delete(self, client: TestClient):
        saved = client.post(
            "/api/documents",
            files={"file": PNG},
            data={"tags": '["Scan", "Orthopedics"]', "summary": "Knee X-ray"},
        )
        assert saved.status_code == 201
        document = saved.json()
        assert document["file_name"] == "scan.png"
        assert document["tags"] == ["Scan", "Orthopedics"]
        assert document["file_size"] == len(PNG[1])

        fetched = client.get(f"/api/documents/{document['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["summary"] == "Knee X-ray"

        download = client.get(f"/api/documents/{document['id']}/file")
        assert download.status_code == 200
        assert download.content == PNG[1]
        assert download.headers["content-type"] == "image/png"

        assert client.delete(f"/api/documents/{document['id']}").status_code == 204
        assert client.get(f"/api/documents/{document['id']}").status_code == 404
        assert client.delete(f"/api/documents/{document['id']}").status_code == 404

    @pytest.mark.parametrize("file_name", ["血液検査.png", 'scan "final".png'])
    def test_download_with_unusual_file_name(self, client: TestClient, file_name):
        document = client.post("/api/documents", files={"file": PNG}, data={"file_name": file_name}).json()

        download = client.get(f"/api/documents/{document['id']}/file")

        assert download.status_code == 200
        assert download.content == PNG[1]
        assert download.headers["content-disposition"] == f"inline; filename*=utf-8''{quote(file_name)}"

    def test_plain_file_name_header(self, client: TestClient):
        document = client.post("/api/documents", files={"file": PNG}).json()

        download = client.get(f"/api/documents/{document['id']}/file")

        assert download.headers["content-disposition"] == 'inline; filename="scan.png"'

    def test_comma_separated_tags(self, client: TestClient):
        response = client.post("/api/documents", files={"file": PNG}, data={"tags": "Scan, MRI ,"})

        assert response.json()["tags"] == ["Scan", "MRI"]

    def test_other_user_cannot_read(self, client: TestClient, login, other_user):
        document = client.post("/api/documents", files={"file": PNG}).json()

        login(other_user)

        assert client.get(f"/api/documents/{document['id']}").status_code == 404
        assert client.get(f"/api/documents/{document['id']}/file").status_code == 404

    def test_demo_account_cannot_save(self, demo_client: TestClient):
        response = demo_client.post("/api/documents", files={"file": PNG})
        assert response.status_code == 403

    def test_demo_account_cannot_delete(self, demo_client: TestClient):
        assert demo_client.delete("/api/documents/doc1").status_code == 403

    def test_empty_upload(self, client: TestClient):
        response = client.post("/api/documents", files={"file": ("empty.png", b"", "image/png")})
        assert response.status_code == 400

    def test_oversized_upload(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(get_settings(), "MAX_UPLOAD_BYTES", 4)

        response = client.post("/api/documents", files={"file": PNG})

        assert response.status_code == 413


@pytest.mark.integration
class TestAnalyze:

    def test_analyze(self, app, client: TestClient):
        app.dependency_overrides[get_ingestion_pipeline] = lambda: FakePipeline()

        response = client.post("/api/documents/analyze", files={"file": PNG})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "complete"
        assert body["summary"] == "Normal blood count."

    def test_unsupported_type(self, app, client: TestClient):
        pipeline = IngestionPipeline(extractor=TextExtractor(), ai_service=MagicMock())
        app.dependency_overrides[get_ingestion_pipeline] = lambda: pipeline

        response = client.post("/api/documents/analyze", files={"file": ("notes.txt", b"hello", "text/plain")})

        assert response.status_code == 415

    def test_ocr_failure(self, app, client: TestClient):
        app.dependency_overrides[get_ingestion_pipeline] = lambda: FakePipeline(error=OcrError("unreadable"))

        response = client.post("/api/documents/analyze", files={"file": PNG})

        assert response.status_code == 422

    def test_stream_reports_progress_then_result(self, app, client: TestClient):
        app.dependency_overrides[get_ingestion_pipeline] = lambda: FakePipeline()

        response = client.post("/api/documents/analyze/stream", files={"file": PNG})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = parse_sse(response.text)
        assert [name for name, _ in events] == ["progress", "progress", "result"]
        assert [data["progress"] for _, data in events[:2]] == [0.0, 1.0]
        assert events[-1][1]["status"] == "complete"

    def test_stream_reports_error(self, app, client: TestClient):
        app.dependency_overrides[get_ingestion_pipeline] = lambda: FakePipeline(error=OcrError("unreadable"))

        response = client.post("/api/documents/analyze/stream", files={"file": PNG})

        events = parse_sse(response.text)
        assert events[-1] == ("error", {"detail": "unreadable"})


@pytest.mark.integration
class TestSuggestTags:

    def test_suggest_tags(self, app, demo_client: TestClient):
        ai_service = MagicMock()
        ai_service.suggest_tags = AsyncMock(return_value=["Lab Report", "Hematology"])
        app.dependency_overrides[get_ai_service] = lambda: ai_service

        response = demo_client.post("/api/documents/doc1/suggest-tags")

        assert response.status_code == 200
        assert response.json() == {"suggested_tags": ["Lab Report", "Hematology"]}

    def test_document_without_text(self, app, client: TestClient):
        app.dependency_overrides[get_ai_service] = lambda: MagicMock()
        document = client.post("/api/documents", files={"file": PNG}).json()

        response = client.post(f"/api/documents/{document['id']}/suggest-tags")

        assert response.status_code == 422

    def test_ai_failure(self, app, demo_client: TestClient):
        ai_service = MagicMock()
        ai_service.suggest_tags = AsyncMock(side_effect=AIServiceError("provider down"))
        app.dependency_overrides[get_ai_service] = lambda: ai_service

        response = demo_client.post("/api/documents/doc1/suggest-tags")

        assert response.status_code == 502
