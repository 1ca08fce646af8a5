"""
Integration tests for the health check endpoint.
"""

from unittest.mock import patch

import pytest
import pytesseract
from fastapi.testclient import TestClient


@pytest.mark.integration
def test_health_with_tesseract_available(client: TestClient):
    with patch("medisafe.routers.health.pytesseract.get_tesseract_version", return_value="5.3.0"):
        response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["services"]["storage"]["healthy"] is True
    assert data["services"]["ocr"]["message"] == "tesseract 5.3.0"
    assert data["config"]["storage_backend"] == "memory"


@pytest.mark.integration
def test_missing_tesseract_only_degrades(client: TestClient):
    with patch(
        "medisafe.routers.health.pytesseract.get_tesseract_version",
        side_effect=pytesseract.TesseractNotFoundError(),
    ):
        response = client.get("/health")

    data = response.json()
    assert data["status"] == "degraded"
    assert data["overall_healthy"] is False
    assert data["critical_services_healthy"] is True


@pytest.mark.integration
def test_health_does_not_expose_secrets(client: TestClient):
    response = client.get("/health")

    config = response.json()["config"]
    assert "LLM_API_KEY" not in config
    assert not any("key" in name.lower() for name in config)


@pytest.mark.integration
def test_root(anonymous_client: TestClient):
    response = anonymous_client.get("/")

    assert response.status_code == 200
    assert response.json()["name"] == "MediSafe API"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_ocr_check_uses_configured_tesseract_binary(test_env, monkeypatch):
    from medisafe.config.settings import get_settings
    from medisafe.routers.health import check_ocr_health
    from medisafe.services import ocr

    monkeypatch.setattr(get_settings(), "TESSERACT_CMD", "/opt/tesseract/bin/tesseract")
    monkeypatch.setattr(ocr, "_text_extractor", None)
    monkeypatch.setattr(pytesseract.pytesseract, "tesseract_cmd", "tesseract")
    seen = []

    def fake_version():
        seen.append(pytesseract.pytesseract.tesseract_cmd)
        return "5.3.0"

    with patch("medisafe.routers.health.pytesseract.get_tesseract_version", side_effect=fake_version):
        health = await check_ocr_health()

    assert health.healthy is True
    assert seen == ["/opt/tesseract/bin/tesseract"]
