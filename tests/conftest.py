"""
Pytest configuration and shared fixtures for backend tests.

This file provides common test fixtures used across unit and integration tests:
- Test clients for API testing (authenticated, demo and anonymous)
- In-memory stores and a controllable clock
- Mock AI/LLM fixtures
"""

import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def test_env():
    """Set up test environment variables."""
    os.environ["ENV_NAME"] = "test"
    os.environ["STORAGE_BACKEND"] = "memory"
    os.environ["PUBLIC_BASE_URL"] = "https://medisafe.test"
    os.environ["DEMO_USER_IDS"] = "test-user-id"
    os.environ["LLM_MODEL"] = "test/model"

    from medisafe.config.settings import get_settings
    get_settings.cache_clear()


@pytest.fixture
def app(test_env):
    """FastAPI application instance for testing."""
    # Import here to ensure test env is set first
    from main import app as fastapi_app
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def login(app):
    """Make requests run as the given user dict (bypasses token validation)."""
    from medisafe.services.auth import get_current_user

    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user

    return _login


@pytest.fixture
def client(app, login, mock_user) -> Generator[TestClient, None, None]:
    """
    Synchronous test client authenticated as ``mock_user``.

    Each client runs the app lifespan, so stores start empty.
    """
    login(mock_user)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def demo_client(app, login, demo_user) -> Generator[TestClient, None, None]:
    """Test client authenticated as the fixture-backed demo account."""
    login(demo_user)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def anonymous_client(app) -> Generator[TestClient, None, None]:
    """Test client without authentication."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
async def async_client(app, login, mock_user) -> AsyncGenerator[AsyncClient, None]:
    """
    Asynchronous test client for API testing.

    ASGITransport does not run the lifespan, so backends are attached here.
    """
    from medisafe.config.settings import get_settings
    from medisafe.database import attach_backends

    login(mock_user)
    attach_backends(app, get_settings())
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac


# =============================================================================
# Authentication Fixtures
# =============================================================================

@pytest.fixture
def mock_user():
    """Mock authenticated user for testing."""
    return {
        "sub": "user-123",
        "email": "test@example.com",
        "name": "Test User",
    }


@pytest.fixture
def other_user():
    return {
        "sub": "user-456",
        "email": "other@example.com",
        "name": "Other User",
    }


@pytest.fixture
def demo_user():
    """The demo account served from built-in fixtures."""
    return {
        "sub": "test-user-id",
        "email": "demo@example.com",
        "name": "Alex Doe",
    }


# =============================================================================
# Service Fixtures
# =============================================================================

class FakeClock:
    """Clock whose time only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def document_store():
    from medisafe.services.document_store import InMemoryDocumentStore
    return InMemoryDocumentStore()


@pytest.fixture
def profile_store():
    from medisafe.services.document_store import InMemoryProfileStore
    return InMemoryProfileStore()


@pytest.fixture
def share_registry():
    from medisafe.services.share_registry import InMemoryShareLinkRegistry
    return InMemoryShareLinkRegistry()


@pytest.fixture
def file_storage():
    from medisafe.services.file_storage import InMemoryFileStorage
    return InMemoryFileStorage()


@pytest.fixture
def data_sources(document_store, profile_store):
    """Resolver treating only ``test-user-id`` as a demo account."""
    from medisafe.fixtures import DEMO_DOCUMENTS, DEMO_PROFILE
    from medisafe.services.data_sources import (
        DataSourceResolver,
        FixtureDataSource,
        StoreDataSource,
    )

    return DataSourceResolver(
        store_source=StoreDataSource(document_store, profile_store),
        fixture_source=FixtureDataSource(DEMO_DOCUMENTS, [DEMO_PROFILE]),
        is_demo_user=lambda user_id: user_id == "test-user-id",
    )


@pytest.fixture
def sample_document():
    from medisafe.models.document import MedicalDocument
    return MedicalDocument(
        id="doc-abc",
        user_id="user-123",
        file_name="CBC Panel.pdf",
        tags=["Lab Report"],
        uploaded_at=datetime(2024, 4, 2, 8, 0, tzinfo=timezone.utc),
        summary="Complete blood count.",
        file_content="Hemoglobin 13.5 g/dL. WBC 6.1.",
        file_type="application/pdf",
    )


@pytest.fixture
def mock_llm_client():
    """Mock LLM client returning a fixed completion."""
    client = MagicMock()
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = "{}"
    client.completion = AsyncMock(return_value=response)
    client.is_configured = AsyncMock(return_value=True)
    return client


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Pytest configuration hook."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
