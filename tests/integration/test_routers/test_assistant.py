"""
Integration tests for the streaming assistant endpoint.
"""

import pytest
from httpx import AsyncClient

from medisafe.routers.assistant import STREAM_ERROR_MESSAGE
from medisafe.services.assistant_service import get_assistant_service


class FakeAssistant:
    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error
        self.calls = []

    async def ask(self, source, user_id, query):
        self.calls.append((user_id, query))
        for chunk in self.chunks:
            yield chunk
        if self.error:
            raise self.error


@pytest.mark.integration
class TestAssistantEndpoint:

    @pytest.mark.asyncio
    async def test_streams_answer(self, app, async_client: AsyncClient):
        assistant = FakeAssistant(["Your last ", "blood test ", "was normal."])
        app.dependency_overrides[get_assistant_service] = lambda: assistant

        response = await async_client.post("/api/assistant", json={"query": "How was my blood test?"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Your last blood test was normal."
        assert assistant.calls == [("user-123", "How was my blood test?")]

    @pytest.mark.asyncio
    async def test_error_mid_stream(self, app, async_client: AsyncClient):
        assistant = FakeAssistant(["Partial answer"], error=RuntimeError("provider dropped"))
        app.dependency_overrides[get_assistant_service] = lambda: assistant

        response = await async_client.post("/api/assistant", json={"query": "anything"})

        assert response.status_code == 200
        assert response.text == "Partial answer" + STREAM_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_empty_query_rejected(self, async_client: AsyncClient):
        response = await async_client.post("/api/assistant", json={"query": ""})
        assert response.status_code == 422
