"""
Assistant endpoint - questions about the caller's own documents.

Streams plain text chunks as they arrive from the LLM.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ..database import get_data_sources
from ..models.ingestion import AssistantQuery
from ..services.assistant_service import AssistantService, get_assistant_service
from ..services.auth import get_current_user
from ..services.data_sources import DataSourceResolver
from ..utils.auth_helpers import get_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/assistant", tags=["assistant"])

STREAM_ERROR_MESSAGE = "\n\n[The assistant is unavailable right now. Please try again later.]"


@router.post("")
async def ask_assistant(
    body: AssistantQuery,
    current_user: dict = Depends(get_current_user),
    data_sources: DataSourceResolver = Depends(get_data_sources),
    assistant: AssistantService = Depends(get_assistant_service),
):
    """Answer a question using the caller's documents. Never gives medical advice."""
    user_id = get_user_id(current_user)
    source = data_sources.for_user(user_id)

    async def generate():
        try:
            async for chunk in assistant.ask(source, user_id, body.query):
                yield chunk
        except Exception as e:
            logger.error(f"Assistant streaming error: {e}", exc_info=True)
            yield STREAM_ERROR_MESSAGE

    return StreamingResponse(
        generate(),
        media_type="text/plain; charset=utf-8",
        headers={"Cache-Control": "no-cache", "X-Content-Type-Options": "nosniff"},
    )
