"""
Document assistant - answers questions about a user's own documents.

The assistant is stateless: each query searches the caller's documents by
keyword and streams a short answer grounded on the matches.
"""

import re
from typing import AsyncIterator, List, Optional

from ..models.document import MedicalDocument
from ..utils.logging import get_logger
from .data_sources import DataSource
from .llm_client import LLMClient, get_llm_client

logger = get_logger(__name__, prefix="Assistant")

ASSISTANT_SYSTEM_PROMPT = """You are a helpful AI assistant for the MediSafe app.
Your role is to answer questions based on the user's uploaded medical documents, which are listed below.
If none of the documents are relevant, tell the user you could not find any.
Keep your answers concise and directly related to the information in the documents.
Do not provide medical advice."""

NO_DOCUMENTS_CONTEXT = "No matching documents were found."

MAX_CONTEXT_DOCUMENTS = 5

_STOPWORDS = {
    "a", "an", "and", "are", "did", "do", "does", "for", "from", "had", "has",
    "have", "how", "i", "in", "is", "it", "last", "me", "my", "of", "on",
    "show", "tell", "the", "to", "was", "were", "what", "when", "where",
    "which", "who", "with", "about",
}


def extract_keywords(query: str) -> List[str]:
    words = re.findall(r"[a-z0-9]+", query.lower())
    return [w for w in words if w not in _STOPWORDS and len(w) > 1]


def format_documents(documents: List[MedicalDocument]) -> str:
    if not documents:
        return NO_DOCUMENTS_CONTEXT
    blocks = []
    for doc in documents:
        blocks.append(
            f"File: {doc.file_name}\n"
            f"Summary: {doc.summary or 'n/a'}\n"
            f"Content: {doc.file_content or 'n/a'}"
        )
    return "\n\n".join(blocks)


class AssistantService:
    def __init__(self, llm: Optional[LLMClient] = None):
        self._llm = llm or get_llm_client()

    async def find_relevant_documents(
        self, source: DataSource, user_id: str, query: str
    ) -> List[MedicalDocument]:
        """Documents matching the whole query, else any of its keywords."""
        matches = await source.search_documents(user_id, query)
        if matches:
            return matches[:MAX_CONTEXT_DOCUMENTS]

        seen = {}
        for keyword in extract_keywords(query):
            for doc in await source.search_documents(user_id, keyword):
                seen.setdefault(doc.id, doc)
        return list(seen.values())[:MAX_CONTEXT_DOCUMENTS]

    async def ask(self, source: DataSource, user_id: str, query: str) -> AsyncIterator[str]:
        """Stream the answer to ``query`` as text chunks."""
        documents = await self.find_relevant_documents(source, user_id, query)
        logger.info(f"Answering query for {user_id} with {len(documents)} document(s)")

        messages = [
            {"role": "system", "content": ASSISTANT_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f"Documents:\n{format_documents(documents)}\n\nQuestion: {query}",
            },
        ]
        async for chunk in self._llm.stream_completion(messages=messages, temperature=0.3):
            yield chunk


_assistant_service: Optional[AssistantService] = None


def get_assistant_service() -> AssistantService:
    global _assistant_service
    if _assistant_service is None:
        _assistant_service = AssistantService()
    return _assistant_service
