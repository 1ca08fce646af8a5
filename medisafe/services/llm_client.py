"""
LLM client - thin wrapper around LiteLLM.

All AI features go through this client so model, credentials and timeout
come from one place (settings).
"""

import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import litellm

from ..config.settings import get_settings

logger = logging.getLogger(__name__)


class LLMClient:
    """Chat-completion client for the configured provider."""

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: float = 60.0,
    ):
        self.model = model
        self.api_key = api_key
        self.api_base = api_base
        self.timeout = timeout

    async def is_configured(self) -> bool:
        return bool(self.model)

    def _request_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"model": self.model, "timeout": self.timeout}
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        return kwargs

    async def completion(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        """Non-streaming completion. Returns the LiteLLM ModelResponse."""
        kwargs = self._request_kwargs()
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        logger.debug(f"LLM completion: model={self.model}, messages={len(messages)}")
        return await litellm.acompletion(messages=messages, **kwargs)

    async def stream_completion(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> AsyncIterator[str]:
        """Streaming completion yielding text deltas."""
        kwargs = self._request_kwargs()
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        response = await litellm.acompletion(messages=messages, stream=True, **kwargs)
        async for chunk in response:
            delta = chunk.choices[0].delta.content if chunk.choices else None
            if delta:
                yield delta


_llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get the shared LLM client."""
    global _llm_client
    if _llm_client is None:
        settings = get_settings()
        _llm_client = LLMClient(
            model=settings.LLM_MODEL,
            api_key=settings.LLM_API_KEY,
            api_base=settings.LLM_API_BASE,
            timeout=settings.LLM_TIMEOUT,
        )
    return _llm_client
