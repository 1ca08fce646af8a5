"""
Document AI service - summaries, tags and health findings from extracted text.

Each operation sends one prompt to the LLM and expects a JSON object back.
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..models.ingestion import DocumentAnalysis, HealthFinding
from ..utils.exceptions import AIServiceError
from ..utils.logging import get_logger
from .llm_client import LLMClient, get_llm_client

logger = get_logger(__name__, prefix="AI")

SUMMARIZE_AND_TAG_PROMPT = """You are an AI assistant specialized in analyzing medical documents.

Based on the content of the document text provided, do two things:
1. Write a concise summary of the key information, such as doctor remarks, test results, or diagnosis.
2. Suggest a list of relevant tags that would help categorize the document.

Return a JSON object: {{"summary": "...", "suggested_tags": ["...", "..."]}}

Document Text: {text}
"""

HEALTH_FINDINGS_PROMPT = """You are an expert AI medical data analyst. Scan the medical document below and identify key medical terms, test results, and values.

For each significant finding, give the term and a brief, neutral observation.

CRITICAL RULE: You are FORBIDDEN from giving medical advice, diagnoses, or treatment recommendations. Observations must be purely informational and encourage consultation with a real doctor.

Good observation: "This value is outside the typical reference range for an adult male."
Bad observation: "You have anemia, you should take iron supplements."

Return a JSON object: {{"findings": [{{"term": "...", "observation": "..."}}]}}

Document Text: {text}
"""

SUGGEST_TAGS_PROMPT = """You are an AI assistant specialized in analyzing medical documents and suggesting relevant tags.

Based on the content of the document, suggest a list of tags that would help the user categorize and find the document later.

Return a JSON object: {{"suggested_tags": ["...", "..."]}}

Document Text: {text}
"""

SYSTEM_PROMPT = "You analyze medical documents. Return only valid JSON objects."


def strip_code_fences(content: str) -> str:
    """Remove markdown code fences the model sometimes wraps JSON in."""
    content = content.strip()
    if content.startswith("```"):
        lines = [l for l in content.split("\n") if not l.strip().startswith("```")]
        content = "\n".join(lines)
    return content.strip()


class DocumentAIService:
    """LLM-backed analysis of document text."""

    def __init__(self, llm: Optional[LLMClient] = None):
        self._llm = llm or get_llm_client()

    async def summarize_and_tag(self, text: str) -> DocumentAnalysis:
        data = await self._call_llm(SUMMARIZE_AND_TAG_PROMPT.format(text=text))
        try:
            analysis = DocumentAnalysis(**data)
        except (TypeError, ValidationError) as e:
            raise AIServiceError(f"Malformed summary response: {e}") from e
        logger.info(f"Summarized document ({len(analysis.suggested_tags)} tags)")
        return analysis

    async def extract_health_findings(self, text: str) -> List[HealthFinding]:
        """Key terms with neutral observations, passed through verbatim."""
        data = await self._call_llm(HEALTH_FINDINGS_PROMPT.format(text=text))
        raw = data.get("findings", [])
        if not isinstance(raw, list):
            raise AIServiceError("Malformed findings response: 'findings' is not a list")
        try:
            findings = [HealthFinding(**item) for item in raw]
        except (TypeError, ValidationError) as e:
            raise AIServiceError(f"Malformed finding in response: {e}") from e
        logger.info(f"Extracted {len(findings)} health findings")
        return findings

    async def suggest_tags(self, text: str) -> List[str]:
        data = await self._call_llm(SUGGEST_TAGS_PROMPT.format(text=text))
        tags = data.get("suggested_tags", [])
        if not isinstance(tags, list):
            raise AIServiceError("Malformed tag response: 'suggested_tags' is not a list")
        return [str(t).strip() for t in tags if str(t).strip()]

    # Internal

    async def _call_llm(self, prompt: str) -> Dict[str, Any]:
        """Send a prompt and parse the JSON object in the answer.

        Raises:
            AIServiceError: If the call fails or the answer is not a JSON object
        """
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

        try:
            response = await self._llm.completion(
                messages=messages,
                temperature=0.2,
                max_tokens=2048,
            )
            content = response.choices[0].message.content or ""
        except Exception as e:
            logger.error(f"LLM call failed: {e}")
            raise AIServiceError(f"AI service unavailable: {e}") from e

        content = strip_code_fences(content)
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse LLM response: {e}")
            logger.debug(f"Raw response: {content[:500]}")
            raise AIServiceError("AI service returned invalid JSON") from e

        if not isinstance(data, dict):
            raise AIServiceError("AI service returned JSON that is not an object")
        return data


_ai_service: Optional[DocumentAIService] = None


def get_ai_service() -> DocumentAIService:
    global _ai_service
    if _ai_service is None:
        _ai_service = DocumentAIService()
    return _ai_service
