"""Models produced by the document ingestion pipeline and AI services."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class HealthFinding(BaseModel):
    """A medical term spotted in a document with a neutral observation."""

    term: str = Field(..., description="Term or value, e.g. 'Hemoglobin: 8 g/dL'")
    observation: str = Field(
        ..., description="Informational note, never a diagnosis or treatment"
    )


class DocumentAnalysis(BaseModel):
    """Summary and tag suggestions for a document."""

    summary: str
    suggested_tags: List[str] = Field(default_factory=list)


class IngestionStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    NOTHING_EXTRACTED = "nothing_extracted"


class IngestionResult(BaseModel):
    """Outcome of running a file through OCR and the AI services.

    AI-derived fields stay None when the corresponding call failed or was
    never made.
    """

    status: IngestionStatus
    extracted_text: str = ""
    summary: Optional[str] = None
    suggested_tags: Optional[List[str]] = None
    health_findings: Optional[List[HealthFinding]] = None


class TagSuggestionResponse(BaseModel):
    suggested_tags: List[str]


class AssistantQuery(BaseModel):
    query: str = Field(..., min_length=1, max_length=2000)
