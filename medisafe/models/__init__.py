"""Data models"""

from .document import (
    DocumentResponse,
    EmergencyContact,
    EmergencyQRResponse,
    HealthProfile,
    HealthProfileUpdate,
    MedicalDocument,
)
from .ingestion import (
    AssistantQuery,
    DocumentAnalysis,
    HealthFinding,
    IngestionResult,
    IngestionStatus,
    TagSuggestionResponse,
)
from .share import (
    AccessLogEntry,
    MaxViewsChoice,
    RequestContext,
    ShareDuration,
    ShareLink,
    ShareLinkCreate,
    ShareLinkResponse,
    ShareLinkSummary,
    ShareResolution,
    ShareStatus,
    SharedDocumentResponse,
)

__all__ = [
    "DocumentResponse", "EmergencyContact", "EmergencyQRResponse",
    "HealthProfile", "HealthProfileUpdate", "MedicalDocument",
    "AssistantQuery", "DocumentAnalysis", "HealthFinding",
    "IngestionResult", "IngestionStatus", "TagSuggestionResponse",
    "AccessLogEntry",
    "MaxViewsChoice",
    "RequestContext",
    "ShareDuration",
    "ShareLink",
    "ShareLinkCreate",
    "ShareLinkResponse",
    "ShareLinkSummary",
    "SharedDocumentResponse",
    "ShareResolution",
    "ShareStatus",
]
