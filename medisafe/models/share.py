"""Share link models for time- and quota-limited document sharing.

A share link is a capability URL: whoever holds ``/share/{id}`` may view the
linked document until the link expires or its view quota is used up.
"""

from datetime import datetime, timedelta
from enum import Enum, IntEnum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .document import DocumentResponse, MedicalDocument


class ShareDuration(str, Enum):
    """Lifetimes an owner can choose for a share link."""

    ONE_HOUR = "1_hour"
    ONE_DAY = "1_day"
    SEVEN_DAYS = "7_days"

    @property
    def delta(self) -> timedelta:
        return _DURATIONS[self]


_DURATIONS = {
    ShareDuration.ONE_HOUR: timedelta(hours=1),
    ShareDuration.ONE_DAY: timedelta(days=1),
    ShareDuration.SEVEN_DAYS: timedelta(days=7),
}


class MaxViewsChoice(IntEnum):
    """View quotas an owner can choose (0 = unlimited)."""

    ONE = 1
    FIVE = 5
    TEN = 10
    UNLIMITED = 0


class ShareStatus(str, Enum):
    """Closed set of outcomes when a share link is resolved."""

    VALID = "valid"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    LIMIT_REACHED = "limit_reached"
    ERROR = "error"


class AccessLogEntry(BaseModel):
    """One successful view of a shared document."""

    accessed_at: datetime
    ip_address: str = Field(..., description="Best-effort origin address")
    user_agent: str = Field(..., description="Client-supplied user agent")


class RequestContext(BaseModel):
    """Who is knocking on a share link."""

    ip_address: str = "unknown"
    user_agent: str = "unknown"


class ShareLink(BaseModel):
    """Share link record as stored in the registry."""

    id: Optional[str] = Field(default=None, alias="_id")
    owner_id: str = Field(..., description="User who created the link")
    document_id: str = Field(..., description="Shared document")
    created_at: datetime
    expires_at: datetime
    max_views: int = Field(default=0, ge=0, description="0 = unlimited")
    view_count: int = Field(default=0, ge=0)
    access_logs: List[AccessLogEntry] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_view_limit_reached(self) -> bool:
        return self.max_views > 0 and self.view_count >= self.max_views

    @property
    def views_remaining(self) -> Optional[int]:
        """Remaining views, or None when unlimited."""
        if self.max_views == 0:
            return None
        return max(self.max_views - self.view_count, 0)


class ShareLinkCreate(BaseModel):
    """Request model for creating a share link."""

    document_id: str = Field(..., min_length=1, description="ID of document to share")
    duration: ShareDuration = Field(
        default=ShareDuration.ONE_HOUR,
        description="How long the link stays valid",
    )
    max_views: MaxViewsChoice = Field(
        default=MaxViewsChoice.ONE,
        description="Maximum number of views (0 = unlimited)",
    )

    model_config = {"extra": "forbid"}


class ShareLinkResponse(BaseModel):
    """Response model for share link information."""

    id: str
    share_url: str
    document_id: str
    created_at: datetime
    expires_at: datetime
    max_views: int
    view_count: int
    views_remaining: Optional[int] = None

    model_config = {"extra": "forbid"}


class ShareResolution(BaseModel):
    """Result of resolving a share link.

    ``document`` is only set when ``status`` is VALID. ``share_link`` carries
    the snapshot read from the registry whenever one was read.
    """

    status: ShareStatus
    share_link: Optional[ShareLink] = None
    document: Optional[MedicalDocument] = None

    @property
    def is_valid(self) -> bool:
        return self.status == ShareStatus.VALID


class ShareLinkSummary(BaseModel):
    """Public view of a share link; never includes the access log."""

    expires_at: datetime
    max_views: int
    view_count: int
    views_remaining: Optional[int] = None

    @classmethod
    def from_link(cls, link: ShareLink) -> "ShareLinkSummary":
        return cls(
            expires_at=link.expires_at,
            max_views=link.max_views,
            view_count=link.view_count,
            views_remaining=link.views_remaining,
        )


class SharedDocumentResponse(BaseModel):
    """Body of ``GET /share/{id}`` for every outcome."""

    status: ShareStatus
    title: str
    message: str
    share_link: Optional[ShareLinkSummary] = None
    document: Optional[DocumentResponse] = None
