"""Share service for time- and quota-limited document links.

Implements the share link lifecycle: creation by the document owner, and
resolution by anyone holding the link. Resolution never raises for expected
conditions; it returns one of the ``ShareStatus`` outcomes.
"""

from datetime import datetime
from typing import Callable, List, Optional

from ..models.share import (
    AccessLogEntry,
    MaxViewsChoice,
    RequestContext,
    ShareDuration,
    ShareLink,
    ShareLinkResponse,
    ShareResolution,
    ShareStatus,
)
from ..utils.clock import utcnow
from ..utils.exceptions import ShareLinkNotFound, SharePermissionError
from ..utils.logging import get_logger
from .data_sources import DataSourceResolver
from .share_registry import ShareLinkRegistry

logger = get_logger(__name__, prefix="Share")

STATUS_MESSAGES = {
    ShareStatus.VALID: ("Shared Medical Document", "This document was shared with you securely."),
    ShareStatus.NOT_FOUND: (
        "Not Found",
        "This share link is invalid or the document no longer exists.",
    ),
    ShareStatus.EXPIRED: (
        "Link Expired",
        "This share link has expired and is no longer active.",
    ),
    ShareStatus.LIMIT_REACHED: (
        "Access Limit Reached",
        "This document has been viewed the maximum number of times.",
    ),
    ShareStatus.ERROR: (
        "Error",
        "Could not retrieve the shared document. Please try again later.",
    ),
}


class ShareService:
    """Creates share links and validates access attempts against them.

    The service keeps no mutable state of its own; every view is counted by
    the registry in a single conditional update.
    """

    def __init__(
        self,
        registry: ShareLinkRegistry,
        data_sources: DataSourceResolver,
        base_url: str = "http://localhost:3000",
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize share service.

        Args:
            registry: Share link persistence
            data_sources: Picks where a link owner's documents are read from
            base_url: Public base URL used to build share links
            clock: Source of the current time (UTC, timezone-aware)
        """
        self.registry = registry
        self.data_sources = data_sources
        self.base_url = base_url.rstrip("/")
        self._clock = clock

    async def create_share_link(
        self,
        owner_id: str,
        document_id: str,
        duration: ShareDuration,
        max_views: MaxViewsChoice,
    ) -> ShareLink:
        """Create a new share link for a document.

        The caller must already be authenticated as ``owner_id``. The
        document itself is not looked up here; a missing document surfaces
        as NOT_FOUND on first access.

        Args:
            owner_id: User creating the link
            document_id: Document to share
            duration: How long the link stays valid
            max_views: View quota, 0 for unlimited

        Returns:
            The persisted share link, including its assigned id
        """
        now = self._clock()
        link = ShareLink(
            owner_id=owner_id,
            document_id=document_id,
            created_at=now,
            expires_at=now + ShareDuration(duration).delta,
            max_views=int(max_views),
            view_count=0,
            access_logs=[],
        )

        link_id = await self.registry.create(link)
        link.id = link_id

        logger.info(
            f"Created share link {link_id} for document {document_id} by {owner_id} "
            f"(expires {link.expires_at.isoformat()}, max_views={link.max_views})"
        )
        return link

    async def resolve_share_link(
        self, link_id: str, context: RequestContext
    ) -> ShareResolution:
        """Validate an access attempt and, if allowed, count it.

        Checks run in a fixed order and the first failing one wins:
        existence, expiry, quota. Expiry is checked before quota so a link
        that is both expired and exhausted reports EXPIRED. A view is only
        counted when all checks pass, and it stays counted even if the
        document turns out to be gone.

        Args:
            link_id: Share link id from the URL
            context: Caller IP and user agent for the access log

        Returns:
            ShareResolution with the outcome, the link snapshot and, when
            VALID, the document
        """
        now = self._clock()

        try:
            link = await self.registry.get(link_id)
        except Exception as e:
            logger.error(f"Failed to read share link {link_id}: {e}", exc_info=True)
            return ShareResolution(status=ShareStatus.ERROR)

        if link is None:
            logger.info(f"Share link {link_id} not found")
            return ShareResolution(status=ShareStatus.NOT_FOUND)

        rejection = self._check_policy(link, now)
        if rejection is not None:
            logger.info(f"Share link {link_id} rejected: {rejection.value}")
            return ShareResolution(status=rejection, share_link=link)

        entry = AccessLogEntry(
            accessed_at=now,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )
        try:
            updated = await self.registry.record_view(link_id, entry, now)
        except Exception as e:
            logger.error(f"Failed to record view on share link {link_id}: {e}", exc_info=True)
            return ShareResolution(status=ShareStatus.ERROR, share_link=link)

        if updated is None:
            # Another viewer took the last view (or the link vanished) between
            # our read and the conditional write.
            return await self._classify_after_lost_race(link_id, now)

        source = self.data_sources.for_user(updated.owner_id)
        try:
            document = await source.get_document(updated.document_id)
        except Exception as e:
            logger.warning(
                f"Failed to load document {updated.document_id} for share link {link_id}: {e}"
            )
            document = None

        if document is None or document.user_id != updated.owner_id:
            logger.info(
                f"Share link {link_id} points at missing document {updated.document_id}"
            )
            return ShareResolution(status=ShareStatus.NOT_FOUND, share_link=updated)

        logger.info(
            f"Share link {link_id} viewed from {context.ip_address} "
            f"(view {updated.view_count}/{updated.max_views or 'unlimited'})"
        )
        return ShareResolution(
            status=ShareStatus.VALID, share_link=updated, document=document
        )

    async def list_share_links(self, owner_id: str, document_id: str) -> List[ShareLink]:
        """List the links an owner created for one of their documents."""
        return await self.registry.list_for_document(owner_id, document_id)

    async def get_access_logs(self, link_id: str, owner_id: str) -> List[AccessLogEntry]:
        """Get the access log of a share link.

        Raises:
            ShareLinkNotFound: If the link does not exist
            SharePermissionError: If the caller did not create the link
        """
        link = await self.registry.get(link_id)
        if link is None:
            raise ShareLinkNotFound(f"Share link {link_id} not found")
        if link.owner_id != owner_id:
            raise SharePermissionError("Only the creator can view access logs")
        return link.access_logs

    def share_url(self, link_id: str) -> str:
        return f"{self.base_url}/share/{link_id}"

    def to_response(self, link: ShareLink) -> ShareLinkResponse:
        """Convert a ShareLink to its API response model."""
        return ShareLinkResponse(
            id=link.id,
            share_url=self.share_url(link.id),
            document_id=link.document_id,
            created_at=link.created_at,
            expires_at=link.expires_at,
            max_views=link.max_views,
            view_count=link.view_count,
            views_remaining=link.views_remaining,
        )

    # Private helper methods

    @staticmethod
    def _check_policy(link: ShareLink, now: datetime) -> Optional[ShareStatus]:
        """Return the rejection for a link, or None if it may be viewed."""
        if link.is_expired(now):
            return ShareStatus.EXPIRED
        if link.is_view_limit_reached():
            return ShareStatus.LIMIT_REACHED
        return None

    async def _classify_after_lost_race(self, link_id: str, now: datetime) -> ShareResolution:
        try:
            current = await self.registry.get(link_id)
        except Exception as e:
            logger.error(f"Failed to re-read share link {link_id}: {e}", exc_info=True)
            return ShareResolution(status=ShareStatus.ERROR)

        if current is None:
            return ShareResolution(status=ShareStatus.NOT_FOUND)

        status = self._check_policy(current, now) or ShareStatus.LIMIT_REACHED
        logger.info(f"Share link {link_id} rejected after concurrent access: {status.value}")
        return ShareResolution(status=status, share_link=current)
