"""Share API endpoints for time- and quota-limited document links.

Thin router layer that delegates to ShareService for business logic.
``public_router`` serves the capability URL ``/share/{link_id}``, which needs
no authentication; ``router`` holds the owner endpoints.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from ..config.settings import get_settings
from ..database import get_data_sources, get_share_registry
from ..models.document import DocumentResponse
from ..models.share import (
    AccessLogEntry,
    ShareLinkCreate,
    ShareLinkResponse,
    ShareLinkSummary,
    ShareStatus,
    SharedDocumentResponse,
)
from ..services.auth import get_current_user
from ..services.data_sources import DataSourceResolver
from ..services.share_registry import ShareLinkRegistry
from ..services.share_service import STATUS_MESSAGES, ShareService
from ..utils.auth_helpers import get_user_id
from ..utils.exceptions import ShareLinkNotFound, SharePermissionError
from ..utils.request_context import build_request_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/share", tags=["sharing"])
public_router = APIRouter(tags=["sharing"])

STATUS_CODES = {
    ShareStatus.VALID: 200,
    ShareStatus.NOT_FOUND: 404,
    ShareStatus.EXPIRED: 410,
    ShareStatus.LIMIT_REACHED: 403,
    ShareStatus.ERROR: 503,
}


def get_share_service(
    registry: ShareLinkRegistry = Depends(get_share_registry),
    data_sources: DataSourceResolver = Depends(get_data_sources),
) -> ShareService:
    """Dependency injection for ShareService."""
    return ShareService(
        registry=registry,
        data_sources=data_sources,
        base_url=get_settings().PUBLIC_BASE_URL,
    )


@router.post("", response_model=ShareLinkResponse, status_code=201)
async def create_share_link(
    data: ShareLinkCreate,
    current_user: dict = Depends(get_current_user),
    service: ShareService = Depends(get_share_service),
) -> ShareLinkResponse:
    """Create a share link for one of the caller's documents.

    Args:
        data: Document id, duration and view quota
        current_user: Authenticated user
        service: Share service instance

    Returns:
        Created share link with its public URL
    """
    link = await service.create_share_link(
        owner_id=get_user_id(current_user),
        document_id=data.document_id,
        duration=data.duration,
        max_views=data.max_views,
    )
    return service.to_response(link)


@router.get("/document/{document_id}", response_model=List[ShareLinkResponse])
async def list_share_links(
    document_id: str,
    current_user: dict = Depends(get_current_user),
    service: ShareService = Depends(get_share_service),
) -> List[ShareLinkResponse]:
    """List the caller's share links for a document, newest first."""
    links = await service.list_share_links(get_user_id(current_user), document_id)
    return [service.to_response(link) for link in links]


@router.get("/{link_id}/logs", response_model=List[AccessLogEntry])
async def get_access_logs(
    link_id: str,
    current_user: dict = Depends(get_current_user),
    service: ShareService = Depends(get_share_service),
) -> List[AccessLogEntry]:
    """Get the access log of a share link.

    Raises:
        403: If the caller did not create the link
        404: If the link does not exist
    """
    try:
        return await service.get_access_logs(link_id, get_user_id(current_user))
    except ShareLinkNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SharePermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@public_router.get("/share/{link_id}", response_model=SharedDocumentResponse)
async def view_shared_document(
    link_id: str,
    request: Request,
    service: ShareService = Depends(get_share_service),
):
    """Open a shared document.

    Public endpoint. Every successful call counts as one view and is
    recorded in the link's access log; rejected calls change nothing.

    Returns:
        200 with the document, or 404 / 410 / 403 / 503 with a status and a
        message for not_found / expired / limit_reached / error
    """
    resolution = await service.resolve_share_link(link_id, build_request_context(request))

    title, message = STATUS_MESSAGES[resolution.status]
    body = SharedDocumentResponse(
        status=resolution.status,
        title=title,
        message=message,
        share_link=ShareLinkSummary.from_link(resolution.share_link) if resolution.share_link else None,
        document=DocumentResponse.from_document(resolution.document) if resolution.document else None,
    )
    return JSONResponse(
        status_code=STATUS_CODES[resolution.status],
        content=body.model_dump(mode="json"),
        headers={"Cache-Control": "no-store"},
    )
