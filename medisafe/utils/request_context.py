"""Helpers for extracting caller details from incoming requests."""

from fastapi import Request

from ..models.share import RequestContext

UNKNOWN = "unknown"


def get_client_ip(request: Request) -> str:
    """Best-effort client address.

    Prefers the first hop of X-Forwarded-For (set by the reverse proxy),
    then the socket peer, then a placeholder.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN


def build_request_context(request: Request) -> RequestContext:
    return RequestContext(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent") or UNKNOWN,
    )
