"""
Middleware configuration for the MediSafe backend.

Centralizes CORS configuration, request logging, and global exception handlers.
"""

import json
import logging
import time
import traceback

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pymongo.errors import ConnectionFailure, PyMongoError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..config.settings import get_settings
from ..utils.logging import LOG_FORMAT

logger = logging.getLogger(__name__)
request_logger = logging.getLogger("api.requests")


def setup_cors_middleware(app: FastAPI) -> None:
    """Configure CORS middleware for the FastAPI application."""
    allowed_origins = list(get_settings().CORS_ORIGINS) or ["*"]
    logger.info(f"CORS configured with origins: {allowed_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log API requests and JSON responses.

    Excludes:
    - Health check and docs endpoints
    - Response bodies that carry medical data (documents, profiles, shares)
    - Binary and streaming responses
    """

    EXCLUDED_PATHS = {
        "/health",
        "/docs",
        "/redoc",
        "/openapi.json",
    }

    # Status line only; bodies on these paths contain health information
    SENSITIVE_PATH_PREFIXES = (
        "/share/",
        "/emergency/",
        "/api/documents",
        "/api/profile",
        "/api/assistant",
        "/api/share",
    )

    UNLOGGED_CONTENT_TYPES = (
        "audio/",
        "image/",
        "video/",
        "application/octet-stream",
        "application/pdf",
        "text/event-stream",
    )

    def should_log_request(self, path: str) -> bool:
        for excluded in self.EXCLUDED_PATHS:
            if path == excluded or path.startswith(excluded):
                return False
        return True

    def should_log_response_body(self, path: str, content_type: str) -> bool:
        if path.startswith(self.SENSITIVE_PATH_PREFIXES):
            return False
        return not any(content_type.startswith(t) for t in self.UNLOGGED_CONTENT_TYPES)

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if not self.should_log_request(path):
            return await call_next(request)

        start_time = time.time()
        request_logger.info(f"→ {request.method} {path}")

        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000

        content_type = response.headers.get("content-type", "")
        status_line = f"← {request.method} {path} - {response.status_code} - {duration_ms:.2f}ms"

        if isinstance(response, StreamingResponse) or content_type.startswith("text/event-stream"):
            request_logger.info(f"{status_line} (streaming response)")
            return response

        if response.status_code == 204 or not self.should_log_response_body(path, content_type):
            request_logger.info(status_line)
            return response

        response_body = b""
        async for chunk in response.body_iterator:
            response_body += chunk

        try:
            compact_json = json.dumps(json.loads(response_body), separators=(",", ":"))
            if len(compact_json) > 120:
                compact_json = compact_json[:120] + "..."
            request_logger.info(f"{status_line} | {compact_json}")
        except (json.JSONDecodeError, UnicodeDecodeError):
            request_logger.info(status_line)

        return Response(
            content=response_body,
            status_code=response.status_code,
            headers=dict(response.headers),
            media_type=response.media_type,
        )


ERROR_TYPE_MAP = {
    400: ("bad_request", "validation"),
    401: ("authentication_failure", "security"),
    403: ("forbidden", "security"),
    404: ("not_found", "resource"),
    409: ("conflict", "resource"),
    410: ("gone", "resource"),
    413: ("payload_too_large", "validation"),
    415: ("unsupported_media_type", "validation"),
    422: ("validation_error", "validation"),
    500: ("internal_error", "server"),
    502: ("bad_gateway", "server"),
    503: ("service_unavailable", "server"),
}


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure global exception handlers for the FastAPI application."""

    @app.exception_handler(ConnectionFailure)
    @app.exception_handler(PyMongoError)
    async def database_exception_handler(request: Request, exc: Exception):
        logger.error(f"Database error: {type(exc).__name__}: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Unable to connect to database. Please try again later.",
                "error_type": "connection_failure",
                "error_category": "database",
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with structured error response."""
        error_type, error_category = ERROR_TYPE_MAP.get(
            exc.status_code, ("http_error", "general")
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "error_type": error_type,
                "error_category": error_category,
                "status_code": exc.status_code,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """
        Catch-all handler for any unhandled exceptions.

        Logs full stack trace and returns a generic error body; the exception
        text is not echoed because it may contain document contents.
        """
        logger.error(
            f"Unhandled exception in {request.method} {request.url.path}: "
            f"{type(exc).__name__}: {exc}"
        )
        logger.error(f"Stack trace:\n{traceback.format_exc()}")
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "error_type": type(exc).__name__,
                "error_category": "internal_error",
            },
        )


def setup_middleware(app: FastAPI) -> None:
    """Set up all middleware for the FastAPI application."""
    if not request_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        request_logger.addHandler(handler)
        request_logger.setLevel(logging.INFO)
        request_logger.propagate = False

    app.add_middleware(RequestLoggingMiddleware)
    setup_cors_middleware(app)
    setup_exception_handlers(app)
    logger.info("Middleware and exception handlers configured")
