"""
Standardized API Response Module

Provides consistent response formatting across all API endpoints.

RESPONSE FORMAT:
    Success bodies are endpoint specific but always carry a ``fetched_at``
    ISO-8601 timestamp.

    Error:
        {
            "error": "Human-readable summary",
            "message": "Optional extra context",
            "status": 502
        }

    The HTTP status code always mirrors ``status``.

CACHE HEADERS:
    Cacheable endpoints set ``Cache-Control`` with per-endpoint
    ``s-maxage`` / ``stale-while-revalidate`` values. Balance lookups and
    the bookings report are never cached downstream.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..errors import (
    InvalidInput,
    NotConfigured,
    OTCError,
    UpstreamNotFound,
    UpstreamTimeout,
    UpstreamUnauthorized,
)

logger = logging.getLogger(__name__)


class ErrorBody(BaseModel):
    """Error payload returned to clients."""
    error: str
    message: Optional[str] = None
    status: int


# ============================================================================
# CACHE-CONTROL VALUES
# ============================================================================

class CacheControl:
    """Downstream (CDN) cache policies per endpoint class."""

    CATALOG = "public, s-maxage=300, stale-while-revalidate=600"
    ACTIVITY = "public, s-maxage=60, stale-while-revalidate=120"
    GIFT_CARDS = "public, s-maxage=60, stale-while-revalidate=120"
    AVAILABILITY = "public, s-maxage=30, stale-while-revalidate=60"
    BALANCE = "private, no-store"
    NO_STORE = "no-store"


@dataclass(frozen=True)
class RouteMessages:
    """Client-facing error summaries for one route."""
    failure: str = "Failed to fetch data from provider"
    timeout: str = "Provider did not respond in time"
    unauthorized: str = "Authentication with provider failed"
    not_found: str = "Resource not found"
    configuration: str = "Server configuration error"

    def for_error(self, exc: OTCError) -> str:
        if isinstance(exc, UpstreamNotFound):
            return self.not_found
        if isinstance(exc, UpstreamTimeout):
            return self.timeout
        if isinstance(exc, UpstreamUnauthorized):
            return self.unauthorized
        if isinstance(exc, NotConfigured):
            return self.configuration
        return self.failure


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def utc_now_iso() -> str:
    """ISO-8601 timestamp used for ``fetched_at``."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def success_response(data: dict[str, Any], cache_control: str, status_code: int = 200) -> JSONResponse:
    """
    Create a JSON success response with a ``Cache-Control`` header.

    Adds ``fetched_at`` unless the payload already has one.
    """
    body = dict(data)
    body.setdefault("fetched_at", utc_now_iso())
    return JSONResponse(
        content=body,
        status_code=status_code,
        headers={"Cache-Control": cache_control},
    )


def error_response(
    exc: OTCError,
    route: str,
    messages: Optional[RouteMessages] = None,
    message: Optional[str] = None,
) -> JSONResponse:
    """
    Log a classified failure with full detail and return the sanitized body.

    Validation errors keep their own ``error``/``message``; other kinds get
    the route's summary plus an optional fixed ``message``. Upstream detail
    only goes to the log.
    """
    if isinstance(exc, InvalidInput):
        body = ErrorBody(error=exc.error, message=exc.message, status=exc.status_code)
        logger.info(f"[{route}] 400 - {exc.error}")
    else:
        messages = messages or RouteMessages()
        body = ErrorBody(error=messages.for_error(exc), message=message, status=exc.status_code)
        logger.error(f"[{route}] {exc.status_code} - {exc.log_line()}")

    return JSONResponse(
        content=body.model_dump(exclude_none=True),
        status_code=exc.status_code,
        headers={"Cache-Control": CacheControl.NO_STORE},
    )
