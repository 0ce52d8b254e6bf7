"""
Core module - configuration and response formatting.
"""
from .config import CacheTTL, Settings, get_settings
from .responses import (
    CacheControl,
    ErrorBody,
    RouteMessages,
    error_response,
    success_response,
    utc_now_iso,
)

__all__ = [
    # Config
    "CacheTTL",
    "Settings",
    "get_settings",
    # Responses
    "CacheControl",
    "ErrorBody",
    "RouteMessages",
    "error_response",
    "success_response",
    "utc_now_iso",
]
