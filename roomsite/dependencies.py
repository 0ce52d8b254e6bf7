"""
FastAPI dependencies for the process-wide objects created in ``create_app``.

The cache and the OTC client live on ``app.state``; handlers reach them only
through these providers, which tests replace with ``dependency_overrides``.
"""

import random
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from fastapi import Depends, Request

from .cache import TTLCache
from .core.config import CacheTTL, Settings
from .otc_client import OTCClient


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_cache(request: Request) -> TTLCache:
    return request.app.state.cache


def get_otc_client(request: Request) -> OTCClient:
    return request.app.state.otc_client


def get_cache_ttl(settings: Settings = Depends(get_app_settings)) -> CacheTTL:
    return settings.cache_ttl()


def get_today(settings: Settings = Depends(get_app_settings)) -> date:
    """Current date in the venue's timezone."""
    return datetime.now(ZoneInfo(settings.site_timezone)).date()


def get_now() -> datetime:
    return datetime.now(timezone.utc)


def get_rng() -> random.Random:
    return random.Random()
