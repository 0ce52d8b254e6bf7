"""
Application factory. Serve with:

    uvicorn --factory roomsite.main:create_app

Importing this module builds nothing, so no OTC client is opened until a
server (or a test) asks for an app.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .api import router as api_router
from .cache import TTLCache
from .core.config import Settings, get_settings
from .core.responses import error_response
from .errors import OTCError
from .otc_client import OTCClient
from .pages import router as pages_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    cache: Optional[TTLCache] = None,
    otc_client: Optional[OTCClient] = None,
) -> FastAPI:
    """
    Build the application with its process-wide cache and OTC client.

    Tests pass their own settings, a cache with a fake clock, and a client
    over a mock transport.
    """
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    app = FastAPI(title="Roomsite Booking Backend")
    app.state.settings = settings
    app.state.cache = cache or TTLCache()
    app.state.otc_client = otc_client or OTCClient(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list or ["*"],
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    app.include_router(pages_router)

    @app.exception_handler(OTCError)
    async def otc_error_handler(request: Request, exc: OTCError):
        return error_response(exc, request.url.path)

    @app.on_event("startup")
    async def on_startup():
        if not settings.otc_configured:
            logger.warning("OTC_KEY is not set; provider-backed endpoints will return 500")

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.otc_client.aclose()

    @app.get("/")
    async def root():
        return {"ok": True, "service": "roomsite"}

    return app

