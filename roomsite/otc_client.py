"""
Off The Couch (OTC) Console API client.

Server-side client for the booking provider. Base URL and key come from
settings; the key is sent as the ``X-API-Key`` header and is never exposed
to browsers.

Every failure leaves this module as one of the classified errors in
``roomsite.errors``:
    - missing key          -> NotConfigured (no request is made)
    - timeout              -> UpstreamTimeout
    - HTTP 404             -> UpstreamNotFound
    - HTTP 401 / 403       -> UpstreamUnauthorized
    - other non-2xx        -> UpstreamFailure (with upstream status)
    - transport / bad JSON -> UpstreamFailure

Usage:
    client = OTCClient(get_settings())
    page = await client.fetch_bookings(BookingsQuery(game_id=3, limit=100))
    await client.aclose()
"""

import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .core.config import Settings
from .errors import (
    NotConfigured,
    UpstreamFailure,
    UpstreamNotFound,
    UpstreamTimeout,
    UpstreamUnauthorized,
)
from .otc_models import Booking, BookingsPage, Game, GamesPage, GiftCard, GiftCardsPage, Pagination
from .params import MAX_PAGE_SIZE, BookingsQuery, GamesQuery, GiftCardsQuery

logger = logging.getLogger(__name__)

# Hard ceiling for pagination draining, regardless of what ``has_more`` says.
MAX_DRAIN_RECORDS = 10_000

# Longest slice of an upstream error body kept for logs.
ERROR_BODY_EXCERPT = 500

ModelT = TypeVar("ModelT", bound=BaseModel)
RecordT = TypeVar("RecordT")


async def drain_pages(
    fetch_page: Callable[[int, int], Awaitable[tuple[list[RecordT], Pagination]]],
    page_size: int = MAX_PAGE_SIZE,
    max_records: int = MAX_DRAIN_RECORDS,
) -> list[RecordT]:
    """
    Collect every record from a paged list endpoint.

    ``fetch_page(offset, limit)`` returns one page of records and its
    pagination block. The offset advances by the number of records actually
    returned. Draining stops when the provider reports no more pages, when a
    page comes back empty, or once ``max_records`` have been collected.
    """
    records: list[RecordT] = []
    offset = 0
    while len(records) < max_records:
        page, pagination = await fetch_page(offset, page_size)
        records.extend(page)
        if not pagination.has_more or not page:
            break
        offset += len(page)
    else:
        logger.warning(f"Pagination drain stopped at safety cap of {max_records} records")
    return records[:max_records]


class OTCClient:
    """Async client for the OTC console API."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._http = httpx.AsyncClient(
            base_url=settings.otc_base_url,
            timeout=settings.otc_timeout_seconds,
            transport=transport,
            headers={"Accept": "application/json", "Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    def _api_key(self) -> str:
        # Read on every call so a rotated key in settings takes effect.
        key = self.settings.otc_key.strip()
        if not key:
            raise NotConfigured(
                "OTC_KEY is not configured. Add it to .env for local development."
            )
        return key

    # ────────────────────────────────────────────────────────────────
    # Transport
    # ────────────────────────────────────────────────────────────────

    async def request(
        self,
        path: str,
        params: Optional[dict] = None,
        body: Optional[dict] = None,
        method: str = "GET",
    ) -> Any:
        """
        Perform one call to the provider and return the decoded JSON body.

        Raises a classified ``OTCError`` subclass on any failure.
        """
        headers = {"X-API-Key": self._api_key()}

        logger.info(f"OTC {method} {path} params={params or {}}")
        try:
            response = await self._http.request(method, path, params=params, json=body, headers=headers)
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(
                f"OTC API request timed out after {self.settings.otc_timeout_seconds}s: {e!r}",
                path=path,
            ) from e
        except httpx.RequestError as e:
            raise UpstreamFailure(f"Unable to reach OTC API: {e!r}", path=path) from e

        if response.is_error:
            detail = f"{response.status_code} {response.reason_phrase}"
            excerpt = response.text[:ERROR_BODY_EXCERPT]
            if excerpt:
                detail = f"{detail}: {excerpt}"
            error_cls = {
                401: UpstreamUnauthorized,
                403: UpstreamUnauthorized,
                404: UpstreamNotFound,
            }.get(response.status_code, UpstreamFailure)
            raise error_cls(detail, upstream_status=response.status_code, path=path)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamFailure(
                f"OTC API returned a non-JSON body: {response.text[:ERROR_BODY_EXCERPT]}",
                upstream_status=response.status_code,
                path=path,
            ) from e

    async def _get_model(
        self,
        model: type[ModelT],
        path: str,
        params: Optional[dict] = None,
        wrapper: Optional[str] = None,
    ) -> ModelT:
        data = await self.request(path, params=params)
        # Single-object endpoints sometimes wrap the object, e.g. {"game": {...}}
        if wrapper and isinstance(data, dict) and isinstance(data.get(wrapper), dict):
            data = data[wrapper]
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise UpstreamFailure(
                f"Malformed {model.__name__} response: {e.error_count()} validation errors",
                path=path,
            ) from e

    # ────────────────────────────────────────────────────────────────
    # Games
    # ────────────────────────────────────────────────────────────────

    async def fetch_games(self, query: Optional[GamesQuery] = None) -> GamesPage:
        """Non-archived games by console position unless the query says otherwise."""
        query = query or GamesQuery()
        return await self._get_model(GamesPage, "/games", params=query.to_params())

    async def fetch_game(self, game_id: int, include_pricing: bool = False) -> Game:
        # OTC uses integer booleans for this flag
        params = {"include_pricing": "1"} if include_pricing else None
        return await self._get_model(Game, f"/games/{game_id}", params=params, wrapper="game")

    async def verify_api_key(self) -> bool:
        """Cheap credential check: request a single game."""
        try:
            await self.fetch_games(GamesQuery(limit=1))
            return True
        except (NotConfigured, UpstreamUnauthorized) as e:
            logger.error(f"OTC API key verification failed: {e.log_line()}")
            return False

    # ────────────────────────────────────────────────────────────────
    # Bookings
    # ────────────────────────────────────────────────────────────────

    async def fetch_bookings(self, query: Optional[BookingsQuery] = None) -> BookingsPage:
        query = query or BookingsQuery()
        return await self._get_model(BookingsPage, "/bookings", params=query.to_params())

    async def fetch_all_bookings(
        self,
        query: Optional[BookingsQuery] = None,
        max_records: int = MAX_DRAIN_RECORDS,
    ) -> list[Booking]:
        query = query or BookingsQuery()

        async def fetch_page(offset: int, limit: int):
            page = await self.fetch_bookings(query.with_page(offset, limit))
            return page.bookings, page.pagination

        bookings = await drain_pages(fetch_page, max_records=max_records)
        logger.info(f"Drained {len(bookings)} bookings from OTC")
        return bookings

    # ────────────────────────────────────────────────────────────────
    # Gift cards
    # ────────────────────────────────────────────────────────────────

    async def fetch_gift_cards(self, query: Optional[GiftCardsQuery] = None) -> GiftCardsPage:
        query = query or GiftCardsQuery()
        return await self._get_model(GiftCardsPage, "/gift-cards", params=query.to_params())

    async def fetch_all_gift_cards(
        self,
        query: Optional[GiftCardsQuery] = None,
        max_records: int = MAX_DRAIN_RECORDS,
    ) -> list[GiftCard]:
        query = query or GiftCardsQuery()

        async def fetch_page(offset: int, limit: int):
            page = await self.fetch_gift_cards(query.with_page(offset, limit))
            return page.gift_cards, page.pagination

        return await drain_pages(fetch_page, max_records=max_records)

    async def fetch_gift_card(self, gift_card_id: int, include_transactions: bool = False) -> GiftCard:
        params = {"include_transactions": "true"} if include_transactions else None
        return await self._get_model(
            GiftCard, f"/gift-cards/{gift_card_id}", params=params, wrapper="gift_card"
        )
