"""
Public JSON API proxying the OTC console.

Every route validates its input before touching the network, reads through
the shared TTL cache where the data allows it, and converts classified
failures into ``{error, message?, status}`` bodies. Upstream error text is
logged, never returned.

ENDPOINTS:
    GET /api/health
    GET /api/games
    GET /api/games/{game_id}
    GET /api/rooms/{slug}
    GET /api/availability/{game_id}?date=YYYY-MM-DD
    GET /api/activity/{game_id}
    GET /api/gift-cards
    GET /api/gift-cards/balance?code=...
    GET /api/gift-cards/{gift_card_id}
    GET /api/bookings/real
"""

import logging
import random
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from .activity import get_game_activity
from .availability import get_availability, urgency_message, validate_availability_date
from .bookings import collect_real_bookings
from .cache import TTLCache
from .catalog import find_room, get_game, get_games, room_summary
from .core.config import CacheTTL, Settings
from .core.responses import CacheControl, RouteMessages, error_response, success_response
from .dependencies import (
    get_app_settings,
    get_cache,
    get_cache_ttl,
    get_now,
    get_otc_client,
    get_rng,
    get_today,
)
from .errors import OTCError, UpstreamNotFound
from .gift_cards import list_gift_cards, lookup_balance
from .otc_client import OTCClient
from .params import GamesQuery, GiftCardsQuery, parse_positive_int

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["otc-proxy"])


# ────────────────────────────────────────────────────────────────
# Client-facing error summaries
# ────────────────────────────────────────────────────────────────

GAMES_MESSAGES = RouteMessages(
    failure="Failed to fetch games from provider",
    timeout="Game provider did not respond in time",
    unauthorized="Authentication with game provider failed",
    not_found="Game not found",
)
GAME_MESSAGES = RouteMessages(failure="Failed to fetch game", not_found="Game not found")
ROOM_MESSAGES = RouteMessages(failure="Failed to fetch room", not_found="Room not found")
AVAILABILITY_MESSAGES = RouteMessages(failure="Failed to fetch availability", not_found="Game not found")
ACTIVITY_MESSAGES = RouteMessages(failure="Failed to fetch activity data", not_found="Game not found")
GIFT_CARDS_MESSAGES = RouteMessages(failure="Failed to fetch gift cards")
BALANCE_MESSAGES = RouteMessages(
    failure="Failed to check gift card balance",
    not_found="Gift card not found",
)
GIFT_CARD_MESSAGES = RouteMessages(failure="Failed to fetch gift card", not_found="Gift card not found")
BOOKINGS_MESSAGES = RouteMessages(failure="Failed to fetch bookings from provider")

GIFT_CARD_NOT_FOUND_MESSAGE = "No gift card was found with that code. Please check the code and try again."


def _game_id(raw: str) -> int:
    return parse_positive_int(raw, "Invalid game ID", "Game ID must be a positive integer.")


# ────────────────────────────────────────────────────────────────
# Endpoints
# ────────────────────────────────────────────────────────────────

@router.get("/health")
async def health(
    verify: Optional[str] = Query(default=None),
    settings: Settings = Depends(get_app_settings),
    cache: TTLCache = Depends(get_cache),
    client: OTCClient = Depends(get_otc_client),
):
    """
    Liveness plus cache stats. ``?verify=true`` also checks the OTC key
    with one upstream call and reports it as ``otc_key_valid``.
    """
    body = {"ok": True, "otc_configured": settings.otc_configured, "cache": cache.stats()}
    if verify == "true":
        try:
            body["otc_key_valid"] = await client.verify_api_key()
        except OTCError as e:
            logger.warning(f"[/api/health] key check inconclusive: {e.log_line()}")
            body["otc_key_valid"] = None
    return success_response(body, CacheControl.NO_STORE)


@router.get("/games")
async def list_games(
    request: Request,
    client: OTCClient = Depends(get_otc_client),
    cache: TTLCache = Depends(get_cache),
    ttl: CacheTTL = Depends(get_cache_ttl),
):
    """
    Games list. Query parameters (all optional, out-of-range values dropped):
    limit (1-100, default 100), offset, company_group_id, archived,
    sort_by (name|position|id), sort_order (asc|desc).
    """
    try:
        query = GamesQuery.from_request(request.query_params)
        page = await get_games(client, cache, ttl.games, query)
    except OTCError as e:
        return error_response(e, "/api/games", GAMES_MESSAGES)

    return success_response(page.model_dump(mode="json"), CacheControl.CATALOG)


@router.get("/games/{game_id}")
async def get_game_detail(
    game_id: str,
    include_pricing: Optional[str] = Query(default=None),
    client: OTCClient = Depends(get_otc_client),
):
    try:
        parsed_id = _game_id(game_id)
        game = await get_game(client, parsed_id, include_pricing=include_pricing != "false")
    except OTCError as e:
        return error_response(e, "/api/games/{id}", GAME_MESSAGES)

    return success_response({"game": game.model_dump(mode="json")}, CacheControl.CATALOG)


@router.get("/rooms/{slug}")
async def get_room(
    slug: str,
    client: OTCClient = Depends(get_otc_client),
    cache: TTLCache = Depends(get_cache),
    ttl: CacheTTL = Depends(get_cache_ttl),
):
    try:
        game = await find_room(client, cache, ttl.games, slug.strip().lower())
        if game is None:
            raise UpstreamNotFound(f"No game matches slug {slug!r}")
    except OTCError as e:
        return error_response(e, "/api/rooms/{slug}", ROOM_MESSAGES)

    return success_response(
        {"room": room_summary(game), "game": game.model_dump(mode="json")},
        CacheControl.CATALOG,
    )


@router.get("/availability/{game_id}")
async def get_game_availability(
    game_id: str,
    requested_date: Optional[str] = Query(default=None, alias="date"),
    client: OTCClient = Depends(get_otc_client),
    cache: TTLCache = Depends(get_cache),
    ttl: CacheTTL = Depends(get_cache_ttl),
    settings: Settings = Depends(get_app_settings),
    today: date = Depends(get_today),
):
    try:
        parsed_id = _game_id(game_id)
        day = validate_availability_date(requested_date, today, settings.availability_window_days)
        availability = await get_availability(client, cache, ttl, parsed_id, day)
    except OTCError as e:
        return error_response(e, "/api/availability", AVAILABILITY_MESSAGES)

    body = {"availability": availability.model_dump(mode="json")}
    message = urgency_message(availability)
    if message:
        body["urgency_message"] = message
    return success_response(body, CacheControl.AVAILABILITY)


@router.get("/activity/{game_id}")
async def get_activity(
    game_id: str,
    client: OTCClient = Depends(get_otc_client),
    cache: TTLCache = Depends(get_cache),
    ttl: CacheTTL = Depends(get_cache_ttl),
    now: datetime = Depends(get_now),
    rng: random.Random = Depends(get_rng),
):
    try:
        parsed_id = _game_id(game_id)
        activity = await get_game_activity(client, cache, ttl.activity, parsed_id, now, rng)
    except OTCError as e:
        return error_response(e, "/api/activity", ACTIVITY_MESSAGES)

    return success_response({"activity": activity.model_dump(mode="json")}, CacheControl.ACTIVITY)


@router.get("/gift-cards")
async def get_gift_cards(
    request: Request,
    client: OTCClient = Depends(get_otc_client),
):
    """Query parameters: status (active|redeemed|expired), limit (1-100), offset."""
    try:
        page = await list_gift_cards(client, GiftCardsQuery.from_request(request.query_params))
    except OTCError as e:
        return error_response(e, "/api/gift-cards", GIFT_CARDS_MESSAGES)

    return success_response(page.model_dump(mode="json"), CacheControl.GIFT_CARDS)


@router.get("/gift-cards/balance")
async def get_gift_card_balance(
    code: Optional[str] = Query(default=None),
    client: OTCClient = Depends(get_otc_client),
    cache: TTLCache = Depends(get_cache),
    ttl: CacheTTL = Depends(get_cache_ttl),
):
    try:
        balance = await lookup_balance(client, cache, ttl.gift_card, code)
    except UpstreamNotFound as e:
        return error_response(
            e, "/api/gift-cards/balance", BALANCE_MESSAGES, message=GIFT_CARD_NOT_FOUND_MESSAGE
        )
    except OTCError as e:
        return error_response(e, "/api/gift-cards/balance", BALANCE_MESSAGES)

    return success_response(balance.model_dump(mode="json"), CacheControl.BALANCE)


@router.get("/gift-cards/{gift_card_id}")
async def get_gift_card(
    gift_card_id: str,
    include_transactions: Optional[str] = Query(default=None),
    client: OTCClient = Depends(get_otc_client),
):
    """Single card by OTC id; ``include_transactions=true`` adds its ledger."""
    try:
        parsed_id = parse_positive_int(
            gift_card_id, "Invalid gift card ID", "Gift card ID must be a positive integer."
        )
        card = await client.fetch_gift_card(parsed_id, include_transactions=include_transactions == "true")
    except OTCError as e:
        return error_response(e, "/api/gift-cards/{id}", GIFT_CARD_MESSAGES)

    return success_response({"gift_card": card.model_dump(mode="json")}, CacheControl.BALANCE)


@router.get("/bookings/real")
async def get_real_bookings(
    client: OTCClient = Depends(get_otc_client),
    today: date = Depends(get_today),
):
    """Genuine customer bookings within roughly six months either side of today."""
    try:
        report = await collect_real_bookings(client, today)
    except OTCError as e:
        return error_response(e, "/api/bookings/real", BOOKINGS_MESSAGES)

    return success_response(report.to_dict(), CacheControl.NO_STORE)

