"""
Timeslot availability for a game on one date.

OTC schedules pre-generate booking rows for every bookable start time.
Open slots come back with status "available" and no customer; when a slot is
taken the provider either updates that row or adds a second row for the same
start time. Availability is therefore derived from the rows for the date,
grouped by start time, without generating any slots locally.
"""

import logging
from datetime import date, timedelta
from typing import Optional

from .cache import TTLCache, availability_key
from .catalog import get_game_with_pricing
from .core.config import CacheTTL
from .errors import InvalidInput
from .otc_client import OTCClient
from .otc_models import Booking, Game, GameAvailability, Timeslot
from .params import BookingsQuery, parse_iso_date

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 90

# Rows created through POST /bookings carry this status
API_CREATED_STATUS = "1"


# ────────────────────────────────────────────────────────────────
# Input validation
# ────────────────────────────────────────────────────────────────

def validate_availability_date(
    raw: Optional[str],
    today: date,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> str:
    """
    Check a requested ``YYYY-MM-DD`` date and return it unchanged.

    The date must be today or later and no more than ``window_days`` ahead.
    """
    if not raw:
        raise InvalidInput(
            "Missing date parameter",
            "A date query parameter in YYYY-MM-DD format is required.",
        )

    requested = parse_iso_date(raw)
    if requested is None:
        raise InvalidInput("Invalid date format", "Date must be in YYYY-MM-DD format.")

    if requested < today:
        raise InvalidInput("Invalid date", "Cannot check availability for past dates.")

    if requested > today + timedelta(days=window_days):
        raise InvalidInput(
            "Date too far in future",
            f"Availability is only available up to {window_days} days in advance.",
        )

    return raw


# ────────────────────────────────────────────────────────────────
# Slot derivation
# ────────────────────────────────────────────────────────────────

def _hhmm(value: str) -> str:
    """Strip seconds: HH:MM:SS to HH:MM."""
    parts = value.split(":")
    return ":".join(parts[:2]) if len(parts) >= 2 else value


def _status(booking: Booking) -> str:
    return (booking.status or "").strip().lower()


def is_open_slot(booking: Booking) -> bool:
    return _status(booking) == "available"


def occupies_slot(booking: Booking) -> bool:
    """
    True when the row means the start time is taken.

    Broader than ``bookings.is_real_booking``: any linked transaction or
    customer, an API-created row, any status other than available/expired,
    or an "available" row that has a group size all count as occupied.
    """
    if booking.transaction_id is not None or booking.customer_id is not None:
        return True
    status = _status(booking)
    if status == API_CREATED_STATUS:
        return True
    if status not in ("available", "expired"):
        return True
    return status == "available" and booking.group_size > 0


def slot_price(game: Game) -> tuple[Optional[float], Optional[str]]:
    if game.pricing_categories:
        return min(c.price for c in game.pricing_categories), game.pricing_type
    if game.deposit_amount and game.deposit_amount > 0:
        return game.deposit_amount, "deposit"
    return None, None


def build_availability(game: Game, day: str, bookings: list[Booking]) -> GameAvailability:
    by_time: dict[str, list[Booking]] = {}
    for booking in bookings:
        by_time.setdefault(_hhmm(booking.start_time), []).append(booking)

    price, pricing_type = slot_price(game)

    timeslots = []
    for start in sorted(by_time):
        rows = by_time[start]
        open_row = next((b for b in rows if is_open_slot(b)), None)
        taken_by = next((b for b in rows if occupies_slot(b)), None)
        available = open_row is not None and taken_by is None
        representative = open_row or rows[0]

        if taken_by is not None:
            logger.debug(
                f"Slot {start} for game {game.id} on {day} taken by booking #{taken_by.id} "
                f"(status={taken_by.status!r}, group_size={taken_by.group_size})"
            )

        timeslots.append(
            Timeslot(
                booking_slot_id=representative.id if available else None,
                start_time=_hhmm(representative.start_time),
                end_time=_hhmm(representative.end_time),
                available=available,
                price=price,
                pricing_type=pricing_type,
            )
        )

    return GameAvailability(
        game_id=game.id,
        game_name=game.name,
        date=day,
        timeslots=timeslots,
        total_slots=len(timeslots),
        available_slots=sum(1 for slot in timeslots if slot.available),
    )


async def get_availability(
    client: OTCClient,
    cache: TTLCache,
    ttl: CacheTTL,
    game_id: int,
    day: str,
) -> GameAvailability:
    """Availability for one game and date, cached for ``ttl.availability`` seconds."""

    async def load() -> GameAvailability:
        game = await get_game_with_pricing(client, cache, ttl.pricing, game_id)
        bookings = await client.fetch_all_bookings(
            BookingsQuery(
                game_id=game_id,
                start_date=day,
                end_date=day,
                sort_by="start_time",
                sort_order="asc",
            )
        )
        availability = build_availability(game, day, bookings)
        logger.info(
            f"Availability for game {game_id} on {day}: "
            f"{availability.available_slots}/{availability.total_slots} slots open"
        )
        return availability

    return await cache.get_or_fetch(availability_key(game_id, day), ttl.availability, load)


def urgency_message(availability: GameAvailability) -> Optional[str]:
    """Scarcity copy for the booking widget, or None when plenty is left."""
    available = availability.available_slots
    total = availability.total_slots

    if available == 0:
        return "Sold out for today! Check another date."
    if available == 1:
        return "Only 1 slot left today -- book now!"
    if available <= 2:
        return f"Only {available} slots left today!"

    ratio = available / total
    if ratio <= 0.25:
        return f"Almost sold out -- only {available} slots remaining!"
    if ratio <= 0.5:
        return f"Filling up fast -- {available} slots left today."
    return None
