"""
Booking activity for social proof ("Booked 3 times recently").

The recent-bookings count is real provider data. The viewer count is
simulated from it because OTC does not track page views; responses say so
through ``is_simulated``.
"""

import logging
import random
from datetime import datetime, timedelta
from typing import Optional

from .cache import TTLCache, activity_key
from .otc_client import OTCClient
from .otc_models import GameActivity
from .params import BookingsQuery

logger = logging.getLogger(__name__)

MAX_VIEWERS = 25


def simulated_viewers(recent_bookings: int, rng: random.Random) -> int:
    """2-5 base viewers plus 1-3 per recent booking, capped."""
    base = rng.randint(2, 5)
    boost = recent_bookings * rng.randint(1, 3)
    return min(base + boost, MAX_VIEWERS)


def activity_message(recent_bookings: int) -> str:
    if recent_bookings >= 5:
        return "Very popular! Booked multiple times today."
    if recent_bookings >= 2:
        return f"Booked {recent_bookings} times recently."
    if recent_bookings == 1:
        return "Booked once recently."
    return "Be the first to book today!"


async def count_recent_bookings(client: OTCClient, game_id: int, now: datetime) -> int:
    """Bookings for the game dated within the last 24 hours."""
    yesterday = now - timedelta(hours=24)
    page = await client.fetch_bookings(
        BookingsQuery(
            game_id=game_id,
            start_date=yesterday.date().isoformat(),
            end_date=now.date().isoformat(),
            limit=100,
        )
    )
    return page.pagination.total_count


async def get_game_activity(
    client: OTCClient,
    cache: TTLCache,
    ttl_seconds: float,
    game_id: int,
    now: datetime,
    rng: Optional[random.Random] = None,
) -> GameActivity:
    rng = rng or random.Random()

    async def load() -> GameActivity:
        recent = await count_recent_bookings(client, game_id, now)
        logger.info(f"Game {game_id}: {recent} bookings in the last 24h")
        return GameActivity(
            game_id=game_id,
            recent_bookings=recent,
            viewers_count=simulated_viewers(recent, rng),
            activity_message=activity_message(recent),
            is_simulated=True,
        )

    return await cache.get_or_fetch(activity_key(game_id), ttl_seconds, load)
