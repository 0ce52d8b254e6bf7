"""
Room catalog: cached game reads plus the presentation helpers the room
pages use.

Games are near-static, so listings and per-game pricing sit in the TTL cache
for minutes. The detail route is left uncached server-side and relies on its
``Cache-Control`` header.
"""

import html
import logging
import re
from typing import Optional, Union

from .cache import TTLCache, games_key, pricing_key
from .errors import NotConfigured, OTCError
from .otc_client import OTCClient
from .otc_models import Difficulty, Game, GamesPage
from .params import GamesQuery

logger = logging.getLogger(__name__)

DEFAULT_IMAGE = "/images/hero_img.png"

# Fallback artwork for games the console has no image for
IMAGE_MAP = {
    "skybound-dynasty": "/images/floatingcity_room.png",
    "escape-the-simulation": "/images/simulation_room.png",
    "echo-chamber": "/images/art_room.png",
}


# ────────────────────────────────────────────────────────────────
# Cached reads
# ────────────────────────────────────────────────────────────────

async def get_games(
    client: OTCClient,
    cache: TTLCache,
    ttl_seconds: float,
    query: Optional[GamesQuery] = None,
) -> GamesPage:
    query = query or GamesQuery()
    return await cache.get_or_fetch(
        games_key(query.to_params()),
        ttl_seconds,
        lambda: client.fetch_games(query),
    )


async def get_game(client: OTCClient, game_id: int, include_pricing: bool = True) -> Game:
    """Uncached detail read; the route's ``Cache-Control`` covers it downstream."""
    return await client.fetch_game(game_id, include_pricing=include_pricing)


async def get_game_with_pricing(
    client: OTCClient,
    cache: TTLCache,
    ttl_seconds: float,
    game_id: int,
) -> Game:
    """
    Game detail with pricing categories, cached per game.

    The provider answers 5xx for ``include_pricing`` when a game has no
    pricing categories configured. On that or any other failure of the
    pricing request (timeouts included) the plain game is fetched instead
    and prices fall back to the deposit amount. Missing credentials are not
    retried.
    """

    async def load() -> Game:
        try:
            return await client.fetch_game(game_id, include_pricing=True)
        except NotConfigured:
            raise
        except OTCError as e:
            logger.warning(f"Pricing unavailable for game {game_id}, using deposit fallback: {e.log_line()}")
            return await client.fetch_game(game_id, include_pricing=False)

    return await cache.get_or_fetch(pricing_key(game_id), ttl_seconds, load)


async def find_room(
    client: OTCClient,
    cache: TTLCache,
    ttl_seconds: float,
    slug: str,
) -> Optional[Game]:
    page = await get_games(client, cache, ttl_seconds, GamesQuery(limit=100))
    return find_game_by_slug(page.games, slug)


# ────────────────────────────────────────────────────────────────
# Presentation helpers
# ────────────────────────────────────────────────────────────────

def generate_slug(name: str) -> str:
    """
    URL-safe slug from a game name.

    "The Heist" -> "the-heist"
    """
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def find_game_by_slug(games: list[Game], slug: str) -> Optional[Game]:
    return next((game for game in games if generate_slug(game.name) == slug), None)


DifficultyValue = Union[Difficulty, float, int, None]


def difficulty_level(difficulty: DifficultyValue) -> float:
    if difficulty is None:
        return 3
    if isinstance(difficulty, Difficulty):
        return difficulty.level
    return difficulty


def difficulty_label(difficulty: DifficultyValue) -> str:
    if difficulty is None:
        return "Moderate"
    if isinstance(difficulty, Difficulty):
        return difficulty.name or difficulty_label(difficulty.level)
    if difficulty <= 1:
        return "Beginner"
    if difficulty <= 2:
        return "Easy"
    if difficulty <= 3:
        return "Moderate"
    if difficulty <= 4:
        return "Challenging"
    return "Expert"


def game_image(game: Game) -> str:
    if game.image_url:
        return game.image_url
    return IMAGE_MAP.get(generate_slug(game.name), DEFAULT_IMAGE)


def format_player_count(game: Game) -> str:
    # The API uses both field spellings
    low = game.min_players if game.min_players is not None else game.min_players_count
    high = game.max_players if game.max_players is not None else game.max_players_count
    low = 2 if low is None else low
    high = 10 if high is None else high
    if low == high:
        return f"{low} Players"
    return f"{low}-{high} Players"


def format_duration(minutes: Optional[int]) -> str:
    if not minutes:
        return "60 minutes"
    if minutes < 60:
        return f"{minutes} minutes"
    hours, remaining = divmod(minutes, 60)
    if remaining == 0:
        return "1 hour" if hours == 1 else f"{hours} hours"
    return f"{hours}h {remaining}m"


def price_display(game: Game) -> Optional[str]:
    """Price range from pricing categories, else the deposit, else None."""
    if game.pricing_categories:
        prices = [category.price for category in game.pricing_categories]
        low, high = min(prices), max(prices)
        if low == high:
            return f"${low:.0f}"
        return f"${low:.0f} - ${high:.0f}"
    if game.deposit_amount and game.deposit_amount > 0:
        return f"From ${game.deposit_amount:.0f}"
    return None


def pricing_type_label(pricing_type: Optional[str]) -> str:
    return {
        "per_person": "per person",
        "flat_rate": "flat rate",
        "tiered": "tiered pricing",
    }.get(pricing_type or "", "")


def strip_html(text: Optional[str]) -> str:
    """Drop tags, decode entities and collapse whitespace."""
    if not text:
        return ""
    text = re.sub(r"<[^>]*>", "", text)
    text = html.unescape(text).replace("\xa0", " ")
    return re.sub(r"\s+", " ", text).strip()


def room_summary(game: Game) -> dict:
    """Display-ready card for a room page."""
    return {
        "id": game.id,
        "slug": generate_slug(game.name),
        "name": game.name,
        "description": strip_html(game.description),
        "image": game_image(game),
        "players": format_player_count(game),
        "duration": format_duration(game.duration_minutes or game.duration),
        "difficulty": difficulty_label(game.difficulty),
        "difficulty_level": difficulty_level(game.difficulty),
        "price": price_display(game),
        "pricing_type": pricing_type_label(game.pricing_type),
    }
