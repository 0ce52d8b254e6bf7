"""
Gift card lookups.

OTC has no lookup-by-code endpoint, so a balance check walks the gift card
list for each status (active first, as the most likely) and matches the code
case-insensitively. Results are cached briefly per code.
"""

import logging
from typing import Optional

from .cache import TTLCache, gift_card_key
from .errors import InvalidInput, NotConfigured, OTCError, UpstreamNotFound
from .otc_client import OTCClient
from .otc_models import GiftCard, GiftCardBalance, GiftCardsPage
from .params import GIFT_CARD_STATUSES, GiftCardsQuery

logger = logging.getLogger(__name__)


def normalize_code(raw: Optional[str]) -> str:
    code = (raw or "").strip().upper()
    if not code:
        raise InvalidInput("Missing gift card code", "A code query parameter is required.")
    return code


async def find_gift_card(client: OTCClient, code: str) -> GiftCard:
    """
    Search every status for ``code``.

    A failed search for one status is logged and the next status is tried.
    If the card is not found and at least one search failed, that failure is
    raised instead of reporting the card missing.
    """
    last_error: Optional[OTCError] = None
    for status in GIFT_CARD_STATUSES:
        try:
            cards = await client.fetch_all_gift_cards(GiftCardsQuery(status=status))
        except NotConfigured:
            raise
        except OTCError as e:
            logger.warning(f"Gift card search failed for status {status}: {e.log_line()}")
            last_error = e
            continue

        match = next((card for card in cards if card.code.strip().upper() == code), None)
        if match is not None:
            return match

    if last_error is not None:
        raise last_error
    raise UpstreamNotFound(f"No gift card with code {code}")


async def lookup_balance(
    client: OTCClient,
    cache: TTLCache,
    ttl_seconds: float,
    raw_code: Optional[str],
) -> GiftCardBalance:
    code = normalize_code(raw_code)

    async def load() -> GiftCardBalance:
        card = await find_gift_card(client, code)
        return GiftCardBalance(
            code=card.code,
            balance=card.balance,
            status=card.status,
            expiration_date=card.expiration_date,
        )

    return await cache.get_or_fetch(gift_card_key(code), ttl_seconds, load)


async def list_gift_cards(client: OTCClient, query: GiftCardsQuery) -> GiftCardsPage:
    return await client.fetch_gift_cards(query)
