"""
Tests for gift card balance lookups.

Run with: pytest tests/test_gift_cards.py -v
"""

import httpx
import pytest

from roomsite.cache import gift_card_key
from roomsite.core.config import Settings
from roomsite.errors import InvalidInput, NotConfigured, UpstreamFailure, UpstreamNotFound
from roomsite.gift_cards import find_gift_card, list_gift_cards, lookup_balance, normalize_code
from roomsite.otc_client import OTCClient
from roomsite.params import GiftCardsQuery

from factories import make_gift_card


def _status_is(status):
    return lambda request: request.url.params.get("status") == status


class TestNormalizeCode:

    def test_trims_and_uppercases(self):
        assert normalize_code("  gift-100 ") == "GIFT-100"

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_blank_code_rejected(self, raw):
        with pytest.raises(InvalidInput) as exc_info:
            normalize_code(raw)
        assert exc_info.value.error == "Missing gift card code"


class TestFindGiftCard:

    @pytest.mark.asyncio
    async def test_found_in_active(self, otc_client, fake_otc):
        fake_otc.gift_cards = [make_gift_card("gift-100")]

        card = await find_gift_card(otc_client, "GIFT-100")

        assert card.code == "gift-100"
        statuses = [r.url.params["status"] for r in fake_otc.calls("/gift-cards")]
        assert statuses == ["active"]

    @pytest.mark.asyncio
    async def test_searches_later_statuses(self, otc_client, fake_otc):
        fake_otc.gift_cards = [make_gift_card("OLD-1", status="expired", balance=0)]

        card = await find_gift_card(otc_client, "OLD-1")

        assert card.status == "expired"
        statuses = [r.url.params["status"] for r in fake_otc.calls("/gift-cards")]
        assert statuses == ["active", "redeemed", "expired"]

    @pytest.mark.asyncio
    async def test_not_found(self, otc_client, fake_otc):
        fake_otc.gift_cards = [make_gift_card("OTHER")]

        with pytest.raises(UpstreamNotFound):
            await find_gift_card(otc_client, "MISSING")

    @pytest.mark.asyncio
    async def test_failed_status_does_not_stop_search(self, otc_client, fake_otc):
        fake_otc.gift_cards = [make_gift_card("RED-1", status="redeemed")]
        fake_otc.fail("/gift-cards", status_code=500, when=_status_is("active"))

        card = await find_gift_card(otc_client, "RED-1")

        assert card.code == "RED-1"

    @pytest.mark.asyncio
    async def test_failure_reported_instead_of_not_found(self, otc_client, fake_otc):
        fake_otc.fail("/gift-cards", status_code=500, when=_status_is("redeemed"))

        with pytest.raises(UpstreamFailure):
            await find_gift_card(otc_client, "MISSING")

    @pytest.mark.asyncio
    async def test_not_configured_is_immediate(self, fake_otc):
        client = OTCClient(Settings(otc_key=""), transport=httpx.MockTransport(fake_otc.handler))
        try:
            with pytest.raises(NotConfigured):
                await find_gift_card(client, "ANY")
        finally:
            await client.aclose()

        assert fake_otc.requests == []


class TestLookupBalance:

    @pytest.mark.asyncio
    async def test_balance_cached_per_normalized_code(self, otc_client, fake_otc, cache):
        fake_otc.gift_cards = [make_gift_card("GIFT-100", balance=42.5)]

        first = await lookup_balance(otc_client, cache, 30, " gift-100 ")
        second = await lookup_balance(otc_client, cache, 30, "GIFT-100")

        assert first.balance == 42.5
        assert first.status == "active"
        assert first.expiration_date == "2027-01-05"
        assert second == first
        assert gift_card_key("GIFT-100") in cache
        assert len(fake_otc.calls("/gift-cards")) == 1

    @pytest.mark.asyncio
    async def test_not_found_is_not_cached(self, otc_client, fake_otc, cache):
        with pytest.raises(UpstreamNotFound):
            await lookup_balance(otc_client, cache, 30, "NOPE")

        assert gift_card_key("NOPE") not in cache


class TestFetchGiftCard:

    @pytest.mark.asyncio
    async def test_by_id_unwraps_payload(self, otc_client, fake_otc):
        fake_otc.gift_cards = [make_gift_card("GIFT-7", id=7)]

        card = await otc_client.fetch_gift_card(7, include_transactions=True)

        assert card.code == "GIFT-7"
        assert fake_otc.requests[0].url.params["include_transactions"] == "true"

    @pytest.mark.asyncio
    async def test_unknown_id(self, otc_client):
        with pytest.raises(UpstreamNotFound):
            await otc_client.fetch_gift_card(404)


class TestListGiftCards:

    @pytest.mark.asyncio
    async def test_forwards_sanitized_query(self, otc_client, fake_otc):
        fake_otc.gift_cards = [make_gift_card("A"), make_gift_card("B", status="redeemed")]

        page = await list_gift_cards(otc_client, GiftCardsQuery(status="redeemed", limit=500))

        assert [c.code for c in page.gift_cards] == ["B"]
        params = fake_otc.requests[0].url.params
        assert params["limit"] == "100"
        assert params["status"] == "redeemed"
