"""
Pytest configuration and fixtures.

The OTC console is replaced by ``FakeOTC``, an in-memory provider served
through ``httpx.MockTransport``, so every test exercises the real client,
models and error mapping without touching the network. Time is pinned with
a fake cache clock and dependency overrides for "today" and "now".
"""
import random
from datetime import date, datetime, timezone
from typing import Callable, Optional, Union

import httpx
import pytest
from httpx import AsyncClient, ASGITransport

from roomsite.cache import TTLCache
from roomsite.core.config import Settings
from roomsite.dependencies import get_now, get_rng, get_today
from roomsite.main import create_app
from roomsite.otc_client import OTCClient

TODAY = date(2026, 3, 10)
NOW = datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


Failure = Union[httpx.Response, Exception]


class FakeOTC:
    """
    Programmable stand-in for the OTC console API.

    List endpoints honour offset/limit and the filters the site sends.
    ``fail`` makes a path answer with an error status or raise a transport
    exception, optionally only for requests matching a predicate.
    """

    def __init__(self):
        self.games: list[dict] = []
        self.game_details: dict[int, dict] = {}
        self.bookings: list[dict] = []
        self.gift_cards: list[dict] = []
        self.requests: list[httpx.Request] = []
        self._failures: list[tuple[str, Optional[Callable[[httpx.Request], bool]], Failure]] = []

    def fail(
        self,
        path: str,
        status_code: int = 500,
        text: str = "Internal Server Error",
        exc: Optional[Exception] = None,
        when: Optional[Callable[[httpx.Request], bool]] = None,
    ) -> None:
        failure = exc if exc is not None else httpx.Response(status_code, text=text)
        self._failures.append((path, when, failure))

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    # ────────────────────────────────────────────────────────────────
    # Transport handler
    # ────────────────────────────────────────────────────────────────

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params

        for fail_path, when, failure in self._failures:
            if fail_path == path and (when is None or when(request)):
                if isinstance(failure, Exception):
                    raise failure
                return failure

        if path == "/games":
            return self._page("games", self.games, params)

        if path.startswith("/games/"):
            game_id = int(path.rsplit("/", 1)[1])
            game = self.game_details.get(game_id) or next(
                (g for g in self.games if g["id"] == game_id), None
            )
            if game is None:
                return httpx.Response(404, json={"error": "Game not found"})
            return httpx.Response(200, json={"game": game})

        if path == "/bookings":
            rows = self.bookings
            if "game_id" in params:
                rows = [b for b in rows if str(b.get("game_id")) == params["game_id"]]
            if "start_date" in params:
                rows = [b for b in rows if b["booking_date"] >= params["start_date"]]
            if "end_date" in params:
                rows = [b for b in rows if b["booking_date"] <= params["end_date"]]
            return self._page("bookings", rows, params)

        if path == "/gift-cards":
            rows = self.gift_cards
            if "status" in params:
                rows = [c for c in rows if c["status"] == params["status"]]
            return self._page("gift_cards", rows, params)

        if path.startswith("/gift-cards/"):
            card_id = int(path.rsplit("/", 1)[1])
            card = next((c for c in self.gift_cards if c["id"] == card_id), None)
            if card is None:
                return httpx.Response(404, json={"error": "Gift card not found"})
            return httpx.Response(200, json={"gift_card": card})

        return httpx.Response(404, json={"error": "Not found"})

    @staticmethod
    def _page(key: str, rows: list[dict], params) -> httpx.Response:
        offset = int(params.get("offset", 0))
        limit = int(params.get("limit", 100))
        chunk = rows[offset:offset + limit]
        has_more = offset + len(chunk) < len(rows)
        return httpx.Response(
            200,
            json={
                key: chunk,
                "pagination": {
                    "total_count": len(rows),
                    "has_more": has_more,
                    "next_offset": offset + len(chunk) if has_more else None,
                },
            },
        )


# ────────────────────────────────────────────────────────────────
# Fixtures
# ────────────────────────────────────────────────────────────────

@pytest.fixture
def settings():
    return Settings(otc_key="test-key", otc_base_url="https://otc.test")


@pytest.fixture
def fake_otc():
    return FakeOTC()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(clock=clock)


@pytest.fixture
async def otc_client(settings, fake_otc):
    client = OTCClient(settings, transport=httpx.MockTransport(fake_otc.handler))
    yield client
    await client.aclose()


@pytest.fixture
def app(settings, cache, otc_client):
    application = create_app(settings=settings, cache=cache, otc_client=otc_client)
    application.dependency_overrides[get_today] = lambda: TODAY
    application.dependency_overrides[get_now] = lambda: NOW
    application.dependency_overrides[get_rng] = lambda: random.Random(7)
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    """
    FastAPI AsyncClient over the ASGI app.

    Startup/shutdown hooks are not run; the OTC client fixture closes itself.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac
