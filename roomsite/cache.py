"""
In-memory TTL cache for upstream (OTC) reads.

Used to avoid redundant calls to the booking provider for data that changes
infrequently (game listings, pricing) or can tolerate a short staleness
window (availability, activity, gift card balances).

The cache lives in process memory. One instance is created per application
and handed to every handler through a FastAPI dependency, so its lifetime is
the process lifetime and nothing survives a restart.

Usage:
    cache = TTLCache()
    games = await cache.get_or_fetch(games_key(query), ttl.games, load_games)
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """A stored value and the clock reading after which it is stale."""
    value: Any
    expires_at: float

    def is_live(self, now: float) -> bool:
        return now < self.expires_at


_MISSING = object()


class TTLCache:
    """
    Key/value store with per-entry expiry.

    - ``get`` only returns values whose expiry has not elapsed. Expired
      entries stay in storage until overwritten; there is no purge and no
      size bound.
    - ``set`` always overwrites.
    - ``get_or_fetch`` collapses concurrent misses for the same key into one
      load.
    """

    def __init__(self, clock: Clock = time.monotonic):
        self._clock = clock
        self._store: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, asyncio.Future] = {}

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._store.get(key)
        if entry is None or not entry.is_live(self._clock()):
            return default
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        self._store[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    async def get_or_fetch(
        self,
        key: str,
        ttl_seconds: float,
        loader: Callable[[], Awaitable[Any]],
    ) -> Any:
        """
        Read-through lookup.

        On a hit the cached value is returned without calling ``loader``.
        On a miss, ``loader`` is awaited and its result stored for
        ``ttl_seconds``. If another request is already loading the same key,
        this call waits for that load instead of starting its own. A failed
        load caches nothing and the error reaches every waiter. If the
        request running the load is cancelled, waiters start a fresh load
        rather than inheriting the cancellation.
        """
        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            logger.debug(f"Cache HIT {key}")
            return cached

        pending = self._inflight.get(key)
        if pending is not None:
            logger.debug(f"Cache WAIT {key}")
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                task = asyncio.current_task()
                if not pending.cancelled() or (task is not None and task.cancelling()):
                    raise
                # The loading request was cancelled, not this one: load again.
                logger.debug(f"Cache RETRY {key}")
                return await self.get_or_fetch(key, ttl_seconds, loader)

        logger.debug(f"Cache MISS {key}")
        future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            value = await loader()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so a load with no waiters does not log a warning.
            future.exception()
            raise
        finally:
            self._inflight.pop(key, None)

        self.set(key, value, ttl_seconds)
        future.set_result(value)
        return value

    def invalidate(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        keys = [key for key in self._store if key.startswith(prefix)]
        for key in keys:
            del self._store[key]
        return len(keys)

    def clear(self) -> None:
        self._store.clear()

    def stats(self) -> dict:
        now = self._clock()
        return {
            "entries": len(self._store),
            "live": sum(1 for entry in self._store.values() if entry.is_live(now)),
            "inflight": len(self._inflight),
        }


# ────────────────────────────────────────────────────────────────
# Cache key builders
# ────────────────────────────────────────────────────────────────

def availability_key(game_id: int, date: str) -> str:
    return f"availability:{game_id}:{date}"


def activity_key(game_id: int) -> str:
    return f"activity:{game_id}"


def pricing_key(game_id: int) -> str:
    return f"pricing:{game_id}"


def games_key(params: Optional[dict] = None) -> str:
    """Deterministic key for a games listing; parameter order does not matter."""
    if not params:
        return "games:default"
    encoded = "&".join(f"{name}={params[name]}" for name in sorted(params))
    return f"games:{encoded}"


def gift_card_key(code: str) -> str:
    return f"giftcard:{code}"
