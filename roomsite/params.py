"""
Query parameter sets forwarded to the OTC API.

Each upstream list endpoint accepts a closed set of optional filters. The
dataclasses here hold only values inside their declared domain: anything
else is dropped, and limits are clamped to the provider's page size. Nothing
from an inbound request reaches the provider without passing through one of
these.
"""

import re
from dataclasses import dataclass, fields, replace
from datetime import date
from typing import Mapping, Optional

from .errors import InvalidInput

MAX_PAGE_SIZE = 100

SORT_ORDERS = ("asc", "desc")
GAME_SORT_FIELDS = ("name", "position", "id")
BOOKING_SORT_FIELDS = ("booking_date", "start_time", "created_at", "id")
GIFT_CARD_SORT_FIELDS = ("purchased_date", "balance", "id")
GIFT_CARD_STATUSES = ("active", "redeemed", "expired")

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_INT_RE = re.compile(r"^\s*[+-]?\d+")


# ────────────────────────────────────────────────────────────────
# Primitive parsers
# ────────────────────────────────────────────────────────────────

def parse_int(raw) -> Optional[int]:
    """
    Lenient integer parse: leading digits win, so "12abc" is 12.

    Returns None for anything without a leading integer.
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    match = _INT_RE.match(str(raw))
    return int(match.group(0)) if match else None


def parse_positive_int(raw, error: str, message: str) -> int:
    """Parse a path identifier; raises InvalidInput unless it is a positive integer."""
    value = parse_int(raw)
    if value is None or value <= 0:
        raise InvalidInput(error, message)
    return value


def parse_iso_date(raw) -> Optional[date]:
    """Parse ``YYYY-MM-DD``; None for any other shape or an impossible date."""
    if not isinstance(raw, str) or not _DATE_RE.match(raw):
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def clamp_limit(raw) -> Optional[int]:
    value = parse_int(raw)
    if value is None:
        return None
    return max(1, min(MAX_PAGE_SIZE, value))


def _non_negative(raw) -> Optional[int]:
    value = parse_int(raw)
    return value if value is not None and value >= 0 else None


def _positive(raw) -> Optional[int]:
    value = parse_int(raw)
    return value if value is not None and value > 0 else None


def _choice(raw, allowed) -> Optional[str]:
    return raw if raw in allowed else None


def _date_text(raw) -> Optional[str]:
    return raw if parse_iso_date(raw) is not None else None


# ────────────────────────────────────────────────────────────────
# Parameter sets
# ────────────────────────────────────────────────────────────────

class _QueryParams:
    """Shared behaviour: render set fields as upstream query parameters."""

    def to_params(self) -> dict:
        params = {}
        for field in fields(self):
            value = getattr(self, field.name)
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            params[field.name] = str(value)
        return params

    def with_page(self, offset: int, limit: int = MAX_PAGE_SIZE):
        return replace(self, offset=max(0, offset), limit=clamp_limit(limit))


@dataclass(frozen=True)
class GamesQuery(_QueryParams):
    limit: Optional[int] = MAX_PAGE_SIZE
    offset: Optional[int] = None
    company_group_id: Optional[int] = None
    archived: Optional[bool] = False
    sort_by: Optional[str] = "position"
    sort_order: Optional[str] = "asc"

    def __post_init__(self):
        object.__setattr__(self, "limit", clamp_limit(self.limit))
        object.__setattr__(self, "offset", _non_negative(self.offset))
        object.__setattr__(self, "company_group_id", _positive(self.company_group_id))
        object.__setattr__(self, "sort_by", _choice(self.sort_by, GAME_SORT_FIELDS) or "position")
        object.__setattr__(self, "sort_order", _choice(self.sort_order, SORT_ORDERS) or "asc")

    @classmethod
    def from_request(cls, query: Mapping[str, str]) -> "GamesQuery":
        raw_limit = query.get("limit")
        limit = clamp_limit(raw_limit) if raw_limit is not None else MAX_PAGE_SIZE
        return cls(
            limit=limit,
            offset=query.get("offset"),
            company_group_id=query.get("company_group_id"),
            archived=query.get("archived") == "true",
            sort_by=query.get("sort_by"),
            sort_order=query.get("sort_order"),
        )


@dataclass(frozen=True)
class BookingsQuery(_QueryParams):
    limit: Optional[int] = None
    offset: Optional[int] = None
    company_group_id: Optional[int] = None
    game_id: Optional[int] = None
    status: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None

    def __post_init__(self):
        status = self.status.strip() if isinstance(self.status, str) else None
        object.__setattr__(self, "limit", clamp_limit(self.limit))
        object.__setattr__(self, "offset", _non_negative(self.offset))
        object.__setattr__(self, "company_group_id", _positive(self.company_group_id))
        object.__setattr__(self, "game_id", _positive(self.game_id))
        object.__setattr__(self, "status", status or None)
        object.__setattr__(self, "start_date", _date_text(self.start_date))
        object.__setattr__(self, "end_date", _date_text(self.end_date))
        object.__setattr__(self, "sort_by", _choice(self.sort_by, BOOKING_SORT_FIELDS))
        object.__setattr__(self, "sort_order", _choice(self.sort_order, SORT_ORDERS))


@dataclass(frozen=True)
class GiftCardsQuery(_QueryParams):
    limit: Optional[int] = None
    offset: Optional[int] = None
    company_group_id: Optional[int] = None
    status: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "limit", clamp_limit(self.limit))
        object.__setattr__(self, "offset", _non_negative(self.offset))
        object.__setattr__(self, "company_group_id", _positive(self.company_group_id))
        object.__setattr__(self, "status", _choice(self.status, GIFT_CARD_STATUSES))
        object.__setattr__(self, "start_date", _date_text(self.start_date))
        object.__setattr__(self, "end_date", _date_text(self.end_date))
        object.__setattr__(self, "sort_by", _choice(self.sort_by, GIFT_CARD_SORT_FIELDS))
        object.__setattr__(self, "sort_order", _choice(self.sort_order, SORT_ORDERS))

    @classmethod
    def from_request(cls, query: Mapping[str, str]) -> "GiftCardsQuery":
        return cls(
            limit=query.get("limit"),
            offset=query.get("offset"),
            status=query.get("status"),
        )
