"""
Real-booking classification.

The OTC schedule engine pre-populates GET /bookings with placeholder slots
("available", "expired", "call_to_book") that carry no customer. Real
customer reservations share the same record shape, so they are told apart
by status, group size, linked identifiers and contact data.

Both the JSON report route and the HTML report page go through
``collect_real_bookings`` so they always agree.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from .core.responses import utc_now_iso
from .otc_client import OTCClient
from .otc_models import Booking
from .params import BookingsQuery

logger = logging.getLogger(__name__)

PLACEHOLDER_STATUSES = frozenset({"available", "expired", "call_to_book"})

# Half-width of the report window; OTC allows at most 365 days per query.
REPORT_WINDOW_DAYS = 180


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def is_real_booking(booking: Booking) -> bool:
    """
    True when the record is a genuine customer reservation.

    A booking is real only if all of the following hold:
        1. status is not a placeholder status (checked first)
        2. group_size > 0
        3. it has a non-zero transaction_id or customer_id
        4. it has a non-blank name, email or phone

    A missing or unknown status does not reject the record by itself.
    """
    status = (booking.status or "").strip().lower()
    if status in PLACEHOLDER_STATUSES:
        return False

    if booking.group_size <= 0:
        return False

    if not booking.transaction_id and not booking.customer_id:
        return False

    has_contact = (
        _has_text(booking.customer_first_name)
        or _has_text(booking.customer_last_name)
        or _has_text(booking.customer_email)
        or _has_text(booking.customer_phone)
    )
    return has_contact


def sort_bookings(bookings: Iterable[Booking]) -> list[Booking]:
    """Newest first: booking_date descending, then start_time descending."""
    return sorted(bookings, key=lambda b: (b.booking_date, b.start_time), reverse=True)


def filter_real_bookings(bookings: Iterable[Booking]) -> list[Booking]:
    return sort_bookings(b for b in bookings if is_real_booking(b))


@dataclass
class RealBookingsReport:
    bookings: list[Booking]
    total_fetched: int
    start_date: str
    end_date: str
    fetched_at: str = field(default_factory=utc_now_iso)

    @property
    def total_real(self) -> int:
        return len(self.bookings)

    def to_dict(self) -> dict:
        return {
            "bookings": [b.model_dump(mode="json") for b in self.bookings],
            "total_fetched": self.total_fetched,
            "total_real": self.total_real,
            "fetched_at": self.fetched_at,
            "date_range": {"start": self.start_date, "end": self.end_date},
        }


async def collect_real_bookings(
    client: OTCClient,
    today: date,
    window_days: int = REPORT_WINDOW_DAYS,
) -> RealBookingsReport:
    """
    Fetch every booking in ``today ± window_days`` and keep the real ones.

    Not cached: the report is meant to reflect the provider right now.
    """
    start = (today - timedelta(days=window_days)).isoformat()
    end = (today + timedelta(days=window_days)).isoformat()

    all_bookings = await client.fetch_all_bookings(
        BookingsQuery(
            start_date=start,
            end_date=end,
            sort_by="booking_date",
            sort_order="desc",
        )
    )
    real = filter_real_bookings(all_bookings)
    logger.info(f"Real bookings {start}..{end}: {len(real)} of {len(all_bookings)} records")

    return RealBookingsReport(
        bookings=real,
        total_fetched=len(all_bookings),
        start_date=start,
        end_date=end,
    )
