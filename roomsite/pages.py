"""
Server-rendered staff page listing real bookings.

Shares ``collect_real_bookings`` with ``GET /api/bookings/real`` so the page
and the JSON route always show the same records in the same order.
"""

import logging
from datetime import date
from html import escape

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from .bookings import RealBookingsReport, collect_real_bookings
from .core.responses import CacheControl
from .dependencies import get_otc_client, get_today
from .errors import OTCError
from .otc_client import OTCClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])

_COLUMNS = ("Date", "Time", "Room", "Customer", "Email", "Phone", "Group", "Status")


def _customer_name(first, last) -> str:
    return " ".join(part.strip() for part in (first, last) if part and part.strip())


def render_report(report: RealBookingsReport) -> str:
    rows = []
    for b in report.bookings:
        cells = (
            b.booking_date,
            b.start_time[:5],
            b.game_name or "",
            _customer_name(b.customer_first_name, b.customer_last_name),
            b.customer_email or "",
            b.customer_phone or "",
            str(b.group_size),
            b.status or "",
        )
        rows.append("<tr>" + "".join(f"<td>{escape(c)}</td>" for c in cells) + "</tr>")

    header = "".join(f"<th>{name}</th>" for name in _COLUMNS)
    body = "\n".join(rows) or f'<tr><td colspan="{len(_COLUMNS)}">No bookings found.</td></tr>'
    return (
        "<!DOCTYPE html>\n"
        "<html><head><meta charset=\"utf-8\"><title>Bookings</title></head><body>\n"
        f"<h1>Real bookings</h1>\n"
        f"<p>{report.total_real} real of {report.total_fetched} records, "
        f"{escape(report.start_date)} to {escape(report.end_date)}. "
        f"Fetched {escape(report.fetched_at)}.</p>\n"
        f"<table><thead><tr>{header}</tr></thead><tbody>\n{body}\n</tbody></table>\n"
        "</body></html>\n"
    )


@router.get("/bookings/report", response_class=HTMLResponse)
async def bookings_report(
    client: OTCClient = Depends(get_otc_client),
    today: date = Depends(get_today),
):
    headers = {"Cache-Control": CacheControl.NO_STORE}
    try:
        report = await collect_real_bookings(client, today)
    except OTCError as e:
        logger.error(f"[/bookings/report] {e.status_code} - {e.log_line()}")
        return HTMLResponse(
            "<!DOCTYPE html>\n<html><body><h1>Bookings unavailable</h1>"
            "<p>Failed to fetch bookings from provider.</p></body></html>\n",
            status_code=e.status_code,
            headers=headers,
        )

    return HTMLResponse(render_report(report), headers=headers)
