"""
Aggregations over a BOM for the inward tracking panel.

summarize_inward() -- headline counts per derived status
tracking_table()   -- ordered/received items, optionally filtered by derived
                      status, sorted overdue-first then by expected arrival
"""
import logging
from datetime import date
from typing import Iterable, Optional

from models.bom import BOMItem, INWARD_STATUSES
from models.result import InwardRow, InwardStats
from .inward_status import ARRIVING_SOON_DAYS, days_until_arrival, get_inward_status
from .lead_time import parse_iso_date

logger = logging.getLogger(__name__)

# Raw statuses that put an item on the tracking table
TABLE_STATUSES = {"ordered", "received"}


def tracked_items(items: Iterable[BOMItem]) -> list[BOMItem]:
    """Components only -- services never take part in inward tracking."""
    return [item for item in items if not item.is_service]


def summarize_inward(
    items: Iterable[BOMItem],
    today: Optional[date] = None,
    arriving_soon_days: int = ARRIVING_SOON_DAYS,
) -> InwardStats:
    """Count tracked items per derived status; the three open states roll up as 'ordered'."""
    today = today or date.today()
    stats = InwardStats()

    for item in tracked_items(items):
        stats.total += 1
        status = get_inward_status(item, today, arriving_soon_days)
        if status == "overdue":
            stats.overdue += 1
            stats.ordered += 1
        elif status == "arriving-soon":
            stats.arriving_soon += 1
            stats.ordered += 1
        elif status == "on-track":
            stats.ordered += 1
        elif status == "received":
            stats.received += 1
        else:
            stats.not_ordered += 1

    return stats


def tracking_table(
    items: Iterable[BOMItem],
    status_filter: Optional[str] = None,
    today: Optional[date] = None,
    arriving_soon_days: int = ARRIVING_SOON_DAYS,
) -> list[InwardRow]:
    """
    Build the sorted tracking table.

    Only items whose raw status is ordered or received are listed. A
    status_filter (a derived inward status, or "all"/None for everything)
    narrows the list before sorting. Sort order: overdue first, then by
    ascending expected_arrival, items without a date last in encounter order.
    """
    if status_filter and status_filter != "all" and status_filter not in INWARD_STATUSES:
        raise ValueError(
            f"Invalid status filter {status_filter!r}. Must be one of {INWARD_STATUSES} or 'all'"
        )

    today = today or date.today()
    rows = [
        InwardRow(
            item=item,
            status=get_inward_status(item, today, arriving_soon_days),
            days_until_arrival=days_until_arrival(item.expected_arrival, today),
        )
        for item in tracked_items(items)
        if item.status in TABLE_STATUSES
    ]

    if status_filter and status_filter != "all":
        rows = [r for r in rows if r.status == status_filter]

    logger.debug("Tracking table: %d rows (filter=%s, today=%s)", len(rows), status_filter, today)
    # sorted() is stable, so dateless rows keep their encounter order
    return sorted(rows, key=_row_sort_key)


def _row_sort_key(row: InwardRow) -> tuple[bool, bool, date]:
    arrival = parse_iso_date(row.item.expected_arrival)
    return (
        row.status != "overdue",
        arrival is None,
        arrival or date.max,
    )
