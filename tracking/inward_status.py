"""
Inward (delivery) status classification.

The status is a derived view, recomputed on every read from the item's
lifecycle fields and today's date. Nothing here is stored.

  service item, or status not-ordered  -> not-ordered
  status received                      -> received
  no usable expected_arrival           -> on-track
  expected_arrival before today        -> overdue
  0..ARRIVING_SOON_DAYS days away      -> arriving-soon  (both ends inclusive)
  further out                          -> on-track
"""
from datetime import date
from typing import Optional

from models.bom import BOMItem, InwardStatus
from .lead_time import parse_iso_date

ARRIVING_SOON_DAYS = 7


def days_until_arrival(expected_arrival: Optional[str], today: Optional[date] = None) -> Optional[int]:
    """Whole days from today to the expected arrival (negative when late)."""
    target = parse_iso_date(expected_arrival)
    if target is None:
        return None
    today = today or date.today()
    return (target - today).days


def get_inward_status(
    item: BOMItem,
    today: Optional[date] = None,
    arriving_soon_days: int = ARRIVING_SOON_DAYS,
) -> InwardStatus:
    """
    Derive the delivery state of an item.

    today defaults to the system date at call time; pass a fixed date to pin
    the clock (tests, reports "as of" a date).
    """
    if item.is_service or item.status == "not-ordered":
        return "not-ordered"

    if item.status == "received":
        return "received"

    days = days_until_arrival(item.expected_arrival, today)
    if days is None:
        return "on-track"
    if days < 0:
        return "overdue"
    if days <= arriving_soon_days:
        return "arriving-soon"
    return "on-track"
