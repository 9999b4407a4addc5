"""
Vendor lead-time parsing and expected-arrival arithmetic.

Vendors quote lead times as free text ("2-3 weeks", "14 days", "1 month").
parse_lead_time_to_days() turns that into a day count using an ordered list
of matchers -- the first one that matches wins:

  1. days     "14 days", "1 day", "7 d", "2-3 days"
  2. weeks    "2 weeks", "3weeks", "4 w", "2-3 weeks"
  3. months   "1 month", "3months", "1 m", "1-2 months"
  4. a leading plain integer, read as days ("14", "5 business days")
  5. anything else -> 0

Ranges always take the first number. Units are matched literally with no
word boundary, so "10 working days" is caught by the week abbreviation "w"
before the leading-integer rule and yields 70. Callers rely on this order.
"""
import logging
import re
from datetime import date, timedelta
from typing import Optional

logger = logging.getLogger(__name__)

_RANGE = r"(\d+)(?:\s*-\s*\d+)?\s*"

# (name, pattern, days per unit) -- order is precedence
LEAD_TIME_MATCHERS: tuple[tuple[str, re.Pattern, int], ...] = (
    ("days",   re.compile(_RANGE + r"(?:days|day|d)"),       1),
    ("weeks",  re.compile(_RANGE + r"(?:weeks|week|w)"),     7),
    ("months", re.compile(_RANGE + r"(?:months|month|m)"),  30),
)

_LEADING_INT = re.compile(r"^(\d+)")


def parse_lead_time_to_days(text: Optional[str]) -> int:
    """Convert a free-text lead time into whole days. Never raises; unknown -> 0."""
    if not text or not isinstance(text, str):
        return 0

    normalised = text.strip().lower()
    if not normalised:
        return 0

    for name, pattern, multiplier in LEAD_TIME_MATCHERS:
        m = pattern.search(normalised)
        if m:
            days = int(m.group(1)) * multiplier
            logger.debug("Lead time %r matched %s rule -> %d days", text, name, days)
            return days

    m = _LEADING_INT.match(normalised)
    if m:
        return int(m.group(1))

    logger.debug("Unrecognised lead time %r -- treating as 0 days", text)
    return 0


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse a YYYY-MM-DD string (a trailing time part is ignored). None if unusable."""
    if not value:
        return None
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def calculate_expected_arrival(order_date: str, lead_time_days: int) -> str:
    """
    Add lead_time_days calendar days to an ISO order date.

    Plain date arithmetic: no time of day and no timezone, so month/year
    rollover and leap years come straight from the calendar.
    """
    start = date.fromisoformat(order_date)
    return (start + timedelta(days=int(lead_time_days))).isoformat()
