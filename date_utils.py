# date_utils.py
# =============================================================================
# Calendar helpers for the dashboard: local day boundaries, the "?date=" query
# parameter, and "1st Sep 2025" style labels.
# All datetimes are naive and read as local wall-clock time.
# =============================================================================

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Optional, Tuple

log = logging.getLogger("workout-tracker.dates")

_DATE_PARAM_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _coerce(value) -> datetime:
    """Return value as a datetime, substituting now() for anything unusable."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    log.warning(f"Not a date: {value!r}, using current time")
    return datetime.now()


def day_bounds(value) -> Tuple[datetime, datetime]:
    """Start and end of the local calendar day containing value.

    end is 23:59:59.999; filter with start <= t < end.
    """
    d = _coerce(value)
    start = d.replace(hour=0, minute=0, second=0, microsecond=0)
    end = d.replace(hour=23, minute=59, second=59, microsecond=999000)
    return start, end


def parse_date_param(raw: Optional[str]) -> datetime:
    """Parse a YYYY-MM-DD query value to local midnight, else now."""
    if raw and _DATE_PARAM_RE.match(raw):
        try:
            return datetime.strptime(raw, "%Y-%m-%d")
        except ValueError:
            log.info(f"Ignoring non-existent date {raw!r}")
    return datetime.now()


def ordinal_suffix(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def format_time_12h(value) -> str:
    """Clock time as "7:05 AM"."""
    d = _coerce(value)
    hour = d.hour % 12 or 12
    return f"{hour}:{d.minute:02d} {'AM' if d.hour < 12 else 'PM'}"


def format_date_with_ordinal(value) -> str:
    """Format as "<day><suffix> <Mon> <YYYY>", e.g. "1st Sep 2025"."""
    d = _coerce(value)
    return f"{d.day}{ordinal_suffix(d.day)} {_MONTHS[d.month - 1]} {d.year:04d}"
