"""Date helpers shared by the acquisition tiers."""

from __future__ import annotations

import calendar
import email.utils
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional, Union


MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

_MONTH_LOOKUP = {name.lower(): i + 1 for i, name in enumerate(MONTH_NAMES)}
_MONTH_LOOKUP.update({name[:3].lower(): i + 1 for i, name in enumerate(MONTH_NAMES)})
_MONTH_LOOKUP["sept"] = 9


def parse_month(value: Union[int, str]) -> int:
    """Accept 1-12, "3", "march" or "Mar"; raise ValueError otherwise."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid month: {value!r}")
    if isinstance(value, int):
        month = value
    else:
        s = str(value or "").strip().lower().rstrip(".")
        if s.isdigit():
            month = int(s)
        elif s in _MONTH_LOOKUP:
            month = _MONTH_LOOKUP[s]
        else:
            raise ValueError(f"Invalid month: {value!r}")
    if month < 1 or month > 12:
        raise ValueError(f"Invalid month: {value!r}")
    return month


def month_name(month: int) -> str:
    if 1 <= month <= 12:
        return MONTH_NAMES[month - 1]
    return MONTH_NAMES[0]


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def is_current_or_future_month(year: int, month: int, today: Optional[date] = None) -> bool:
    today = today or datetime.now(timezone.utc).date()
    if year > today.year:
        return True
    return year == today.year and month >= today.month


def to_utc(dt: datetime) -> datetime:
    # Naive datetimes are treated as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def iso_z(dt: datetime) -> str:
    """UTC timestamp with millisecond precision and a Z suffix."""
    u = to_utc(dt)
    return u.strftime("%Y-%m-%dT%H:%M:%S.") + f"{u.microsecond // 1000:03d}Z"


_RELATIVE_RE = re.compile(r"^(\d+)\s+(minute|min|hour|day|week|month)s?\s+ago$", re.IGNORECASE)
_LOOSE_FORMATS = (
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%Y-%m-%d",
)


def parse_loose_date(value: Any, *, now: Optional[datetime] = None) -> Optional[datetime]:
    """Best-effort parse of the date strings search APIs hand back.

    Handles ISO 8601, RFC 822, "Mar 5, 2025" style and "3 days ago".
    Returns an aware UTC datetime or None.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    s = str(value).strip()
    if not s:
        return None

    m = _RELATIVE_RE.match(s)
    if m:
        n = int(m.group(1))
        unit = m.group(2).lower()
        base = to_utc(now) if now else datetime.now(timezone.utc)
        if unit in ("minute", "min"):
            return base - timedelta(minutes=n)
        if unit == "hour":
            return base - timedelta(hours=n)
        if unit == "day":
            return base - timedelta(days=n)
        if unit == "week":
            return base - timedelta(weeks=n)
        return base - timedelta(days=30 * n)

    try:
        return to_utc(datetime.fromisoformat(s.replace("Z", "+00:00")))
    except ValueError:
        pass

    try:
        parsed = email.utils.parsedate_to_datetime(s)
        if parsed is not None:
            return to_utc(parsed)
    except (TypeError, ValueError, IndexError):
        pass

    for fmt in _LOOSE_FORMATS:
        try:
            return datetime.strptime(s, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None
