from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from ..config import settings


def first_day_of_month(d: date) -> date:
    return d.replace(day=1)


def last_day_of_month(d: date) -> date:
    return d.replace(day=monthrange(d.year, d.month)[1])


def shift_months(d: date, months: int) -> date:
    """Move ``d`` by whole months, clamping the day to the target month."""
    index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(index, 12)
    day = min(d.day, monthrange(year, month + 1)[1])
    return date(year, month + 1, day)


def week_of_month(d: date) -> int:
    return (d.day - 1) // 7 + 1


def today(timezone: Optional[str] = None) -> date:
    """Calendar anchor for default windows, in the configured report zone."""
    zone = timezone if timezone is not None else settings.report_timezone
    if zone:
        return datetime.now(ZoneInfo(zone)).date()
    return date.today()


def default_window(anchor: date, months: int = 12) -> Tuple[date, date]:
    """Trailing ``months`` full calendar months, the anchor's month included.

    With ``months=12`` and an anchor of 2025-03-14 this is
    (2024-04-01, 2025-03-31).
    """
    if months < 1:
        raise ValueError("months must be positive")
    start = first_day_of_month(shift_months(first_day_of_month(anchor), -(months - 1)))
    return start, last_day_of_month(anchor)
