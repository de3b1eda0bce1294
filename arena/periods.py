"""
SurvivalArena — arena/periods.py
Period arithmetic: challenge length, current period, week boundaries.
=====================================================================
Version:     0.1
Stack:       Python 3.11+ | stdlib datetime
Status:      Production-ready.

Periods are counted in days for both timeframes. Weekly challenges convert
to week indices only inside the safe-zone radius function.

  total_periods  = (end_date - start_date).days
  current_period = (today - start_date).days + 1     (start date is period 1)

A challenge has not started while current_period <= 0 and has ended once
current_period > total_periods.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import Optional, Union

# ============================================================
# DESIGN VARIABLE DEFAULTS
# ============================================================

OPEN_ENDED_LENGTH_DAYS: int = 30   # end date for challenges without one
WEEK_BOUNDARY_WEEKDAY: int = 6     # date.weekday(): Monday=0 ... Sunday=6
DAYS_PER_WEEK: int = 7

DateLike = Union[date, datetime]


def as_date(value: DateLike) -> date:
    """Collapse datetimes to their calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value


def effective_end_date(start_date: DateLike, end_date: Optional[DateLike]) -> date:
    if end_date is None:
        return as_date(start_date) + timedelta(days=OPEN_ENDED_LENGTH_DAYS)
    return as_date(end_date)


def total_periods(start_date: DateLike, end_date: Optional[DateLike]) -> int:
    return (effective_end_date(start_date, end_date) - as_date(start_date)).days


def current_period(start_date: DateLike, today: DateLike) -> int:
    return (as_date(today) - as_date(start_date)).days + 1


def week_index(day: int) -> int:
    """1-based week containing the given 1-based day."""
    return math.ceil(day / DAYS_PER_WEEK)


def is_week_boundary(today: DateLike) -> bool:
    return as_date(today).weekday() == WEEK_BOUNDARY_WEEKDAY
