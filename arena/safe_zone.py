"""
SurvivalArena — arena/safe_zone.py
Safe Zone: the shrinking radius of the arena.
====================================================================
Version:     0.1  (canonical implementation)
Stack:       Python 3.11+
Status:      Production-ready.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from arena.data_loader import SurvivalSettings, get_default_settings
from arena.periods import week_index


@dataclass(frozen=True)
class SafeZoneSnapshot:
    """Derived per processing pass. Never persisted."""
    period: int
    radius: float


def _interpolate(current: int, total: int, initial: float, final: float) -> float:
    if current <= 1:
        return initial
    if current >= total:
        return final
    return initial - ((initial - final) * ((current - 1) / (total - 1)))


def safe_zone_radius(
    current_period: int,
    total_periods: int,
    settings: Optional[SurvivalSettings] = None,
) -> float:
    """
    Linear shrink from initial_safe_radius (period 1) to min_safe_radius
    (final period):

        r(d) = initial - (initial - min) * (d - 1) / (D - 1)

    Weekly challenges pass day counts; they are converted to week indices
    with ceil(day / 7) before the same interpolation is applied.
    Pure and idempotent.
    """
    s = settings or get_default_settings()
    initial = s.initial_safe_radius
    final = s.min_safe_radius

    if total_periods <= 1:
        return final

    day = max(1, current_period)
    if s.is_weekly:
        return _interpolate(week_index(day), week_index(total_periods), initial, final)
    return _interpolate(day, total_periods, initial, final)


def snapshot(current_period: int, total_periods: int, settings: Optional[SurvivalSettings] = None) -> SafeZoneSnapshot:
    return SafeZoneSnapshot(
        period=current_period,
        radius=safe_zone_radius(current_period, total_periods, settings),
    )
