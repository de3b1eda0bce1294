"""
SurvivalArena — arena/movement.py
Movement: how far a qualifying activity moves a participant toward the center.
==============================================================================
Version:     0.2
Stack:       Python 3.11+
Status:      Production-ready.

Formula
-------
  points_ratio     = min(1, points / max(1, max_points))
  movement_amount  = max_movement_per_period * duration_factor
                     * points_ratio * timeframe_factor
  effective        = max(movement_floor, movement_amount)
  new_distance     = max(0, current - effective)

No points means no movement. Failing a period never pushes anyone outward;
only the shrinking safe zone does that.

Design Variables (all values configurable; do not hardcode elsewhere)
---------------------------------------------------------------------
  SHORT_CHALLENGE_PERIODS    7     totals at or below get the short factors
  MEDIUM_CHALLENGE_PERIODS   14    totals at or below get the medium factors
  DURATION_FACTOR_*          2.0 / 1.5 / 1.0
  MOVEMENT_FLOOR_*           0.03 / 0.02 / 0.01
  WEEKLY_TIMEFACTOR          3.0   applied to both the amount and the floor
"""

from __future__ import annotations

from typing import Optional

from arena.data_loader import SurvivalSettings, get_default_settings

# ============================================================
# DESIGN VARIABLE DEFAULTS
# ============================================================

SHORT_CHALLENGE_PERIODS: int = 7
MEDIUM_CHALLENGE_PERIODS: int = 14

DURATION_FACTOR_SHORT: float = 2.0
DURATION_FACTOR_MEDIUM: float = 1.5
DURATION_FACTOR_STANDARD: float = 1.0

MOVEMENT_FLOOR_SHORT: float = 0.03
MOVEMENT_FLOOR_MEDIUM: float = 0.02
MOVEMENT_FLOOR_STANDARD: float = 0.01

WEEKLY_TIMEFACTOR: float = 3.0
DAILY_TIMEFACTOR: float = 1.0


def duration_factor(total_periods: int) -> float:
    """Shorter challenges move faster to compensate for fewer periods."""
    if total_periods <= SHORT_CHALLENGE_PERIODS:
        return DURATION_FACTOR_SHORT
    if total_periods <= MEDIUM_CHALLENGE_PERIODS:
        return DURATION_FACTOR_MEDIUM
    return DURATION_FACTOR_STANDARD


def timeframe_factor(settings: SurvivalSettings) -> float:
    return WEEKLY_TIMEFACTOR if settings.is_weekly else DAILY_TIMEFACTOR


def movement_floor(total_periods: int, settings: SurvivalSettings) -> float:
    if total_periods <= SHORT_CHALLENGE_PERIODS:
        floor = MOVEMENT_FLOOR_SHORT
    elif total_periods <= MEDIUM_CHALLENGE_PERIODS:
        floor = MOVEMENT_FLOOR_MEDIUM
    else:
        floor = MOVEMENT_FLOOR_STANDARD
    return floor * timeframe_factor(settings)


def points_ratio(points_earned: float, max_possible_points: float) -> float:
    return min(1.0, points_earned / max(1.0, max_possible_points))


def new_distance(
    current_distance: float,
    points_earned: float,
    max_possible_points: float,
    settings: Optional[SurvivalSettings] = None,
    current_period: int = 1,
    total_periods: int = 30,
) -> float:
    """Return the participant's distance after a qualifying activity, in [0, current]."""
    if not points_earned or points_earned <= 0:
        return current_distance

    s = settings or get_default_settings()
    amount = (
        s.max_movement_per_period
        * duration_factor(total_periods)
        * points_ratio(points_earned, max_possible_points)
        * timeframe_factor(s)
    )
    effective = max(movement_floor(total_periods, s), amount)
    return max(0.0, current_distance - effective)
