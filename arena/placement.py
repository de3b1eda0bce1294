"""
SurvivalArena — arena/placement.py
Placement: where a participant lands on the ring when joining.
"""

from __future__ import annotations

import random
from typing import Optional

from arena.data_loader import SurvivalSettings
from arena.safe_zone import safe_zone_radius

OUTER_EDGE: float = 1.0
LATE_JOIN_SAFETY_FACTOR: float = 0.95      # just inside the current safe zone
VERY_SHORT_CHALLENGE_PERIODS: int = 3
VERY_SHORT_EDGE_SHARE: float = 0.5         # halfway between safe radius and edge


def starting_distance(
    current_period: Optional[int],
    total_periods: Optional[int],
    settings: Optional[SurvivalSettings] = None,
) -> float:
    """
    Period 1 joiners start at the outer edge. Late joiners are placed
    relative to the safe zone in force on the day they join.
    """
    if not current_period or not total_periods or current_period <= 1:
        return OUTER_EDGE

    radius = safe_zone_radius(current_period, total_periods, settings)
    if total_periods <= VERY_SHORT_CHALLENGE_PERIODS and current_period >= total_periods / 2:
        return radius + ((OUTER_EDGE - radius) * VERY_SHORT_EDGE_SHARE)
    return radius * LATE_JOIN_SAFETY_FACTOR


def random_angle(rng: Optional[random.Random] = None) -> float:
    """Placement coordinate only. Assigned once, never used in survival math."""
    return (rng or random).uniform(0.0, 360.0) % 360.0
