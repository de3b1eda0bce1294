"""
SurvivalArena — arena/danger.py
Danger State Machine: Safe -> Danger -> (life lost) -> Eliminated.
==================================================================
Version:     0.2
Stack:       Python 3.11+
Status:      Production-ready.

Architecture notes
------------------
- Pure transition function. Persistence happens in the league services,
  one participant row per commit.
- Danger -> Safe is allowed and resets days_in_danger to 0 (no decay).
- Eliminated is terminal. Applying a transition to an eliminated
  participant returns it unchanged, so a re-run batch cannot penalize twice.

Elimination thresholds (consecutive danger periods before a life is lost)
--------------------------------------------------------------------------
  total periods 1..3    -> 1
  total periods 4..10   -> 2
  total periods 11+     -> 3
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from arena.data_loader import EliminationPolicy, SurvivalSettings, get_default_settings

# ============================================================
# DESIGN VARIABLE DEFAULTS
# ============================================================

SHORT_THRESHOLD_MAX_PERIODS: int = 3
MEDIUM_THRESHOLD_MAX_PERIODS: int = 10

THRESHOLD_SHORT: int = 1
THRESHOLD_MEDIUM: int = 2
THRESHOLD_STANDARD: int = 3


@dataclass(frozen=True)
class DangerState:
    days_in_danger: int = 0
    lives: int = 3
    is_eliminated: bool = False


@dataclass(frozen=True)
class DangerOutcome:
    state: DangerState
    in_danger: bool = False
    life_lost: bool = False
    newly_eliminated: bool = False
    changed: bool = False


def elimination_threshold(total_periods: Optional[int], settings: Optional[SurvivalSettings] = None) -> int:
    """Scale the consecutive-danger allowance with challenge length."""
    if not total_periods:
        return (settings or get_default_settings()).elimination_threshold
    if total_periods <= SHORT_THRESHOLD_MAX_PERIODS:
        return THRESHOLD_SHORT
    if total_periods <= MEDIUM_THRESHOLD_MAX_PERIODS:
        return THRESHOLD_MEDIUM
    return THRESHOLD_STANDARD


def is_in_danger(distance_from_center: float, safe_zone_radius: float, danger_threshold: float = 1.0) -> bool:
    return distance_from_center > safe_zone_radius * danger_threshold


def apply_danger_transition(
    state: DangerState,
    distance_from_center: float,
    safe_zone_radius: float,
    settings: Optional[SurvivalSettings] = None,
    total_periods: Optional[int] = None,
) -> DangerOutcome:
    s = settings or get_default_settings()

    if state.is_eliminated:
        return DangerOutcome(state=state)

    in_danger = is_in_danger(distance_from_center, safe_zone_radius, s.danger_threshold)

    if not in_danger:
        new_state = replace(state, days_in_danger=0)
        return DangerOutcome(state=new_state, changed=new_state != state)

    if s.elimination_policy is EliminationPolicy.IMMEDIATE:
        new_state = DangerState(days_in_danger=0, lives=0, is_eliminated=True)
        return DangerOutcome(
            state=new_state,
            in_danger=True,
            life_lost=state.lives > 0,
            newly_eliminated=True,
            changed=True,
        )

    days = state.days_in_danger + 1
    lives = state.lives
    life_lost = False
    eliminated = False

    if days >= elimination_threshold(total_periods, s):
        lives = max(0, lives - 1)
        days = 0
        life_lost = True
        eliminated = lives <= 0

    new_state = DangerState(days_in_danger=days, lives=lives, is_eliminated=eliminated)
    return DangerOutcome(
        state=new_state,
        in_danger=True,
        life_lost=life_lost,
        newly_eliminated=eliminated,
        changed=True,
    )
