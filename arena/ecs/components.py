"""
SurvivalArena — arena/ecs/components.py
ECS Component Definitions for python-tcod-ecs.
==============================================
Version:     0.1
Stack:       Python 3.11+ | python-tcod-ecs
Status:      Production-ready.

One entity per participant inside a SimulationContext registry. Components
mirror the participant row; the store remains the source of truth.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class ParticipantIdentity:
    participant_id: str
    user_id: str
    challenge_id: str


@dataclass
class RingPosition:
    distance_from_center: float = 1.0   # 1.0 = outer edge, 0.0 = center
    angle: float = 0.0                  # degrees, fixed at join


@dataclass
class SurvivalVitals:
    lives: int = 3
    days_in_danger: int = 0
    is_eliminated: bool = False


@dataclass
class ActivityLedger:
    total_points: float = 0.0
    last_activity_period: Optional[date] = None


@dataclass
class RowVersion:
    version: int = 0
    last_processed_period: int = 0      # last danger pass committed to this row


@dataclass
class InDanger:
    """Marker: set by the danger pass when the participant is beyond the threshold."""
    pass
