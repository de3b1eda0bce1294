"""
SurvivalArena — league/models.py
Persisted records: challenges and their participants.
=====================================================
Version:     0.2
Stack:       Python 3.11+ | Pydantic v2
Status:      Production-ready.

Records are frozen. Stores replace them wholesale via model_copy(update=...).
Challenge settings are normalized exactly once, when the record is built.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from arena.data_loader import SurvivalSettings, get_default_settings, resolve_settings
from arena.events import ArenaEvent


class ChallengeType(str, Enum):
    SURVIVAL = "survival"
    RACE = "race"
    STREAK = "streak"
    CUSTOM = "custom"


class ChallengeStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ParticipantStatus(str, Enum):
    ACTIVE = "active"
    LEFT = "left"


class Challenge(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    challenge_type: ChallengeType = ChallengeType.SURVIVAL
    start_date: date
    end_date: Optional[date] = None
    status: ChallengeStatus = ChallengeStatus.ACTIVE
    settings: SurvivalSettings = Field(default_factory=get_default_settings)
    rules: Dict[str, Any] = Field(default_factory=dict)
    last_processed_period: int = 0

    @model_validator(mode="before")
    @classmethod
    def _normalize_settings(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        data["settings"] = resolve_settings(
            data.get("settings"),
            data.get("rules"),
            challenge_id=str(data.get("id", "?")),
        )
        return data

    @property
    def is_survival(self) -> bool:
        return self.challenge_type is ChallengeType.SURVIVAL

    @property
    def is_active(self) -> bool:
        return self.status is ChallengeStatus.ACTIVE


class Participant(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    challenge_id: str
    user_id: str
    distance_from_center: float = Field(default=1.0, ge=0.0, le=1.0)
    angle: float = Field(default=0.0, ge=0.0, lt=360.0)
    lives: int = Field(default=3, ge=0)
    days_in_danger: int = Field(default=0, ge=0)
    is_eliminated: bool = False
    last_activity_period: Optional[date] = None
    last_processed_period: int = Field(default=0, ge=0)
    total_points: float = 0.0
    status: ParticipantStatus = ParticipantStatus.ACTIVE
    version: int = 0

    @property
    def is_active(self) -> bool:
        return self.status is ParticipantStatus.ACTIVE and not self.is_eliminated


def row_event(event_key: str, participant: Participant, **extra: Any) -> ArenaEvent:
    """Event envelope for a committed participant row. Carries the new version."""
    data: Dict[str, Any] = {
        "version": participant.version,
        "distance_from_center": participant.distance_from_center,
        "lives": participant.lives,
        "days_in_danger": participant.days_in_danger,
        "is_eliminated": participant.is_eliminated,
        "total_points": participant.total_points,
    }
    data.update(extra)
    return ArenaEvent(
        event_key=event_key,
        source=participant.challenge_id,
        target=participant.id,
        data=data,
    )
