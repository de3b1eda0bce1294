"""
SurvivalArena — arena/context.py
Simulation Context: explicit per-challenge state for one processing pass.
=========================================================================
Version:     0.2
Stack:       Python 3.11+ | python-tcod-ecs
Status:      Production-ready.

Architecture notes
------------------
- Built fresh for every pass from the challenge record, its participants
  and the injected date. Never shared across challenges or passes.
- Holds a private tcod.ecs.Registry with one entity per participant.
- The safe zone is derived here and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

import tcod.ecs

from arena.danger import DangerState
from arena.data_loader import SurvivalSettings
from arena.ecs.components import (
    ActivityLedger,
    InDanger,
    ParticipantIdentity,
    RingPosition,
    RowVersion,
    SurvivalVitals,
)
from arena.periods import current_period, total_periods
from arena.safe_zone import SafeZoneSnapshot, snapshot

if TYPE_CHECKING:
    from league.models import Challenge, Participant


@dataclass
class SimulationContext:
    challenge_id: str
    settings: SurvivalSettings
    today: date
    current_period: int
    total_periods: int
    safe_zone: SafeZoneSnapshot
    registry: tcod.ecs.Registry = field(default_factory=tcod.ecs.Registry)
    _by_id: Dict[str, tcod.ecs.Entity] = field(default_factory=dict, repr=False)

    @classmethod
    def build(
        cls,
        challenge: "Challenge",
        participants: Iterable["Participant"] = (),
        today: Optional[date] = None,
    ) -> "SimulationContext":
        today = today or date.today()
        total = total_periods(challenge.start_date, challenge.end_date)
        current = current_period(challenge.start_date, today)
        ctx = cls(
            challenge_id=challenge.id,
            settings=challenge.settings,
            today=today,
            current_period=current,
            total_periods=total,
            safe_zone=snapshot(current, total, challenge.settings),
        )
        for participant in participants:
            ctx.add(participant)
        return ctx

    def add(self, participant: "Participant") -> tcod.ecs.Entity:
        entity = self.registry.new_entity()
        entity.components[ParticipantIdentity] = ParticipantIdentity(
            participant_id=participant.id,
            user_id=participant.user_id,
            challenge_id=participant.challenge_id,
        )
        entity.components[RingPosition] = RingPosition(
            distance_from_center=participant.distance_from_center,
            angle=participant.angle,
        )
        entity.components[SurvivalVitals] = SurvivalVitals(
            lives=participant.lives,
            days_in_danger=participant.days_in_danger,
            is_eliminated=participant.is_eliminated,
        )
        entity.components[ActivityLedger] = ActivityLedger(
            total_points=participant.total_points,
            last_activity_period=participant.last_activity_period,
        )
        entity.components[RowVersion] = RowVersion(
            version=participant.version,
            last_processed_period=participant.last_processed_period,
        )
        self._by_id[participant.id] = entity
        return entity

    def sync(self, participant: "Participant") -> None:
        """Refresh an entity from a freshly read or freshly committed row."""
        entity = self.entity(participant.id)
        if entity is None:
            self.add(participant)
            return
        pos = entity.components[RingPosition]
        pos.distance_from_center = participant.distance_from_center
        vitals = entity.components[SurvivalVitals]
        vitals.lives = participant.lives
        vitals.days_in_danger = participant.days_in_danger
        vitals.is_eliminated = participant.is_eliminated
        row = entity.components[RowVersion]
        row.version = participant.version
        row.last_processed_period = participant.last_processed_period

    def entity(self, participant_id: str) -> Optional[tcod.ecs.Entity]:
        return self._by_id.get(participant_id)

    def living(self) -> List[tcod.ecs.Entity]:
        """Participants still in the game, ordered by participant id."""
        found = [
            e for e in self.registry.Q.all_of(components=[ParticipantIdentity, SurvivalVitals])
            if not e.components[SurvivalVitals].is_eliminated
        ]
        return sorted(found, key=lambda e: e.components[ParticipantIdentity].participant_id)

    def in_danger(self) -> List[tcod.ecs.Entity]:
        return list(self.registry.Q.all_of(components=[ParticipantIdentity, InDanger]))

    def mark_danger(self, entity: tcod.ecs.Entity, in_danger: bool) -> None:
        if in_danger:
            entity.components[InDanger] = InDanger()
        elif InDanger in entity.components:
            del entity.components[InDanger]

    @staticmethod
    def danger_state(entity: tcod.ecs.Entity) -> DangerState:
        vitals = entity.components[SurvivalVitals]
        return DangerState(
            days_in_danger=vitals.days_in_danger,
            lives=vitals.lives,
            is_eliminated=vitals.is_eliminated,
        )
