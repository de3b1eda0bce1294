"""
SurvivalArena — league/processor.py
Challenge Period Processor: one danger/elimination pass over one challenge.
===========================================================================
Version:     0.3
Stack:       Python 3.11+ | python-tcod-ecs | bespoke EventBus
Status:      Production-ready.

Pass sequence
-------------
  1. skip unless the challenge is active
  2. resolve total/current period from the injected date
  3. not started -> skip; past the end -> mark completed and skip
  4. weekly challenges only run on the week-boundary day
  5. skip if this period was already processed (last_processed_period)
  6. derive the safe zone and build a fresh SimulationContext
  7. apply the danger transition to each living participant not yet stamped
     with this period, one commit each (the commit stamps the row)
  8. if every row went through, record last_processed_period on the
     challenge; emit arena.period_processed

Failure policy
--------------
  A participant that fails to commit is counted in errors and skipped. The
  challenge is then left unstamped, so the next cycle retries that row while
  rows already stamped with the period are passed over.
  A stale read (ConsistencyError) is re-read once and re-evaluated; the
  terminal-state guard runs against the fresh row. If the challenge stops
  being active mid-pass, no further participants are updated.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, Optional

import tcod.ecs

from arena.context import SimulationContext
from arena.danger import DangerOutcome, apply_danger_transition
from arena.ecs.components import ParticipantIdentity, RingPosition, RowVersion
from arena.errors import ArenaError, ConsistencyError
from arena.events import (
    EVT_CHALLENGE_COMPLETED,
    EVT_CHALLENGE_HALTED,
    EVT_DANGER_UPDATED,
    EVT_LIFE_LOST,
    EVT_PARTICIPANT_ELIMINATED,
    EVT_PERIOD_PROCESSED,
    ArenaEvent,
    EventBus,
)
from arena.periods import current_period, is_week_boundary, total_periods
from league.models import Challenge, ChallengeStatus, Participant, row_event
from league.store import ArenaStore

logger = logging.getLogger(__name__)

Clock = Callable[[], date]


class SkipReason(str, Enum):
    INACTIVE = "inactive"
    NOT_STARTED = "not_started"
    ENDED = "ended"
    MID_WEEK = "mid_week"
    ALREADY_PROCESSED = "already_processed"


@dataclass
class PeriodResult:
    challenge_id: str
    current_period: int = 0
    total_periods: int = 0
    safe_zone_radius: Optional[float] = None
    skip_reason: Optional[SkipReason] = None
    completed: bool = False
    interrupted: bool = False
    participants_processed: int = 0
    participants_in_danger: int = 0
    participants_eliminated: int = 0
    errors: int = 0

    @property
    def skipped(self) -> bool:
        return self.skip_reason is not None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["skip_reason"] = self.skip_reason.value if self.skip_reason else None
        return data


class ChallengePeriodProcessor:
    def __init__(self, store: ArenaStore, bus: Optional[EventBus] = None, clock: Clock = date.today) -> None:
        self.store = store
        self.bus = bus or EventBus()
        self.clock = clock
        self.logger = logger.getChild(self.__class__.__name__)

    def process(self, challenge: Challenge, today: Optional[date] = None) -> PeriodResult:
        today = today or self.clock()
        result = PeriodResult(challenge_id=challenge.id)

        if not challenge.is_active:
            result.skip_reason = SkipReason.INACTIVE
            return result

        result.total_periods = total_periods(challenge.start_date, challenge.end_date)
        result.current_period = current_period(challenge.start_date, today)

        if result.current_period <= 0:
            self.logger.debug(f"Challenge {challenge.id} hasn't started yet")
            result.skip_reason = SkipReason.NOT_STARTED
            return result

        if result.current_period > result.total_periods:
            self._complete(challenge, result)
            return result

        if challenge.settings.is_weekly and not is_week_boundary(today):
            self.logger.debug(f"Skipping weekly challenge {challenge.id} (not end of week)")
            result.skip_reason = SkipReason.MID_WEEK
            return result

        if result.current_period <= challenge.last_processed_period:
            self.logger.debug(
                f"Challenge {challenge.id} already processed for period {result.current_period}"
            )
            result.skip_reason = SkipReason.ALREADY_PROCESSED
            return result

        ctx = SimulationContext.build(challenge, self.store.participants_for(challenge.id), today)
        result.safe_zone_radius = ctx.safe_zone.radius
        self.logger.debug(
            f"Challenge {challenge.id}: safe zone radius for period "
            f"{ctx.current_period}/{ctx.total_periods} is {ctx.safe_zone.radius:.4f}"
        )

        for entity in ctx.living():
            if not self._still_active(challenge.id):
                self.logger.info(f"Challenge {challenge.id} stopped mid-pass; halting updates")
                result.interrupted = True
                self.bus.emit(ArenaEvent(
                    event_key=EVT_CHALLENGE_HALTED,
                    source=challenge.id,
                    data={"current_period": result.current_period},
                ))
                break

            if entity.components[RowVersion].last_processed_period >= ctx.current_period:
                continue

            pid = entity.components[ParticipantIdentity].participant_id
            result.participants_processed += 1
            try:
                outcome = self._process_participant(ctx, entity)
            except (ArenaError, ValueError) as exc:
                result.errors += 1
                self.logger.error(f"Error processing participant {pid}: {exc}", exc_info=True)
                continue

            if outcome.newly_eliminated:
                result.participants_eliminated += 1

        result.participants_in_danger = len(ctx.in_danger())
        if not result.interrupted and not result.errors:
            self.store.update_challenge(challenge.id, last_processed_period=result.current_period)

        self.bus.emit(ArenaEvent(
            event_key=EVT_PERIOD_PROCESSED,
            source=challenge.id,
            data=result.to_dict(),
        ))
        return result

    # ----------------------------------------------------------
    # Internals
    # ----------------------------------------------------------

    def _still_active(self, challenge_id: str) -> bool:
        return self.store.get_challenge(challenge_id).is_active

    def _complete(self, challenge: Challenge, result: PeriodResult) -> None:
        self.logger.info(f"Challenge {challenge.id} has ended; marking completed")
        self.store.update_challenge(challenge.id, status=ChallengeStatus.COMPLETED)
        result.skip_reason = SkipReason.ENDED
        result.completed = True
        self.bus.emit(ArenaEvent(
            event_key=EVT_CHALLENGE_COMPLETED,
            source=challenge.id,
            data={"total_periods": result.total_periods, "current_period": result.current_period},
        ))

    def _process_participant(self, ctx: SimulationContext, entity: tcod.ecs.Entity) -> DangerOutcome:
        try:
            return self._evaluate_and_commit(ctx, entity)
        except ConsistencyError as exc:
            self.logger.warning(f"{exc}; re-reading before retry")
            fresh = self.store.get_participant(exc.participant_id)
            ctx.sync(fresh)
            if not fresh.is_active or fresh.last_processed_period >= ctx.current_period:
                return DangerOutcome(state=ctx.danger_state(entity))
            return self._evaluate_and_commit(ctx, entity)

    def _evaluate_and_commit(self, ctx: SimulationContext, entity: tcod.ecs.Entity) -> DangerOutcome:
        outcome = apply_danger_transition(
            ctx.danger_state(entity),
            entity.components[RingPosition].distance_from_center,
            ctx.safe_zone.radius,
            ctx.settings,
            ctx.total_periods,
        )
        if not outcome.changed:
            ctx.mark_danger(entity, outcome.in_danger)
            return outcome

        state = outcome.state
        committed = self.store.commit_participant(
            entity.components[ParticipantIdentity].participant_id,
            {
                "days_in_danger": state.days_in_danger,
                "lives": state.lives,
                "is_eliminated": state.is_eliminated,
                "last_processed_period": ctx.current_period,
            },
            expected_version=entity.components[RowVersion].version,
        )
        ctx.sync(committed)
        ctx.mark_danger(entity, outcome.in_danger)
        self._announce(committed, outcome)
        return outcome

    def _announce(self, participant: Participant, outcome: DangerOutcome) -> None:
        if outcome.newly_eliminated:
            key = EVT_PARTICIPANT_ELIMINATED
            self.logger.info(f"Participant {participant.id} eliminated")
        elif outcome.life_lost:
            key = EVT_LIFE_LOST
            self.logger.info(f"Participant {participant.id} lost a life ({participant.lives} left)")
        else:
            key = EVT_DANGER_UPDATED
            self.logger.debug(
                f"Participant {participant.id}: days_in_danger={participant.days_in_danger} "
                f"lives={participant.lives}"
            )
        self.bus.emit(row_event(key, participant, in_danger=outcome.in_danger))
