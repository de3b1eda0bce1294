"""
SurvivalArena — league/activity.py
Activity Service: the immediate (push) movement path.
=====================================================
Version:     0.2
Stack:       Python 3.11+ | bespoke EventBus
Status:      Production-ready.

When the activity-logging collaborator reports a qualifying activity, the
participant moves inward right away, independent of the periodic batch.
Runs concurrently with the batch; both commit through the store, which
serializes writes per participant and rejects stale versions.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional

from arena import movement
from arena.errors import ConsistencyError
from arena.events import EVT_PARTICIPANT_MOVED, EVT_POINTS_CREDITED, EventBus
from arena.periods import DateLike, as_date, current_period, total_periods
from league.models import Participant, row_event
from league.store import ArenaStore

logger = logging.getLogger(__name__)


class ActivityService:
    def __init__(self, store: ArenaStore, bus: Optional[EventBus] = None, clock: Callable[[], date] = date.today) -> None:
        self.store = store
        self.bus = bus or EventBus()
        self.clock = clock
        self.logger = logger.getChild(self.__class__.__name__)

    def record_activity(
        self,
        participant_id: str,
        points_earned: float,
        max_possible_points: Optional[float] = None,
        period_timestamp: Optional[DateLike] = None,
    ) -> Optional[Participant]:
        """
        Move a participant for points earned this period.

        Returns the committed row, the unchanged row when no movement applies,
        or None when the participant or challenge is no longer in play or the
        row kept moving under two attempts to commit.
        """
        participant = self.store.get_participant(participant_id)
        challenge = self.store.get_challenge(participant.challenge_id)

        if not challenge.is_survival or not challenge.is_active:
            self.logger.debug(f"Ignoring activity for {participant_id}: challenge {challenge.id} not in play")
            return None
        if not participant.is_active:
            self.logger.debug(f"Ignoring activity for {participant_id}: participant no longer in play")
            return None

        day = as_date(period_timestamp) if period_timestamp is not None else self.clock()
        total = total_periods(challenge.start_date, challenge.end_date)
        current = current_period(challenge.start_date, day)
        if current <= 0 or current > total:
            self.logger.debug(f"Ignoring activity for {participant_id}: {day} outside challenge window")
            return None

        if not points_earned or points_earned <= 0:
            return participant

        if max_possible_points is None:
            max_possible_points = challenge.settings.max_points_per_period
        max_points = max_possible_points

        try:
            return self._move(participant, points_earned, max_points, day, current, total)
        except ConsistencyError as exc:
            self.logger.warning(f"{exc}; re-reading before retry")
            fresh = self.store.get_participant(participant_id)
            if not fresh.is_active:
                return None
            try:
                return self._move(fresh, points_earned, max_points, day, current, total)
            except ConsistencyError as retry_exc:
                self.logger.error(f"Giving up on activity for {participant_id}: {retry_exc}")
                return None

    def _move(
        self,
        participant: Participant,
        points_earned: float,
        max_points: float,
        day: date,
        current: int,
        total: int,
    ) -> Participant:
        settings = self.store.get_challenge(participant.challenge_id).settings
        distance = movement.new_distance(
            participant.distance_from_center,
            points_earned,
            max_points,
            settings,
            current,
            total,
        )
        committed = self.store.commit_participant(
            participant.id,
            {"distance_from_center": distance, "last_activity_period": day},
            expected_version=participant.version,
        )
        self.logger.debug(
            f"Participant {participant.id} moved {participant.distance_from_center:.4f} -> {distance:.4f} "
            f"({points_earned}/{max_points} points, period {current}/{total})"
        )
        self.bus.emit(row_event(
            EVT_PARTICIPANT_MOVED,
            committed,
            previous_distance=participant.distance_from_center,
            points_earned=points_earned,
            period=current,
        ))
        return committed

    def credit_points(self, participant_id: str, points: float) -> Participant:
        """Record points on behalf of the points collaborator and tell subscribers."""
        committed = self.store.credit_points(participant_id, points)
        self.bus.emit(row_event(EVT_POINTS_CREDITED, committed, points=points))
        return committed
