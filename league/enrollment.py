"""
SurvivalArena — league/enrollment.py
Enrollment: creates participant rows on join or invite acceptance.
"""

from __future__ import annotations

import logging
import random
import uuid
from datetime import date
from typing import Optional

from arena.events import EVT_PARTICIPANT_JOINED, EventBus
from arena.periods import DateLike, as_date, current_period, total_periods
from arena.placement import random_angle, starting_distance
from league.models import ChallengeStatus, Participant, row_event
from league.store import ArenaStore

logger = logging.getLogger(__name__)

JOINABLE_STATUSES = (ChallengeStatus.DRAFT, ChallengeStatus.ACTIVE)


def enroll_participant(
    store: ArenaStore,
    challenge_id: str,
    user_id: str,
    today: Optional[DateLike] = None,
    rng: Optional[random.Random] = None,
    bus: Optional[EventBus] = None,
    participant_id: Optional[str] = None,
) -> Participant:
    """
    Add a user to a challenge. Joining after period 1 places the user just
    inside the safe zone of the day. Joining twice returns the existing row.
    """
    challenge = store.get_challenge(challenge_id)
    if challenge.status not in JOINABLE_STATUSES:
        raise ValueError(f"Challenge {challenge_id} is {challenge.status.value}; cannot join")

    day = as_date(today) if today is not None else date.today()
    total = total_periods(challenge.start_date, challenge.end_date)
    current = current_period(challenge.start_date, day)
    distance = starting_distance(min(current, total), total, challenge.settings)

    participant, created = store.enroll_participant(Participant(
        id=participant_id or str(uuid.uuid4()),
        challenge_id=challenge_id,
        user_id=user_id,
        distance_from_center=distance,
        angle=random_angle(rng),
        lives=challenge.settings.start_lives,
    ))
    if not created:
        return participant
    logger.info(
        f"User {user_id} joined challenge {challenge_id} at period {current}/{total} "
        f"(distance {distance:.4f})"
    )
    if bus is not None:
        bus.emit(row_event(EVT_PARTICIPANT_JOINED, participant, user_id=user_id))
    return participant
