"""
Tests for league/activity.py: the immediate movement path.
"""

from datetime import date, datetime, timedelta

import pytest

from arena.events import EVT_PARTICIPANT_MOVED, EVT_POINTS_CREDITED, EventBus
from league.activity import ActivityService
from league.models import Challenge, ChallengeStatus, ChallengeType, Participant
from league.notifier import StateChangeNotifier
from league.store import ArenaStore

TODAY = date(2026, 10, 18)
START = TODAY - timedelta(days=4)     # day 5 of 30


def _setup(challenge_kwargs=None, **participant_kwargs):
    store = ArenaStore()
    store.add_challenge(Challenge(id="c1", start_date=START, **(challenge_kwargs or {})))
    store.add_participant(Participant(id="p1", challenge_id="c1", user_id="u1", **participant_kwargs))
    bus = EventBus()
    return store, bus, ActivityService(store, bus, clock=lambda: TODAY)


def test_full_points_move_inward_immediately():
    store, bus, service = _setup()
    seen = []
    bus.subscribe(EVT_PARTICIPANT_MOVED, seen.append)

    moved = service.record_activity("p1", 10, 10)

    assert moved.distance_from_center == pytest.approx(0.95)
    assert moved.last_activity_period == TODAY
    assert moved.version == 2
    assert store.get_participant("p1") == moved
    assert len(seen) == 1
    assert seen[0].data["previous_distance"] == 1.0
    assert seen[0].data["period"] == 5


def test_max_points_default_from_settings():
    _, _, service = _setup(challenge_kwargs={"settings": {"max_points_per_period": 20}})
    moved = service.record_activity("p1", 10)
    assert moved.distance_from_center == pytest.approx(0.975)


def test_zero_points_changes_nothing():
    store, _, service = _setup()
    result = service.record_activity("p1", 0, 10)
    assert result == store.get_participant("p1")
    assert result.version == 1


def test_datetime_timestamps_accepted():
    _, _, service = _setup()
    moved = service.record_activity("p1", 10, 10, period_timestamp=datetime(2026, 10, 16, 8, 30))
    assert moved.last_activity_period == date(2026, 10, 16)


@pytest.mark.parametrize("participant_kwargs", [
    {"is_eliminated": True, "lives": 0},
    {"status": "left"},
])
def test_out_of_play_participants_ignored(participant_kwargs):
    store, _, service = _setup(**participant_kwargs)
    assert service.record_activity("p1", 10, 10) is None
    assert store.get_participant("p1").version == 1


@pytest.mark.parametrize("challenge_kwargs", [
    {"status": ChallengeStatus.COMPLETED},
    {"status": ChallengeStatus.CANCELLED},
    {"challenge_type": ChallengeType.STREAK},
])
def test_challenge_not_in_play_ignored(challenge_kwargs):
    store, _, service = _setup(challenge_kwargs=challenge_kwargs)
    assert service.record_activity("p1", 10, 10) is None


def test_activity_outside_window_ignored():
    _, _, service = _setup()
    assert service.record_activity("p1", 10, 10, period_timestamp=START - timedelta(days=1)) is None
    assert service.record_activity("p1", 10, 10, period_timestamp=START + timedelta(days=31)) is None


class RacingStore(ArenaStore):
    def __init__(self):
        super().__init__()
        self.raced = False

    def commit_participant(self, participant_id, changes, expected_version=None):
        if not self.raced:
            self.raced = True
            super().commit_participant(participant_id, {"days_in_danger": 1})
        return super().commit_participant(participant_id, changes, expected_version)


def test_concurrent_batch_commit_is_retried():
    store = RacingStore()
    store.add_challenge(Challenge(id="c1", start_date=START))
    store.add_participant(Participant(id="p1", challenge_id="c1", user_id="u1"))
    service = ActivityService(store, clock=lambda: TODAY)

    moved = service.record_activity("p1", 10, 10)

    assert moved.version == 3
    assert moved.days_in_danger == 1
    assert moved.distance_from_center == pytest.approx(0.95)


def test_credit_points_reaches_subscribers():
    store, bus, service = _setup()
    notifier = StateChangeNotifier(bus)
    deltas = []
    notifier.subscribe("c1", deltas.append)
    credited = []
    bus.subscribe(EVT_POINTS_CREDITED, credited.append)

    service.credit_points("p1", 4)
    service.record_activity("p1", 10, 10)

    assert [d.version for d in deltas] == [2, 3]
    assert deltas[0].new_points == 4
    assert deltas[1].new_distance == pytest.approx(0.95)
    assert credited[0].data["points"] == 4


def test_non_positive_maximum_treated_as_one():
    _, _, service = _setup()
    moved = service.record_activity("p1", 5, 0)
    assert moved.distance_from_center == pytest.approx(0.95)


class AlwaysRacingStore(ArenaStore):
    """Another writer lands on the row before every activity commit."""

    def commit_participant(self, participant_id, changes, expected_version=None):
        if "distance_from_center" in changes:
            super().commit_participant(participant_id, {"days_in_danger": 0})
        return super().commit_participant(participant_id, changes, expected_version)


def test_gives_up_after_second_stale_read():
    store = AlwaysRacingStore()
    store.add_challenge(Challenge(id="c1", start_date=START))
    store.add_participant(Participant(id="p1", challenge_id="c1", user_id="u1"))
    service = ActivityService(store, clock=lambda: TODAY)

    assert service.record_activity("p1", 10, 10) is None
    assert store.get_participant("p1").distance_from_center == 1.0
