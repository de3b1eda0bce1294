import random
import threading
from datetime import date, timedelta

import pytest

from arena.events import EVT_PARTICIPANT_JOINED, EventBus
from league.enrollment import enroll_participant
from league.models import Challenge, ChallengeStatus
from league.store import ArenaStore

START = date(2026, 3, 1)


def _store(**kwargs):
    store = ArenaStore()
    store.add_challenge(Challenge(id="c1", start_date=START, **kwargs))
    return store


def test_day_one_joiner_starts_on_edge_with_configured_lives():
    store = _store(settings={"start_lives": 5})
    p = enroll_participant(store, "c1", "u1", today=START, rng=random.Random(3))
    assert p.distance_from_center == 1.0
    assert p.lives == 5
    assert p.days_in_danger == 0
    assert not p.is_eliminated
    assert 0.0 <= p.angle < 360.0
    assert store.get_participant(p.id) == p


def test_late_joiner_placed_inside_safe_zone():
    store = _store()
    p = enroll_participant(store, "c1", "u1", today=START + timedelta(days=14))
    assert p.distance_from_center == pytest.approx(0.537241, abs=1e-6)


def test_draft_challenges_accept_early_joiners():
    store = _store(status=ChallengeStatus.DRAFT)
    p = enroll_participant(store, "c1", "u1", today=START - timedelta(days=3))
    assert p.distance_from_center == 1.0


def test_joining_twice_returns_existing_row():
    store = _store()
    first = enroll_participant(store, "c1", "u1", today=START, participant_id="p1")
    again = enroll_participant(store, "c1", "u1", today=START + timedelta(days=10))
    assert again == first
    assert len(store.participants_for("c1", active_only=False)) == 1


@pytest.mark.parametrize("status", [ChallengeStatus.COMPLETED, ChallengeStatus.CANCELLED])
def test_closed_challenges_reject_joins(status):
    store = _store(status=status)
    with pytest.raises(ValueError):
        enroll_participant(store, "c1", "u1", today=START)


def test_join_is_announced():
    store = _store()
    bus = EventBus()
    seen = []
    bus.subscribe(EVT_PARTICIPANT_JOINED, seen.append)
    p = enroll_participant(store, "c1", "u1", today=START, bus=bus)
    assert seen[0].target == p.id
    assert seen[0].data["user_id"] == "u1"
    assert seen[0].data["version"] == 1


def test_concurrent_joins_by_one_user_create_one_row():
    store = _store()
    bus = EventBus()
    joined = []
    bus.subscribe(EVT_PARTICIPANT_JOINED, joined.append)
    barrier = threading.Barrier(6)
    rows = []

    def join():
        barrier.wait()
        rows.append(enroll_participant(store, "c1", "u1", today=START, bus=bus))

    threads = [threading.Thread(target=join) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store.participants_for("c1", active_only=False)) == 1
    assert len({r.id for r in rows}) == 1
    assert len(joined) == 1
