"""
End-to-end season: enrollment, activity, daily batches, notifier and journal
wired over one EventBus, the way run.py wires them.
"""

from datetime import date, timedelta

import pytest

from arena.events import EventBus
from league.activity import ActivityService
from league.enrollment import enroll_participant
from league.journal import JournalInscriber, JournalReader
from league.models import Challenge, ChallengeStatus, Participant
from league.notifier import StateChangeNotifier
from league.processor import ChallengePeriodProcessor
from league.scheduler import SurvivalBatchScheduler
from league.store import ArenaStore

START = date(2026, 3, 1)


class Calendar:
    def __init__(self, today):
        self.today = today

    def __call__(self):
        return self.today

    def on_day(self, day):
        self.today = START + timedelta(days=day - 1)
        return self.today


def _arena(tmp_path):
    store = ArenaStore()
    store.add_challenge(Challenge(id="c1", start_date=START))
    bus = EventBus()
    clock = Calendar(START)
    notifier = StateChangeNotifier(bus)
    JournalInscriber(bus, tmp_path / "journal.jsonl", clock=clock)
    scheduler = SurvivalBatchScheduler(store, ChallengePeriodProcessor(store, bus, clock), clock=clock, max_workers=1)
    return store, bus, clock, notifier, scheduler


def test_three_days_outside_costs_exactly_one_life(tmp_path):
    store, _, clock, notifier, scheduler = _arena(tmp_path)
    store.add_participant(Participant(id="p1", challenge_id="c1", user_id="u1", distance_from_center=0.9))
    deltas = []
    notifier.subscribe("c1", deltas.append)

    clock.on_day(15)
    report = scheduler.run()
    assert report.results[0].safe_zone_radius == pytest.approx(0.5655, abs=1e-4)
    assert store.get_participant("p1").days_in_danger == 1

    clock.on_day(16)
    scheduler.run()
    assert store.get_participant("p1").days_in_danger == 2

    clock.on_day(17)
    scheduler.run()
    p1 = store.get_participant("p1")
    assert p1.lives == 2
    assert p1.days_in_danger == 0

    # re-running day 17 is a no-op
    scheduler.run()
    assert store.get_participant("p1") == p1

    assert [d.new_lives for d in deltas] == [3, 3, 2]
    versions = [d.version for d in deltas]
    assert versions == sorted(versions)

    lost = JournalReader(tmp_path / "journal.jsonl").by_event_type("arena.life_lost")
    assert len(lost) == 1
    assert lost[0]["recorded_on"] == "2026-03-17"


def test_full_season(tmp_path):
    store, bus, clock, _, scheduler = _arena(tmp_path)
    activity = ActivityService(store, bus, clock)
    runner = enroll_participant(store, "c1", "runner", today=START, bus=bus, participant_id="runner")
    idler = enroll_participant(store, "c1", "idler", today=START, bus=bus, participant_id="idler")

    late = None
    for day in range(1, 32):
        clock.on_day(day)
        if day == 15:
            late = enroll_participant(store, "c1", "late", today=clock(), bus=bus, participant_id="late")
            assert late.distance_from_center == pytest.approx(0.537, abs=1e-3)
        activity.record_activity(runner.id, 10, 10)
        scheduler.run()

    runner = store.get_participant("runner")
    idler = store.get_participant("idler")

    # the runner moved 5% every day and never fell behind the shrinking zone
    assert runner.distance_from_center == 0.0
    assert runner.lives == 3
    assert not runner.is_eliminated

    # the idler sat on the edge from day 2 onward: a life every 3 days
    assert idler.is_eliminated
    assert idler.lives == 0

    assert store.get_participant("late").is_eliminated
    assert store.get_challenge("c1").status is ChallengeStatus.COMPLETED

    reader = JournalReader(tmp_path / "journal.jsonl")
    assert {e["participant_id"] for e in reader.eliminations()} == {"idler", "late"}
    assert len(reader.by_event_type("arena.challenge_completed")) == 1
    # eliminated participants are never touched again
    assert max(e["recorded_on"] for e in reader.by_participant("idler")) == "2026-03-10"
