"""
SurvivalArena — run.py
Trigger entry point: run the survival batch, record an activity, or enroll a user
against a TOML store snapshot.

    python run.py batch
    python run.py batch --today 2026-03-01
    python run.py activity <participant_id> <points> [--max-points 10]
    python run.py join <challenge_id> <user_id>
"""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

# Ensure we can import the arena packages when run from a checkout
project_root = Path(__file__).parent.resolve()
sys.path.insert(0, str(project_root))

from arena.events import EventBus
from league.activity import ActivityService
from league.enrollment import enroll_participant
from league.journal import JournalInscriber
from league.processor import ChallengePeriodProcessor
from league.scheduler import SurvivalBatchScheduler
from league.store import ArenaStore

DEFAULT_STATE_PATH = Path("sessions/arena_state.toml")
DEFAULT_JOURNAL_PATH = Path("sessions/journal.jsonl")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Survival Arena engine")
    parser.add_argument("--state", type=Path, default=DEFAULT_STATE_PATH, help="TOML store snapshot")
    parser.add_argument("--journal", type=Path, default=DEFAULT_JOURNAL_PATH, help="JSONL journal path")
    parser.add_argument("--today", type=date.fromisoformat, default=None, help="Override today's date (YYYY-MM-DD)")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("batch", help="Process every active survival challenge once")

    act = sub.add_parser("activity", help="Record a qualifying activity")
    act.add_argument("participant_id")
    act.add_argument("points", type=float)
    act.add_argument("--max-points", type=float, default=None)

    join = sub.add_parser("join", help="Enroll a user in a challenge")
    join.add_argument("challenge_id")
    join.add_argument("user_id")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    clock = (lambda: args.today) if args.today else date.today
    store = ArenaStore.load_snapshot(args.state)
    bus = EventBus()
    JournalInscriber(bus, args.journal, clock=clock)

    if args.command == "batch":
        scheduler = SurvivalBatchScheduler(store, ChallengePeriodProcessor(store, bus, clock), clock=clock)
        report = scheduler.run()
        print(json.dumps(report.to_dict(), indent=2))
    elif args.command == "activity":
        service = ActivityService(store, bus, clock)
        participant = service.record_activity(args.participant_id, args.points, args.max_points)
        print(json.dumps(participant.model_dump(mode="json") if participant else None, indent=2))
    elif args.command == "join":
        participant = enroll_participant(store, args.challenge_id, args.user_id, today=clock(), bus=bus)
        print(json.dumps(participant.model_dump(mode="json"), indent=2))

    store.save_snapshot(args.state)
    return 0


if __name__ == "__main__":
    sys.exit(main())
