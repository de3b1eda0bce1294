"""
SurvivalArena — league/journal.py
Journal: append-only JSONL record of significant arena events.
==============================================================
Version:     0.2
Stack:       Python 3.11+ | stdlib json | bespoke EventBus
Status:      Production-ready.

Architecture notes
------------------
- The journal is a PASSIVE wildcard subscriber. It never emits events and
  never touches the store.
- Append-only JSONL. Entries are immutable after write; corrections are new
  entries.
- Significance gate (int 1-5): events below JOURNAL_SIGNIFICANCE_MIN are
  discarded silently.
- The date comes from an injected clock, never from the wall clock directly.

Significance Scoring Reference (JOURNAL_SIGNIFICANCE_MIN = 2)
-------------------------------------------------------------
  1  routine danger bookkeeping (arena.danger_updated)
  2  movement, joins, points, period passes
  3  a life lost, a challenge halted mid-pass
  4  elimination, challenge completed
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from arena.events import (
    EVT_CHALLENGE_COMPLETED,
    EVT_CHALLENGE_HALTED,
    EVT_DANGER_UPDATED,
    EVT_LIFE_LOST,
    EVT_PARTICIPANT_ELIMINATED,
    EVT_PARTICIPANT_JOINED,
    EVT_PARTICIPANT_MOVED,
    EVT_PERIOD_PROCESSED,
    EVT_POINTS_CREDITED,
    ArenaEvent,
    EventBus,
)

# ============================================================
# DESIGN VARIABLE DEFAULTS
# ============================================================

JOURNAL_SIGNIFICANCE_MIN: int = 2

_SIGNIFICANCE_TABLE: Dict[str, int] = {
    EVT_DANGER_UPDATED:         1,
    EVT_PARTICIPANT_JOINED:     2,
    EVT_PARTICIPANT_MOVED:      2,
    EVT_POINTS_CREDITED:        2,
    EVT_PERIOD_PROCESSED:       2,
    EVT_LIFE_LOST:              3,
    EVT_PARTICIPANT_ELIMINATED: 4,
    EVT_CHALLENGE_COMPLETED:    4,
    EVT_CHALLENGE_HALTED:       3,
}

_VERBS: Dict[str, str] = {
    EVT_DANGER_UPDATED:         "danger_updated",
    EVT_PARTICIPANT_JOINED:     "joined",
    EVT_PARTICIPANT_MOVED:      "moved_inward",
    EVT_POINTS_CREDITED:        "earned_points",
    EVT_PERIOD_PROCESSED:       "period_processed",
    EVT_LIFE_LOST:              "lost_life",
    EVT_PARTICIPANT_ELIMINATED: "eliminated",
    EVT_CHALLENGE_COMPLETED:    "completed",
    EVT_CHALLENGE_HALTED:       "halted",
}


def score_significance(event: ArenaEvent) -> int:
    base = _SIGNIFICANCE_TABLE.get(event.event_key, 1)
    # A pass that eliminated someone is worth keeping even at a strict gate.
    if event.event_key == EVT_PERIOD_PROCESSED and event.data.get("participants_eliminated"):
        base = max(base, 3)
    return base


@dataclass(frozen=True)
class JournalEntry:
    event_id: str
    recorded_on: str
    event_type: str
    verb: str
    challenge_id: str
    participant_id: Optional[str]
    detail: Dict[str, Any]
    significance: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id":       self.event_id,
            "recorded_on":    self.recorded_on,
            "event_type":     self.event_type,
            "verb":           self.verb,
            "challenge_id":   self.challenge_id,
            "participant_id": self.participant_id,
            "detail":         self.detail,
            "significance":   self.significance,
        }


class JournalInscriber:
    """
    Usage:
        bus = EventBus()
        JournalInscriber(bus, Path("sessions/journal.jsonl"))
        # ... processors and services emit on bus ...
    """

    def __init__(
        self,
        bus: EventBus,
        journal_path: Path,
        clock: Callable[[], date] = date.today,
        significance_min: int = JOURNAL_SIGNIFICANCE_MIN,
    ) -> None:
        self.journal_path = journal_path
        self.clock = clock
        self.significance_min = significance_min
        self.journal_path.parent.mkdir(parents=True, exist_ok=True)
        bus.subscribe("*", self._on_event)

    def _on_event(self, event: ArenaEvent) -> None:
        significance = score_significance(event)
        if significance < self.significance_min:
            return
        self._inscribe(event, significance)

    def _inscribe(self, event: ArenaEvent, significance: int) -> JournalEntry:
        entry = JournalEntry(
            event_id=str(uuid.uuid4()),
            recorded_on=self.clock().isoformat(),
            event_type=event.event_key,
            verb=_VERBS.get(event.event_key, "occurred"),
            challenge_id=event.source,
            participant_id=event.target,
            detail=dict(event.data),
            significance=significance,
        )
        with open(self.journal_path, "a", encoding="utf-8") as fh:
            fh.write(json.dumps(entry.to_dict(), ensure_ascii=False, default=str) + "\n")
        return entry


class JournalReader:
    """Read-only query interface for a journal.jsonl file."""

    def __init__(self, journal_path: Path) -> None:
        self.journal_path = journal_path

    def all_entries(self) -> List[Dict[str, Any]]:
        if not self.journal_path.exists():
            return []
        entries = []
        with open(self.journal_path, "r", encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if line:
                    entries.append(json.loads(line))
        return entries

    def by_event_type(self, event_type: str) -> List[Dict[str, Any]]:
        return [e for e in self.all_entries() if e.get("event_type") == event_type]

    def by_participant(self, participant_id: str) -> List[Dict[str, Any]]:
        return [e for e in self.all_entries() if e.get("participant_id") == participant_id]

    def by_significance(self, minimum: int) -> List[Dict[str, Any]]:
        return [e for e in self.all_entries() if e.get("significance", 0) >= minimum]

    def eliminations(self) -> List[Dict[str, Any]]:
        return self.by_event_type(EVT_PARTICIPANT_ELIMINATED)
