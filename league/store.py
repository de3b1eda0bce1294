"""
SurvivalArena — league/store.py
Arena Store: challenge and participant records with per-row serialization.
==========================================================================
Version:     0.3
Stack:       Python 3.11+ | Pydantic v2 | tomllib | threading
Status:      Production-ready.

Architecture notes
------------------
- The store is the source of truth. Contexts, events and deltas derive from it.
- Every participant row carries a version that increments on each commit.
  commit_participant(expected_version=...) raises ConsistencyError when the
  row moved on since it was read.
- Writes to one participant are serialized by that participant's lock.
  Different participants never share a lock and never share a commit.
- Only engine-owned fields are writable through commit_participant.
  total_points belongs to the points collaborator (credit_points).
- Any failure raised by a _write_* hook surfaces as TransientPersistenceError.
- enroll_participant checks and inserts under one per-challenge lock, so a
  user holds at most one row per challenge.
- save_snapshot/load_snapshot persist the whole store as TOML.
"""

from __future__ import annotations

import contextlib
import json
import logging
import threading
import tomllib
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

from arena.errors import ArenaError, ConsistencyError, TransientPersistenceError, UnknownRecordError
from league.models import Challenge, ChallengeStatus, ChallengeType, Participant

logger = logging.getLogger(__name__)

ENGINE_OWNED_FIELDS = frozenset({
    "distance_from_center",
    "lives",
    "days_in_danger",
    "is_eliminated",
    "last_activity_period",
    "last_processed_period",
})

CHALLENGE_WRITABLE_FIELDS = frozenset({"status", "last_processed_period"})


class ArenaStore:
    """In-process store. Subclass and override the _write_* hooks for a real backend."""

    def __init__(self) -> None:
        self._challenges: Dict[str, Challenge] = {}
        self._participants: Dict[str, Participant] = {}
        self._row_locks: Dict[str, threading.RLock] = {}
        self._challenge_locks: Dict[str, threading.RLock] = {}
        self._enroll_locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    # ----------------------------------------------------------
    # Locks
    # ----------------------------------------------------------

    def _lock_for(self, table: Dict[str, threading.RLock], key: str) -> threading.RLock:
        with self._guard:
            lock = table.get(key)
            if lock is None:
                lock = table[key] = threading.RLock()
            return lock

    @contextlib.contextmanager
    def participant_lock(self, participant_id: str) -> Iterator[None]:
        """Single-writer section for one participant row."""
        with self._lock_for(self._row_locks, participant_id):
            yield

    # ----------------------------------------------------------
    # Challenges
    # ----------------------------------------------------------

    def add_challenge(self, challenge: Challenge) -> Challenge:
        self._challenges[challenge.id] = challenge
        return challenge

    def get_challenge(self, challenge_id: str) -> Challenge:
        try:
            return self._challenges[challenge_id]
        except KeyError:
            raise UnknownRecordError(f"Unknown challenge: {challenge_id}") from None

    def list_challenges(
        self,
        status: Optional[ChallengeStatus] = None,
        challenge_type: Optional[ChallengeType] = None,
    ) -> List[Challenge]:
        return [
            c for c in self._challenges.values()
            if (status is None or c.status is status)
            and (challenge_type is None or c.challenge_type is challenge_type)
        ]

    def active_survival_challenges(self) -> List[Challenge]:
        return self.list_challenges(ChallengeStatus.ACTIVE, ChallengeType.SURVIVAL)

    def update_challenge(self, challenge_id: str, **changes: Any) -> Challenge:
        illegal = set(changes) - CHALLENGE_WRITABLE_FIELDS
        if illegal:
            raise ValueError(f"Challenge fields not owned by the engine: {sorted(illegal)}")
        with self._lock_for(self._challenge_locks, challenge_id):
            current = self.get_challenge(challenge_id)
            updated = current.model_copy(update=changes)
            self._persist(self._write_challenge, updated)
            return updated

    # ----------------------------------------------------------
    # Participants
    # ----------------------------------------------------------

    def add_participant(self, participant: Participant) -> Participant:
        self.get_challenge(participant.challenge_id)
        with self.participant_lock(participant.id):
            stored = participant.model_copy(update={"version": max(1, participant.version)})
            self._participants[stored.id] = stored
            return stored

    def enroll_participant(self, participant: Participant) -> Tuple[Participant, bool]:
        """
        Insert a row unless the user already holds one in that challenge.
        Returns (row, created). Check and insert happen under one lock.
        """
        with self._lock_for(self._enroll_locks, participant.challenge_id):
            for existing in self.participants_for(participant.challenge_id, active_only=False):
                if existing.user_id == participant.user_id:
                    return existing, False
            return self.add_participant(participant), True

    def get_participant(self, participant_id: str) -> Participant:
        try:
            return self._participants[participant_id]
        except KeyError:
            raise UnknownRecordError(f"Unknown participant: {participant_id}") from None

    def participants_for(self, challenge_id: str, active_only: bool = True) -> List[Participant]:
        rows = [p for p in self._participants.values() if p.challenge_id == challenge_id]
        if active_only:
            rows = [p for p in rows if p.is_active]
        return sorted(rows, key=lambda p: p.id)

    def commit_participant(
        self,
        participant_id: str,
        changes: Mapping[str, Any],
        expected_version: Optional[int] = None,
    ) -> Participant:
        """Atomically apply engine-owned field changes to one row."""
        illegal = set(changes) - ENGINE_OWNED_FIELDS
        if illegal:
            raise ValueError(f"Participant fields not owned by the engine: {sorted(illegal)}")

        with self.participant_lock(participant_id):
            current = self.get_participant(participant_id)
            if expected_version is not None and current.version != expected_version:
                raise ConsistencyError(participant_id, expected_version, current.version)
            updated = current.model_copy(update={**changes, "version": current.version + 1})
            self._persist(self._write_participant, updated)
            return updated

    def credit_points(self, participant_id: str, points: float) -> Participant:
        """Points accounting entry for the external activity collaborator."""
        with self.participant_lock(participant_id):
            current = self.get_participant(participant_id)
            updated = current.model_copy(update={
                "total_points": current.total_points + points,
                "version": current.version + 1,
            })
            self._persist(self._write_participant, updated)
            return updated

    # ----------------------------------------------------------
    # Write hooks (override for a real backend)
    # ----------------------------------------------------------

    def _persist(self, write: Callable[[Any], None], record: Any) -> None:
        try:
            write(record)
        except ArenaError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise TransientPersistenceError(
                f"Could not persist {type(record).__name__} {record.id}: {exc}"
            ) from exc

    def _write_participant(self, participant: Participant) -> None:
        self._participants[participant.id] = participant

    def _write_challenge(self, challenge: Challenge) -> None:
        self._challenges[challenge.id] = challenge

    # ----------------------------------------------------------
    # Snapshot persistence (TOML)
    # ----------------------------------------------------------

    def save_snapshot(self, path: Path) -> None:
        """Write every challenge and participant to a TOML snapshot."""
        lines: List[str] = []
        for c in sorted(self._challenges.values(), key=lambda c: c.id):
            lines.append("[[challenges]]")
            lines.append(f"id = {_toml_value(c.id)}")
            lines.append(f"challenge_type = {_toml_value(c.challenge_type.value)}")
            lines.append(f"start_date = {_toml_value(c.start_date)}")
            if c.end_date is not None:
                lines.append(f"end_date = {_toml_value(c.end_date)}")
            lines.append(f"status = {_toml_value(c.status.value)}")
            lines.append(f"last_processed_period = {c.last_processed_period}")
            lines.append("")
            lines.append("[challenges.settings]")
            for key, value in c.settings.to_dict().items():
                lines.append(f"{key} = {_toml_value(value)}")
            lines.append("")

        for p in sorted(self._participants.values(), key=lambda p: p.id):
            lines.append("[[participants]]")
            lines.append(f"id = {_toml_value(p.id)}")
            lines.append(f"challenge_id = {_toml_value(p.challenge_id)}")
            lines.append(f"user_id = {_toml_value(p.user_id)}")
            lines.append(f"distance_from_center = {_toml_value(p.distance_from_center)}")
            lines.append(f"angle = {_toml_value(p.angle)}")
            lines.append(f"lives = {p.lives}")
            lines.append(f"days_in_danger = {p.days_in_danger}")
            lines.append(f"is_eliminated = {_toml_value(p.is_eliminated)}")
            if p.last_activity_period is not None:
                lines.append(f"last_activity_period = {_toml_value(p.last_activity_period)}")
            lines.append(f"last_processed_period = {p.last_processed_period}")
            lines.append(f"total_points = {_toml_value(p.total_points)}")
            lines.append(f"status = {_toml_value(p.status.value)}")
            lines.append(f"version = {p.version}")
            lines.append("")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write("\n".join(lines))
        except OSError as exc:
            raise TransientPersistenceError(f"Could not write snapshot {path}: {exc}") from exc

    @classmethod
    def load_snapshot(cls, path: Path) -> "ArenaStore":
        """Restore a store from save_snapshot output. A missing file yields an empty store."""
        store = cls()
        if not path.exists():
            logger.info(f"No snapshot at {path}; starting with an empty store")
            return store

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except OSError as exc:
            raise TransientPersistenceError(f"Could not read snapshot {path}: {exc}") from exc

        for cdata in data.get("challenges", []):
            store.add_challenge(Challenge(**cdata))
        for pdata in data.get("participants", []):
            participant = Participant(**pdata)
            store._participants[participant.id] = participant
        return store


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, date):
        return value.isoformat()
    return json.dumps(str(value))
