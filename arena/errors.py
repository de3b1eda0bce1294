"""
SurvivalArena — arena/errors.py
Error taxonomy shared by the simulation core and the league services.
"""

from __future__ import annotations


class ArenaError(Exception):
    """Base class for every error raised by the arena engine."""


class ConfigurationError(ArenaError):
    """Settings are missing or malformed. Callers fall back to built-in defaults."""


class TransientPersistenceError(ArenaError):
    """A single row failed to commit. Counted, skipped, retried on the next cycle."""


class ConsistencyError(ArenaError):
    """A commit was attempted against a stale row version."""

    def __init__(self, participant_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Participant {participant_id} changed underneath the update "
            f"(expected version {expected}, found {actual})"
        )
        self.participant_id = participant_id
        self.expected = expected
        self.actual = actual


class UnknownRecordError(ArenaError, KeyError):
    """Lookup of a challenge or participant id that the store does not hold."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown record"
