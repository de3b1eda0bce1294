"""
SurvivalArena — arena/events.py
Event Bus: internal pub-sub between the simulation core and league services.
=============================================================================
Version:     0.2
Stack:       Python 3.11+ | Pydantic v2 | bespoke pub-sub
Status:      Production-ready.

Architecture notes
------------------
- All events are ArenaEvent (Pydantic v2) envelopes with a flat data dict.
- Producers (period processor, activity service, enrollment) only emit.
- Consumers (notifier, journal) only subscribe. Neither side imports the other.
- Wildcard key "*" receives every emitted event (used by the journal).
- A failing handler is logged and emission continues (daemon protection).
- Pass the bus at construction. There is no global singleton.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ============================================================
# CANONICAL EVENT KEYS
# Never use raw strings. Add new keys here only.
# ============================================================

EVT_PARTICIPANT_JOINED      = "arena.participant_joined"
EVT_PARTICIPANT_MOVED       = "arena.participant_moved"
EVT_POINTS_CREDITED         = "arena.points_credited"
EVT_DANGER_UPDATED          = "arena.danger_updated"
EVT_LIFE_LOST               = "arena.life_lost"
EVT_PARTICIPANT_ELIMINATED  = "arena.participant_eliminated"
EVT_PERIOD_PROCESSED        = "arena.period_processed"
EVT_CHALLENGE_COMPLETED     = "arena.challenge_completed"
EVT_CHALLENGE_HALTED        = "arena.challenge_halted"

# Events after which a challenge emits no further row changes.
CHALLENGE_CLOSED_EVENTS = (
    EVT_CHALLENGE_COMPLETED,
    EVT_CHALLENGE_HALTED,
)

# Events that mean a participant row changed and clients should hear about it.
ROW_CHANGE_EVENTS = (
    EVT_PARTICIPANT_JOINED,
    EVT_PARTICIPANT_MOVED,
    EVT_POINTS_CREDITED,
    EVT_DANGER_UPDATED,
    EVT_LIFE_LOST,
    EVT_PARTICIPANT_ELIMINATED,
)


class ArenaEvent(BaseModel):
    """
    Base envelope. source is the challenge id, target the participant id
    when the event concerns a single row. data must stay flat and JSON-safe.
    """
    event_key: str
    source: str
    target: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


HandlerFn = Callable[[ArenaEvent], None]


class EventBus:
    """Bespoke pub-sub keyed by event key, with a "*" wildcard channel."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[HandlerFn]] = {}

    def subscribe(self, event_key: str, handler: HandlerFn) -> None:
        self._subscribers.setdefault(event_key, []).append(handler)

    def unsubscribe(self, event_key: str, handler: HandlerFn) -> None:
        if event_key in self._subscribers:
            self._subscribers[event_key] = [
                h for h in self._subscribers[event_key] if h != handler
            ]

    def emit(self, event: ArenaEvent) -> None:
        targets = (
            self._subscribers.get(event.event_key, [])
            + self._subscribers.get("*", [])
        )
        for handler in targets:
            try:
                handler(event)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    f"[EventBus] Handler error on '{event.event_key}': {exc}",
                    exc_info=True,
                )
