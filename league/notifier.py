"""
SurvivalArena — league/notifier.py
State Change Notifier: per-challenge fan-out of participant deltas to clients.
==============================================================================
Version:     0.2
Stack:       Python 3.11+ | Pydantic v2 | bespoke EventBus
Status:      Production-ready.

Architecture notes
------------------
- Topic = challenge id. Message = ParticipantDelta.
- Subscribes to row-change events on the EventBus; it never reads the store.
- Per participant, deltas are published in version order. A delta whose
  version is not newer than the last published one is dropped as stale.
- Callbacks run outside the notifier-wide lock. Only deliveries for the same
  participant wait on each other, so one slow client never stalls other
  participants or other challenges.
- Delivery is at-least-once: each callback gets NOTIFY_RETRY_ATTEMPTS tries.
  A failing subscriber never affects the state change or other subscribers.
- The only state held per client is its callback in the challenge channel.
  Subscription.close() removes it; the channel disappears with its last client.
- Version bookkeeping for a challenge is dropped once it completes or halts.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from arena.events import CHALLENGE_CLOSED_EVENTS, ROW_CHANGE_EVENTS, ArenaEvent, EventBus

logger = logging.getLogger(__name__)

# ============================================================
# DESIGN VARIABLE DEFAULTS
# ============================================================

NOTIFY_RETRY_ATTEMPTS: int = 3


class ParticipantDelta(BaseModel):
    model_config = ConfigDict(frozen=True)

    challenge_id: str
    participant_id: str
    version: int
    new_distance: Optional[float] = None
    new_points: Optional[float] = None
    new_lives: Optional[int] = None
    new_is_eliminated: Optional[bool] = None

    @classmethod
    def from_event(cls, event: ArenaEvent) -> Optional["ParticipantDelta"]:
        if event.target is None or "version" not in event.data:
            return None
        data = event.data
        return cls(
            challenge_id=event.source,
            participant_id=event.target,
            version=data["version"],
            new_distance=data.get("distance_from_center"),
            new_points=data.get("total_points"),
            new_lives=data.get("lives"),
            new_is_eliminated=data.get("is_eliminated"),
        )


DeltaCallback = Callable[[ParticipantDelta], None]


class Subscription:
    """Handle returned by subscribe(). Close it when the client goes away."""

    def __init__(self, notifier: "StateChangeNotifier", challenge_id: str, callback: DeltaCallback) -> None:
        self._notifier = notifier
        self.challenge_id = challenge_id
        self.callback = callback
        self.closed = False

    def close(self) -> None:
        if not self.closed:
            self._notifier._remove(self)
            self.closed = True

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class StateChangeNotifier:
    def __init__(self, bus: Optional[EventBus] = None, retry_attempts: int = NOTIFY_RETRY_ATTEMPTS) -> None:
        self.logger = logger.getChild(self.__class__.__name__)
        self.retry_attempts = max(1, retry_attempts)
        self._channels: Dict[str, List[Subscription]] = {}
        self._last_version: Dict[Tuple[str, str], int] = {}
        self._row_locks: Dict[Tuple[str, str], threading.Lock] = {}
        self._lock = threading.RLock()
        self.delivery_failures = 0

        if bus is not None:
            for key in ROW_CHANGE_EVENTS:
                bus.subscribe(key, self._on_row_change)
            for key in CHALLENGE_CLOSED_EVENTS:
                bus.subscribe(key, self._on_challenge_closed)

    # ----------------------------------------------------------
    # Subscriber lifecycle
    # ----------------------------------------------------------

    def subscribe(self, challenge_id: str, callback: DeltaCallback) -> Subscription:
        sub = Subscription(self, challenge_id, callback)
        with self._lock:
            self._channels.setdefault(challenge_id, []).append(sub)
        self.logger.debug(f"Subscriber joined channel {challenge_id}")
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._channels.get(sub.challenge_id, [])
            remaining = [s for s in subs if s is not sub]
            if remaining:
                self._channels[sub.challenge_id] = remaining
            else:
                self._channels.pop(sub.challenge_id, None)
        self.logger.debug(f"Subscriber left channel {sub.challenge_id}")

    def subscriber_count(self, challenge_id: str) -> int:
        with self._lock:
            return len(self._channels.get(challenge_id, []))

    def channels(self) -> List[str]:
        with self._lock:
            return list(self._channels)

    # ----------------------------------------------------------
    # Publishing
    # ----------------------------------------------------------

    def _on_row_change(self, event: ArenaEvent) -> None:
        delta = ParticipantDelta.from_event(event)
        if delta is not None:
            self.publish(delta)

    def publish(self, delta: ParticipantDelta) -> bool:
        """Fan a delta out to its challenge channel. Returns False if it was stale."""
        key = (delta.challenge_id, delta.participant_id)
        with self._lock:
            row_lock = self._row_locks.setdefault(key, threading.Lock())
            targets = list(self._channels.get(delta.challenge_id, []))

        with row_lock:
            with self._lock:
                last = self._last_version.get(key)
                if last is not None and delta.version <= last:
                    self.logger.debug(
                        f"Dropping stale delta for {delta.participant_id} "
                        f"(version {delta.version} <= {last})"
                    )
                    return False
                self._last_version[key] = delta.version

            for sub in targets:
                self._deliver(sub, delta)
        return True

    def _deliver(self, sub: Subscription, delta: ParticipantDelta) -> None:
        for attempt in range(1, self.retry_attempts + 1):
            try:
                sub.callback(delta)
                return
            except Exception as exc:  # noqa: BLE001
                self.logger.warning(
                    f"Delivery to a {delta.challenge_id} subscriber failed "
                    f"(attempt {attempt}/{self.retry_attempts}): {exc}"
                )
        with self._lock:
            self.delivery_failures += 1
        self.logger.error(
            f"Giving up on delta v{delta.version} for participant {delta.participant_id}"
        )

    def _on_challenge_closed(self, event: ArenaEvent) -> None:
        self.forget_challenge(event.source)

    def forget_challenge(self, challenge_id: str) -> None:
        """Drop version bookkeeping once a challenge is over."""
        with self._lock:
            for key in [k for k in self._last_version if k[0] == challenge_id]:
                del self._last_version[key]
            for key in [k for k in self._row_locks if k[0] == challenge_id]:
                del self._row_locks[key]
        self.logger.debug(f"Forgot delivery bookkeeping for challenge {challenge_id}")

    def tracked_participants(self, challenge_id: str) -> int:
        with self._lock:
            return sum(1 for k in self._last_version if k[0] == challenge_id)
