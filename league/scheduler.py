"""
SurvivalArena — league/scheduler.py
Survival Batch Scheduler: periodic pass over every active survival challenge.
=============================================================================
Version:     0.3
Stack:       Python 3.11+ | threading | concurrent.futures
Status:      Production-ready.

Architecture notes
------------------
- run() is the trigger entry point. It takes no required arguments, finds
  active survival challenges in the store itself, and always returns a
  BatchReport. It never raises.
- Challenges are independent and may be processed in parallel
  (ARENA_MAX_WORKERS). Per-participant serialization lives in the store.
- Re-running within the same period is safe: the processor skips periods
  already recorded in last_processed_period, passes over rows stamped with
  the current period, weekly challenges only run on the week boundary, and
  eliminated participants are never touched again. A pass with row errors
  leaves the challenge unstamped so the next run retries just those rows.
- start()/stop() run the trigger on a background thread for deployments
  without an external cron.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from league.models import Challenge
from league.processor import ChallengePeriodProcessor, Clock, PeriodResult
from league.store import ArenaStore

logger = logging.getLogger(__name__)


def _get_env_int(key: str, default_value: int) -> int:
    """Integer runtime knob from the environment, with fallback."""
    try:
        return int(os.environ.get(key, default_value))
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-integer {key}={os.environ.get(key)!r}; using {default_value}")
        return default_value


# ============================================================
# DESIGN VARIABLE DEFAULTS (environment overridable)
# ============================================================

BATCH_INTERVAL_SECONDS: int = _get_env_int("ARENA_BATCH_INTERVAL", 3600)
MAX_WORKERS: int = _get_env_int("ARENA_MAX_WORKERS", 4)


@dataclass
class BatchReport:
    run_date: Optional[date] = None
    challenges_processed: int = 0
    challenges_skipped: int = 0
    challenges_completed: int = 0
    participants_processed: int = 0
    participants_in_danger: int = 0
    participants_eliminated: int = 0
    errors: int = 0
    duration_seconds: float = 0.0
    results: List[PeriodResult] = field(default_factory=list)

    def add(self, result: PeriodResult) -> None:
        self.results.append(result)
        if result.completed:
            self.challenges_completed += 1
        if result.skipped:
            self.challenges_skipped += 1
        else:
            self.challenges_processed += 1
        self.participants_processed += result.participants_processed
        self.participants_in_danger += result.participants_in_danger
        self.participants_eliminated += result.participants_eliminated
        self.errors += result.errors

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["run_date"] = self.run_date.isoformat() if self.run_date else None
        data["results"] = [r.to_dict() for r in self.results]
        return data

    def summary(self) -> str:
        return (
            f"{self.challenges_processed} processed, {self.challenges_skipped} skipped, "
            f"{self.challenges_completed} completed | participants: "
            f"{self.participants_processed} processed, {self.participants_in_danger} in danger, "
            f"{self.participants_eliminated} eliminated | errors: {self.errors}"
        )


class SurvivalBatchScheduler:
    def __init__(
        self,
        store: ArenaStore,
        processor: Optional[ChallengePeriodProcessor] = None,
        clock: Clock = date.today,
        max_workers: int = MAX_WORKERS,
    ) -> None:
        self.store = store
        self.processor = processor or ChallengePeriodProcessor(store, clock=clock)
        self.clock = clock
        self.max_workers = max(1, max_workers)
        self.logger = logger.getChild(self.__class__.__name__)

        self._run_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_report: Optional[BatchReport] = None

    # ----------------------------------------------------------
    # Trigger entry point
    # ----------------------------------------------------------

    def run(self, today: Optional[date] = None) -> BatchReport:
        """Process every active survival challenge once. Overlapping calls are serialized."""
        with self._run_lock:
            started = time.monotonic()
            report = BatchReport(run_date=today or self.clock())
            self.logger.info(f"Starting survival updates for {report.run_date}")

            try:
                challenges = self.store.active_survival_challenges()
            except Exception as exc:  # noqa: BLE001
                self.logger.error(f"Could not list active survival challenges: {exc}", exc_info=True)
                report.errors += 1
                return self._finish(report, started)

            if not challenges:
                self.logger.info("No active survival challenges found")
                return self._finish(report, started)

            if self.max_workers == 1 or len(challenges) == 1:
                for challenge in challenges:
                    report.add(self._process_one(challenge, report.run_date))
            else:
                with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="arena-batch") as pool:
                    futures = [pool.submit(self._process_one, c, report.run_date) for c in challenges]
                    for future in futures:
                        report.add(future.result())

            return self._finish(report, started)

    def _process_one(self, challenge: Challenge, today: date) -> PeriodResult:
        try:
            return self.processor.process(challenge, today)
        except Exception as exc:  # noqa: BLE001
            self.logger.error(f"Error processing challenge {challenge.id}: {exc}", exc_info=True)
            return PeriodResult(challenge_id=challenge.id, errors=1)

    def _finish(self, report: BatchReport, started: float) -> BatchReport:
        report.duration_seconds = time.monotonic() - started
        self.last_report = report
        self.logger.info(f"Completed survival updates: {report.summary()}")
        return report

    # ----------------------------------------------------------
    # Background execution
    # ----------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, interval_seconds: float = BATCH_INTERVAL_SECONDS) -> bool:
        if self.running:
            self.logger.warning("Survival batch scheduler is already running.")
            return False
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._service_loop, args=(interval_seconds,), name="arena-scheduler", daemon=True
        )
        self._thread.start()
        self.logger.info(f"Survival batch scheduler started (interval: {interval_seconds}s)")
        return True

    def stop(self, timeout: float = 2.0) -> bool:
        if not self.running:
            self.logger.warning("Survival batch scheduler is not running.")
            return False
        self._stop_event.set()
        self._thread.join(timeout=timeout)
        self._thread = None
        self.logger.info("Survival batch scheduler stopped.")
        return True

    def _service_loop(self, interval_seconds: float) -> None:
        while not self._stop_event.is_set():
            self.run()
            self._stop_event.wait(interval_seconds)
