"""
Cycle Scheduler — Fixed-interval sync and fixup loops.

Two timer threads, one per pass kind, each firing one synchronous pass
per interval. The first pass of each kind runs one interval after
start, not immediately. Concurrency rules:

- A tick for a kind whose previous pass is still running is skipped,
  never queued (per-kind non-blocking lock). Ticks missed while a pass
  overran its interval are coalesced into the next one.
- Sync and fixup passes both mutate the mirror's working tree and
  index, so a single shared lock admits one mirror-mutating pass at a
  time.
- Stopping is cooperative: the stop event is checked between passes,
  never mid-pass.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Iterable, List, Optional

from .engine.models import PASS_FIXUP, PASS_SYNC, CycleResult
from .engine.passes import PassRunner

logger = logging.getLogger(__name__)

ResultCallback = Callable[[CycleResult], None]


class CycleScheduler:
    """Drive sync and fixup passes on their own fixed intervals."""

    def __init__(
        self,
        runner: PassRunner,
        sync_interval: float,
        fixup_interval: float,
        dry_run: bool = False,
        on_result: Optional[ResultCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if sync_interval <= 0 or fixup_interval <= 0:
            raise ValueError("intervals must be positive")

        self.runner = runner
        self.intervals = {PASS_SYNC: sync_interval, PASS_FIXUP: fixup_interval}
        self.dry_run = dry_run
        self.on_result = on_result
        self._clock = clock

        self._mirror_lock = threading.Lock()
        self._kind_locks = {PASS_SYNC: threading.Lock(), PASS_FIXUP: threading.Lock()}
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []

        self.passes_run: Dict[str, int] = {PASS_SYNC: 0, PASS_FIXUP: 0}
        self.ticks_skipped: Dict[str, int] = {PASS_SYNC: 0, PASS_FIXUP: 0}

    # ------------------------------------------------------------------
    # Single pass
    # ------------------------------------------------------------------

    def run_pass(self, kind: str) -> Optional[CycleResult]:
        """
        Run one pass of ``kind`` now.

        Returns None when a pass of the same kind is already running, or
        when the pass raised something unexpected (logged, not re-raised).
        """
        if kind not in self._kind_locks:
            raise ValueError(f"unknown pass kind: {kind}")

        kind_lock = self._kind_locks[kind]
        if not kind_lock.acquire(blocking=False):
            self.ticks_skipped[kind] += 1
            logger.debug(f"[scheduler] {kind} pass still running, tick skipped")
            return None

        try:
            with self._mirror_lock:
                if kind == PASS_SYNC:
                    result = self.runner.run_sync(dry_run=self.dry_run)
                else:
                    result = self.runner.run_fixup(dry_run=self.dry_run)
                self.passes_run[kind] += 1
        except Exception:
            logger.exception(f"[scheduler] {kind} pass crashed (will run again next tick)")
            return None
        finally:
            kind_lock.release()

        if self.on_result is not None:
            try:
                self.on_result(result)
            except Exception:
                logger.exception("[scheduler] result callback failed")
        return result

    # ------------------------------------------------------------------
    # Loops
    # ------------------------------------------------------------------

    def _run_loop(self, kind: str) -> None:
        interval = self.intervals[kind]
        logger.info(f"[scheduler] {kind} loop started (every {interval:g}s)")

        next_due = self._clock() + interval
        while not self._stop.wait(timeout=max(0.0, next_due - self._clock())):
            self.run_pass(kind)

            next_due += interval
            now = self._clock()
            if now >= next_due:
                missed = int((now - next_due) // interval) + 1
                next_due += missed * interval
                self.ticks_skipped[kind] += missed
                logger.debug(f"[scheduler] {kind} pass overran, coalesced {missed} tick(s)")

        logger.info(f"[scheduler] {kind} loop stopped")

    def start(self, kinds: Iterable[str] = (PASS_SYNC, PASS_FIXUP)) -> None:
        """Start one background thread per pass kind."""
        self._stop.clear()
        for kind in kinds:
            if kind not in self.intervals:
                raise ValueError(f"unknown pass kind: {kind}")
            thread = threading.Thread(
                target=self._run_loop,
                args=(kind,),
                name=f"fixup-sync-{kind}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

    def request_stop(self) -> None:
        """Signal-safe: flag the loops to stop after their current pass."""
        self._stop.set()

    def stop(self, timeout: float = 30.0) -> None:
        """Ask the loops to stop and wait for any in-flight pass to finish."""
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout=timeout)
        self._threads = []

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run_forever(self, kinds: Iterable[str] = (PASS_SYNC, PASS_FIXUP)) -> None:
        """Start the loops and block until stop() or Ctrl+C."""
        self.start(kinds)
        try:
            while not self._stop.wait(timeout=1.0):
                pass
        except KeyboardInterrupt:
            logger.info("[scheduler] interrupted, shutting down...")
        finally:
            self.stop()
