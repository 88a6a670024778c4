from __future__ import annotations

import time
from threading import Event, Thread
from typing import Callable, Mapping

from . import db
from .alerts import alert_duplicates, alert_fatal
from .models import JobDeclaration
from .reconciler import PassResult, Reconciler
from .runtime import PassSummary, RuntimeState
from .scanner import scan_directory
from .settings import settings

IDLE = "idle"
RUNNING = "running"
STOPPED = "stopped"


class DirectoryScheduler:
    """Drives scan + reconcile once at startup and then on every tick.

    Idle -> Running -> Stopped. Passes never overlap: the loop is a single
    thread doing one blocking wait per iteration on either the next tick or
    the stop signal. Stopping leaves running jobs alone.
    """

    def __init__(
        self,
        reconciler: Reconciler,
        http_dir: str,
        ticker_interval: float | None = None,
        runtime: RuntimeState | None = None,
        scan: Callable[[str], Mapping[str, JobDeclaration]] = scan_directory,
    ):
        self.reconciler = reconciler
        self.http_dir = http_dir
        interval = ticker_interval if ticker_interval is not None else settings.ticker_interval_s
        if interval <= 0:
            raise ValueError("ticker_interval must be positive")
        self.ticker_interval = interval
        self.runtime = runtime or RuntimeState()
        self.state = IDLE
        self.passes = 0
        self.last_result: PassResult | None = None
        self.last_error: Exception | None = None
        self._scan = scan
        self._stop = Event()
        self._thr: Thread | None = None
        self._clock = time.monotonic

    def stop(self) -> None:
        # One-shot; setting an already-set event is harmless.
        self._stop.set()

    def cleanup_for_restart(self) -> None:
        self.stop()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def run_pass(self) -> PassResult:
        """One reconciliation pass. ScanError and manager stop errors propagate."""
        declared = self._scan(self.http_dir)
        previous = self.last_result
        result = self.reconciler.reconcile(declared)
        self.passes += 1
        self.last_result = result
        self.runtime.publish(
            self.reconciler.running.values(),
            PassSummary(
                number=self.passes,
                added=list(result.added),
                removed=list(result.removed),
                unchanged=list(result.unchanged),
                failed=dict(result.failed),
                duplicates=[str(e) for e in result.duplicates],
            ),
        )
        # A conflict that persists across ticks is alerted once.
        if _conflicts(result) != _conflicts(previous):
            alert_duplicates(result.duplicates)
        return result

    def run(self) -> None:
        if self.state != IDLE:
            raise RuntimeError(f"scheduler is {self.state}, cannot run again")
        self._set_state(RUNNING)
        db.log_event("INFO", f"Watching '{self.http_dir}' every {self.ticker_interval}s")
        try:
            self.run_pass()
            next_tick = self._clock() + self.ticker_interval
            while not self._stop.wait(max(0.0, next_tick - self._clock())):
                self.run_pass()
                now = self._clock()
                next_tick += self.ticker_interval
                # Ticks missed during a slow pass are dropped, not queued.
                while next_tick <= now:
                    next_tick += self.ticker_interval
        except Exception as e:
            self.last_error = e
            self._set_state(STOPPED, error=f"{type(e).__name__}: {e}")
            db.log_event("ERROR", f"reconciliation stopped: {type(e).__name__}: {e}")
            alert_fatal(self.http_dir, e)
            raise
        self._set_state(STOPPED)
        db.log_event("INFO", "Scheduler stopped")

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._thr = Thread(target=self._run_in_thread, daemon=True, name="hdr-scheduler")
        self._thr.start()

    def join(self, timeout: float | None = None) -> None:
        """Wait for a started loop. A fatal error that ended it is in `last_error`."""
        if self._thr is not None:
            self._thr.join(timeout)

    def _run_in_thread(self) -> None:
        try:
            self.run()
        except Exception:
            # run() already recorded it in last_error and the event log.
            return

    def _set_state(self, state: str, error: str | None = None) -> None:
        self.state = state
        self.runtime.set_state(state, error=error)


def _conflicts(result: PassResult | None) -> set[tuple[str, str]]:
    if result is None:
        return set()
    return {(e.name, e.path) for e in result.duplicates}
