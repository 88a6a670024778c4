from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Iterable

from .db import utc_now
from .models import RunningJob


@dataclass(frozen=True)
class JobSummary:
    name: str
    source_path: str
    method: str
    targets: list[str]
    ticker_interval: int


@dataclass
class PassSummary:
    number: int
    added: list[str]
    removed: list[str]
    unchanged: list[str]
    failed: dict[str, str]
    duplicates: list[str]
    finished_at: str = field(default_factory=utc_now)


class RuntimeState:
    """Published, read-only view of the reconciler for other threads.

    The scheduler loop writes it after every pass; the API reads it.
    """

    def __init__(self) -> None:
        self.lock = Lock()
        self.jobs: dict[str, JobSummary] = {}
        self.last_pass: PassSummary | None = None
        self.passes = 0
        self.state = "idle"
        self.last_error: str | None = None

    def publish(self, running: Iterable[RunningJob], summary: PassSummary) -> None:
        jobs = {
            r.name: JobSummary(
                name=r.name,
                source_path=r.source_path,
                method=r.declaration.config.method,
                targets=r.declaration.config.targets(),
                ticker_interval=r.declaration.config.ticker_interval,
            )
            for r in running
        }
        with self.lock:
            self.jobs = jobs
            self.last_pass = summary
            self.passes = summary.number

    def set_state(self, state: str, error: str | None = None) -> None:
        with self.lock:
            self.state = state
            if error is not None:
                self.last_error = error

    def list_jobs(self) -> list[JobSummary]:
        with self.lock:
            return [self.jobs[n] for n in sorted(self.jobs)]

    def get_job(self, name: str) -> JobSummary | None:
        with self.lock:
            return self.jobs.get(name)

    def status(self) -> dict:
        with self.lock:
            return {
                "state": self.state,
                "passes": self.passes,
                "jobs": len(self.jobs),
                "last_error": self.last_error,
                "last_pass": self.last_pass,
            }
