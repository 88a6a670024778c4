from __future__ import annotations

import random
import re
import time
from dataclasses import dataclass, field
from threading import Event, Lock, Thread
from typing import Any, Callable

import httpx

from . import db
from .models import CommonInputConfig, HttpInputConfig, RetryOptions, parse_duration
from .plugins import DeclarationError
from .settings import settings

JOB_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-\.:]{0,127}$")


class LifecycleError(Exception):
    pass


def validate_job_name(name: str) -> None:
    if not JOB_NAME_RE.match(name):
        raise LifecycleError(
            f"invalid job name {name!r}. Use letters/numbers and _-.: starting with a letter or number (max 128 chars)."
        )


def severity_level(severity: int) -> str:
    """Map a syslog severity (0..7) to an event level."""
    if severity <= 2:
        return "CRITICAL"
    if severity == 3:
        return "ERROR"
    if severity == 4:
        return "WARN"
    if severity <= 6:
        return "INFO"
    return "DEBUG"


class RetryHelper:
    """Exponential restart delays, capped at max_delay, with random jitter."""

    def __init__(self, opts: RetryOptions):
        self.delay = parse_duration(opts.delay)
        self.max_delay = parse_duration(opts.max_delay)
        self.max_jitter = parse_duration(opts.max_jitter)
        self.max_retries = opts.max_retries
        self.retries = 0
        self._next = self.delay

    def next_delay(self) -> float | None:
        """Seconds to wait before the next attempt, or None once exhausted."""
        if self.max_retries != -1 and self.retries >= self.max_retries:
            return None
        self.retries += 1
        d = self._next
        self._next = min(self._next * 2, self.max_delay)
        if self.max_jitter > 0:
            d += random.uniform(0, self.max_jitter)
        return d

    def reset(self) -> None:
        self.retries = 0
        self._next = self.delay

    def wait(self, stop: Event) -> bool:
        """Sleep for the next delay. False if exhausted or stopped meanwhile."""
        d = self.next_delay()
        if d is None:
            return False
        return not stop.wait(d)


@dataclass(frozen=True)
class PollResult:
    url: str
    status_code: int | None
    severity: int
    latency_ms: float
    message: str


class HttpPoller:
    """Requests every target URL once per ticker interval."""

    def __init__(
        self,
        name: str,
        config: HttpInputConfig,
        common: CommonInputConfig,
        emit: Callable[..., None] | None = None,
        timeout_s: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.name = name
        self.config = config
        self.common = common
        self.emit = emit or db.log_event
        self.timeout_s = timeout_s if timeout_s is not None else settings.http_timeout_s
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout_s, follow_redirects=False, transport=self.transport)

    def _request(self, client: httpx.Client, url: str) -> PollResult:
        cfg = self.config
        auth = (cfg.username, cfg.password) if cfg.username else None
        start = time.time()
        try:
            resp = client.request(
                cfg.method,
                url,
                headers=list(cfg.headers),
                content=cfg.body.encode() if cfg.body else None,
                auth=auth,
            )
        except httpx.HTTPError as e:
            latency_ms = round((time.time() - start) * 1000.0, 2)
            return PollResult(url, None, cfg.error_severity, latency_ms, f"{type(e).__name__}: {e}")
        latency_ms = round((time.time() - start) * 1000.0, 2)
        ok = 200 <= resp.status_code < 300
        severity = cfg.success_severity if ok else cfg.error_severity
        return PollResult(url, resp.status_code, severity, latency_ms, f"HTTP {resp.status_code}")

    def poll_once(self, client: httpx.Client) -> list[PollResult]:
        results = []
        for url in self.config.targets():
            res = self._request(client, url)
            self.emit(
                severity_level(res.severity),
                f"{self.config.method} {url}: {res.message} ({res.latency_ms} ms)",
                job_name=self.name,
            )
            results.append(res)
        return results

    def run(self, stop: Event) -> None:
        with self._client() as client:
            while not stop.is_set():
                self.poll_once(client)
                if stop.wait(self.config.ticker_interval):
                    return


@dataclass
class WorkerHandle:
    name: str
    worker: Any
    stop: Event = field(default_factory=Event)
    thread: Thread | None = None
    exited: bool = False


class WorkerManager:
    """Lifecycle manager: owns worker threads, keyed by job name."""

    def __init__(self, stop_timeout_s: float | None = None, worker_kwargs: dict[str, Any] | None = None):
        if stop_timeout_s is None:
            # Long enough for a poll blocked in a request to finish.
            stop_timeout_s = max(settings.stop_timeout_s, settings.http_timeout_s)
        self.stop_timeout_s = stop_timeout_s
        self.worker_kwargs = dict(worker_kwargs or {})
        self._lock = Lock()
        self._workers: dict[str, WorkerHandle] = {}

    def add(self, builder) -> WorkerHandle:
        name = builder.name
        validate_job_name(name)
        with self._lock:
            if name in self._workers:
                raise LifecycleError(f"an input named '{name}' is already running")
        try:
            worker = builder.build(**self.worker_kwargs)
        except DeclarationError as e:
            raise LifecycleError(f"making runner: {e}") from e

        handle = WorkerHandle(name=name, worker=worker)
        handle.thread = Thread(target=self._run_worker, args=(handle,), daemon=True, name=f"hdr-{name}")
        with self._lock:
            if name in self._workers:
                raise LifecycleError(f"an input named '{name}' is already running")
            self._workers[name] = handle
        handle.thread.start()
        return handle

    def remove(self, handle: WorkerHandle) -> None:
        with self._lock:
            if self._workers.get(handle.name) is not handle:
                return
            del self._workers[handle.name]
        handle.stop.set()
        if handle.thread is not None:
            handle.thread.join(timeout=self.stop_timeout_s)
            if handle.thread.is_alive():
                db.log_event(
                    "WARN",
                    f"input '{handle.name}' did not stop within {self.stop_timeout_s}s; it exits after its current request",
                    job_name=handle.name,
                )

    def get(self, name: str) -> WorkerHandle | None:
        with self._lock:
            return self._workers.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._workers)

    def shutdown(self) -> None:
        with self._lock:
            handles = list(self._workers.values())
        for h in handles:
            self.remove(h)

    def _run_worker(self, handle: WorkerHandle) -> None:
        retry = RetryHelper(handle.worker.common.retries)
        while not handle.stop.is_set():
            try:
                handle.worker.run(handle.stop)
                break
            except Exception as e:
                db.log_event("ERROR", f"input '{handle.name}' failed: {type(e).__name__}: {e}", job_name=handle.name)
            if handle.stop.is_set():
                break
            if not retry.wait(handle.stop):
                if handle.stop.is_set():
                    break
                if handle.worker.common.can_exit:
                    db.log_event("WARN", f"input '{handle.name}' exited after {retry.retries} retries", job_name=handle.name)
                else:
                    db.log_event(
                        "CRITICAL",
                        f"input '{handle.name}' exhausted its retries and is not allowed to exit",
                        job_name=handle.name,
                    )
                break
        handle.exited = True
