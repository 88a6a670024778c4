from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from . import db
from .equality import configs_equal
from .models import DuplicateNameError, JobDeclaration, RunningJob
from .workers import LifecycleError


@dataclass
class PassResult:
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)  # name -> start error
    duplicates: list[DuplicateNameError] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


class Reconciler:
    """Converges the running set towards the declared set.

    The running set is private, keyed by logical name, and only ever touched
    from `reconcile()` / `shutdown()`. Callers must not run two passes at
    once; the scheduler loop guarantees that by being single-threaded.

    `manager` is the lifecycle manager: `add(builder) -> handle` (raises
    LifecycleError) and `remove(handle)`.
    """

    def __init__(self, manager):
        self.manager = manager
        self._running: dict[str, RunningJob] = {}

    @property
    def running(self) -> Mapping[str, RunningJob]:
        return MappingProxyType(self._running)

    def reconcile(self, declared: Mapping[str, JobDeclaration]) -> PassResult:
        result = PassResult()
        by_name = _group_by_name(declared)

        # Stop everything whose logical name is no longer declared anywhere.
        for name in sorted(self._running):
            if name not in by_name:
                self._stop(name, result)

        for name in sorted(by_name):
            decls = by_name[name]
            winner = decls[-1]
            if len(decls) > 1:
                self._reject_duplicates(winner, decls[:-1], result)
            self._apply(winner, result)
        return result

    def shutdown(self) -> list[str]:
        result = PassResult()
        for name in sorted(self._running):
            self._stop(name, result)
        return result.removed

    def _reject_duplicates(self, winner: JobDeclaration, losers: list[JobDeclaration], result: PassResult) -> None:
        running = self._running.get(winner.name)
        if running is not None and running.source_path != winner.source_path:
            self._stop(winner.name, result)
        for loser in losers:
            err = DuplicateNameError(winner.name, loser.source_path, winner.source_path)
            result.duplicates.append(err)
            db.log_event("ERROR", str(err), job_name=winner.name)

    def _apply(self, decl: JobDeclaration, result: PassResult) -> None:
        name = decl.name
        running = self._running.get(name)
        if running is not None:
            if running.source_path == decl.source_path and configs_equal(running.declaration.config, decl.config):
                result.unchanged.append(name)
                return
            # Changed: workers are replaced, never updated in place.
            self._stop(name, result)

        try:
            handle = self.manager.add(decl.builder)
        except LifecycleError as e:
            db.log_event("ERROR", f"creating input '{name}': {e}", job_name=name)
            result.failed[name] = str(e)
            return
        self._running[name] = RunningJob(declaration=decl, handle=handle, source_path=decl.source_path)
        result.added.append(name)
        db.log_event("INFO", f"Added: {name}", job_name=name)

    def _stop(self, name: str, result: PassResult) -> None:
        entry = self._running[name]
        # The entry goes only once the manager has let go of the worker.
        self.manager.remove(entry.handle)
        del self._running[name]
        result.removed.append(name)
        db.log_event("INFO", f"Removed: {name}", job_name=name)


def _group_by_name(declared: Mapping[str, JobDeclaration]) -> dict[str, list[JobDeclaration]]:
    by_name: dict[str, list[JobDeclaration]] = {}
    for path in sorted(declared):
        decl = declared[path]
        by_name.setdefault(decl.name, []).append(decl)
    return by_name
