import os
import sys
from dataclasses import replace
from pathlib import Path

import pytest

# Ensure project root is importable without installing the package.
_project_root = os.path.dirname(os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from hdr import db  # noqa: E402
from hdr.workers import LifecycleError  # noqa: E402


@pytest.fixture(autouse=True)
def event_db(tmp_path, monkeypatch):
    """Point the event log at an isolated sqlite file."""
    monkeypatch.setattr(db, "settings", replace(db.settings, db_path=str(tmp_path / "events.db")))
    db.init_db()
    return db


@pytest.fixture
def http_dir(tmp_path) -> Path:
    d = tmp_path / "http.d"
    d.mkdir()
    return d


def fragment(name: str = "A", url: str = "http://example.test/a", extra: str = "") -> str:
    return f'[{name}]\ntype = "HttpInput"\nurl = "{url}"\n{extra}\n'


class FakeManager:
    """Records add/remove calls instead of starting threads."""

    def __init__(self, fail_on=(), fail_remove=False):
        self.calls: list[tuple[str, str]] = []
        self.live: dict[str, tuple[str, int]] = {}
        self.fail_on = set(fail_on)
        self.fail_remove = fail_remove
        self._seq = 0

    def add(self, builder):
        if builder.name in self.fail_on:
            raise LifecycleError("boom")
        if builder.name in self.live:
            raise LifecycleError(f"an input named '{builder.name}' is already running")
        self._seq += 1
        handle = (builder.name, self._seq)
        self.live[builder.name] = handle
        self.calls.append(("add", builder.name))
        return handle

    def remove(self, handle):
        if self.fail_remove:
            raise RuntimeError("remove failed")
        self.calls.append(("remove", handle[0]))
        self.live.pop(handle[0], None)


@pytest.fixture
def manager() -> FakeManager:
    return FakeManager()
