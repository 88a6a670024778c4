from __future__ import annotations

import os
import sqlite3
from datetime import datetime
from typing import Any

from .settings import settings

LEVELS = ("DEBUG", "INFO", "WARN", "ERROR", "CRITICAL")


def utc_now() -> str:
    return datetime.utcnow().strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    If the configured path is an existing directory (a bind mount created
    before the file existed, for instance), the DB file is placed inside it.
    """

    p = os.path.abspath(settings.db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "hdr.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect() -> sqlite3.Connection:
    conn = sqlite3.connect(_resolve_db_path(), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    """Create tables if they do not exist."""
    with connect() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              job_name TEXT,
              message TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            CREATE INDEX IF NOT EXISTS idx_events_job_name ON events(job_name);
            """
        )


def log_event(level: str, message: str, job_name: str | None = None) -> None:
    with connect() as conn:
        conn.execute(
            "INSERT INTO events (ts, level, job_name, message) VALUES (?, ?, ?, ?)",
            (utc_now(), level.upper(), job_name, message),
        )


def latest_events(limit: int = 100, job_name: str | None = None, level: str | None = None) -> list[dict[str, Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    if job_name:
        clauses.append("job_name=?")
        params.append(job_name)
    if level:
        clauses.append("level=?")
        params.append(level.upper())
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    params.append(limit)
    with connect() as conn:
        rows = conn.execute(f"SELECT * FROM events {where} ORDER BY id DESC LIMIT ?", params).fetchall()
        return [dict(r) for r in rows]
