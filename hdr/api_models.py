from __future__ import annotations

from pydantic import BaseModel, Field


class JobOut(BaseModel):
    name: str = Field(..., description="Logical job name, from the fragment's section name")
    source_path: str = Field(..., description="Fragment file the job was loaded from")
    method: str
    targets: list[str]
    ticker_interval: int = Field(..., description="Seconds between polls")


class PassOut(BaseModel):
    number: int
    added: list[str]
    removed: list[str]
    unchanged: list[str]
    failed: dict[str, str]
    duplicates: list[str]
    finished_at: str


class StatusOut(BaseModel):
    state: str = Field(..., description="idle|running|stopped")
    passes: int
    jobs: int
    last_error: str | None = None
    last_pass: PassOut | None = None


class EventOut(BaseModel):
    id: int
    ts: str
    level: str
    job_name: str | None = None
    message: str
