from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

HTTP_INPUT_TYPE = "HttpInput"

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(raw: str) -> float:
    """Parse a Go-style duration string ("250ms", "1m30s") into seconds."""
    text = raw.strip()
    if not text:
        raise ValueError("empty duration")
    if text == "0":
        return 0.0
    pos = 0
    total = 0.0
    while pos < len(text):
        m = _DURATION_PART_RE.match(text, pos)
        if not m:
            raise ValueError(f"invalid duration {raw!r}")
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    return total


class RetryOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_delay: str = "30s"
    delay: str = "250ms"
    max_jitter: str = "500ms"
    max_retries: int = Field(-1, ge=-1)

    @field_validator("max_delay", "delay", "max_jitter")
    @classmethod
    def _check_duration(cls, v: str) -> str:
        parse_duration(v)
        return v


class CommonInputConfig(BaseModel):
    """Fields every input-style job carries besides its typed settings."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: str = HTTP_INPUT_TYPE
    can_exit: bool | None = None
    retries: RetryOptions = Field(default_factory=RetryOptions)
    decoder: str = ""


COMMON_KEYS = frozenset(CommonInputConfig.model_fields)


def _split_header(item: Any) -> tuple[str, str]:
    if isinstance(item, str):
        name, sep, value = item.partition(":")
        if not sep:
            raise ValueError(f"header {item!r} must look like 'Name: value'")
        return name.strip(), value.strip()
    if isinstance(item, (list, tuple)) and len(item) == 2:
        return str(item[0]), str(item[1])
    raise ValueError(f"unsupported header entry {item!r}")


class HttpInputConfig(BaseModel):
    """Typed settings of one HTTP polling job."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str = ""
    urls: list[str] = Field(default_factory=list)
    method: str = "GET"
    # Ordered: header order is part of a job's identity.
    headers: list[tuple[str, str]] = Field(default_factory=list)
    body: str = ""
    username: str = ""
    password: str = ""
    ticker_interval: int = Field(10, gt=0)
    success_severity: int = Field(6, ge=0, le=7)
    error_severity: int = Field(1, ge=0, le=7)

    @field_validator("headers", mode="before")
    @classmethod
    def _normalize_headers(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return [(str(k), str(val)) for k, val in v.items()]
        if isinstance(v, list):
            return [_split_header(item) for item in v]
        return v

    @field_validator("method")
    @classmethod
    def _upper_method(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def _check_targets(self) -> "HttpInputConfig":
        if self.url and self.urls:
            raise ValueError("url and urls are mutually exclusive")
        if not self.url and not self.urls:
            raise ValueError("one of url or urls is required")
        return self

    def targets(self) -> list[str]:
        return [self.url] if self.url else list(self.urls)


@dataclass(frozen=True)
class JobDeclaration:
    name: str
    source_path: str
    config: HttpInputConfig
    builder: Any  # plugins.WorkerBuilder


@dataclass(frozen=True)
class RunningJob:
    declaration: JobDeclaration
    handle: Any  # owned by the lifecycle manager
    source_path: str

    @property
    def name(self) -> str:
        return self.declaration.name


class DuplicateNameError(Exception):
    """Two fragment files declare the same logical name."""

    def __init__(self, name: str, path: str, existing_path: str):
        self.name = name
        self.path = path
        self.existing_path = existing_path
        super().__init__(
            f"Duplicate Name: Input with name [{name}] already exists. Not loading input file: {path}"
        )
