from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import ValidationError

from .models import COMMON_KEYS, CommonInputConfig, HttpInputConfig, RetryOptions

CATEGORIES = ("Input", "Decoder", "Filter", "Encoder", "Output", "Splitter")

# Injected into every loaded job; fragments cannot override these.
DEFAULT_RETRIES = RetryOptions(max_delay="30s", delay="250ms", max_retries=-1)


class DeclarationError(Exception):
    pass


def section_info(name: str, section: Any) -> tuple[str, str, str]:
    """Classify a raw section without decoding it.

    Returns (name, type, category). The type is the section's `type` key, or
    the section name when there is none. Sections that are not tables, or
    whose type has no known category suffix, yield empty strings.
    """
    if not isinstance(section, dict):
        return "", "", ""
    section_type = section.get("type", name)
    if not isinstance(section_type, str):
        return "", "", ""
    for category in CATEGORIES:
        if section_type.endswith(category):
            return name, section_type, category
    return "", "", ""


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def prepare_http_config(section: dict[str, Any]) -> HttpInputConfig:
    typed = {k: v for k, v in section.items() if k not in COMMON_KEYS}
    try:
        return HttpInputConfig.model_validate(typed)
    except ValidationError as e:
        raise DeclarationError(f"invalid HttpInput config: {_describe(e)}") from e


def prepare_common_config(section: dict[str, Any]) -> CommonInputConfig:
    common = {k: v for k, v in section.items() if k in COMMON_KEYS}
    try:
        return CommonInputConfig.model_validate(common)
    except ValidationError as e:
        raise DeclarationError(f"invalid common input config: {_describe(e)}") from e


def apply_common_defaults(common: CommonInputConfig) -> CommonInputConfig:
    """Overlay the managed retry policy and default `can_exit` to True."""
    update: dict[str, Any] = {"retries": DEFAULT_RETRIES}
    if common.can_exit is None:
        update["can_exit"] = True
    return common.model_copy(update=update)


def prepare_managed_common_config(section: dict[str, Any]) -> CommonInputConfig:
    return apply_common_defaults(prepare_common_config(section))


@dataclass
class WorkerBuilder:
    """Deferred factory for one polling worker.

    The two hooks finalize the typed config and the common config from the
    raw section; nothing runs until `config()`, `common()` or `build()` is
    called.
    """

    name: str
    section: dict[str, Any] = field(repr=False)
    prep_config: Callable[[dict[str, Any]], HttpInputConfig] = prepare_http_config
    prep_common: Callable[[dict[str, Any]], CommonInputConfig] = prepare_managed_common_config

    def config(self) -> HttpInputConfig:
        return self.prep_config(self.section)

    def common(self) -> CommonInputConfig:
        return self.prep_common(self.section)

    def build(self, **kwargs: Any):
        from .workers import HttpPoller

        return HttpPoller(self.name, self.config(), self.common(), **kwargs)
