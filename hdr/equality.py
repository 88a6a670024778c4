from __future__ import annotations

from .models import HttpInputConfig

_SCALAR_FIELDS = (
    "url",
    "method",
    "body",
    "username",
    "password",
    "ticker_interval",
    "success_severity",
    "error_severity",
)
_LIST_FIELDS = ("urls", "headers")


def _lists_equal(a: list, b: list) -> bool:
    if len(a) != len(b):
        return False
    for i, v in enumerate(a):
        if b[i] != v:
            return False
    return True


def configs_equal(running: HttpInputConfig, other: HttpInputConfig) -> bool:
    """Field-by-field comparison of two resolved configs.

    List fields are compared element by element, in order: the same headers
    in a different order make two configs different.
    """
    for name in _SCALAR_FIELDS:
        if getattr(running, name) != getattr(other, name):
            return False
    for name in _LIST_FIELDS:
        if not _lists_equal(getattr(running, name), getattr(other, name)):
            return False
    return True
