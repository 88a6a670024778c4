from __future__ import annotations

import os
import tomllib
from typing import Any

from .models import HTTP_INPUT_TYPE, JobDeclaration
from .plugins import (
    DeclarationError,
    WorkerBuilder,
    prepare_http_config,
    prepare_managed_common_config,
    section_info,
)


def _decode_file(path: str) -> dict[str, Any]:
    try:
        with open(path, "rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as e:
        raise DeclarationError(f"invalid TOML: {e}") from e
    except UnicodeDecodeError as e:
        raise DeclarationError(f"invalid TOML: not UTF-8: {e}") from e
    except OSError as e:
        raise DeclarationError(f"unable to read file: {e}") from e


def parse_declaration(path: str) -> JobDeclaration:
    """Parse one fragment file into a JobDeclaration.

    Raises DeclarationError for anything wrong with the file.
    """
    path = os.path.abspath(path)
    unparsed = _decode_file(path)

    name: str | None = None
    section: dict[str, Any] | None = None
    # Several HttpInput sections: the last one in file order wins.
    for section_name, raw in unparsed.items():
        conf_name, conf_type, _ = section_info(section_name, raw)
        if conf_type == HTTP_INPUT_TYPE:
            name, section = conf_name, raw

    if section is None or name is None:
        raise DeclarationError(f"No `{HTTP_INPUT_TYPE}` section.")

    builder = WorkerBuilder(
        name=name,
        section=section,
        prep_config=prepare_http_config,
        prep_common=prepare_managed_common_config,
    )
    # Resolve both configs now so errors surface at scan time and later
    # comparisons see the finalized settings.
    config = builder.config()
    builder.common()
    return JobDeclaration(name=name, source_path=path, config=config, builder=builder)


def load_declaration(path: str) -> tuple[JobDeclaration | None, str | None]:
    """Like parse_declaration, but returns (declaration, error) instead of raising."""
    try:
        return parse_declaration(path), None
    except DeclarationError as e:
        return None, str(e)
