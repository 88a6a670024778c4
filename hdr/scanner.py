from __future__ import annotations

import os
from typing import Iterator

from . import db
from .declarations import load_declaration
from .models import JobDeclaration

FRAGMENT_SUFFIX = ".toml"


class ScanError(Exception):
    """The fragment directory itself cannot be scanned."""


def resolve_http_dir(http_dir: str, share_dir: str) -> str:
    """Relative fragment directories live under the share dir."""
    if not os.path.isabs(http_dir):
        http_dir = os.path.join(share_dir, http_dir)
    return os.path.normpath(os.path.abspath(http_dir))


def _walk_message(err: OSError, path: str | None = None) -> str:
    return f"walking '{path or err.filename}': {err.strerror or err}"


def iter_fragment_paths(root: str) -> Iterator[str]:
    """Yield absolute paths of fragment files below `root`, in sorted order.

    Unreadable subdirectories are logged and skipped; an unreadable root
    raises ScanError. Directory symlinks are not followed.
    """
    started = False

    def on_error(err: OSError) -> None:
        # os.walk lists the root before yielding anything.
        if not started:
            raise ScanError(_walk_message(err, root)) from err
        db.log_event("ERROR", _walk_message(err))

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        started = True
        dirnames.sort()
        for fname in sorted(filenames):
            if not fname.endswith(FRAGMENT_SUFFIX):
                continue
            path = os.path.join(dirpath, fname)
            if os.path.isfile(path):
                yield os.path.abspath(path)


def scan_directory(root: str) -> dict[str, JobDeclaration]:
    """Build the declared set for `root`, keyed by absolute file path.

    Per-file problems are logged and the file is dropped; only a missing,
    non-directory or unreadable root raises ScanError.
    """
    if not os.path.exists(root):
        raise ScanError(f"walking '{root}': no such file or directory")
    if not os.path.isdir(root):
        raise ScanError(f"walking '{root}': not a directory")

    declared: dict[str, JobDeclaration] = {}
    for path in iter_fragment_paths(root):
        decl, err = load_declaration(path)
        if decl is None:
            db.log_event("ERROR", f"loading http file '{path}': {err}")
            continue
        declared[path] = decl
    return declared
