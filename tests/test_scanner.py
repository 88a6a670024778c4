import os

import pytest

from conftest import fragment
from hdr import db
from hdr.scanner import ScanError, iter_fragment_paths, resolve_http_dir, scan_directory


def test_scan_recurses_and_only_reads_toml(http_dir):
    (http_dir / "a.toml").write_text(fragment("A"))
    (http_dir / "notes.txt").write_text(fragment("IGNORED"))
    sub = http_dir / "team" / "nested"
    sub.mkdir(parents=True)
    (sub / "b.toml").write_text(fragment("B", url="http://example.test/b"))
    (http_dir / "dir.toml").mkdir()

    declared = scan_directory(str(http_dir))

    assert sorted(d.name for d in declared.values()) == ["A", "B"]
    assert str(sub / "b.toml") in declared
    assert all(os.path.isabs(p) for p in declared)


def test_iter_fragment_paths_is_sorted_and_restartable(http_dir):
    for name in ("c", "a", "b"):
        (http_dir / f"{name}.toml").write_text(fragment(name.upper()))
    first = list(iter_fragment_paths(str(http_dir)))
    assert [os.path.basename(p) for p in first] == ["a.toml", "b.toml", "c.toml"]
    assert list(iter_fragment_paths(str(http_dir))) == first


def test_bad_files_are_logged_and_skipped(http_dir):
    (http_dir / "good.toml").write_text(fragment("GOOD"))
    (http_dir / "broken.toml").write_text("[oops\n")
    (http_dir / "empty.toml").write_text('[out]\ntype = "LogOutput"\n')

    declared = scan_directory(str(http_dir))

    assert [d.name for d in declared.values()] == ["GOOD"]
    errors = [e["message"] for e in db.latest_events(level="ERROR")]
    assert any(f"loading http file '{http_dir / 'broken.toml'}'" in m for m in errors)
    assert any("No `HttpInput` section." in m for m in errors)


def test_empty_directory_declares_nothing(http_dir):
    assert scan_directory(str(http_dir)) == {}


def test_missing_root_is_fatal(tmp_path):
    with pytest.raises(ScanError):
        scan_directory(str(tmp_path / "does-not-exist"))


def test_root_that_is_a_file_is_fatal(tmp_path):
    f = tmp_path / "file.toml"
    f.write_text(fragment())
    with pytest.raises(ScanError):
        scan_directory(str(f))


def test_resolve_http_dir():
    assert resolve_http_dir("http.d", "/usr/share/hdr") == "/usr/share/hdr/http.d"
    assert resolve_http_dir("/etc/hdr/jobs/", "/usr/share/hdr") == "/etc/hdr/jobs"
    assert resolve_http_dir("a/../b", "/srv") == "/srv/b"


def _deny_scandir(monkeypatch, blocked):
    real_scandir = os.scandir

    def fake_scandir(path="."):
        if os.fspath(path) == str(blocked):
            raise PermissionError(13, "Permission denied", str(blocked))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", fake_scandir)


def test_non_utf8_fragment_is_logged_and_skipped(http_dir):
    (http_dir / "good.toml").write_text(fragment("GOOD"))
    (http_dir / "bad.toml").write_bytes(b'[BAD]\ntype = "HttpInput"\nurl = "\xff\xfe"\n')

    declared = scan_directory(str(http_dir))

    assert [d.name for d in declared.values()] == ["GOOD"]
    errors = [e["message"] for e in db.latest_events(level="ERROR")]
    assert any(m.startswith(f"loading http file '{http_dir / 'bad.toml'}': invalid TOML") for m in errors)


def test_unreadable_subdirectory_is_logged_and_skipped(http_dir, monkeypatch):
    (http_dir / "a.toml").write_text(fragment("A"))
    locked = http_dir / "locked"
    locked.mkdir()
    (locked / "b.toml").write_text(fragment("B"))
    open_dir = http_dir / "open"
    open_dir.mkdir()
    (open_dir / "c.toml").write_text(fragment("C"))
    _deny_scandir(monkeypatch, locked)

    declared = scan_directory(str(http_dir))

    assert sorted(d.name for d in declared.values()) == ["A", "C"]
    errors = [e["message"] for e in db.latest_events(level="ERROR")]
    assert f"walking '{locked}': Permission denied" in errors


def test_unreadable_root_is_fatal(http_dir, monkeypatch):
    (http_dir / "a.toml").write_text(fragment("A"))
    _deny_scandir(monkeypatch, http_dir)

    with pytest.raises(ScanError) as exc:
        scan_directory(str(http_dir))
    assert str(exc.value) == f"walking '{http_dir}': Permission denied"
