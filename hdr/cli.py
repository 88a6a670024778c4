from __future__ import annotations

import argparse
import json
import sys

import requests

from . import db
from .settings import settings


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _run(args: argparse.Namespace) -> int:
    import uvicorn

    from .api import create_app
    from .reconciler import Reconciler
    from .runtime import RuntimeState
    from .scanner import resolve_http_dir
    from .scheduler import DirectoryScheduler
    from .workers import WorkerManager

    db.init_db()
    root = resolve_http_dir(args.http_dir, args.share_dir)
    manager = WorkerManager()
    reconciler = Reconciler(manager)
    runtime = RuntimeState()
    scheduler = DirectoryScheduler(reconciler, root, ticker_interval=args.interval, runtime=runtime)

    scheduler.start()
    try:
        if args.serve:
            uvicorn.run(create_app(runtime), host=args.host, port=args.port)
        else:
            while scheduler.state != "stopped":
                scheduler.join(timeout=0.5)
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()
        scheduler.join()
        # The loop leaves jobs running; tear them down on the way out.
        reconciler.shutdown()
        manager.shutdown()
    if scheduler.last_error is not None:
        print(f"error: {type(scheduler.last_error).__name__}: {scheduler.last_error}", file=sys.stderr)
        return 1
    return 0


def _check(args: argparse.Namespace) -> int:
    from .scanner import ScanError, resolve_http_dir, scan_directory

    db.init_db()
    root = resolve_http_dir(args.http_dir, args.share_dir)
    try:
        declared = scan_directory(root)
    except ScanError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    names: dict[str, list[str]] = {}
    for path, decl in sorted(declared.items()):
        names.setdefault(decl.name, []).append(path)
    _print(
        {
            "root": root,
            "jobs": [
                {
                    "name": decl.name,
                    "source_path": path,
                    "method": decl.config.method,
                    "targets": decl.config.targets(),
                    "ticker_interval": decl.config.ticker_interval,
                }
                for path, decl in sorted(declared.items())
            ],
            "duplicates": {n: p for n, p in names.items() if len(p) > 1},
        }
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="HTTP Directory Reconciler CLI")
    p.add_argument("--api", default=f"http://{settings.api_host}:{settings.api_port}", help="API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    s_run = sub.add_parser("run", help="Watch the job directory and keep its jobs running")
    s_run.add_argument("--http-dir", default=settings.http_dir, help="Root of the job fragment tree")
    s_run.add_argument("--share-dir", default=settings.share_dir, help="Base for a relative --http-dir")
    s_run.add_argument("--interval", type=int, default=settings.ticker_interval_s, help="Seconds between scans")
    s_run.add_argument("--serve", action="store_true", help="Also serve the status API")
    s_run.add_argument("--host", default=settings.api_host)
    s_run.add_argument("--port", type=int, default=settings.api_port)

    s_check = sub.add_parser("check", help="Scan the job directory once and print what it declares")
    s_check.add_argument("--http-dir", default=settings.http_dir)
    s_check.add_argument("--share-dir", default=settings.share_dir)

    sub.add_parser("jobs", help="List running jobs")
    sub.add_parser("status", help="Show scheduler status")

    s_ev = sub.add_parser("events", help="Show events")
    s_ev.add_argument("--limit", type=int, default=20)
    s_ev.add_argument("--job", default=None)
    s_ev.add_argument("--level", default=None)

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd == "run":
        return _run(args)

    if args.cmd == "check":
        return _check(args)

    if args.cmd == "jobs":
        _print(requests.get(f"{base}/jobs", timeout=10).json())
        return 0

    if args.cmd == "status":
        _print(requests.get(f"{base}/status", timeout=10).json())
        return 0

    if args.cmd == "events":
        params = {"limit": args.limit}
        if args.job:
            params["job"] = args.job
        if args.level:
            params["level"] = args.level
        r = requests.get(f"{base}/events", params=params, timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
