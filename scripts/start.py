#!/usr/bin/env python3
"""
Container entrypoint: migrate, seed, then exec gunicorn.

Usage:
    python scripts/start.py

Notification streams, the feed cache and rate-limit windows are per process, so the
default is one gthread worker. Raise GUNICORN_WORKERS only behind sticky sessions.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PORT = 8080


def _int_env(name: str, default: int, *, low: int = 1, high: int | None = None) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise SystemExit(f"ERROR: {name}={raw!r} is not an integer") from None
    if value < low or (high is not None and value > high):
        raise SystemExit(f"ERROR: {name}={value} out of range")
    return value


def gunicorn_argv(port: int, workers: int, threads: int) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--worker-class", "gthread",
        "--workers", str(workers),
        "--threads", str(threads),
        # SSE clients hold a thread for up to STREAM_MAX_SECONDS.
        "--timeout", "120",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    port = _int_env("PORT", DEFAULT_PORT, high=65535)
    workers = _int_env("GUNICORN_WORKERS", 1)
    threads = _int_env("GUNICORN_THREADS", 16)

    from scripts.release import run_release

    try:
        run_release()
    except Exception as e:
        print(f"Release failed, not starting: {e}", flush=True)
        sys.exit(1)

    argv = gunicorn_argv(port, workers, threads)
    print(f"exec {' '.join(argv)}", flush=True)
    os.execvp(argv[0], argv)


if __name__ == "__main__":
    main()
