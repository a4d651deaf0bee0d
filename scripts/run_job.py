#!/usr/bin/env python3
"""
Run a maintenance or processing job once.

Usage:
  python scripts/run_job.py update_trending
  python scripts/run_job.py update_engagement_stats
  python scripts/run_job.py cleanup_view_events
  python scripts/run_job.py cleanup_jwt_denylist
  python scripts/run_job.py process_gif <gif_id>
  python scripts/run_job.py process_remix <remix_id> <source_gif_id>

Suggested cron: update_trending every 15 minutes, update_engagement_stats every 6 hours,
cleanup_view_events and cleanup_jwt_denylist daily.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Run a ytgify job once.")
    sub = p.add_subparsers(dest="job", required=True)
    sub.add_parser("update_trending", help="Score recent public GIFs and cache the top 100")
    sub.add_parser("update_engagement_stats", help="Recompute user counters for recently active users")
    sub.add_parser("cleanup_view_events", help="Delete view events older than 30 days")
    sub.add_parser("cleanup_jwt_denylist", help="Delete expired revoked-token rows")
    pg = sub.add_parser("process_gif", help="Extract metadata for an uploaded GIF")
    pg.add_argument("gif_id", type=int)
    pr = sub.add_parser("process_remix", help="Copy source metadata onto a remix")
    pr.add_argument("remix_id", type=int)
    pr.add_argument("source_id", type=int)
    return p


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    from app.ytgify import create_app
    from app.ytgify import jobs

    app = create_app()
    if args.job == "process_gif":
        result = jobs.process_gif(app, args.gif_id)
    elif args.job == "process_remix":
        result = jobs.process_remix(app, args.remix_id, args.source_id)
    else:
        result = jobs.JOBS[args.job](app)
    print(f"{args.job}: {result}", flush=True)
    return 0 if result is not False else 1


if __name__ == "__main__":
    sys.exit(main())
