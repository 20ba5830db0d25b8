"""CLI helper for refreshing the race cache and syncing it to the calendar."""

from __future__ import annotations

import argparse
import asyncio
import datetime as dt
import json
import logging
import sys
from typing import List, Optional

from keiba_core import DateRange, Settings, build_pipeline
from keiba_core.grades import ORGANIZATIONS, specified_grades
from keiba_core.schemas import dump_record

COMMANDS = [
    "calendar-get",
    "calendar-update",
    "calendar-cleanse",
    "races-fetch",
    "races-refresh",
    "places-fetch",
    "places-refresh",
]


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("organization", choices=ORGANIZATIONS)
    parser.add_argument("start", type=dt.date.fromisoformat)
    parser.add_argument("finish", type=dt.date.fromisoformat)
    parser.add_argument(
        "--grade",
        action="append",
        dest="grades",
        help="grade to synchronise (repeatable); defaults to the organisation's graded races",
    )
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    pipeline = build_pipeline(Settings.from_env(), args.organization)
    date_range = DateRange(args.start, args.finish)

    if args.command == "calendar-get":
        events = await pipeline.calendar.get_races_from_calendar(date_range)
        for event in events:
            print(f"{event.start_time:%Y-%m-%d %H:%M}  {event.event_id or '-':<16}  {event.title}")
    elif args.command == "calendar-update":
        grades = args.grades or specified_grades(args.organization)
        await pipeline.calendar.update_races_to_calendar(date_range, grades)
    elif args.command == "calendar-cleanse":
        await pipeline.calendar.cleansing_races_from_calendar(date_range)
    elif args.command in ("races-fetch", "places-fetch"):
        reconciler = pipeline.races if args.command == "races-fetch" else pipeline.places
        items = await reconciler.fetch_canonical(date_range)
        print(json.dumps([dump_record(item) for item in items], ensure_ascii=False, indent=2))
    else:
        reconciler = pipeline.races if args.command == "races-refresh" else pipeline.places
        await reconciler.refresh_canonical(date_range)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = _parse_args(argv)
    try:
        return asyncio.run(_run(args))
    except RuntimeError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
