# src/taskion/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs one subcommand:
- serve: auto-sync scheduler in the background until SIGINT/SIGTERM,
- sync: one push/pull/reconcile run, stats printed as JSON,
- courses / tasks / add-* / update-task / archive / unarchive: local record helpers.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys
from dataclasses import asdict
from typing import Any

from ..cli.bootstrap import create_initial_state, shutdown_state
from ..config import get_settings
from ..core.state import AppState
from ..errors import TaskionError
from ..logging_setup import setup_logging
from ..records import record_api
from ..records.record_models import DEFAULT_TASK_STATUS, RecordKind

logger = logging.getLogger(__name__)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskion", description="Course/task tracker with Notion sync.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="Run the auto-sync scheduler until interrupted.")
    sub.add_parser("sync", help="Run one sync now and print the stats.")

    p = sub.add_parser("courses", help="List courses.")
    p.add_argument("--all", action="store_true", help="Include archived courses.")

    p = sub.add_parser("tasks", help="List tasks.")
    p.add_argument("--all", action="store_true", help="Include archived tasks.")
    p.add_argument("--course", help="Only tasks of this course id.")

    p = sub.add_parser("add-course", help="Create a course.")
    p.add_argument("title")
    p.add_argument("--semester", default="")
    p.add_argument("--day", dest="day_of_week", default="")
    p.add_argument("--period", type=int, default=0)
    p.add_argument("--room")
    p.add_argument("--instructor")

    p = sub.add_parser("add-task", help="Create a task.")
    p.add_argument("title")
    p.add_argument("--course", dest="course_id", default="")
    p.add_argument("--due", dest="due_date", required=True, help="Due date, YYYY-MM-DD.")
    p.add_argument("--status", default=DEFAULT_TASK_STATUS)

    p = sub.add_parser("update-task", help="Update task fields.")
    p.add_argument("id")
    p.add_argument("--title")
    p.add_argument("--due", dest="due_date")
    p.add_argument("--status")
    p.add_argument("--course", dest="course_id")
    p.add_argument("--completed-at", dest="completed_at")

    for name in ("archive", "unarchive"):
        p = sub.add_parser(name, help=f"{name.capitalize()} a course or task.")
        p.add_argument("kind", choices=[k.value for k in RecordKind])
        p.add_argument("id")

    return parser


async def _serve(state: AppState) -> int:
    if state.scheduler is None:
        logger.warning("Auto-sync is disabled (TASKION_SYNC_ENABLED=false); nothing to serve.")
        return 1

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Some platforms (Windows) do not support signal handlers on the loop.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop.set)

    state.scheduler.start()
    logger.info("Auto-sync running every %ss. Press Ctrl+C to stop.", state.settings.sync_interval_seconds)
    await stop.wait()
    logger.info("Signal received, shutting down...")
    return 0


async def _run(args: argparse.Namespace, state: AppState) -> int:
    try:
        if args.command == "serve":
            return await _serve(state)

        if args.command == "sync":
            stats = await record_api.trigger_sync(state)
            _print_json(stats.as_dict())
            return 0

        if args.command == "courses":
            _print_json([asdict(c) for c in record_api.list_courses(state, include_archived=args.all)])
            return 0

        if args.command == "tasks":
            tasks = record_api.list_tasks(state, include_archived=args.all, course_id=args.course)
            _print_json([asdict(t) for t in tasks])
            return 0

        if args.command == "add-course":
            course = record_api.create_course(
                state,
                title=args.title,
                semester=args.semester,
                day_of_week=args.day_of_week,
                period=args.period,
                room=args.room,
                instructor=args.instructor,
            )
            _print_json(asdict(course))
            return 0

        if args.command == "add-task":
            task = record_api.create_task(
                state,
                course_id=args.course_id,
                title=args.title,
                due_date=args.due_date,
                status=args.status,
            )
            _print_json(asdict(task))
            return 0

        if args.command == "update-task":
            task = record_api.update_task(
                state,
                args.id,
                title=args.title,
                due_date=args.due_date,
                status=args.status,
                course_id=args.course_id,
                completed_at=args.completed_at,
            )
            _print_json(asdict(task))
            return 0

        if args.command == "archive":
            record_api.archive_record(state, RecordKind(args.kind), args.id)
            return 0

        if args.command == "unarchive":
            record_api.unarchive_record(state, RecordKind(args.kind), args.id)
            return 0

    except TaskionError as e:
        logger.error("%s", e)
        return 2
    finally:
        await shutdown_state(state)

    return 1


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.debug("Starting %s (%s)...", settings.app_name, args.command)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)
    return asyncio.run(_run(args, state))


if __name__ == "__main__":
    sys.exit(main())
