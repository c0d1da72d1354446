"""
CLI (Command Line Interface).

This module provides the terminal commands, e.g.:

    course2cal parse courses.txt
    course2cal timetable courses.txt
    course2cal export courses.txt out.ics --start 2025-09-01
    course2cal export courses.txt out.ics --skip 普通物理學
    course2cal google courses.txt --calendar-id primary --only 1
    course2cal calendars
    course2cal calendars --create "NTU 114-1"
    course2cal config show
    course2cal config set --start 2025-09-01 --reminder 15

The input file holds the text copied from the course portal ("-" reads stdin,
.html files saved from the portal work too).

Semester settings come from ~/.course2cal/settings.json; --start/--reminder/
--timezone override them for one run without saving.
"""

from __future__ import annotations

import argparse
import logging
import os
from dataclasses import replace
from datetime import date

from rich.console import Console
from rich.logging import RichHandler

from course2cal.display import group_sessions, groups_table, sessions_table, timetable
from course2cal.export_ics import export_events_to_ics
from course2cal.google_calendar import (
    PRIMARY,
    GoogleCalendarClient,
    GoogleCalendarError,
    default_calendar_id,
    export_events,
)
from course2cal.model import CourseSession, SemesterConfig
from course2cal.occurrence import build_events
from course2cal.parse import load_course_text, parse_course_text
from course2cal.settings import load_settings, save_settings

logger = logging.getLogger(__name__)

console = Console()

TOKEN_ENV = "COURSE2CAL_GOOGLE_TOKEN"

NO_COURSES_MSG = "No courses found – check your input."


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a date (YYYY-MM-DD): {value!r}")


def _minutes(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    if n < 0:
        raise argparse.ArgumentTypeError("reminder minutes must be >= 0")
    return n


def _semester_config(args: argparse.Namespace) -> SemesterConfig:
    """
    Stored settings with command-line overrides applied.
    """
    config = load_settings(args.settings)
    if getattr(args, "start", None) is not None:
        config = replace(config, start_date=args.start)
    if getattr(args, "reminder", None) is not None:
        config = replace(config, reminder_minutes=args.reminder)
    if getattr(args, "timezone", None):
        config = replace(config, timezone=args.timezone)
    return config


def _load_sessions(args: argparse.Namespace) -> list[CourseSession] | None:
    """
    Read and parse the input. Prints a message and returns None on failure.
    """
    try:
        text = load_course_text(args.input)
    except (OSError, UnicodeDecodeError) as exc:
        console.print(f"[red]Cannot read input:[/] {exc}")
        return None

    sessions = parse_course_text(text)
    if not sessions:
        console.print(NO_COURSES_MSG)
        return None

    logger.debug("Parsed %d sessions from %s", len(sessions), args.input)
    return sessions


def _matches(session: CourseSession, index: int, keys: list[str]) -> bool:
    # a number is the row index shown by "parse", anything else a course name
    for key in keys:
        key = key.strip()
        if key.isdigit() and int(key) == index:
            return True
        if key == session.name:
            return True
    return False


def _apply_selection(sessions: list[CourseSession], skip: list[str] | None, only: list[str] | None) -> None:
    """
    Sets CourseSession.selected from --only / --skip (1-based index or course name).
    """
    for i, session in enumerate(sessions, start=1):
        selected = True
        if only:
            selected = _matches(session, i, only)
        if skip and _matches(session, i, skip):
            selected = False
        session.selected = selected

    dropped = [s.name for s in sessions if not s.selected]
    if dropped:
        logger.debug("Not exporting %d sessions: %s", len(dropped), ", ".join(dropped))


def _google_client(args: argparse.Namespace) -> GoogleCalendarClient | None:
    token = (args.token or os.environ.get(TOKEN_ENV, "")).strip()
    if not token:
        console.print(f"Please provide a Google access token (--token or {TOKEN_ENV}).")
        return None
    return GoogleCalendarClient(token)


def _cmd_parse(args: argparse.Namespace) -> int:
    """
    Print parsed sessions and the per-course time summary.
    """
    sessions = _load_sessions(args)
    if sessions is None:
        return 1

    console.print(sessions_table(sessions))
    console.print(groups_table(group_sessions(sessions)))
    return 0


def _cmd_timetable(args: argparse.Namespace) -> int:
    sessions = _load_sessions(args)
    if sessions is None:
        return 1

    console.print(timetable(sessions))
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    """
    Export parsed sessions into an iCalendar (.ics) file.
    """
    out_path = (args.out or "").strip()
    if not out_path:
        console.print("Please provide output .ics path.")
        return 1

    sessions = _load_sessions(args)
    if sessions is None:
        return 1

    _apply_selection(sessions, args.skip, args.only)
    config = _semester_config(args)
    events = build_events(sessions, config)
    if not events:
        console.print("No events to export.")
        return 1

    n = export_events_to_ics(events, out_path)
    console.print(f"Exported {n} events to: {out_path} (semester start {config.start_date.isoformat()})")
    return 0


def _default_calendar(client: GoogleCalendarClient) -> str:
    try:
        calendar_id = default_calendar_id(client.list_calendars())
    except GoogleCalendarError as exc:
        logger.warning("Cannot list calendars (%s), using %r", exc, PRIMARY)
        return PRIMARY
    logger.debug("Using calendar %r", calendar_id)
    return calendar_id


def _cmd_google(args: argparse.Namespace) -> int:
    """
    Insert one recurring event per session into a Google calendar.
    """
    sessions = _load_sessions(args)
    if sessions is None:
        return 1

    try:
        client = _google_client(args)
    except GoogleCalendarError as exc:
        console.print(f"[red]{exc}[/]")
        return 1
    if client is None:
        return 1

    _apply_selection(sessions, args.skip, args.only)
    events = build_events(sessions, _semester_config(args))
    if not events:
        console.print("No events to export.")
        return 1

    calendar_id = args.calendar_id or _default_calendar(client)
    report = export_events(client, events, calendar_id=calendar_id)

    console.print(report.summary())
    for err in report.errors:
        console.print(f"  - {err}", markup=False)
    return 0 if report.outcome in ("all", "partial") else 1


def _cmd_calendars(args: argparse.Namespace) -> int:
    try:
        client = _google_client(args)
        if client is None:
            return 1
        if args.create:
            timezone = args.timezone or _semester_config(args).timezone
            created = client.create_calendar(args.create, timezone)
            console.print(f"Created calendar: {created.id} | {created.summary}", markup=False)
            return 0
        calendars = client.list_calendars()
    except GoogleCalendarError as exc:
        console.print(f"[red]{exc}[/]")
        return 1

    if not calendars:
        console.print("No calendars found.")
        return 0

    for cal in calendars:
        mark = " (primary)" if cal.primary else ""
        console.print(f"{cal.id} | {cal.summary}{mark}", markup=False)
    return 0


def _print_config(config: SemesterConfig) -> None:
    console.print(f"start_date       : {config.start_date.isoformat()}")
    console.print(f"reminder_minutes : {config.reminder_minutes}")
    console.print(f"timezone         : {config.timezone}")


def _cmd_config(args: argparse.Namespace) -> int:
    config = _semester_config(args)

    if args.action == "set":
        path = save_settings(config, args.settings)
        console.print(f"Saved settings to: {path}")

    _print_config(config)
    return 0


def _add_semester_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--start", type=_iso_date, help="Semester start date (YYYY-MM-DD)")
    p.add_argument("--reminder", type=_minutes, help="Reminder minutes before class (0 = none)")
    p.add_argument("--timezone", type=str, help="Timezone name passed to the calendar (e.g. Asia/Taipei)")


def _add_selection_options(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--skip", action="append", metavar="COURSE", help="Leave out a course (name or # from 'parse'); repeatable"
    )
    p.add_argument(
        "--only", action="append", metavar="COURSE", help="Export only these courses (name or #); repeatable"
    )


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="course2cal", description="Turn copied course lists into calendar events")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--settings", type=str, default=None, help="Path of settings.json")
    sub = parser.add_subparsers(dest="command", required=True)

    p_parse = sub.add_parser("parse", help="Show parsed courses")
    p_parse.add_argument("input", type=str, help="Text file with copied courses ('-' = stdin)")

    p_table = sub.add_parser("timetable", help="Show the weekly timetable")
    p_table.add_argument("input", type=str, help="Text file with copied courses ('-' = stdin)")

    p_export = sub.add_parser("export", help="Export courses to .ics")
    p_export.add_argument("input", type=str, help="Text file with copied courses ('-' = stdin)")
    p_export.add_argument("out", type=str, help="Output file path (e.g. out.ics)")
    _add_semester_options(p_export)
    _add_selection_options(p_export)

    p_google = sub.add_parser("google", help="Export courses to Google Calendar")
    p_google.add_argument("input", type=str, help="Text file with copied courses ('-' = stdin)")
    p_google.add_argument(
        "--calendar-id", type=str, default=None, help="Target calendar id (default: your primary calendar)"
    )
    p_google.add_argument("--token", type=str, default=None, help=f"OAuth access token (default: ${TOKEN_ENV})")
    _add_semester_options(p_google)
    _add_selection_options(p_google)

    p_cals = sub.add_parser("calendars", help="List or create Google calendars")
    p_cals.add_argument("--token", type=str, default=None, help=f"OAuth access token (default: ${TOKEN_ENV})")
    p_cals.add_argument(
        "--create", type=str, metavar="NAME", default=None, help="Create a new calendar instead of listing"
    )
    p_cals.add_argument("--timezone", type=str, help="Timezone of the new calendar (default: settings)")

    p_config = sub.add_parser("config", help="Show or change semester settings")
    p_config.add_argument("action", choices=["show", "set"])
    _add_semester_options(p_config)

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if args.command == "parse":
        raise SystemExit(_cmd_parse(args))
    if args.command == "timetable":
        raise SystemExit(_cmd_timetable(args))
    if args.command == "export":
        raise SystemExit(_cmd_export(args))
    if args.command == "google":
        raise SystemExit(_cmd_google(args))
    if args.command == "calendars":
        raise SystemExit(_cmd_calendars(args))
    if args.command == "config":
        raise SystemExit(_cmd_config(args))

    raise SystemExit(2)
