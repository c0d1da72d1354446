"""
Occurrence engine (CourseSession -> first dated occurrence -> EventDescriptor).

Given the semester start date, every session is placed on the first matching
weekday on or after that date, at the start of its earliest period, and then
repeats weekly for a fixed number of weeks.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Iterable

from course2cal.model import CourseSession, EventDescriptor, EventTime, SemesterConfig
from course2cal.periods import start_of_period

logger = logging.getLogger(__name__)

PERIOD_MINUTES = 50
SEMESTER_WEEKS = 16
RECURRENCE_RULE = f"FREQ=WEEKLY;COUNT={SEMESTER_WEEKS}"

TEACHER_PREFIX = "授課老師："


def sunday_first_weekday(day: date) -> int:
    """
    1 = Sunday, 2 = Monday ... 7 = Saturday (same numbering as CourseSession).
    """
    return day.isoweekday() % 7 + 1


def day_delta(weekday: int, start_date: date) -> int:
    """
    Days from start_date to the next `weekday` (0 if start_date is that weekday).
    """
    delta = weekday - sunday_first_weekday(start_date)
    if delta < 0:
        delta += 7
    return delta


def first_occurrence(session: CourseSession, config: SemesterConfig) -> tuple[datetime, datetime] | None:
    """
    Returns (start, end) of the first class of this session, or None if it
    cannot be placed on the calendar.
    """
    if not 1 <= session.weekday <= 7 or not session.periods:
        logger.warning(
            "Cannot place %r: weekday=%r periods=%r", session.name, session.weekday, session.periods
        )
        return None

    try:
        target = config.start_date + timedelta(days=day_delta(session.weekday, config.start_date))
        # stored order is not guaranteed chronological
        start = datetime.combine(target, start_of_period(min(session.periods)))
        end = start + timedelta(minutes=PERIOD_MINUTES * len(session.periods))
    except OverflowError:
        logger.warning("Cannot place %r: date out of range after %s", session.name, config.start_date)
        return None

    return start, end


def describe(session: CourseSession) -> str:
    lines = [f"{TEACHER_PREFIX}{session.teacher}"]
    if session.notes:
        lines.append(session.notes)
    return "\n\n".join(lines)


def build_event(session: CourseSession, config: SemesterConfig) -> EventDescriptor | None:
    occurrence = first_occurrence(session, config)
    if occurrence is None:
        return None

    start, end = occurrence
    return EventDescriptor(
        title=session.name,
        location=session.location,
        description=describe(session),
        start=EventTime(start, config.timezone),
        end=EventTime(end, config.timezone),
        recurrence=RECURRENCE_RULE,
        reminder_minutes=config.reminder_minutes,
    )


def build_events(
    sessions: Iterable[CourseSession],
    config: SemesterConfig,
    only_selected: bool = True,
) -> list[EventDescriptor]:
    """
    Builds one event per session. Unselected sessions and sessions that
    cannot be placed are skipped; the rest of the batch is unaffected.
    """
    events: list[EventDescriptor] = []
    skipped = 0
    for session in sessions:
        if only_selected and not session.selected:
            continue
        event = build_event(session, config)
        if event is None:
            skipped += 1
            continue
        events.append(event)

    if skipped:
        logger.warning("Skipped %d sessions that could not be placed on the calendar", skipped)
    return events
