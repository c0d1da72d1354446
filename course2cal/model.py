"""
Central data model definitions used across the project.

This module defines the canonical structure of the objects that flow through
the pipeline so that:
- the parser, the occurrence engine and the exporters share the same field names
- sessions stay plain values (equality by fields, no identity)
- the exporters never have to know where an event came from
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any


@dataclass
class CourseSession:
    """
    One course taught on one weekday.

    A course block with the time field "一 1,2 / 三 5,6" becomes two sessions
    that share every field except weekday/periods. raw_time always holds the
    full time field, so siblings can be grouped back together.
    """

    name: str
    teacher: str
    location: str
    raw_time: str
    weekday: int  # 1 = Sunday, 2 = Monday ... 7 = Saturday
    periods: list[int]
    credits: int | None = None
    notes: str = ""
    selected: bool = True

    @property
    def group_key(self) -> str:
        return "|".join([self.name, self.teacher, self.location, self.raw_time])


@dataclass(frozen=True)
class SemesterConfig:
    """
    User settings the occurrence engine needs.

    start_date is the first class day of the semester (normally a Monday).
    """

    start_date: date
    reminder_minutes: int = 10
    timezone: str = "Asia/Taipei"

    def __post_init__(self) -> None:
        if self.reminder_minutes < 0:
            raise ValueError(f"reminder_minutes must be >= 0, got {self.reminder_minutes}")


@dataclass(frozen=True)
class EventTime:
    instant: datetime
    timezone: str

    def isoformat(self) -> str:
        return self.instant.strftime("%Y-%m-%dT%H:%M:%S")


@dataclass(frozen=True)
class EventDescriptor:
    """
    Calendar-agnostic description of one weekly-recurring course event.
    """

    title: str
    location: str
    description: str
    start: EventTime
    end: EventTime
    recurrence: str
    reminder_minutes: int = 0

    def recurrence_lines(self) -> list[str]:
        return [f"RRULE:{self.recurrence}"]

    def to_google_payload(self) -> dict[str, Any]:
        """
        Shape the event as a Google Calendar API "events.insert" body.
        Empty location/description are left out.
        """
        payload: dict[str, Any] = {
            "summary": self.title,
            "start": {"dateTime": self.start.isoformat(), "timeZone": self.start.timezone},
            "end": {"dateTime": self.end.isoformat(), "timeZone": self.end.timezone},
            "recurrence": self.recurrence_lines(),
        }
        if self.location:
            payload["location"] = self.location
        if self.description:
            payload["description"] = self.description
        if self.reminder_minutes > 0:
            payload["reminders"] = {
                "useDefault": False,
                "overrides": [{"method": "popup", "minutes": self.reminder_minutes}],
            }
        return payload


@dataclass
class ExportReport:
    """
    Aggregated per-event result of an export run.
    """

    succeeded: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def outcome(self) -> str:
        if self.succeeded and not self.failed:
            return "all"
        if self.succeeded:
            return "partial"
        return "none"

    def summary(self) -> str:
        if self.outcome == "all":
            return f"Exported {self.succeeded} courses."
        if self.outcome == "partial":
            return f"Exported {self.succeeded} courses, {self.failed} failed."
        if not self.failed:
            return "Nothing to export."
        return f"Export failed for all {self.failed} courses."
