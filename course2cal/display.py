from __future__ import annotations

from dataclasses import dataclass, field

from rich import box
from rich.table import Table

from course2cal.model import CourseSession
from course2cal.parse import parse_time_segment, split_time_segments
from course2cal.periods import MAX_PERIOD, MIN_PERIOD, end_of_period, period_label, start_of_period

WEEKDAY_NAMES: dict[int, str] = {1: "日", 2: "一", 3: "二", 4: "三", 5: "四", 6: "五", 7: "六"}

# Grid columns Monday..Saturday; Sunday is added only when a course needs it
GRID_WEEKDAYS = [2, 3, 4, 5, 6, 7]

CELL_MAX_LEN = 15


@dataclass
class CourseGroup:
    """
    All sessions of one course block (same name/teacher/location/raw_time).
    """

    key: str
    name: str
    teacher: str
    location: str
    raw_time: str
    credits: int | None
    notes: str
    indices: list[int] = field(default_factory=list)


def group_sessions(sessions: list[CourseSession]) -> list[CourseGroup]:
    groups: dict[str, CourseGroup] = {}
    for idx, s in enumerate(sessions):
        group = groups.get(s.group_key)
        if group is None:
            group = CourseGroup(
                key=s.group_key,
                name=s.name,
                teacher=s.teacher,
                location=s.location,
                raw_time=s.raw_time,
                credits=s.credits,
                notes=s.notes,
            )
            groups[s.group_key] = group
        group.indices.append(idx)
    return list(groups.values())


def format_time_segment(segment: str) -> str | None:
    """
    "一 1,2" -> "週一 1 ~ 2 節（08:10 ~ 10:00）"
    """
    parts = segment.split()
    if len(parts) < 2:
        return None

    _, periods = parse_time_segment(segment)
    if not periods:
        return None

    first, last = min(periods), max(periods)
    start = start_of_period(first).strftime("%H:%M")
    end = end_of_period(last).strftime("%H:%M")

    if first == last:
        span = f"{period_label(first)} 節"
    else:
        span = f"{period_label(first)} ~ {period_label(last)} 節"

    return f"週{parts[0]} {span}（{start} ~ {end}）"


def time_lines(raw_time: str) -> list[str]:
    lines: list[str] = []
    for segment in split_time_segments(raw_time):
        line = format_time_segment(segment)
        if line:
            lines.append(line)
    return lines


def _periods_text(periods: list[int]) -> str:
    return ",".join(period_label(p) for p in periods)


def sessions_table(sessions: list[CourseSession]) -> Table:
    table = Table(title=f"Parsed sessions ({len(sessions)})", box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Course", style="bold cyan")
    table.add_column("Teacher", style="magenta")
    table.add_column("Location")
    table.add_column("Day", justify="center")
    table.add_column("Periods")
    table.add_column("Credits", justify="right", style="yellow")

    for i, s in enumerate(sessions, start=1):
        credits = "" if s.credits is None else str(s.credits)
        table.add_row(
            str(i),
            s.name,
            s.teacher,
            s.location,
            WEEKDAY_NAMES.get(s.weekday, "?"),
            _periods_text(s.periods),
            credits,
        )
    return table


def groups_table(groups: list[CourseGroup]) -> Table:
    table = Table(title=f"Courses ({len(groups)})", box=box.SIMPLE)
    table.add_column("Course", style="bold cyan")
    table.add_column("Time")
    table.add_column("Notes")

    for g in groups:
        table.add_row(g.name, "\n".join(time_lines(g.raw_time)) or g.raw_time, g.notes)
    return table


def _cell_text(sessions: list[CourseSession], weekday: int, period: int) -> str:
    for s in sessions:
        if s.weekday == weekday and period in s.periods:
            return s.name[:CELL_MAX_LEN]
    return ""


def timetable(sessions: list[CourseSession]) -> Table:
    """
    Weekly grid: one row per period, one column per weekday.
    """
    weekdays = list(GRID_WEEKDAYS)
    if any(s.weekday == 1 for s in sessions):
        weekdays.append(1)

    table = Table(title="Weekly timetable", box=box.SQUARE, show_lines=True)
    table.add_column("", justify="right", style="dim")
    for weekday in weekdays:
        table.add_column(WEEKDAY_NAMES[weekday], justify="center", style="cyan")

    for period in range(MIN_PERIOD, MAX_PERIOD + 1):
        label = f"{period_label(period)} {start_of_period(period):%H:%M}"
        table.add_row(label, *[_cell_text(sessions, w, period) for w in weekdays])
    return table
