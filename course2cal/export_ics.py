"""
iCalendar (.ics) export.

We convert event descriptors into a calendar file that can be imported into:
- Google Calendar
- Outlook
- Apple Calendar

Each course session becomes ONE recurring VEVENT (RRULE), not 16 copies.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from course2cal.model import EventDescriptor


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _dt_local(dt: datetime) -> str:
    """
    Local wall-clock datetime as 'YYYYMMDDTHHMMSS' (used together with TZID).
    """
    return dt.strftime("%Y%m%dT%H%M%S")


def _utc_offset(delta: timedelta) -> str:
    minutes = int(delta.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    hours, mins = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}{mins:02d}"


def timezone_lines(tzid: str, at: datetime) -> list[str] | None:
    """
    VTIMEZONE for a zone name, using the offset in effect at `at`.

    Returns None when the name is not a known IANA zone. A semester lies
    within one offset for Taiwan; zones with DST get the offset of the first
    class.
    """
    try:
        zone = ZoneInfo(tzid)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None

    aware = at.replace(tzinfo=zone)
    offset = _utc_offset(aware.utcoffset() or timedelta(0))
    return [
        "BEGIN:VTIMEZONE",
        f"TZID:{tzid}",
        "BEGIN:STANDARD",
        f"TZOFFSETFROM:{offset}",
        f"TZOFFSETTO:{offset}",
        f"TZNAME:{aware.tzname() or tzid}",
        "DTSTART:19700101T000000",
        "END:STANDARD",
        "END:VTIMEZONE",
    ]


def _dt_prop(name: str, dt: datetime, tzid: str, known_zones: set[str]) -> str:
    # unknown zone names fall back to floating local time
    if tzid in known_zones:
        return f"{name};TZID={tzid}:{_dt_local(dt)}"
    return f"{name}:{_dt_local(dt)}"


def _uid(ev: EventDescriptor) -> str:
    seed = "|".join([ev.title, ev.location, ev.start.isoformat(), ev.start.timezone])
    digest = hashlib.sha1(seed.encode("utf-8")).hexdigest()[:16]
    return f"{digest}@course2cal"


def event_lines(ev: EventDescriptor, dtstamp: str, known_zones: set[str]) -> list[str]:
    """
    VEVENT lines for one descriptor (without the surrounding VCALENDAR).
    """
    lines: list[str] = []
    lines.append("BEGIN:VEVENT")
    lines.append(f"UID:{_uid(ev)}")
    lines.append(f"DTSTAMP:{dtstamp}")
    lines.append(_dt_prop("DTSTART", ev.start.instant, ev.start.timezone, known_zones))
    lines.append(_dt_prop("DTEND", ev.end.instant, ev.end.timezone, known_zones))
    lines.extend(ev.recurrence_lines())
    lines.append(f"SUMMARY:{_ics_escape(ev.title)}")
    if ev.location:
        lines.append(f"LOCATION:{_ics_escape(ev.location)}")
    if ev.description:
        lines.append(f"DESCRIPTION:{_ics_escape(ev.description)}")
    if ev.reminder_minutes > 0:
        lines.append("BEGIN:VALARM")
        lines.append("ACTION:DISPLAY")
        lines.append(f"DESCRIPTION:{_ics_escape(ev.title)}")
        lines.append(f"TRIGGER:-PT{ev.reminder_minutes}M")
        lines.append("END:VALARM")
    lines.append("END:VEVENT")
    return lines


def export_events_to_ics(events: Iterable[EventDescriptor], out_path: str | Path) -> int:
    """
    Export events to an .ics file. Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append("PRODID:-//course2cal//EN")
    lines.append("CALSCALE:GREGORIAN")

    events = list(events)

    # one VTIMEZONE per zone name, before the events that use it
    known_zones: set[str] = set()
    for ev in events:
        for tzid, instant in ((ev.start.timezone, ev.start.instant), (ev.end.timezone, ev.end.instant)):
            if tzid in known_zones:
                continue
            vtimezone = timezone_lines(tzid, instant)
            if vtimezone is not None:
                lines.extend(vtimezone)
                known_zones.add(tzid)

    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")

    count = 0
    for ev in events:
        lines.extend(event_lines(ev, dtstamp, known_zones))
        count += 1

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    out.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")
    return count
