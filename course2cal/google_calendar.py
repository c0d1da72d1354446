"""Thin Google Calendar API client for pushing course events.

Sign-in is not handled here: the caller passes an OAuth access token that
already carries the calendar scope.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable
from urllib.parse import quote

import requests

from course2cal.model import EventDescriptor, ExportReport

logger = logging.getLogger(__name__)

API_BASE = "https://www.googleapis.com/calendar/v3"
PRIMARY = "primary"


class GoogleCalendarError(RuntimeError):
    """Raised when a Google Calendar request cannot be completed."""


@dataclass(frozen=True)
class CalendarInfo:
    id: str
    summary: str
    primary: bool = False

    @classmethod
    def from_api(cls, item: dict) -> "CalendarInfo":
        return cls(
            id=str(item.get("id", "")),
            summary=str(item.get("summary", "")),
            primary=bool(item.get("primary", False)),
        )


def default_calendar_id(calendars: list[CalendarInfo]) -> str:
    """
    The user's primary calendar, else the first one, else "primary".
    """
    for cal in calendars:
        if cal.primary:
            return cal.id
    if calendars:
        return calendars[0].id
    return PRIMARY


class GoogleCalendarClient:
    def __init__(
        self,
        token: str,
        session: requests.Session | None = None,
        base_url: str = API_BASE,
        timeout: float = 30,
    ) -> None:
        if not token:
            raise GoogleCalendarError("No Google access token provided")
        self.token = token
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, json_body: dict | None = None) -> dict:
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"Authorization": f"Bearer {self.token}"}
        logger.debug("%s %s", method, url)

        try:
            resp = self.session.request(method, url, headers=headers, json=json_body, timeout=self.timeout)
        except requests.RequestException as exc:
            raise GoogleCalendarError(f"{method} {path} failed: {exc}") from exc

        if resp.status_code >= 400:
            raise GoogleCalendarError(f"{resp.status_code} from Google Calendar: {resp.text}")
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise GoogleCalendarError(f"Invalid JSON from Google Calendar: {resp.text}") from exc

    def list_calendars(self) -> list[CalendarInfo]:
        data = self._request("GET", "users/me/calendarList")
        return [CalendarInfo.from_api(item) for item in data.get("items", [])]

    def create_calendar(self, name: str, timezone: str) -> CalendarInfo:
        data = self._request("POST", "calendars", json_body={"summary": name, "timeZone": timezone})
        return CalendarInfo.from_api(data)

    def insert_event(self, calendar_id: str, event: EventDescriptor) -> dict[str, object]:
        path = f"calendars/{quote(calendar_id or PRIMARY, safe='')}/events"
        return self._request("POST", path, json_body=event.to_google_payload())


def export_events(
    client: GoogleCalendarClient,
    events: Iterable[EventDescriptor],
    calendar_id: str = PRIMARY,
) -> ExportReport:
    """
    Inserts every event; one failed insert never stops the others.
    """
    report = ExportReport()
    for event in events:
        try:
            client.insert_event(calendar_id, event)
        except GoogleCalendarError as exc:
            logger.warning("Export of %r failed: %s", event.title, exc)
            report.failed += 1
            report.errors.append(f"{event.title}: {exc}")
            continue
        report.succeeded += 1

    logger.info("Google export: %d succeeded, %d failed", report.succeeded, report.failed)
    return report
