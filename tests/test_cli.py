"""
Tests for CLI entry points.

These tests focus on:
- Exit codes (empty parse, missing token, bad arguments)
- The export command writing a real .ics file
- Settings being read from / written to a temporary file
  (to avoid touching real user data during tests)
"""

import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from datetime import date
from pathlib import Path
from unittest import mock

from course2cal.cli import TOKEN_ENV, main
from course2cal.google_calendar import CalendarInfo, GoogleCalendarError
from course2cal.settings import load_settings

DATA = Path(__file__).resolve().parent / "data" / "courses.txt"


class TestCLI(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.settings = str(self.tmp / "settings.json")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, *argv: str) -> tuple:
        out = io.StringIO()
        with redirect_stdout(out), self.assertRaises(SystemExit) as ctx:
            main(["--settings", self.settings, *argv])
        return ctx.exception.code, out.getvalue()

    def test_parse_sample(self) -> None:
        code, out = self._run("parse", str(DATA))
        self.assertEqual(code, 0)
        self.assertIn("微積分甲上", out)

    def test_parse_garbage_exits_nonzero(self) -> None:
        p = self.tmp / "garbage.txt"
        p.write_text("nothing to see here\n", encoding="utf-8")
        code, out = self._run("parse", str(p))
        self.assertEqual(code, 1)
        self.assertIn("No courses found", out)

    def test_missing_input_file(self) -> None:
        code, _ = self._run("timetable", str(self.tmp / "missing.txt"))
        self.assertEqual(code, 1)

    def test_timetable(self) -> None:
        code, _ = self._run("timetable", str(DATA))
        self.assertEqual(code, 0)

    def test_export_ics(self) -> None:
        out_file = self.tmp / "out.ics"
        code, _ = self._run("export", str(DATA), str(out_file), "--start", "2025-09-01", "--reminder", "0")
        self.assertEqual(code, 0)

        text = out_file.read_text(encoding="utf-8")
        self.assertEqual(text.count("BEGIN:VEVENT"), 3)
        self.assertIn("DTSTART;TZID=Asia/Taipei:20250901T081000", text)
        self.assertIn("DTSTART;TZID=Asia/Taipei:20250905T182500", text)
        self.assertNotIn("VALARM", text)

    def test_bad_start_date_is_usage_error(self) -> None:
        code, _ = self._run("export", str(DATA), "out.ics", "--start", "2025-13-01")
        self.assertEqual(code, 2)

    def test_config_set_and_show(self) -> None:
        code, _ = self._run("config", "set", "--start", "2025-02-17", "--reminder", "5")
        self.assertEqual(code, 0)

        config = load_settings(self.settings)
        self.assertEqual(config.start_date, date(2025, 2, 17))
        self.assertEqual(config.reminder_minutes, 5)

        code, out = self._run("config", "show")
        self.assertEqual(code, 0)
        self.assertIn("2025-02-17", out)

    def test_google_without_token(self) -> None:
        with mock.patch.dict(os.environ, {TOKEN_ENV: ""}):
            code, out = self._run("google", str(DATA))
        self.assertEqual(code, 1)
        self.assertIn("access token", out)

    def test_google_export_uses_client(self) -> None:
        with mock.patch("course2cal.cli.GoogleCalendarClient") as client_cls:
            client = client_cls.return_value
            client.list_calendars.return_value = [
                CalendarInfo("work", "Work"),
                CalendarInfo("me@example.com", "Me", True),
            ]
            code, out = self._run("google", str(DATA), "--token", "tok", "--start", "2025-09-01")

        self.assertEqual(code, 0)
        client_cls.assert_called_once_with("tok")
        self.assertEqual(client.insert_event.call_count, 3)
        for call in client.insert_event.call_args_list:
            self.assertEqual(call.args[0], "me@example.com")
        self.assertIn("Exported 3 courses.", out)

    def test_google_explicit_calendar_id(self) -> None:
        with mock.patch("course2cal.cli.GoogleCalendarClient") as client_cls:
            client = client_cls.return_value
            code, _ = self._run("google", str(DATA), "--token", "tok", "--calendar-id", "school")

        self.assertEqual(code, 0)
        client.list_calendars.assert_not_called()
        self.assertEqual(client.insert_event.call_args.args[0], "school")

    def test_google_falls_back_to_primary_when_listing_fails(self) -> None:
        with mock.patch("course2cal.cli.GoogleCalendarClient") as client_cls:
            client = client_cls.return_value
            client.list_calendars.side_effect = GoogleCalendarError("403 forbidden")
            code, _ = self._run("google", str(DATA), "--token", "tok")

        self.assertEqual(code, 0)
        self.assertEqual(client.insert_event.call_args.args[0], "primary")

    def test_google_only_by_index(self) -> None:
        with mock.patch("course2cal.cli.GoogleCalendarClient") as client_cls:
            client = client_cls.return_value
            client.list_calendars.return_value = []
            code, _ = self._run("google", str(DATA), "--token", "tok", "--only", "3")

        self.assertEqual(code, 0)
        self.assertEqual(client.insert_event.call_count, 1)
        self.assertEqual(client.insert_event.call_args.args[1].title, "普通物理學")

    def test_export_skip_by_name(self) -> None:
        out_file = self.tmp / "out.ics"
        code, _ = self._run("export", str(DATA), str(out_file), "--start", "2025-09-01", "--skip", "普通物理學")
        self.assertEqual(code, 0)

        text = out_file.read_text(encoding="utf-8")
        self.assertEqual(text.count("BEGIN:VEVENT"), 2)
        self.assertNotIn("普通物理學", text)

    def test_export_only_and_skip(self) -> None:
        out_file = self.tmp / "out.ics"
        code, _ = self._run(
            "export", str(DATA), str(out_file), "--start", "2025-09-01", "--only", "微積分甲上", "--skip", "2"
        )
        self.assertEqual(code, 0)

        text = out_file.read_text(encoding="utf-8")
        self.assertEqual(text.count("BEGIN:VEVENT"), 1)
        self.assertIn("DTSTART;TZID=Asia/Taipei:20250901T081000", text)

    def test_export_everything_skipped(self) -> None:
        out_file = self.tmp / "out.ics"
        code, out = self._run("export", str(DATA), str(out_file), "--only", "線性代數")
        self.assertEqual(code, 1)
        self.assertIn("No events to export.", out)
        self.assertFalse(out_file.exists())

    def test_calendars_create(self) -> None:
        with mock.patch("course2cal.cli.GoogleCalendarClient") as client_cls:
            client = client_cls.return_value
            client.create_calendar.return_value = CalendarInfo("new@group.calendar.google.com", "NTU 114-1")
            code, out = self._run("calendars", "--token", "tok", "--create", "NTU 114-1")

        self.assertEqual(code, 0)
        client.create_calendar.assert_called_once_with("NTU 114-1", "Asia/Taipei")
        client.list_calendars.assert_not_called()
        self.assertIn("new@group.calendar.google.com", out)

    def test_calendars_create_with_timezone(self) -> None:
        with mock.patch("course2cal.cli.GoogleCalendarClient") as client_cls:
            client = client_cls.return_value
            client.create_calendar.return_value = CalendarInfo("x", "Term")
            code, _ = self._run("calendars", "--token", "tok", "--create", "Term", "--timezone", "Asia/Tokyo")

        self.assertEqual(code, 0)
        client.create_calendar.assert_called_once_with("Term", "Asia/Tokyo")


if __name__ == "__main__":
    unittest.main()
