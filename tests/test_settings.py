"""
Unit tests for the semester settings file.

Storage contract:
- Missing/invalid file -> defaults
- Broken fields fall back one by one
- JSON schema: {"start_date": "YYYY-MM-DD", "reminder_minutes": int, "timezone": str}
"""

import json
import os
import tempfile
import unittest
from datetime import date
from pathlib import Path
from unittest import mock

from course2cal.model import SemesterConfig
from course2cal.settings import SETTINGS_ENV, load_settings, save_settings


class TestSettings(unittest.TestCase):
    def test_load_missing_file_returns_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            config = load_settings(Path(d) / "missing.json")
            self.assertIsInstance(config.start_date, date)
            self.assertEqual(config.reminder_minutes, 10)
            self.assertEqual(config.timezone, "Asia/Taipei")

    def test_save_and_load_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "nested" / "settings.json"
            config = SemesterConfig(start_date=date(2025, 9, 1), reminder_minutes=0, timezone="Europe/Zurich")
            save_settings(config, p)

            self.assertEqual(load_settings(p), config)

            data = json.loads(p.read_text(encoding="utf-8"))
            self.assertEqual(data, {"start_date": "2025-09-01", "reminder_minutes": 0, "timezone": "Europe/Zurich"})

    def test_corrupt_file_returns_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "settings.json"
            p.write_text("{not json", encoding="utf-8")
            self.assertEqual(load_settings(p).reminder_minutes, 10)

    def test_broken_fields_fall_back_individually(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "settings.json"
            p.write_text(
                json.dumps({"start_date": "2025-02-17", "reminder_minutes": -5, "timezone": ""}),
                encoding="utf-8",
            )
            config = load_settings(p)
            self.assertEqual(config.start_date, date(2025, 2, 17))
            self.assertEqual(config.reminder_minutes, 10)
            self.assertEqual(config.timezone, "Asia/Taipei")

    def test_env_override(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "env.json"
            with mock.patch.dict(os.environ, {SETTINGS_ENV: str(p)}):
                save_settings(SemesterConfig(start_date=date(2025, 9, 1)))
                self.assertTrue(p.exists())
                self.assertEqual(load_settings().start_date, date(2025, 9, 1))


if __name__ == "__main__":
    unittest.main()
