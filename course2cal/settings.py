"""
Persistent storage for the user's semester settings.

This module manages the file:

    ~/.course2cal/settings.json

It stores only what the occurrence engine needs (SemesterConfig):

    {"start_date": "2025-09-01", "reminder_minutes": 10, "timezone": "Asia/Taipei"}

The parser and the engine never read this file themselves; the CLI loads it
and passes the resulting SemesterConfig in explicitly.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any

from course2cal.model import SemesterConfig

logger = logging.getLogger(__name__)

SETTINGS_ENV = "COURSE2CAL_SETTINGS"

DEFAULT_REMINDER_MINUTES = 10
DEFAULT_TIMEZONE = "Asia/Taipei"


def _default_settings_path() -> Path:
    """
    Return the settings path, honouring the COURSE2CAL_SETTINGS variable.

    Using a function instead of a constant makes testing easier,
    because tests can override the path.
    """
    override = os.environ.get(SETTINGS_ENV)
    if override:
        return Path(override)
    return Path.home() / ".course2cal" / "settings.json"


def default_settings() -> SemesterConfig:
    return SemesterConfig(
        start_date=date.today(),
        reminder_minutes=DEFAULT_REMINDER_MINUTES,
        timezone=DEFAULT_TIMEZONE,
    )


def _config_from_dict(data: Any) -> SemesterConfig:
    config = default_settings()
    if not isinstance(data, dict):
        return config

    raw_start = data.get("start_date")
    if isinstance(raw_start, str):
        try:
            config = replace(config, start_date=date.fromisoformat(raw_start.strip()))
        except ValueError:
            logger.warning("Ignoring invalid start_date in settings: %r", raw_start)

    raw_reminder = data.get("reminder_minutes")
    if isinstance(raw_reminder, int) and not isinstance(raw_reminder, bool) and raw_reminder >= 0:
        config = replace(config, reminder_minutes=raw_reminder)

    raw_tz = data.get("timezone")
    if isinstance(raw_tz, str) and raw_tz.strip():
        config = replace(config, timezone=raw_tz.strip())

    return config


def load_settings(path: str | Path | None = None) -> SemesterConfig:
    """
    Load SemesterConfig from settings.json.

    Returns defaults if the file does not exist or is invalid; fields that are
    missing or broken fall back individually.
    """
    settings_path = Path(path) if path is not None else _default_settings_path()

    # First run: nothing saved yet
    if not settings_path.exists():
        return default_settings()

    try:
        data = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Could not read settings from %s, using defaults", settings_path)
        return default_settings()

    return _config_from_dict(data)


def save_settings(config: SemesterConfig, path: str | Path | None = None) -> Path:
    """
    Save SemesterConfig to settings.json. Creates parent directories if needed.
    """
    settings_path = Path(path) if path is not None else _default_settings_path()
    settings_path.parent.mkdir(parents=True, exist_ok=True)

    payload = {
        "start_date": config.start_date.isoformat(),
        "reminder_minutes": config.reminder_minutes,
        "timezone": config.timezone,
    }
    settings_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return settings_path
