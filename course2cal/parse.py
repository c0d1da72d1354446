"""
Parsing (pasted portal text -> CourseSession records).

- Reads the text copied from the NTU course portal ("我的課表" / selected courses)
- Every course is a fixed block of lines:

      course name
      teacher
      weekday + periods      (e.g. "一 1,2 / 三 5,6")
      location
      details...             (serial no., course code, credits, capacity, notes)
      已選上                  (or end of text)

- Each weekday segment of the time line becomes exactly ONE CourseSession

Important rules:
- Malformed content never raises: it just produces fewer sessions
- raw_time keeps the full time line on every sibling session
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path

from bs4 import BeautifulSoup

from course2cal.model import CourseSession
from course2cal.periods import LETTER_PERIODS

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Grammar
# ---------------------------------------------------------------------------

# 日 = Sunday = 1 ... 六 = Saturday = 7; checked in this order
WEEKDAY_TOKENS: dict[str, int] = {
    "日": 1,
    "一": 2,
    "二": 3,
    "三": 4,
    "四": 5,
    "五": 6,
    "六": 7,
}

MONDAY = 2

TERMINATOR = "已選上"

# details stop at a line starting with the terminator, so a block with no
# details at all does not run into the next course
_BLOCK_RE = re.compile(
    r"(?P<name>.+)\n"
    r"(?P<teacher>.+)\n"
    r"(?P<time>[一二三四五六日][^\n]+)\n"
    r"(?P<location>.+)\n"
    r"(?P<details>[\s\S]*?)"
    r"(?=^" + TERMINATOR + r"|\Z)",
    re.MULTILINE,
)

_CREDITS_MARK = "學分"
_DIGITS_RE = re.compile(r"\d+")
# signed literals such as "+3" are accepted, like a plain int() of the token
_PERIOD_NUMBER_RE = re.compile(r"[+-]?[0-9]+")
_CAPACITY_RE = re.compile(r"^\d+\s*人$")


@dataclass(frozen=True)
class SegmentPolicy:
    """
    Fallbacks applied while reading one weekday+period segment.

    With strict=False (the default) a segment without a weekday character is
    read as default_weekday, and unknown period tokens are dropped.
    With strict=True either case empties the period list, so the segment
    produces no session.
    """

    default_weekday: int = MONDAY
    letter_periods: dict[str, int] = field(default_factory=lambda: dict(LETTER_PERIODS))
    strict: bool = False


DEFAULT_POLICY = SegmentPolicy()


# ---------------------------------------------------------------------------
# Time segment parsing
# ---------------------------------------------------------------------------


def _parse_period_token(token: str, policy: SegmentPolicy) -> int | None:
    if _PERIOD_NUMBER_RE.fullmatch(token):
        return int(token)
    return policy.letter_periods.get(token)


def parse_time_segment(segment: str, policy: SegmentPolicy = DEFAULT_POLICY) -> tuple[int, list[int]]:
    """
    Parses one segment such as "一 1,2" or "五 A,B,C,D" into (weekday, periods).

    Periods are returned in the order they appear in the text.
    """
    weekday: int | None = None
    for token, value in WEEKDAY_TOKENS.items():
        if token in segment:
            weekday = value
            break

    if weekday is None:
        if policy.strict:
            return policy.default_weekday, []
        weekday = policy.default_weekday

    parts = segment.split()
    if not parts:
        return weekday, []

    periods: list[int] = []
    for raw in parts[-1].split(","):
        period = _parse_period_token(raw.strip(), policy)
        if period is None:
            if policy.strict:
                return weekday, []
            logger.debug("Dropping unknown period token %r in %r", raw, segment)
            continue
        periods.append(period)

    return weekday, periods


def split_time_segments(raw_time: str) -> list[str]:
    """
    "一 1,2 / 三 5,6" -> ["一 1,2", "三 5,6"] (empty segments removed)
    """
    segments = [s.strip() for s in raw_time.split("/")]
    return [s for s in segments if s]


# ---------------------------------------------------------------------------
# Details block
# ---------------------------------------------------------------------------


def _detail_lines(details: str) -> list[str]:
    lines = [line.strip() for line in details.splitlines()]
    return [line for line in lines if line]


def extract_credits(lines: list[str]) -> int | None:
    """
    Credits come from the first 學分 line that carries a number, e.g.
    "3.0 學分" -> 3. A header like "學分/類別" is skipped.
    """
    for line in lines:
        if _CREDITS_MARK not in line:
            continue
        match = _DIGITS_RE.search(line)
        if match:
            return int(match.group())
    return None


def extract_notes(lines: list[str]) -> str:
    """
    Everything after the LAST capacity line ("138 人") is free-text notes.
    """
    last_capacity: int | None = None
    for idx, line in enumerate(lines):
        if _CAPACITY_RE.match(line):
            last_capacity = idx

    if last_capacity is None:
        return ""
    return "\n".join(lines[last_capacity + 1 :])


# ---------------------------------------------------------------------------
# Block parsing (CORE LOGIC)
# ---------------------------------------------------------------------------


def _normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _sessions_from_block(match: re.Match, policy: SegmentPolicy) -> list[CourseSession]:
    raw_name = match.group("name")
    name_lines = raw_name.splitlines()
    name = (name_lines[-1] if name_lines else raw_name).strip()

    teacher = match.group("teacher").strip()
    raw_time = match.group("time").strip()
    location = match.group("location").strip()

    lines = _detail_lines(match.group("details"))
    credits = extract_credits(lines)
    notes = extract_notes(lines)

    sessions: list[CourseSession] = []
    for segment in split_time_segments(raw_time):
        weekday, periods = parse_time_segment(segment, policy)
        if not periods:
            logger.debug("Skipping segment %r of %r: no usable periods", segment, name)
            continue

        sessions.append(
            CourseSession(
                name=name,
                teacher=teacher,
                location=location,
                raw_time=raw_time,
                weekday=weekday,
                periods=sorted(periods),
                credits=credits,
                notes=notes,
            )
        )

    return sessions


def parse_course_text(text: str, policy: SegmentPolicy = DEFAULT_POLICY) -> list[CourseSession]:
    """
    Parses the whole pasted buffer and returns all sessions in text order.

    Returns an empty list if no course block could be recognised.
    """
    if text is None:
        raise TypeError("text must be a string, not None")

    buffer = _normalize_newlines(text)

    sessions: list[CourseSession] = []
    blocks = 0
    for match in _BLOCK_RE.finditer(buffer):
        blocks += 1
        sessions.extend(_sessions_from_block(match, policy))

    if not blocks:
        logger.warning("No course blocks found in input (%d characters)", len(buffer))
    else:
        logger.debug("Matched %d course blocks -> %d sessions", blocks, len(sessions))

    return sessions


# ---------------------------------------------------------------------------
# Input loading
# ---------------------------------------------------------------------------


def html_to_text(html: str) -> str:
    """
    Turns a saved portal page into the same line layout a copy-paste gives.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()

    text = soup.get_text("\n").replace("\xa0", " ")
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


def load_course_text(path: str | Path) -> str:
    """
    Reads pasted text from a file ("-" = stdin). .html/.htm files are
    converted to plain text first.
    """
    if str(path) == "-":
        return sys.stdin.read()

    source = Path(path)
    text = source.read_text(encoding="utf-8")
    if source.suffix.lower() in (".html", ".htm"):
        return html_to_text(text)
    return text
