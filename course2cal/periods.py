"""
NTU class-period clock.

Periods 0-10 are the daytime slots, 11-14 are the evening slots shown as
A-D on the portal. The table is the university's timetable; the gaps between
slots are irregular, so it is not computed.
"""

from __future__ import annotations

from datetime import time

MIN_PERIOD = 0
MAX_PERIOD = 14

# Sentinel for periods outside the table
MIDNIGHT = time(0, 0)

LETTER_PERIODS: dict[str, int] = {"A": 11, "B": 12, "C": 13, "D": 14}

_PERIOD_TABLE: dict[int, tuple[time, time]] = {
    0: (time(7, 10), time(8, 0)),
    1: (time(8, 10), time(9, 0)),
    2: (time(9, 10), time(10, 0)),
    3: (time(10, 20), time(11, 10)),
    4: (time(11, 20), time(12, 10)),
    5: (time(12, 20), time(13, 10)),
    6: (time(13, 20), time(14, 10)),
    7: (time(14, 20), time(15, 10)),
    8: (time(15, 30), time(16, 20)),
    9: (time(16, 30), time(17, 20)),
    10: (time(17, 30), time(18, 20)),
    11: (time(18, 25), time(19, 15)),  # A
    12: (time(19, 20), time(20, 10)),  # B
    13: (time(20, 15), time(21, 5)),  # C
    14: (time(21, 10), time(22, 0)),  # D
}


def start_of_period(period: int) -> time:
    return _PERIOD_TABLE.get(period, (MIDNIGHT, MIDNIGHT))[0]


def end_of_period(period: int) -> time:
    return _PERIOD_TABLE.get(period, (MIDNIGHT, MIDNIGHT))[1]


def period_label(period: int) -> str:
    """
    Display text for a period: 11 -> "A" ... 14 -> "D", others as numbers.
    """
    for letter, index in LETTER_PERIODS.items():
        if index == period:
            return letter
    return str(period)
