# barber_booking/core.py

"""Minute-of-day interval math for breaks and appointments.

Intervals are half-open ``[start, end)`` in minutes since local midnight.
Anything that runs past midnight is split into a piece on its own day and a
piece starting at 0 on the following day. ``DayInterval`` tags each piece
with a day offset relative to the candidate appointment's civil day
(-1 = previous day, 0 = same day, 1 = next day).
"""

from typing import Iterable, List, NamedTuple, Optional

MINUTES_PER_DAY = 1440


class DayInterval(NamedTuple):
    day: int
    start: int
    end: int


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    return a_start < b_end and a_end > b_start


def to_minutes(value) -> Optional[int]:
    """'HH:MM[:SS]' -> minutes since midnight, None if unreadable."""
    if value is None:
        return None
    parts = str(value).strip().split(":")
    try:
        hh = int(parts[0])
        mm = int(parts[1]) if len(parts) > 1 else 0
    except ValueError:
        return None
    if not (0 <= hh <= 24 and 0 <= mm < 60):
        return None
    total = hh * 60 + mm
    if total > MINUTES_PER_DAY:
        return None
    return total


def split_break(start_min: int, end_min: int, day: int = 0) -> List[DayInterval]:
    """Split a break declared on ``day``; start > end means it crosses midnight."""
    if start_min > end_min:
        return [DayInterval(day, start_min, MINUTES_PER_DAY), DayInterval(day + 1, 0, end_min)]
    return [DayInterval(day, start_min, end_min)]


def split_appointment(start_min: int, duration: int, day: int = 0) -> List[DayInterval]:
    end_min = start_min + max(0, duration)
    if end_min <= MINUTES_PER_DAY:
        return [DayInterval(day, start_min, end_min)]
    return [DayInterval(day, start_min, MINUTES_PER_DAY), DayInterval(day + 1, 0, end_min - MINUTES_PER_DAY)]


def has_conflict(appt_intervals: Iterable[DayInterval], break_intervals: Iterable[DayInterval]) -> bool:
    break_intervals = list(break_intervals)
    for a in appt_intervals:
        for b in break_intervals:
            if a.day == b.day and overlaps(a.start, a.end, b.start, b.end):
                return True
    return False
