from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True, slots=True)
class BreakInterval:
    start: str
    end: str


def parse_hhmm_minutes(value: str | None) -> int | None:
    """Parse ``HH:MM`` (seconds are tolerated and ignored) into minutes after midnight.

    Returns ``None`` for anything that is not a well formed clock time.
    """
    if not value or not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    if len(parts) < 2:
        return None
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError:
        return None
    if not (0 <= hours <= 24 and 0 <= minutes < 60):
        return None
    return hours * 60 + minutes


def hours_between(start: str | None, end: str | None) -> float:
    start_minutes = parse_hhmm_minutes(start)
    end_minutes = parse_hhmm_minutes(end)
    if start_minutes is None or end_minutes is None:
        return 0.0
    if end_minutes <= start_minutes:
        # end on or before start means the window crosses midnight
        end_minutes += MINUTES_PER_DAY
    return (end_minutes - start_minutes) / 60


def break_hours(has_break: bool, break_start: str | None, break_end: str | None) -> float:
    if not has_break or not break_start or not break_end:
        return 0.0
    return hours_between(break_start, break_end)


def interval_hours(start: str | None, end: str | None) -> float:
    """Length of one recorded break interval.

    Unlike a shift window, an interval whose end equals its start is empty.
    """
    start_minutes = parse_hhmm_minutes(start)
    end_minutes = parse_hhmm_minutes(end)
    if start_minutes is None or end_minutes is None:
        return 0.0
    if end_minutes < start_minutes:
        end_minutes += MINUTES_PER_DAY
    return (end_minutes - start_minutes) / 60


def intervals_hours(intervals: Iterable[BreakInterval]) -> float:
    return sum((interval_hours(interval.start, interval.end) for interval in intervals), 0.0)


def assignment_break_hours(
    *,
    has_break: bool,
    break_start: str | None,
    break_end: str | None,
    intervals: Iterable[BreakInterval] = (),
) -> float:
    """Total scheduled break of an assignment.

    A recorded list of break intervals wins over the single legacy break window.
    """
    interval_list = list(intervals)
    if interval_list:
        return intervals_hours(interval_list)
    return break_hours(has_break, break_start, break_end)
