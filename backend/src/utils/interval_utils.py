"""
Interval arithmetic over half-open [start, end) time-of-day ranges.

Intervals are (start, end) tuples of minutes since midnight. Helpers taking
``time`` values convert at the boundary so callers can stay in either unit.
"""

from datetime import time
from typing import Iterable, List, Tuple

from utils.datetime_utils import minutes_to_time, time_to_minutes

Interval = Tuple[int, int]


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Strict half-open overlap: touching endpoints do not overlap."""
    return a_start < b_end and a_end > b_start


def times_overlap(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    """overlaps() for time-of-day values."""
    return overlaps(
        time_to_minutes(a_start), time_to_minutes(a_end),
        time_to_minutes(b_start), time_to_minutes(b_end),
    )


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """
    Merge overlapping or adjacent intervals.

    Empty intervals (end <= start) are dropped. The result is sorted and
    pairwise disjoint with a gap between consecutive intervals.
    """
    ordered = sorted((s, e) for s, e in intervals if e > s)
    if not ordered:
        return []

    merged: List[Interval] = []
    current_start, current_end = ordered[0]
    for start, end in ordered[1:]:
        if start <= current_end:
            current_end = max(current_end, end)
        else:
            merged.append((current_start, current_end))
            current_start, current_end = start, end
    merged.append((current_start, current_end))
    return merged


def subtract(window: Interval, blocked: Iterable[Interval]) -> List[Interval]:
    """
    Return the ordered sub-intervals of ``window`` not covered by ``blocked``.

    Example:
        subtract((540, 720), [(600, 630)]) == [(540, 600), (630, 720)]
    """
    window_start, window_end = window
    if window_end <= window_start:
        return []

    free: List[Interval] = []
    cursor = window_start
    for start, end in merge_intervals(blocked):
        if end <= cursor:
            continue
        if start >= window_end:
            break
        if start > cursor:
            free.append((cursor, start))
        cursor = max(cursor, end)
        if cursor >= window_end:
            break

    if cursor < window_end:
        free.append((cursor, window_end))
    return free


def to_minutes_interval(start: time, end: time) -> Interval:
    """Convert a (time, time) pair to a minutes interval."""
    return time_to_minutes(start), time_to_minutes(end)


def to_time_interval(interval: Interval) -> Tuple[time, time]:
    """Convert a minutes interval back to a (time, time) pair."""
    return minutes_to_time(interval[0]), minutes_to_time(interval[1])
