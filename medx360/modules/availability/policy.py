"""
Conflict policy shared by the availability resolver and the booking scheduler.

Times are handled as minutes past midnight and every interval is half-open,
``(start, end)`` meaning ``[start, end)``, so two back-to-back appointments
never share a minute.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable, Sequence

from medx360.modules.schedules.schemas import AvailabilityException

Interval = tuple[int, int]

MINUTES_PER_DAY = 24 * 60
# whole-day availability runs to 23:59, matching the admin UI's day picker
END_OF_DAY = MINUTES_PER_DAY - 1
FULL_DAY: Interval = (0, END_OF_DAY)

OCCUPYING_STATUSES = frozenset({"pending", "confirmed"})


def to_minutes(t: time) -> int:
    """Minute of day; seconds are truncated."""
    return t.hour * 60 + t.minute


def to_time(minutes: int) -> time:
    if minutes >= MINUTES_PER_DAY:
        raise ValueError(f"minute {minutes} is past the end of the day")
    return time(minutes // 60, minutes % 60)


def occupies_slot(status: str) -> bool:
    return status in OCCUPYING_STATUSES


def overlaps(a: Interval, b: Interval) -> bool:
    return a[0] < b[1] and b[0] < a[1]


def contains(outer: Interval, inner: Interval) -> bool:
    return outer[0] <= inner[0] and inner[1] <= outer[1]


def merge(intervals: Iterable[Interval]) -> list[Interval]:
    """Sort and coalesce overlapping or touching intervals; empty ones are dropped."""
    out: list[Interval] = []
    for s, e in sorted(i for i in intervals if i[0] < i[1]):
        if out and s <= out[-1][1]:
            if e > out[-1][1]:
                out[-1] = (out[-1][0], e)
        else:
            out.append((s, e))
    return out


def add(base: Sequence[Interval], extra: Iterable[Interval]) -> list[Interval]:
    return merge([*base, *extra])


def subtract(base: Sequence[Interval], cut: Iterable[Interval]) -> list[Interval]:
    """Remove every `cut` range from `base`, splitting intervals where needed."""
    result = merge(base)
    for cs, ce in merge(cut):
        nxt: list[Interval] = []
        for s, e in result:
            if not overlaps((s, e), (cs, ce)):
                nxt.append((s, e))
                continue
            if s < cs:
                nxt.append((s, cs))
            if ce < e:
                nxt.append((ce, e))
        result = nxt
    return result


def widen(interval: Interval, buffer_minutes: int) -> Interval:
    """Pad an occupied interval by the buffer on both sides, clamped to the day."""
    s, e = interval
    return max(0, s - buffer_minutes), min(MINUTES_PER_DAY, e + buffer_minutes)


def apply_exceptions(base: Sequence[Interval], exceptions: Iterable[AvailabilityException]) -> list[Interval]:
    """
    Combine the weekly base set with the exceptions of one date.

    Precedence, highest first:
      1. whole-day unavailable: nothing is bookable that day
      2. whole-day available: base becomes the full day
      3. partial unavailable: subtracted last, so it beats (4)
      4. partial available: added to the base
    """
    whole_day = [x for x in exceptions if x.is_whole_day]
    partial = [x for x in exceptions if not x.is_whole_day]

    if any(not x.is_available for x in whole_day):
        return []
    result = [FULL_DAY] if whole_day else merge(base)

    extra = [x.interval for x in partial if x.is_available]
    blocked = [x.interval for x in partial if not x.is_available]
    return subtract(add(result, extra), blocked)


def discretize(intervals: Sequence[Interval], duration_minutes: int, not_before: int = 0) -> list[Interval]:
    """Cut each interval into fixed-length slots aligned to its own start."""
    slots: list[Interval] = []
    for s, e in merge(intervals):
        cur = s
        while cur + duration_minutes <= e:
            if cur >= not_before:
                slots.append((cur, cur + duration_minutes))
            cur += duration_minutes
    return slots


def earliest_start(day: date, now: datetime, lead_minutes: int) -> int:
    """
    First minute of `day` that honours the lead time, relative to the naive
    local `now`. Returns 0 when the whole day lies after the cutoff and
    MINUTES_PER_DAY when the whole day is too soon.
    """
    cutoff = now + timedelta(minutes=lead_minutes)
    day_start = datetime.combine(day, time.min)
    if cutoff <= day_start:
        return 0
    delta = cutoff - day_start
    minutes = int(delta.total_seconds() // 60)
    # a cutoff of 09:00:30 must not admit the 09:00 slot
    if delta.total_seconds() % 60:
        minutes += 1
    return min(minutes, MINUTES_PER_DAY)
