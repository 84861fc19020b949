"""Half-open time intervals anchored to a restaurant's calendar day."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date as date_type
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


_TIME_OF_DAY_PATTERN = re.compile(r"^(?P<hours>[01]\d|2[0-4]):(?P<minutes>[0-5]\d)$")

FULL_DAY_WINDOW = ("00:00", "24:00")


class InvalidIntervalError(ValueError):
    """Raised when interval bounds are malformed or inverted."""


@dataclass(frozen=True)
class TimeSlot:
    """Interval `[start, end)` between two timezone-aware instants."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise InvalidIntervalError("interval bounds must be timezone-aware")
        if self.start >= self.end:
            raise InvalidIntervalError(
                f"interval start {self.start.isoformat()} must be before end {self.end.isoformat()}"
            )

    @property
    def duration_minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60.0

    def is_before(self, other: "TimeSlot") -> bool:
        return self.end <= other.start

    def is_after(self, other: "TimeSlot") -> bool:
        return self.start >= other.end

    def overlaps(self, other: "TimeSlot") -> bool:
        return not (self.is_before(other) or self.is_after(other))

    def contains(self, other: "TimeSlot") -> bool:
        return self.start <= other.start and other.end <= self.end

    def intersection(self, other: "TimeSlot") -> Optional["TimeSlot"]:
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if start >= end:
            return None
        return TimeSlot(start=start, end=end)


@dataclass(frozen=True)
class TimeWindow:
    """Time-of-day pair (`HH:MM`) resolved against a date later on."""

    start: str
    end: str


def resolve_timezone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidIntervalError(f"unknown timezone {name!r}") from exc


def parse_date(value: str) -> date_type:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise InvalidIntervalError("date must follow YYYY-MM-DD format") from exc


def parse_time_of_day(value: str) -> tuple[int, int]:
    match = _TIME_OF_DAY_PATTERN.fullmatch(value)
    if match is None:
        raise InvalidIntervalError(f"time {value!r} must follow HH:MM 24-hour format")
    hours = int(match.group("hours"))
    minutes = int(match.group("minutes"))
    if hours == 24 and minutes != 0:
        raise InvalidIntervalError("24:00 is the only valid time in hour 24")
    return hours, minutes


def parse_time(day: str, time_of_day: str, tz: tzinfo) -> datetime:
    """Build an aware instant for `time_of_day` on `day`; `24:00` is next midnight."""
    calendar_day = parse_date(day)
    hours, minutes = parse_time_of_day(time_of_day)
    if hours == 24:
        midnight = datetime.combine(calendar_day + timedelta(days=1), time(0, 0), tzinfo=tz)
        return midnight
    return datetime.combine(calendar_day, time(hours, minutes), tzinfo=tz)


def build_search_windows(
    day: str,
    windows: Sequence[TimeWindow],
    tz: tzinfo,
) -> list[TimeSlot]:
    """Resolve time-of-day windows for `day`; no windows means the whole day."""
    if not windows:
        windows = [TimeWindow(*FULL_DAY_WINDOW)]
    return [
        TimeSlot(
            start=to_utc(parse_time(day, window.start, tz)),
            end=to_utc(parse_time(day, window.end, tz)),
        )
        for window in windows
    ]


def to_utc(moment: datetime) -> datetime:
    return moment.astimezone(timezone.utc)


def sort_slots(slots: Iterable[TimeSlot]) -> list[TimeSlot]:
    return sorted(slots, key=lambda slot: (slot.start, slot.end))
