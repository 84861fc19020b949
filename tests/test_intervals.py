from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from backend.domain.intervals import (
    InvalidIntervalError,
    TimeSlot,
    TimeWindow,
    build_search_windows,
    parse_date,
    parse_time,
    resolve_timezone,
)


BA = resolve_timezone("America/Argentina/Buenos_Aires")


def _slot(start_hour: int, end_hour: int) -> TimeSlot:
    base = datetime(2025, 10, 22, tzinfo=timezone.utc)
    return TimeSlot(start=base + timedelta(hours=start_hour), end=base + timedelta(hours=end_hour))


def test_inverted_interval_raises():
    with pytest.raises(InvalidIntervalError):
        _slot(12, 10)


def test_empty_interval_raises():
    with pytest.raises(InvalidIntervalError):
        _slot(12, 12)


def test_naive_bounds_raise():
    with pytest.raises(InvalidIntervalError):
        TimeSlot(start=datetime(2025, 10, 22, 10), end=datetime(2025, 10, 22, 11))


def test_touching_intervals_do_not_overlap():
    first = _slot(10, 12)
    second = _slot(12, 14)
    assert first.is_before(second)
    assert second.is_after(first)
    assert not first.overlaps(second)
    assert first.intersection(second) is None


def test_overlap_and_intersection():
    first = _slot(10, 13)
    second = _slot(12, 14)
    assert first.overlaps(second)
    assert first.intersection(second) == _slot(12, 13)
    assert _slot(9, 15).contains(first)


def test_comparison_uses_absolute_instant_across_offsets():
    local = parse_time("2025-10-22", "20:30", BA)
    utc = datetime(2025, 10, 22, 23, 30, tzinfo=timezone.utc)
    assert local == utc
    assert TimeSlot(start=local, end=local + timedelta(minutes=45)).duration_minutes == 45


def test_parse_time_twenty_four_is_next_midnight():
    assert parse_time("2025-10-22", "24:00", BA) == datetime(2025, 10, 23, 0, 0, tzinfo=BA)


@pytest.mark.parametrize("value", ["7:00", "24:15", "12:60", "noon"])
def test_parse_time_rejects_malformed_values(value: str):
    with pytest.raises(InvalidIntervalError):
        parse_time("2025-10-22", value, BA)


def test_parse_date_rejects_bad_format():
    with pytest.raises(InvalidIntervalError):
        parse_date("22/10/2025")


def test_unknown_timezone_raises():
    with pytest.raises(InvalidIntervalError):
        resolve_timezone("Mars/Olympus_Mons")


def test_search_windows_default_to_full_day():
    (window,) = build_search_windows("2025-10-22", [], BA)
    assert window.start == datetime(2025, 10, 22, 0, 0, tzinfo=BA)
    assert window.end == datetime(2025, 10, 23, 0, 0, tzinfo=BA)
    assert window.duration_minutes == 24 * 60


def test_search_windows_reject_inverted_window():
    with pytest.raises(InvalidIntervalError):
        build_search_windows("2025-10-22", [TimeWindow(start="23:00", end="20:00")], BA)
