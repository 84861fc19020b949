from __future__ import annotations

import itertools
import random
from datetime import datetime, timedelta, timezone

from backend.domain.constraints import SLOT_MINUTES
from backend.domain.intervals import (
    TimeSlot,
    TimeWindow,
    build_search_windows,
    parse_time,
    resolve_timezone,
)
from backend.domain.models import Booking, BookingStatus, CandidateKind
from backend.services.gap_service import discretize_gaps, find_gaps, intersect_gaps


DATE = "2025-10-22"
BA = resolve_timezone("America/Argentina/Buenos_Aires")
UTC = timezone.utc
EVENING = [TimeWindow(start="20:00", end="23:45")]


def _at(hhmm: str, tz=BA) -> datetime:
    return parse_time(DATE, hhmm, tz)


def _booking(
    booking_id: str,
    table_ids: tuple[str, ...],
    start: str,
    end: str,
    status: BookingStatus = BookingStatus.CONFIRMED,
    tz=BA,
) -> Booking:
    start_at = _at(start, tz)
    end_at = _at(end, tz)
    return Booking(
        id=booking_id,
        restaurant_id="R1",
        sector_id="S1",
        table_ids=table_ids,
        party_size=2,
        start=start_at,
        end=end_at,
        duration_minutes=int((end_at - start_at).total_seconds() // 60),
        status=status,
    )


def _span(start: str, end: str, tz=BA) -> TimeSlot:
    return TimeSlot(start=_at(start, tz), end=_at(end, tz))


# --- find_gaps ---

def test_single_booking_leaves_one_long_enough_gap():
    bookings = [_booking("b1", ("T1",), "20:30", "21:15")]

    gaps = find_gaps("T1", bookings, DATE, 90, EVENING, BA)

    # 20:00-20:30 is only 30 minutes, so only the trailing gap survives.
    assert gaps == [_span("21:15", "23:45")]


def test_no_bookings_returns_whole_window():
    assert find_gaps("T1", [], DATE, 60, EVENING, BA) == [_span("20:00", "23:45")]


def test_no_windows_searches_full_day():
    bookings = [_booking("b1", ("T1",), "12:00", "13:00")]

    gaps = find_gaps("T1", bookings, DATE, 30, [], BA)

    assert gaps == [_span("00:00", "12:00"), _span("13:00", "24:00")]


def test_other_tables_and_cancelled_bookings_are_ignored():
    bookings = [
        _booking("b1", ("T2",), "20:00", "22:00"),
        _booking("b2", ("T1",), "20:00", "22:00", status=BookingStatus.CANCELLED),
    ]

    assert find_gaps("T1", bookings, DATE, 60, EVENING, BA) == [_span("20:00", "23:45")]


def test_combo_booking_blocks_each_member_table():
    bookings = [_booking("b1", ("T1", "T3"), "20:00", "21:00")]

    assert find_gaps("T3", bookings, DATE, 60, EVENING, BA) == [_span("21:00", "23:45")]


def test_booking_touching_window_start_does_not_shrink_gap():
    bookings = [_booking("b1", ("T1",), "19:00", "20:00")]

    assert find_gaps("T1", bookings, DATE, 60, EVENING, BA) == [_span("20:00", "23:45")]


def test_booking_starting_at_window_end_does_not_shrink_gap():
    bookings = [_booking("b1", ("T1",), "23:45", "24:00")]

    assert find_gaps("T1", bookings, DATE, 60, EVENING, BA) == [_span("20:00", "23:45")]


def test_overlapping_and_nested_bookings_are_absorbed():
    bookings = [
        _booking("b1", ("T1",), "20:30", "22:00"),
        _booking("b2", ("T1",), "20:45", "21:15"),
        _booking("b3", ("T1",), "21:30", "22:30"),
    ]

    gaps = find_gaps("T1", bookings, DATE, 15, EVENING, BA)

    assert gaps == [_span("20:00", "20:30"), _span("22:30", "23:45")]


def test_booking_straddling_window_bounds():
    windows = [TimeWindow(start="12:00", end="16:00")]
    bookings = [
        _booking("b1", ("T1",), "11:00", "12:30"),
        _booking("b2", ("T1",), "15:00", "17:00"),
    ]

    assert find_gaps("T1", bookings, DATE, 60, windows, BA) == [_span("12:30", "15:00")]


def test_each_window_is_swept_independently():
    windows = [TimeWindow(start="12:00", end="16:00"), TimeWindow(start="20:00", end="23:45")]
    bookings = [
        _booking("b1", ("T1",), "13:00", "14:00"),
        _booking("b2", ("T1",), "21:00", "22:00"),
    ]

    gaps = find_gaps("T1", bookings, DATE, 60, windows, BA)

    assert gaps == [
        _span("12:00", "13:00"),
        _span("14:00", "16:00"),
        _span("20:00", "21:00"),
        _span("22:00", "23:45"),
    ]


def test_gap_properties_hold_for_random_booking_sets():
    rng = random.Random(20251022)
    windows = [TimeWindow(start="12:00", end="16:00"), TimeWindow(start="20:00", end="23:45")]
    window_minutes = set(range(12 * 60, 16 * 60)) | set(range(20 * 60, 23 * 60 + 45))
    day_start = parse_time(DATE, "00:00", UTC)
    search_windows = build_search_windows(DATE, windows, UTC)

    def minute_offsets(slot: TimeSlot) -> set[int]:
        first = int((slot.start - day_start).total_seconds() // 60)
        last = int((slot.end - day_start).total_seconds() // 60)
        return set(range(first, last))

    for _ in range(200):
        bookings = []
        for index in range(rng.randint(0, 8)):
            start = rng.randrange(0, 24 * 60, 15)
            length = rng.choice([30, 45, 60, 90, 120])
            start_at = day_start + timedelta(minutes=start)
            bookings.append(
                Booking(
                    id=f"b{index}",
                    restaurant_id="R1",
                    sector_id="S1",
                    table_ids=("T1",),
                    party_size=2,
                    start=start_at,
                    end=start_at + timedelta(minutes=length),
                    duration_minutes=length,
                )
            )
        min_duration = rng.choice([0, 15, 60, 90])

        gaps = find_gaps("T1", bookings, DATE, min_duration, windows, UTC)

        assert gaps == sorted(gaps, key=lambda gap: gap.start)
        for left, right in zip(gaps, gaps[1:]):
            assert left.end <= right.start
        for gap in gaps:
            assert gap.duration_minutes >= min_duration
            assert minute_offsets(gap) <= window_minutes
            assert any(window.contains(gap) for window in search_windows)
            assert not any(gap.overlaps(booking.slot) for booking in bookings)

        if min_duration == 0:
            free = set().union(*(minute_offsets(gap) for gap in gaps))
            booked = set().union(*(minute_offsets(booking.slot) for booking in bookings))
            assert free | (booked & window_minutes) == window_minutes


# --- intersect_gaps ---

def test_intersection_of_two_tables():
    table_a = [TimeSlot(start=_at("20:00", UTC), end=_at("22:00", UTC))]
    table_b = [TimeSlot(start=_at("21:00", UTC), end=_at("23:00", UTC))]

    assert intersect_gaps([table_a, table_b], 60) == [
        TimeSlot(start=_at("21:00", UTC), end=_at("22:00", UTC))
    ]


def test_intersection_drops_overlaps_shorter_than_minimum():
    table_a = [_span("10:00", "12:00"), _span("14:00", "16:00")]
    table_b = [_span("11:00", "13:00"), _span("14:30", "17:00")]

    assert intersect_gaps([table_a, table_b], 60) == [_span("11:00", "12:00"), _span("14:30", "16:00")]
    assert intersect_gaps([table_a, table_b], 61) == [_span("14:30", "16:00")]


def test_intersection_of_nothing_is_empty():
    assert intersect_gaps([], 60) == []
    assert intersect_gaps([[_span("10:00", "12:00")], []], 60) == []


def test_intersection_is_commutative_and_associative():
    lists = [
        [_span("10:00", "12:00"), _span("13:00", "18:00")],
        [_span("11:00", "15:00"), _span("16:00", "20:00")],
        [_span("09:00", "11:30"), _span("14:00", "17:30")],
    ]
    expected = intersect_gaps(lists, 30)
    assert expected == [_span("11:00", "11:30"), _span("14:00", "15:00"), _span("16:00", "17:30")]

    for ordering in itertools.permutations(lists):
        assert intersect_gaps(list(ordering), 30) == expected

    left_first = intersect_gaps([intersect_gaps(lists[:2], 30), lists[2]], 30)
    right_first = intersect_gaps([lists[0], intersect_gaps(lists[1:], 30)], 30)
    assert left_first == expected
    assert right_first == expected


# --- discretize_gaps ---

def test_discretize_slides_in_fifteen_minute_steps():
    gap = _span("20:00", "21:30")

    candidates = discretize_gaps([gap], 60, ["T1"], CandidateKind.SINGLE, 0)

    assert [candidate.start for candidate in candidates] == [
        _at("20:00"),
        _at("20:15"),
        _at("20:30"),
    ]
    assert all(candidate.end == candidate.start + timedelta(minutes=60) for candidate in candidates)
    assert all(candidate.table_ids == ("T1",) for candidate in candidates)


def test_discretize_never_exceeds_gap_end():
    gaps = [_span("12:00", "13:20"), _span("21:15", "23:45")]

    candidates = discretize_gaps(gaps, 75, ["T2", "T3"], CandidateKind.COMBO, 2)

    for gap in gaps:
        starts = [candidate.start for candidate in candidates if gap.start <= candidate.start < gap.end]
        assert starts
        for candidate in candidates:
            if gap.start <= candidate.start < gap.end:
                assert candidate.end <= gap.end
        steps = {later - earlier for earlier, later in zip(starts, starts[1:])}
        assert steps <= {timedelta(minutes=SLOT_MINUTES)}
    assert all(candidate.kind is CandidateKind.COMBO and candidate.waste == 2 for candidate in candidates)


def test_discretize_gap_shorter_than_duration_yields_nothing():
    assert discretize_gaps([_span("20:00", "20:45")], 60, ["T1"], CandidateKind.SINGLE, 0) == []
