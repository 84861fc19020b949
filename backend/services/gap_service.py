"""Free-interval computation for tables and table combinations."""

from __future__ import annotations

from datetime import timedelta, tzinfo
from typing import Iterable, Sequence

from backend.domain.constraints import SLOT_MINUTES
from backend.domain.intervals import TimeSlot, TimeWindow, build_search_windows, sort_slots
from backend.domain.models import Booking, Candidate, CandidateKind


def _active_slots_for_table(table_id: str, bookings: Iterable[Booking]) -> list[TimeSlot]:
    return sort_slots(
        booking.slot
        for booking in bookings
        if booking.occupies(table_id) and booking.is_active
    )


def find_gaps(
    table_id: str,
    bookings: Iterable[Booking],
    date: str,
    min_duration: int,
    windows: Sequence[TimeWindow],
    tz: tzinfo,
) -> list[TimeSlot]:
    """Return the free intervals of one table inside the search windows.

    `bookings` may span every table, sector, date and status; only active
    bookings on `table_id` are considered. Each window is swept independently
    with a cursor that starts at the window start and only ever moves forward,
    so overlapping or nested bookings are absorbed. Gaps shorter than
    `min_duration` minutes are dropped.
    """
    occupied = _active_slots_for_table(table_id, bookings)
    gaps: list[TimeSlot] = []

    for window in build_search_windows(date, windows, tz):
        cursor = window.start
        for slot in occupied:
            if slot.end <= window.start:
                continue
            if slot.start >= window.end:
                break

            if cursor < slot.start and (slot.start - cursor) >= timedelta(minutes=min_duration):
                gaps.append(TimeSlot(start=cursor, end=slot.start))

            if slot.end > cursor:
                cursor = slot.end

        if cursor < window.end and (window.end - cursor) >= timedelta(minutes=min_duration):
            gaps.append(TimeSlot(start=cursor, end=window.end))

    return sort_slots(gaps)


def intersect_gaps(gaps_per_table: Sequence[Sequence[TimeSlot]], min_duration: int) -> list[TimeSlot]:
    """Return intervals where every table of a combination is free at once."""
    if not gaps_per_table:
        return []

    minimum = timedelta(minutes=min_duration)
    common: list[TimeSlot] = list(gaps_per_table[0])
    for next_gaps in gaps_per_table[1:]:
        overlap: list[TimeSlot] = []
        for current in common:
            for candidate in next_gaps:
                shared = current.intersection(candidate)
                if shared is not None and (shared.end - shared.start) >= minimum:
                    overlap.append(shared)
        common = overlap
        if not common:
            break

    return sort_slots(common)


def discretize_gaps(
    gaps: Iterable[TimeSlot],
    duration_minutes: int,
    table_ids: Sequence[str],
    kind: CandidateKind,
    waste: int,
) -> list[Candidate]:
    """Slide a `duration_minutes` window through each gap in SLOT_MINUTES steps."""
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=SLOT_MINUTES)
    members = tuple(table_ids)
    candidates: list[Candidate] = []

    for gap in gaps:
        current = gap.start
        last_start = gap.end - duration
        while current <= last_start:
            candidates.append(
                Candidate(
                    kind=kind,
                    table_ids=members,
                    start=current,
                    end=current + duration,
                    waste=waste,
                )
            )
            current += step

    return candidates
