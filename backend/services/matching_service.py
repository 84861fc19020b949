"""Candidate generation and deterministic selection for table allocation."""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Iterable, Optional, Sequence, TypeVar

from backend.domain.intervals import TimeWindow
from backend.domain.models import Booking, Candidate, CandidateKind, Table
from backend.services.gap_service import discretize_gaps, find_gaps, intersect_gaps
from backend.utils.logger import get_logger


logger = get_logger(__name__)

T = TypeVar("T")

_KIND_ORDER = {CandidateKind.SINGLE: 0, CandidateKind.COMBO: 1}


def get_combo_capacity(tables: Sequence[Table]) -> tuple[int, int]:
    """Sum-of-capacities heuristic: T1(2-2) + T2(2-4) seats 4 to 6."""
    return (
        sum(table.min_size for table in tables),
        sum(table.max_size for table in tables),
    )


def all_combinations(items: Sequence[T]) -> list[list[T]]:
    """Powerset of `items`, empty set included, in insertion order.

    Grows as 2**n; only suitable for the handful of tables in one sector.
    """
    subsets: list[list[T]] = [[]]
    for item in items:
        subsets = subsets + [subset + [item] for subset in subsets]
    return subsets


def find_candidates(
    *,
    tables: Sequence[Table],
    bookings: Sequence[Booking],
    date: str,
    party_size: int,
    duration: int,
    windows: Sequence[TimeWindow],
    tz: tzinfo,
) -> list[Candidate]:
    """Enumerate every single-table and combo option that seats the party."""
    candidates: list[Candidate] = []

    for table in tables:
        if not table.fits(party_size):
            continue
        gaps = find_gaps(table.id, bookings, date, duration, windows, tz)
        candidates.extend(
            discretize_gaps(
                gaps,
                duration,
                [table.id],
                CandidateKind.SINGLE,
                table.max_size - party_size,
            )
        )
    single_count = len(candidates)

    for combo in all_combinations(list(tables)):
        if len(combo) < 2:
            continue
        combo_min, combo_max = get_combo_capacity(combo)
        if not combo_min <= party_size <= combo_max:
            continue
        gaps_per_table = [
            find_gaps(table.id, bookings, date, duration, windows, tz)
            for table in combo
        ]
        common_gaps = intersect_gaps(gaps_per_table, duration)
        candidates.extend(
            discretize_gaps(
                common_gaps,
                duration,
                [table.id for table in combo],
                CandidateKind.COMBO,
                combo_max - party_size,
            )
        )

    logger.debug(
        "Candidates generated | date=%s | party_size=%s | single=%s | combo=%s",
        date,
        party_size,
        single_count,
        len(candidates) - single_count,
    )
    return candidates


def _ranking_key(candidate: Candidate) -> tuple[int, int, datetime, str]:
    return (
        _KIND_ORDER[candidate.kind],
        candidate.waste,
        candidate.start,
        candidate.table_key,
    )


def rank_candidates(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Order by kind (single first), waste, start time, then table ids."""
    return sorted(candidates, key=_ranking_key)


def select_best_candidate(candidates: Iterable[Candidate]) -> Optional[Candidate]:
    ranked = rank_candidates(candidates)
    if not ranked:
        return None
    return ranked[0]
