"""Deterministic demo catalog loaded at startup and by tests."""

from __future__ import annotations

from datetime import datetime

from backend.domain.intervals import TimeWindow
from backend.domain.models import Booking, BookingStatus, Restaurant, SeedData, Sector, Table


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value)


def build_seed_data() -> SeedData:
    """One restaurant, one sector, five tables and one confirmed booking on T2."""
    created = "2025-10-22T00:00:00-03:00"
    restaurant = Restaurant(
        id="R1",
        name="Bistro Central",
        timezone="America/Argentina/Buenos_Aires",
        windows=(
            TimeWindow(start="12:00", end="16:00"),
            TimeWindow(start="20:00", end="23:45"),
        ),
        created_at=created,
        updated_at=created,
    )
    sector = Sector(
        id="S1",
        restaurant_id="R1",
        name="Main Hall",
        created_at=created,
        updated_at=created,
    )
    tables = [
        Table(id="T1", sector_id="S1", name="Table 1", min_size=2, max_size=2),
        Table(id="T2", sector_id="S1", name="Table 2", min_size=2, max_size=4),
        Table(id="T3", sector_id="S1", name="Table 3", min_size=2, max_size=4),
        Table(id="T4", sector_id="S1", name="Table 4", min_size=4, max_size=6),
        Table(id="T5", sector_id="S1", name="Table 5", min_size=2, max_size=2),
    ]
    bookings = [
        Booking(
            id="B1",
            restaurant_id="R1",
            sector_id="S1",
            table_ids=("T2",),
            party_size=3,
            start=_ts("2025-10-22T20:30:00-03:00"),
            end=_ts("2025-10-22T21:15:00-03:00"),
            duration_minutes=45,
            status=BookingStatus.CONFIRMED,
            created_at=_ts("2025-10-22T18:00:00-03:00"),
            updated_at=_ts("2025-10-22T18:00:00-03:00"),
        )
    ]
    return SeedData(restaurant=restaurant, sector=sector, tables=tables, bookings=bookings)
