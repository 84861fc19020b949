"""Domain models for table allocation."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from backend.domain.intervals import TimeSlot, TimeWindow, to_utc


class BookingStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class CandidateKind(str, Enum):
    SINGLE = "single"
    COMBO = "combo"


@dataclass(frozen=True)
class Restaurant:
    id: str
    name: str
    timezone: str
    windows: tuple[TimeWindow, ...] = ()
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class Sector:
    id: str
    restaurant_id: str
    name: str
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class Table:
    id: str
    sector_id: str
    name: str
    min_size: int
    max_size: int
    created_at: str = ""
    updated_at: str = ""

    def fits(self, party_size: int) -> bool:
        return self.min_size <= party_size <= self.max_size


@dataclass(frozen=True)
class Booking:
    id: str
    restaurant_id: str
    sector_id: str
    table_ids: tuple[str, ...]
    party_size: int
    start: datetime
    end: datetime
    duration_minutes: int
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot(start=to_utc(self.start), end=to_utc(self.end))

    @property
    def is_active(self) -> bool:
        return self.status is not BookingStatus.CANCELLED

    def occupies(self, table_id: str) -> bool:
        return table_id in self.table_ids

    def cancelled(self, at: datetime) -> "Booking":
        return replace(self, status=BookingStatus.CANCELLED, updated_at=at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "restaurantId": self.restaurant_id,
            "sectorId": self.sector_id,
            "tableIds": list(self.table_ids),
            "partySize": self.party_size,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "durationMinutes": self.duration_minutes,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class Candidate:
    """Ephemeral seating option produced by discretization."""

    kind: CandidateKind
    table_ids: tuple[str, ...]
    start: datetime
    end: datetime
    waste: int

    @property
    def table_key(self) -> str:
        return ",".join(self.table_ids)


@dataclass(frozen=True)
class SeedData:
    restaurant: Restaurant
    sector: Sector
    tables: list[Table] = field(default_factory=list)
    bookings: list[Booking] = field(default_factory=list)
