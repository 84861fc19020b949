"""Booking workflow: discovery, leased commit, day listing and cancellation."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import tzinfo
from typing import Optional
from uuid import uuid4

from backend.domain.constraints import SLOT_MINUTES, get_duration_for_party_size
from backend.domain.intervals import (
    TimeWindow,
    build_search_windows,
    parse_date,
    resolve_timezone,
)
from backend.domain.models import Booking, BookingStatus, Candidate, Restaurant, Sector
from backend.repository.allocation_store import AllocationStore
from backend.services.matching_service import find_candidates, rank_candidates
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class BookingError(Exception):
    """Base exception for booking workflow failures."""


class BookingValidationError(BookingError):
    """Raised when booking inputs are malformed."""


class NoCapacityError(BookingError):
    """Raised when no single table or combo fits the party in the window."""


class NotFoundError(BookingError):
    """Raised when a referenced entity does not exist."""


class RestaurantNotFoundError(NotFoundError):
    pass


class SectorNotFoundError(NotFoundError):
    pass


class BookingNotFoundError(NotFoundError):
    pass


@dataclass(frozen=True)
class DiscoveryResult:
    slot_minutes: int
    duration_minutes: int
    candidates: list[Candidate]


@dataclass(frozen=True)
class BookingOutcome:
    booking: Booking
    created: bool


@dataclass(frozen=True)
class _Scope:
    restaurant: Restaurant
    sector: Sector
    tz: tzinfo


def lease_key(restaurant_id: str, sector_id: str, date: str) -> str:
    return f"{restaurant_id}:{sector_id}:{date}"


class BookingService:
    """Coordinates the allocation engine with the store's leases and idempotency."""

    def __init__(
        self,
        store: Optional[AllocationStore] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._store = store or AllocationStore(self._settings)

    @property
    def store(self) -> AllocationStore:
        return self._store

    def _resolve_scope(self, restaurant_id: str, sector_id: str) -> _Scope:
        restaurant = self._store.get_restaurant(restaurant_id)
        if restaurant is None:
            raise RestaurantNotFoundError(f"Restaurant {restaurant_id!r} not found")
        sector = self._store.get_sector(sector_id)
        if sector is None or sector.restaurant_id != restaurant.id:
            raise SectorNotFoundError(f"Sector {sector_id!r} not found")
        return _Scope(restaurant=restaurant, sector=sector, tz=resolve_timezone(restaurant.timezone))

    def _resolve_windows(
        self,
        *,
        scope: _Scope,
        date: str,
        window_start: Optional[str],
        window_end: Optional[str],
    ) -> tuple[TimeWindow, ...]:
        if (window_start is None) != (window_end is None):
            raise BookingValidationError("windowStart and windowEnd must be provided together")
        if window_start is not None and window_end is not None:
            windows: tuple[TimeWindow, ...] = (TimeWindow(start=window_start, end=window_end),)
        else:
            windows = scope.restaurant.windows
        # Resolve once up front so malformed bounds fail before any search.
        build_search_windows(date, windows, scope.tz)
        return windows

    @staticmethod
    def _validate_request(date: str, party_size: int) -> None:
        parse_date(date)
        if party_size <= 0:
            raise BookingValidationError("partySize must be a positive integer")

    def _ranked_candidates(
        self,
        *,
        scope: _Scope,
        date: str,
        party_size: int,
        duration: int,
        windows: tuple[TimeWindow, ...],
    ) -> list[Candidate]:
        candidates = find_candidates(
            tables=self._store.get_tables(scope.sector.id),
            bookings=self._store.get_all_bookings(),
            date=date,
            party_size=party_size,
            duration=duration,
            windows=windows,
            tz=scope.tz,
        )
        return rank_candidates(candidates)

    def discover(
        self,
        *,
        restaurant_id: str,
        sector_id: str,
        date: str,
        party_size: int,
        window_start: Optional[str] = None,
        window_end: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> DiscoveryResult:
        self._validate_request(date, party_size)
        resolved_limit = limit if limit is not None else self._settings.discover_default_limit
        if resolved_limit <= 0:
            raise BookingValidationError("limit must be a positive integer")

        scope = self._resolve_scope(restaurant_id, sector_id)
        windows = self._resolve_windows(
            scope=scope,
            date=date,
            window_start=window_start,
            window_end=window_end,
        )
        duration = get_duration_for_party_size(party_size)
        ranked = self._ranked_candidates(
            scope=scope,
            date=date,
            party_size=party_size,
            duration=duration,
            windows=windows,
        )
        if not ranked:
            raise NoCapacityError("No single or combo gap fits duration within window")

        logger.info(
            "Discovery completed | sector_id=%s | date=%s | party_size=%s | candidates=%s",
            sector_id,
            date,
            party_size,
            len(ranked),
        )
        return DiscoveryResult(
            slot_minutes=SLOT_MINUTES,
            duration_minutes=duration,
            candidates=[
                replace(
                    candidate,
                    start=candidate.start.astimezone(scope.tz),
                    end=candidate.end.astimezone(scope.tz),
                )
                for candidate in ranked[:resolved_limit]
            ],
        )

    def create_booking(
        self,
        *,
        restaurant_id: str,
        sector_id: str,
        date: str,
        party_size: int,
        window_start: Optional[str] = None,
        window_end: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> BookingOutcome:
        """Commit the best candidate while holding the scope/date lease.

        A known idempotency key short-circuits to the stored booking without
        touching the lease or the booking map.
        """
        if idempotency_key:
            existing = self._store.get_idempotency(idempotency_key)
            if existing is not None:
                logger.info(
                    "Idempotent replay | idempotency_key=%s | booking_id=%s",
                    idempotency_key,
                    existing.id,
                )
                return BookingOutcome(booking=existing, created=False)

        self._validate_request(date, party_size)
        scope = self._resolve_scope(restaurant_id, sector_id)
        windows = self._resolve_windows(
            scope=scope,
            date=date,
            window_start=window_start,
            window_end=window_end,
        )
        duration = get_duration_for_party_size(party_size)

        with self._store.lease(lease_key(restaurant_id, sector_id, date)):
            if idempotency_key:
                existing = self._store.get_idempotency(idempotency_key)
                if existing is not None:
                    return BookingOutcome(booking=existing, created=False)

            ranked = self._ranked_candidates(
                scope=scope,
                date=date,
                party_size=party_size,
                duration=duration,
                windows=windows,
            )
            if not ranked:
                raise NoCapacityError("No capacity found")
            best = ranked[0]

            now = self._store.now().astimezone(scope.tz)
            booking = Booking(
                id=f"BK_{uuid4().hex}",
                restaurant_id=restaurant_id,
                sector_id=sector_id,
                table_ids=best.table_ids,
                party_size=party_size,
                start=best.start.astimezone(scope.tz),
                end=best.end.astimezone(scope.tz),
                duration_minutes=duration,
                status=BookingStatus.CONFIRMED,
                created_at=now,
                updated_at=now,
            )
            if idempotency_key:
                stored, created = self._store.add_booking_idempotent(idempotency_key, booking)
                if not created:
                    logger.info(
                        "Idempotent replay | idempotency_key=%s | booking_id=%s",
                        idempotency_key,
                        stored.id,
                    )
                    return BookingOutcome(booking=stored, created=False)
            else:
                self._store.add_booking(booking)

        logger.info(
            "Booking committed | booking_id=%s | tables=%s | kind=%s | start=%s | waste=%s",
            booking.id,
            best.table_key,
            best.kind.value,
            booking.start.isoformat(),
            best.waste,
        )
        return BookingOutcome(booking=booking, created=True)

    def list_day(self, *, restaurant_id: str, sector_id: str, date: str) -> list[Booking]:
        day = parse_date(date)
        scope = self._resolve_scope(restaurant_id, sector_id)
        return self._store.get_bookings(scope.sector.id, day, scope.tz)

    def cancel_booking(self, booking_id: str) -> Booking:
        cancelled = self._store.cancel_booking(booking_id)
        if cancelled is None:
            raise BookingNotFoundError(f"Booking {booking_id!r} not found")
        logger.info("Booking cancelled | booking_id=%s", booking_id)
        return cancelled
