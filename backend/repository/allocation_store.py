"""In-memory store for the table catalog, bookings, leases and idempotency keys."""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date as date_type
from datetime import datetime, timezone, tzinfo
from typing import Callable, Iterator, Optional

from backend.domain.constraints import StoreConfig, validate_store_config
from backend.domain.models import Booking, Restaurant, SeedData, Sector, Table
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class LockConflictError(Exception):
    """Raised when a lease key is already held by another in-flight request."""


@dataclass(frozen=True)
class IdempotencyRecord:
    booking: Booking
    expires_at: float


class AllocationStore:
    """Owns every piece of mutable state the allocation engine reads.

    All maps are guarded by one re-entrant lock. Lease and idempotency expiry
    use `clock` (monotonic seconds by default) so tests can drive time.
    Booking mutation is not lease-protected here: callers hold the lease for
    their whole discover-then-commit sequence.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._settings = settings or get_settings()
        self._config = StoreConfig(
            lock_ttl_seconds=self._settings.lock_ttl_seconds,
            idempotency_ttl_seconds=self._settings.idempotency_ttl_seconds,
            idempotency_sweep_interval_seconds=self._settings.idempotency_sweep_interval_seconds,
        )
        validate_store_config(self._config)
        self._clock = clock
        self._wall_clock = wall_clock
        self._mutex = threading.RLock()

        self._restaurants: dict[str, Restaurant] = {}
        self._sectors: dict[str, Sector] = {}
        self._tables: dict[str, Table] = {}
        self._bookings: dict[str, Booking] = {}

        self._locks: dict[str, float] = {}
        self._idempotency: dict[str, IdempotencyRecord] = {}

        self._sweeper_stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    @property
    def config(self) -> StoreConfig:
        return self._config

    def now(self) -> datetime:
        return self._wall_clock()

    # --- catalog -----------------------------------------------------------

    def load_seed(self, seed: SeedData) -> None:
        with self._mutex:
            self._restaurants[seed.restaurant.id] = seed.restaurant
            self._sectors[seed.sector.id] = seed.sector
            for table in seed.tables:
                self._tables[table.id] = table
            for booking in seed.bookings:
                self._bookings[booking.id] = booking
        logger.info(
            "Seed loaded | restaurant_id=%s | sector_id=%s | tables=%s | bookings=%s",
            seed.restaurant.id,
            seed.sector.id,
            len(seed.tables),
            len(seed.bookings),
        )

    def get_restaurant(self, restaurant_id: str) -> Optional[Restaurant]:
        with self._mutex:
            return self._restaurants.get(restaurant_id)

    def get_sector(self, sector_id: str) -> Optional[Sector]:
        with self._mutex:
            return self._sectors.get(sector_id)

    def get_tables(self, sector_id: str) -> list[Table]:
        with self._mutex:
            return sorted(
                (table for table in self._tables.values() if table.sector_id == sector_id),
                key=lambda table: table.id,
            )

    # --- bookings ----------------------------------------------------------

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._mutex:
            return self._bookings.get(booking_id)

    def get_all_bookings(self) -> list[Booking]:
        """Snapshot of every booking, cancelled ones included."""
        with self._mutex:
            return list(self._bookings.values())

    def get_bookings(self, sector_id: str, day: date_type, tz: tzinfo) -> list[Booking]:
        """Active bookings of a sector starting on `day` in the restaurant timezone."""
        with self._mutex:
            items = [
                booking
                for booking in self._bookings.values()
                if booking.sector_id == sector_id
                and booking.is_active
                and booking.start.astimezone(tz).date() == day
            ]
        return sorted(items, key=lambda booking: (booking.start, booking.id))

    def add_booking(self, booking: Booking) -> None:
        with self._mutex:
            self._bookings[booking.id] = booking

    def cancel_booking(self, booking_id: str) -> Optional[Booking]:
        """Flip a booking to CANCELLED in place; the record is never removed."""
        with self._mutex:
            booking = self._bookings.get(booking_id)
            if booking is None:
                return None
            cancelled = booking.cancelled(at=self.now())
            self._bookings[booking_id] = cancelled
            return cancelled

    # --- leases ------------------------------------------------------------

    def acquire_lock(self, key: str, ttl_seconds: Optional[float] = None) -> bool:
        """Take the lease on `key` unless an unexpired one exists. Never blocks."""
        ttl = ttl_seconds if ttl_seconds is not None else self._config.lock_ttl_seconds
        with self._mutex:
            now = self._clock()
            expires_at = self._locks.get(key)
            if expires_at is not None and expires_at > now:
                return False
            self._locks[key] = now + ttl
            return True

    def release_lock(self, key: str) -> None:
        with self._mutex:
            self._locks.pop(key, None)

    def is_locked(self, key: str) -> bool:
        with self._mutex:
            expires_at = self._locks.get(key)
            return expires_at is not None and expires_at > self._clock()

    @contextmanager
    def lease(self, key: str, ttl_seconds: Optional[float] = None) -> Iterator[None]:
        if not self.acquire_lock(key, ttl_seconds):
            raise LockConflictError(f"lease {key!r} is held by another request")
        try:
            yield
        finally:
            self.release_lock(key)

    # --- idempotency -------------------------------------------------------

    def get_idempotency(self, key: str) -> Optional[Booking]:
        with self._mutex:
            record = self._idempotency.get(key)
            if record is None:
                return None
            if record.expires_at <= self._clock():
                del self._idempotency[key]
                return None
            return record.booking

    def set_idempotency(
        self,
        key: str,
        booking: Booking,
        ttl_seconds: Optional[float] = None,
    ) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self._config.idempotency_ttl_seconds
        with self._mutex:
            self._idempotency[key] = IdempotencyRecord(
                booking=booking,
                expires_at=self._clock() + ttl,
            )

    def add_booking_idempotent(
        self,
        key: str,
        booking: Booking,
        ttl_seconds: Optional[float] = None,
    ) -> tuple[Booking, bool]:
        """Commit `booking` under `key` unless an unexpired record already owns it.

        Returns the authoritative booking and whether this call stored it.
        Requests sharing a key may hold different leases, so the check and
        both writes happen under the store mutex.
        """
        with self._mutex:
            existing = self.get_idempotency(key)
            if existing is not None:
                return existing, False
            self.add_booking(booking)
            self.set_idempotency(key, booking, ttl_seconds)
            return booking, True

    def idempotency_size(self) -> int:
        with self._mutex:
            return len(self._idempotency)

    def sweep_expired_idempotency(self) -> int:
        """Evict expired idempotency records and return how many were removed."""
        with self._mutex:
            now = self._clock()
            expired = [key for key, record in self._idempotency.items() if record.expires_at <= now]
            for key in expired:
                del self._idempotency[key]
        if expired:
            logger.debug("Idempotency sweep evicted %s keys", len(expired))
        return len(expired)

    # --- background sweeper ------------------------------------------------

    def start_sweeper(self) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._sweeper_stop.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            name="idempotency-sweeper",
            daemon=True,
        )
        self._sweeper.start()
        logger.info(
            "Idempotency sweeper started | interval_seconds=%s",
            self._config.idempotency_sweep_interval_seconds,
        )

    def stop_sweeper(self) -> None:
        self._sweeper_stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=self._config.idempotency_sweep_interval_seconds)
            self._sweeper = None

    def _sweep_loop(self) -> None:
        interval = self._config.idempotency_sweep_interval_seconds
        while not self._sweeper_stop.wait(interval):
            try:
                self.sweep_expired_idempotency()
            except Exception:  # pragma: no cover - housekeeping must not die
                logger.exception("Idempotency sweep failed")
