"""Allocation business rules and store configuration validation."""

from __future__ import annotations

from dataclasses import dataclass


# Candidate start times are spaced this many minutes apart.
SLOT_MINUTES = 15

# (max party size, minutes); parties above the last bound get the fallback.
_DURATION_BY_PARTY_SIZE = (
    (2, 75),
    (4, 90),
    (8, 120),
)
_LARGE_PARTY_DURATION_MINUTES = 150


def get_duration_for_party_size(party_size: int) -> int:
    """Return how long a party of `party_size` holds its table(s), in minutes."""
    for upper_bound, minutes in _DURATION_BY_PARTY_SIZE:
        if party_size <= upper_bound:
            return minutes
    return _LARGE_PARTY_DURATION_MINUTES


@dataclass(frozen=True)
class StoreConfig:
    lock_ttl_seconds: float
    idempotency_ttl_seconds: float
    idempotency_sweep_interval_seconds: float


def validate_store_config(config: StoreConfig) -> None:
    if config.lock_ttl_seconds <= 0:
        raise ValueError("lock_ttl_seconds must be > 0")
    if config.idempotency_ttl_seconds <= 0:
        raise ValueError("idempotency_ttl_seconds must be > 0")
    if config.idempotency_sweep_interval_seconds <= 0:
        raise ValueError("idempotency_sweep_interval_seconds must be > 0")
