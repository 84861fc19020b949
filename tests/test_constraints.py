"""Tests for the party-size duration policy and store config validation."""

from __future__ import annotations

import pytest

from backend.domain.constraints import (
    SLOT_MINUTES,
    StoreConfig,
    get_duration_for_party_size,
    validate_store_config,
)


def valid_config(**overrides) -> StoreConfig:
    """Return a valid baseline StoreConfig, optionally overriding fields."""
    defaults = {
        "lock_ttl_seconds": 5.0,
        "idempotency_ttl_seconds": 86400.0,
        "idempotency_sweep_interval_seconds": 60.0,
    }
    defaults.update(overrides)
    return StoreConfig(**defaults)


# --- Duration policy ---

@pytest.mark.parametrize(
    ("party_size", "expected_minutes"),
    [(1, 75), (2, 75), (3, 90), (4, 90), (5, 120), (8, 120), (9, 150), (20, 150)],
)
def test_duration_for_party_size(party_size: int, expected_minutes: int) -> None:
    assert get_duration_for_party_size(party_size) == expected_minutes


def test_slot_granularity_is_fifteen_minutes() -> None:
    assert SLOT_MINUTES == 15


# --- Store config ---

def test_valid_config_passes() -> None:
    validate_store_config(valid_config())


def test_lock_ttl_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_store_config(valid_config(lock_ttl_seconds=0))


def test_idempotency_ttl_negative_raises() -> None:
    with pytest.raises(ValueError):
        validate_store_config(valid_config(idempotency_ttl_seconds=-1))


def test_sweep_interval_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_store_config(valid_config(idempotency_sweep_interval_seconds=0))
