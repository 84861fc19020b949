"""Application settings loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_ENV_PREFIX = "SEATPLAN_"


def _env_str(name: str, default: str) -> str:
    return os.getenv(f"{_ENV_PREFIX}{name}", default)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(f"{_ENV_PREFIX}{name}")
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{_ENV_PREFIX}{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(f"{_ENV_PREFIX}{name}")
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{_ENV_PREFIX}{name} must be a number, got {raw!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(f"{_ENV_PREFIX}{name}")
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_name: str = "Seatplan Allocation Engine"
    app_version: str = "1.0.0"
    log_level: str = "INFO"

    api_prefix: str = "/woki"
    discover_default_limit: int = 10
    discover_max_limit: int = 100

    lock_ttl_seconds: float = 5.0
    idempotency_ttl_seconds: float = 24 * 60 * 60
    idempotency_sweep_interval_seconds: float = 60.0

    rate_limit_enabled: bool = True
    rate_limit_requests: int = 100
    rate_limit_period_seconds: float = 60.0
    rate_limit_trust_forwarded: bool = False

    seed_on_startup: bool = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; tests derive variants with `replace`."""
    return Settings(
        app_name=_env_str("APP_NAME", Settings.app_name),
        app_version=_env_str("APP_VERSION", Settings.app_version),
        log_level=_env_str("LOG_LEVEL", Settings.log_level),
        api_prefix=_env_str("API_PREFIX", Settings.api_prefix),
        discover_default_limit=_env_int("DISCOVER_DEFAULT_LIMIT", Settings.discover_default_limit),
        discover_max_limit=_env_int("DISCOVER_MAX_LIMIT", Settings.discover_max_limit),
        lock_ttl_seconds=_env_float("LOCK_TTL_SECONDS", Settings.lock_ttl_seconds),
        idempotency_ttl_seconds=_env_float(
            "IDEMPOTENCY_TTL_SECONDS",
            Settings.idempotency_ttl_seconds,
        ),
        idempotency_sweep_interval_seconds=_env_float(
            "IDEMPOTENCY_SWEEP_INTERVAL_SECONDS",
            Settings.idempotency_sweep_interval_seconds,
        ),
        rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", Settings.rate_limit_enabled),
        rate_limit_requests=_env_int("RATE_LIMIT_REQUESTS", Settings.rate_limit_requests),
        rate_limit_period_seconds=_env_float(
            "RATE_LIMIT_PERIOD_SECONDS",
            Settings.rate_limit_period_seconds,
        ),
        rate_limit_trust_forwarded=_env_bool(
            "RATE_LIMIT_TRUST_FORWARDED",
            Settings.rate_limit_trust_forwarded,
        ),
        seed_on_startup=_env_bool("SEED_ON_STARTUP", Settings.seed_on_startup),
    )
