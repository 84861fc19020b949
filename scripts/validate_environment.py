#!/usr/bin/env python3
"""Validate local Seatplan environment readiness."""

from __future__ import annotations

import importlib
import sys
from dataclasses import replace
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.domain.intervals import resolve_timezone
from backend.repository.allocation_store import AllocationStore
from backend.repository.seed_data import build_seed_data
from backend.services.booking_service import BookingService
from backend.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True

    # CHECK 1: Python version >= 3.11
    if sys.version_info >= (3, 11):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.11",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable with versions
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("pandas", "pandas"),
        ("requests", "requests"),
        ("streamlit", "streamlit"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    versions: list[str] = []
    for module_name, display_name in package_specs:
        try:
            module = importlib.import_module(module_name)
            versions.append(f"{display_name}=={getattr(module, '__version__', 'unknown')}")
        except ImportError as exc:
            import_errors.append(f"{display_name} ({exc})")
    if import_errors:
        ok, line = _print_result("Package imports", False, ", ".join(import_errors))
    else:
        ok, line = _print_result("Package imports", True, f": {', '.join(versions)}")
    results.append(line)
    all_passed = all_passed and ok

    seed = build_seed_data()

    # CHECK 3: Timezone database
    try:
        resolve_timezone(seed.restaurant.timezone)
        ok, line = _print_result("Timezone database", True, f": {seed.restaurant.timezone}")
    except Exception as exc:
        ok, line = _print_result("Timezone database", False, str(exc))
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 4: Seed + discovery + commit on an isolated store
    settings = replace(get_settings(), seed_on_startup=False)
    try:
        store = AllocationStore(settings)
        store.load_seed(seed)
        service = BookingService(store=store, settings=settings)
        discovery = service.discover(
            restaurant_id=seed.restaurant.id,
            sector_id=seed.sector.id,
            date="2025-10-22",
            party_size=2,
        )
        outcome = service.create_booking(
            restaurant_id=seed.restaurant.id,
            sector_id=seed.sector.id,
            date="2025-10-22",
            party_size=2,
            idempotency_key="validate-environment",
        )
        replay = service.create_booking(
            restaurant_id=seed.restaurant.id,
            sector_id=seed.sector.id,
            date="2025-10-22",
            party_size=2,
            idempotency_key="validate-environment",
        )
        if replay.booking.id != outcome.booking.id:
            raise RuntimeError("idempotent replay returned a different booking")
        ok, line = _print_result(
            "Allocation engine",
            True,
            f": {len(discovery.candidates)} candidates, booked {','.join(outcome.booking.table_ids)}",
        )
    except Exception as exc:
        ok, line = _print_result("Allocation engine", False, str(exc))
    results.append(line)
    all_passed = all_passed and ok

    print(SEPARATOR_LINE)
    print(" Seatplan Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
