"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the store and booking service, registers routers, and runs
startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.controllers.booking_controller import router as booking_router
from backend.repository.allocation_store import AllocationStore
from backend.repository.seed_data import build_seed_data
from backend.services.booking_service import BookingService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger
from backend.utils.rate_limit import FixedWindowRateLimiter


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[AllocationStore] = None,
) -> FastAPI:
    """
    Build and wire the FastAPI application.

    The store is the only shared mutable state; it is created here and
    handed to the service explicitly, then exposed through app.state.
    """
    settings = settings or get_settings()

    # --- Store (in-memory catalog, bookings, leases, idempotency keys) ---
    store = store or AllocationStore(settings)

    # --- Services ---
    booking_service = BookingService(store=store, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        try:
            yield
        finally:
            _shutdown(app)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(booking_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.exception_handler(RequestValidationError)
    async def invalid_input_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "invalid_input", "detail": jsonable_encoder(exc.errors())},
        )

    if settings.rate_limit_enabled:
        limiter = FixedWindowRateLimiter(
            rate=settings.rate_limit_requests,
            period=settings.rate_limit_period_seconds,
        )

        @app.middleware("http")
        async def rate_limit(request: Request, call_next):
            client_key = ""
            # X-Forwarded-For is client-controlled unless a trusted proxy sets it.
            if settings.rate_limit_trust_forwarded:
                client_key = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
            if not client_key and request.client is not None:
                client_key = request.client.host
            if limiter.is_rate_limited(client_key):
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={"error": "rate_limited", "detail": "Too many requests"},
                    headers={"Retry-After": str(limiter.retry_after_seconds(client_key))},
                )
            return await call_next(request)

        app.state.rate_limiter = limiter

    # --- Inject services into app.state for dependency resolution ---
    app.state.settings = settings
    app.state.store = store
    app.state.booking_service = booking_service

    return app


def _startup(app: FastAPI) -> None:
    """Seed the demo catalog (optional) and start the idempotency sweeper."""
    settings: Settings = app.state.settings
    store: AllocationStore = app.state.store

    if settings.seed_on_startup:
        logger.info("Startup: loading seed catalog")
        store.load_seed(build_seed_data())

    logger.info("Startup: starting idempotency sweeper")
    store.start_sweeper()

    logger.info("Startup complete | system ready")


def _shutdown(app: FastAPI) -> None:
    store: AllocationStore = app.state.store
    store.stop_sweeper()
    logger.info("Shutdown complete")


# Module-level app object for uvicorn
app = create_app()
