"""HTTP controller layer for table discovery and bookings."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from backend.controllers.dependencies import get_booking_service
from backend.domain.intervals import InvalidIntervalError
from backend.domain.models import Booking, Candidate
from backend.repository.allocation_store import LockConflictError
from backend.services.booking_service import (
    BookingService,
    BookingValidationError,
    NoCapacityError,
    NotFoundError,
)
from backend.utils.config import get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix=settings.api_prefix, tags=["bookings"])

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^\d{2}:\d{2}$"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateBookingRequest(_CamelModel):
    """Input DTO validated before entering service layer."""

    restaurant_id: str = Field(alias="restaurantId", min_length=1)
    sector_id: str = Field(alias="sectorId", min_length=1)
    party_size: int = Field(alias="partySize", gt=0)
    date: str = Field(pattern=DATE_PATTERN)
    window_start: Optional[str] = Field(default=None, alias="windowStart", pattern=TIME_PATTERN)
    window_end: Optional[str] = Field(default=None, alias="windowEnd", pattern=TIME_PATTERN)


class CandidateResponse(_CamelModel):
    kind: str
    table_ids: list[str] = Field(alias="tableIds")
    start: str
    end: str
    waste: int = Field(ge=0)


class DiscoverResponse(_CamelModel):
    slot_minutes: int = Field(alias="slotMinutes", gt=0)
    duration_minutes: int = Field(alias="durationMinutes", gt=0)
    candidates: list[CandidateResponse]


class BookingResponse(_CamelModel):
    id: str
    restaurant_id: str = Field(alias="restaurantId")
    sector_id: str = Field(alias="sectorId")
    table_ids: list[str] = Field(alias="tableIds")
    party_size: int = Field(alias="partySize", gt=0)
    start: str
    end: str
    duration_minutes: int = Field(alias="durationMinutes", gt=0)
    status: str
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")


class DayBookingsResponse(_CamelModel):
    date: str
    items: list[BookingResponse]


def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "detail": detail})


def _candidate_response(candidate: Candidate) -> CandidateResponse:
    return CandidateResponse(
        kind=candidate.kind.value,
        table_ids=list(candidate.table_ids),
        start=candidate.start.isoformat(),
        end=candidate.end.isoformat(),
        waste=candidate.waste,
    )


def _booking_response(booking: Booking) -> BookingResponse:
    return BookingResponse(**booking.to_dict())


@router.get(
    "/discover",
    response_model=DiscoverResponse,
    status_code=status.HTTP_200_OK,
)
async def discover(
    restaurant_id: str = Query(alias="restaurantId", min_length=1),
    sector_id: str = Query(alias="sectorId", min_length=1),
    date: str = Query(pattern=DATE_PATTERN),
    party_size: int = Query(alias="partySize", gt=0),
    window_start: Optional[str] = Query(default=None, alias="windowStart", pattern=TIME_PATTERN),
    window_end: Optional[str] = Query(default=None, alias="windowEnd", pattern=TIME_PATTERN),
    limit: Optional[int] = Query(default=None, gt=0, le=settings.discover_max_limit),
    service: BookingService = Depends(get_booking_service),
):
    """Return ranked seating candidates without reserving anything."""
    try:
        result = service.discover(
            restaurant_id=restaurant_id,
            sector_id=sector_id,
            date=date,
            party_size=party_size,
            window_start=window_start,
            window_end=window_end,
            limit=limit,
        )
        return DiscoverResponse(
            slot_minutes=result.slot_minutes,
            duration_minutes=result.duration_minutes,
            candidates=[_candidate_response(candidate) for candidate in result.candidates],
        )
    except (BookingValidationError, InvalidIntervalError) as exc:
        return _error(status.HTTP_400_BAD_REQUEST, "invalid_input", str(exc))
    except NotFoundError as exc:
        return _error(status.HTTP_404_NOT_FOUND, "not_found", str(exc))
    except NoCapacityError as exc:
        logger.info("Discovery found no capacity | sector_id=%s | date=%s", sector_id, date)
        return _error(status.HTTP_409_CONFLICT, "no_capacity", str(exc))
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected discovery failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to discover candidates",
        ) from exc


@router.post(
    "/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    payload: CreateBookingRequest,
    response: Response,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    service: BookingService = Depends(get_booking_service),
):
    """Allocate and commit the best candidate; replays return 200 with the original."""
    try:
        outcome = service.create_booking(
            restaurant_id=payload.restaurant_id,
            sector_id=payload.sector_id,
            date=payload.date,
            party_size=payload.party_size,
            window_start=payload.window_start,
            window_end=payload.window_end,
            idempotency_key=idempotency_key,
        )
        if not outcome.created:
            response.status_code = status.HTTP_200_OK
        return _booking_response(outcome.booking)
    except (BookingValidationError, InvalidIntervalError) as exc:
        return _error(status.HTTP_400_BAD_REQUEST, "invalid_input", str(exc))
    except NotFoundError as exc:
        return _error(status.HTTP_404_NOT_FOUND, "not_found", str(exc))
    except NoCapacityError as exc:
        logger.info(
            "Booking found no capacity | sector_id=%s | date=%s | party_size=%s",
            payload.sector_id,
            payload.date,
            payload.party_size,
        )
        return _error(status.HTTP_409_CONFLICT, "no_capacity", str(exc))
    except LockConflictError:
        logger.info(
            "Booking lease busy | sector_id=%s | date=%s",
            payload.sector_id,
            payload.date,
        )
        return _error(status.HTTP_409_CONFLICT, "conflict", "System busy, please retry")
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create booking",
        ) from exc


@router.get(
    "/bookings/day",
    response_model=DayBookingsResponse,
    status_code=status.HTTP_200_OK,
)
async def list_day(
    restaurant_id: str = Query(alias="restaurantId", min_length=1),
    sector_id: str = Query(alias="sectorId", min_length=1),
    date: str = Query(pattern=DATE_PATTERN),
    service: BookingService = Depends(get_booking_service),
):
    try:
        items = service.list_day(restaurant_id=restaurant_id, sector_id=sector_id, date=date)
        return DayBookingsResponse(date=date, items=[_booking_response(item) for item in items])
    except (BookingValidationError, InvalidIntervalError) as exc:
        return _error(status.HTTP_400_BAD_REQUEST, "invalid_input", str(exc))
    except NotFoundError as exc:
        return _error(status.HTTP_404_NOT_FOUND, "not_found", str(exc))
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list bookings",
        ) from exc


@router.delete(
    "/bookings/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def cancel_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
):
    """Soft-cancel: the booking stays stored with status CANCELLED."""
    try:
        service.cancel_booking(booking_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except NotFoundError as exc:
        return _error(status.HTTP_404_NOT_FOUND, "not_found", str(exc))
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected cancellation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to cancel booking",
        ) from exc
