"""
RentCar Backend — Rental History Route Handlers
=================================================

What:  Booking lifecycle under /api/history: book, pay, pick up, return,
       cancel, extend, plus quotes and availability lookups.
Who:   Renters book and pay; car owners start and complete; admins can do both.

Public lookups (no token):
    GET /availability   → is a car free for a date range?
    GET /quote          → what would the booking cost?
    GET /available-cars → which cars are free for a date range?
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.car import CarResponse
from app.schemas.common import AUTH_ERRORS, BAD_REQUEST, NOT_FOUND
from app.schemas.rental import (
    AvailabilityResponse,
    CancelRentalRequest,
    CompleteRentalRequest,
    ExtendRentalRequest,
    PaymentRequest,
    QuoteResponse,
    RentalCreate,
    RentalListResponse,
    RentalResponse,
    RentalStatsResponse,
    RentalUpdate,
)
from app.security import Principal, get_current_principal
from app.services.rental_service import rental_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/history", tags=["Rentals"])


@router.post(
    "",
    response_model=RentalResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**AUTH_ERRORS, **NOT_FOUND, **BAD_REQUEST},
    summary="Book a car",
    description=(
        "Creates a pending booking priced with the cheapest applicable rate tier. "
        "Fails with 400 if the dates overlap another booking of the same car."
    ),
)
async def create_rental(
    data: RentalCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> RentalResponse:
    rental = await rental_service.create_rental(db, data, principal.id)
    return RentalResponse.model_validate(rental)


@router.get(
    "",
    response_model=RentalListResponse,
    responses=AUTH_ERRORS,
    summary="List rentals",
    description="Admins see every rental; everyone else sees the rentals they booked.",
)
async def list_rentals(
    response: Response,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> RentalListResponse:
    if principal.is_admin:
        rentals, total = await rental_service.list_rentals(db, limit=limit, offset=offset)
    else:
        rentals, total = await rental_service.list_by_user(
            db, principal.id, limit=limit, offset=offset
        )
    response.headers["X-Total-Count"] = str(total)
    return RentalListResponse(
        items=[RentalResponse.model_validate(r) for r in rentals],
        total_count=total,
    )


@router.get(
    "/stats",
    response_model=RentalStatsResponse,
    responses=AUTH_ERRORS,
    summary="Rental statistics (global for admins, personal otherwise)",
)
async def rental_stats(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> RentalStatsResponse:
    return await rental_service.rental_stats(db, None if principal.is_admin else principal.id)


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    responses={**NOT_FOUND, **BAD_REQUEST},
    summary="Check whether a car is free for a date range",
)
async def check_availability(
    car_id: UUID,
    start_date: datetime,
    end_date: datetime,
    db: AsyncSession = Depends(get_db_session),
) -> AvailabilityResponse:
    available = await rental_service.check_availability(db, car_id, start_date, end_date)
    return AvailabilityResponse(
        car_id=car_id, start_date=start_date, end_date=end_date, available=available
    )


@router.get(
    "/quote",
    response_model=QuoteResponse,
    responses={**NOT_FOUND, **BAD_REQUEST},
    summary="Price a prospective booking",
)
async def quote(
    car_id: UUID,
    start_date: datetime,
    end_date: datetime,
    db: AsyncSession = Depends(get_db_session),
) -> QuoteResponse:
    return await rental_service.quote(db, car_id, start_date, end_date)


@router.get(
    "/available-cars",
    response_model=List[CarResponse],
    responses=BAD_REQUEST,
    summary="Cars free for a date range",
)
async def available_cars(
    start_date: datetime,
    end_date: datetime,
    location: Optional[str] = Query(default=None, max_length=255),
    db: AsyncSession = Depends(get_db_session),
) -> List[CarResponse]:
    cars = await rental_service.available_cars(db, start_date, end_date, location)
    return [CarResponse.model_validate(c) for c in cars]


@router.get(
    "/car/{car_id}",
    response_model=List[RentalResponse],
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Bookings of one car (owner or admin)",
)
async def rentals_for_car(
    car_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> List[RentalResponse]:
    rentals = await rental_service.list_by_car(db, car_id, principal)
    return [RentalResponse.model_validate(r) for r in rentals]


@router.get(
    "/{rental_id}",
    response_model=RentalResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Get a rental",
)
async def get_rental(
    rental_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> RentalResponse:
    rental = await rental_service.get_rental(db, rental_id, principal)
    return RentalResponse.model_validate(rental)


@router.patch(
    "/{rental_id}",
    response_model=RentalResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND, **BAD_REQUEST},
    summary="Update handover details and notes",
)
async def update_rental(
    rental_id: UUID,
    data: RentalUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> RentalResponse:
    rental = await rental_service.update_rental(db, rental_id, data, principal)
    return RentalResponse.model_validate(rental)


@router.delete(
    "/{rental_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**AUTH_ERRORS, **NOT_FOUND, **BAD_REQUEST},
    summary="Delete a rental record",
    description="Refused while the car is out with the renter.",
)
async def delete_rental(
    rental_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await rental_service.delete_rental(db, rental_id, principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Lifecycle Transitions ─────────────────────────────────────────────────


@router.post(
    "/{rental_id}/pay",
    response_model=RentalResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND, **BAD_REQUEST},
    summary="Pay for a booking",
    description="The amount must cover the booking's total cost.",
)
async def pay_rental(
    rental_id: UUID,
    data: PaymentRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> RentalResponse:
    rental = await rental_service.process_payment(
        db, rental_id, data.amount, principal, payment_method=data.payment_method
    )
    return RentalResponse.model_validate(rental)


@router.post(
    "/{rental_id}/start",
    response_model=RentalResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND, **BAD_REQUEST},
    summary="Hand the car over (owner or admin)",
)
async def start_rental(
    rental_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> RentalResponse:
    rental = await rental_service.start_rental(db, rental_id, principal)
    return RentalResponse.model_validate(rental)


@router.post(
    "/{rental_id}/complete",
    response_model=RentalResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND, **BAD_REQUEST},
    summary="Record the return (owner or admin)",
    description="Applies late fees for a late return plus any damage, fuel or cleaning fees.",
)
async def complete_rental(
    rental_id: UUID,
    data: Optional[CompleteRentalRequest] = None,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> RentalResponse:
    rental = await rental_service.complete_rental(
        db, rental_id, data or CompleteRentalRequest(), principal
    )
    return RentalResponse.model_validate(rental)


@router.post(
    "/{rental_id}/cancel",
    response_model=RentalResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND, **BAD_REQUEST},
    summary="Cancel a booking",
)
async def cancel_rental(
    rental_id: UUID,
    data: Optional[CancelRentalRequest] = None,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> RentalResponse:
    reason = data.reason if data else None
    rental = await rental_service.cancel_rental(db, rental_id, principal, reason=reason)
    return RentalResponse.model_validate(rental)


@router.post(
    "/{rental_id}/extend",
    response_model=RentalResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND, **BAD_REQUEST},
    summary="Extend an active rental",
)
async def extend_rental(
    rental_id: UUID,
    data: ExtendRentalRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> RentalResponse:
    rental = await rental_service.extend_rental(db, rental_id, data.days, principal)
    return RentalResponse.model_validate(rental)
