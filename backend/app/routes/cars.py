"""
RentCar Backend — Car Route Handlers
======================================

What:  Listing management and discovery under /api/cars.
Who:   Owners manage their fleet here; renters browse, search and filter.

Route order matters: the static paths (/search, /nearby, /popular, /type/…,
/mine) are declared before /{car_id} so they are not captured as an ID.

Caching:
    GET /api/cars/{id} is public and changes rarely, so it carries a short
    public Cache-Control; list endpoints are not cached.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.models.enums import CarType, UserRole
from app.schemas.car import (
    CarCreate,
    CarDetailResponse,
    CarFilters,
    CarListResponse,
    CarResponse,
    CarStatusUpdate,
    CarUpdate,
    NearbyCarResponse,
)
from app.schemas.common import AUTH_ERRORS, BAD_REQUEST, NOT_FOUND
from app.security import Principal, get_current_principal, require_roles
from app.services.car_service import car_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/cars", tags=["Cars"])

require_owner = require_roles(UserRole.OWNER, UserRole.ADMIN)


@router.post(
    "",
    response_model=CarResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="List a new car",
    description="Owners list their own cars; admins may pass owner_id to list for an owner.",
)
async def create_car(
    data: CarCreate,
    principal: Principal = Depends(require_owner),
    db: AsyncSession = Depends(get_db_session),
) -> CarResponse:
    car = await car_service.create_car(db, data, principal)
    return CarResponse.model_validate(car)


@router.get(
    "",
    response_model=CarListResponse,
    summary="Browse cars",
    description=(
        "Filtered, paginated browse ordered by daily rate. Without `available`, "
        "only cars that can be booked right now are returned. Total count is also "
        "sent in the X-Total-Count header."
    ),
)
async def list_cars(
    response: Response,
    filters: CarFilters = Depends(),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
) -> CarListResponse:
    cars, total = await car_service.list_cars(db, filters, limit=limit, offset=offset)
    response.headers["X-Total-Count"] = str(total)
    return CarListResponse(items=[CarResponse.model_validate(c) for c in cars], total_count=total)


@router.get("/search", response_model=List[CarResponse], summary="Free-text search")
async def search_cars(
    q: str = Query(min_length=1, max_length=100, description="Brand, model, description or location"),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> List[CarResponse]:
    cars = await car_service.search(db, q, limit=limit)
    return [CarResponse.model_validate(c) for c in cars]


@router.get(
    "/nearby",
    response_model=List[NearbyCarResponse],
    summary="Available cars within a radius",
)
async def nearby_cars(
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180),
    radius: float = Query(default=50, gt=0, le=1000, description="Radius in kilometres"),
    limit: int = Query(default=50, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> List[NearbyCarResponse]:
    matches = await car_service.nearby(db, latitude, longitude, radius_km=radius, limit=limit)
    return [
        NearbyCarResponse(**CarResponse.model_validate(car).model_dump(), distance_km=distance)
        for car, distance in matches
    ]


@router.get("/popular", response_model=List[CarResponse], summary="Most rented cars")
async def popular_cars(
    limit: int = Query(default=10, ge=1, le=50),
    db: AsyncSession = Depends(get_db_session),
) -> List[CarResponse]:
    cars = await car_service.popular(db, limit=limit)
    return [CarResponse.model_validate(c) for c in cars]


@router.get("/type/{car_type}", response_model=List[CarResponse], summary="Available cars by body type")
async def cars_by_type(
    car_type: CarType,
    db: AsyncSession = Depends(get_db_session),
) -> List[CarResponse]:
    cars = await car_service.by_type(db, car_type)
    return [CarResponse.model_validate(c) for c in cars]


@router.get(
    "/mine",
    response_model=List[CarResponse],
    responses=AUTH_ERRORS,
    summary="Cars listed by the caller",
)
async def my_cars(
    principal: Principal = Depends(require_owner),
    db: AsyncSession = Depends(get_db_session),
) -> List[CarResponse]:
    cars = await car_service.list_by_owner(db, principal.id)
    return [CarResponse.model_validate(c) for c in cars]


@router.get(
    "/{car_id}",
    response_model=CarDetailResponse,
    responses=NOT_FOUND,
    summary="Car detail with owner and rating distribution",
)
async def get_car(
    car_id: UUID,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> CarDetailResponse:
    detail = await car_service.get_car_detail(db, car_id)
    response.headers["Cache-Control"] = "public, max-age=60"
    return detail


@router.patch(
    "/{car_id}",
    response_model=CarResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Update a listing",
)
async def update_car(
    car_id: UUID,
    data: CarUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> CarResponse:
    car = await car_service.update_car(db, car_id, data, principal)
    return CarResponse.model_validate(car)


@router.patch(
    "/{car_id}/status",
    response_model=CarResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Change a car's status",
)
async def update_car_status(
    car_id: UUID,
    data: CarStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> CarResponse:
    car = await car_service.update_status(db, car_id, data.status, principal)
    return CarResponse.model_validate(car)


@router.delete(
    "/{car_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**AUTH_ERRORS, **NOT_FOUND, **BAD_REQUEST},
    summary="Remove a listing",
    description="Refused while the car has pending or active rentals.",
)
async def delete_car(
    car_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await car_service.delete_car(db, car_id, principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
