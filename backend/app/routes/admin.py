"""
RentCar Backend — Admin Route Handlers
========================================

What:  Staff accounts, marketplace oversight and dashboard statistics under
       /api/admin.
Who:   The back-office client. Every route except /login requires an admin
       token; managing staff accounts requires a super admin.

Route order:
    Static prefixes (/dashboard, /stats, /users, /cars, /rentals, /reviews)
    are registered before the /{admin_id} routes, which come last.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.models.enums import RentalStatus
from app.schemas.admin import (
    AdminAuthResponse,
    AdminCreate,
    AdminListResponse,
    AdminLogin,
    AdminResponse,
    AdminUpdate,
    CarTypeStat,
    DashboardStats,
    RentalStatusStat,
    UserRoleStat,
)
from app.schemas.car import CarListResponse, CarResponse, CarStatusUpdate
from app.schemas.common import AUTH_ERRORS, BAD_REQUEST, CONFLICT, NOT_FOUND
from app.schemas.rental import RentalListResponse, RentalResponse, RentalStatusUpdate
from app.schemas.review import AdminReply, ReviewListResponse, ReviewResponse
from app.schemas.user import UserListResponse, UserResponse, UserRoleUpdate, UserStatusUpdate
from app.security import Principal, require_admin, require_super_admin
from app.services.admin_service import admin_service
from app.services.car_service import car_service
from app.services.rental_service import rental_service
from app.services.review_service import review_service
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/admin", tags=["Admin"])


# ══════════════════════════════════════════════════════════════════════════
# Authentication & Staff Accounts
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/login",
    response_model=AdminAuthResponse,
    responses={**AUTH_ERRORS, **BAD_REQUEST},
    summary="Staff login",
    description=(
        "Repeated wrong passwords lock the account for a configurable period. "
        "The returned token carries role=admin and the staff role."
    ),
)
async def admin_login(
    data: AdminLogin,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> AdminAuthResponse:
    ip = request.client.host if request.client else None
    admin, token = await admin_service.login(db, data.email, data.password, ip=ip)
    return AdminAuthResponse(admin=AdminResponse.model_validate(admin), token=token)


@router.post(
    "",
    response_model=AdminAuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**AUTH_ERRORS, **CONFLICT},
    summary="Create a staff account (super admin)",
)
async def create_admin(
    data: AdminCreate,
    _: Principal = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db_session),
) -> AdminAuthResponse:
    admin, token = await admin_service.create_admin(db, data)
    return AdminAuthResponse(admin=AdminResponse.model_validate(admin), token=token)


@router.get("", response_model=AdminListResponse, responses=AUTH_ERRORS, summary="List staff accounts")
async def list_admins(
    response: Response,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> AdminListResponse:
    admins, total = await admin_service.list_admins(db, limit=limit, offset=offset)
    response.headers["X-Total-Count"] = str(total)
    return AdminListResponse(
        items=[AdminResponse.model_validate(a) for a in admins],
        total_count=total,
    )


# ══════════════════════════════════════════════════════════════════════════
# Statistics
# ══════════════════════════════════════════════════════════════════════════


@router.get("/dashboard/stats", response_model=DashboardStats, responses=AUTH_ERRORS)
async def dashboard_stats(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> DashboardStats:
    return await admin_service.dashboard(db)


@router.get("/stats/users", response_model=List[UserRoleStat], responses=AUTH_ERRORS)
async def user_stats(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserRoleStat]:
    return await admin_service.users_by_role(db)


@router.get("/stats/cars", response_model=List[CarTypeStat], responses=AUTH_ERRORS)
async def car_stats(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> List[CarTypeStat]:
    return await admin_service.cars_by_type(db)


@router.get("/stats/rentals", response_model=List[RentalStatusStat], responses=AUTH_ERRORS)
async def rental_stats(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> List[RentalStatusStat]:
    return await admin_service.rentals_by_status(db)


# ══════════════════════════════════════════════════════════════════════════
# User Management
# ══════════════════════════════════════════════════════════════════════════


@router.get("/users", response_model=UserListResponse, responses=AUTH_ERRORS)
async def admin_list_users(
    response: Response,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserListResponse:
    users, total = await user_service.list_users(db, limit=limit, offset=offset)
    response.headers["X-Total-Count"] = str(total)
    return UserListResponse(items=[UserResponse.model_validate(u) for u in users], total_count=total)


@router.get("/users/{user_id}", response_model=UserResponse, responses={**AUTH_ERRORS, **NOT_FOUND})
async def admin_get_user(
    user_id: UUID,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return UserResponse.model_validate(await user_service.get_user(db, user_id))


@router.patch("/users/{user_id}/status", response_model=UserResponse, responses={**AUTH_ERRORS, **NOT_FOUND})
async def admin_set_user_status(
    user_id: UUID,
    data: UserStatusUpdate,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await admin_service.set_user_status(db, user_id, data.status, principal)
    return UserResponse.model_validate(user)


@router.patch("/users/{user_id}/role", response_model=UserResponse, responses={**AUTH_ERRORS, **NOT_FOUND})
async def admin_set_user_role(
    user_id: UUID,
    data: UserRoleUpdate,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await admin_service.set_user_role(db, user_id, data.role, principal)
    return UserResponse.model_validate(user)


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**AUTH_ERRORS, **NOT_FOUND, **BAD_REQUEST},
)
async def admin_delete_user(
    user_id: UUID,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await admin_service.delete_user(db, user_id, principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ══════════════════════════════════════════════════════════════════════════
# Car Management
# ══════════════════════════════════════════════════════════════════════════


@router.get("/cars", response_model=CarListResponse, responses=AUTH_ERRORS, summary="Every car, any status")
async def admin_list_cars(
    response: Response,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> CarListResponse:
    cars, total = await car_service.list_all(db, limit=limit, offset=offset)
    response.headers["X-Total-Count"] = str(total)
    return CarListResponse(items=[CarResponse.model_validate(c) for c in cars], total_count=total)


@router.get("/cars/{car_id}", response_model=CarResponse, responses={**AUTH_ERRORS, **NOT_FOUND})
async def admin_get_car(
    car_id: UUID,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> CarResponse:
    return CarResponse.model_validate(await car_service.get_car(db, car_id))


@router.patch("/cars/{car_id}/status", response_model=CarResponse, responses={**AUTH_ERRORS, **NOT_FOUND})
async def admin_set_car_status(
    car_id: UUID,
    data: CarStatusUpdate,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> CarResponse:
    car = await admin_service.set_car_status(db, car_id, data.status, principal)
    return CarResponse.model_validate(car)


@router.delete(
    "/cars/{car_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**AUTH_ERRORS, **NOT_FOUND, **BAD_REQUEST},
)
async def admin_delete_car(
    car_id: UUID,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await admin_service.delete_car(db, car_id, principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ══════════════════════════════════════════════════════════════════════════
# Rental Management
# ══════════════════════════════════════════════════════════════════════════


@router.get("/rentals", response_model=RentalListResponse, responses=AUTH_ERRORS)
async def admin_list_rentals(
    response: Response,
    rental_status: Optional[RentalStatus] = Query(default=None, alias="status"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> RentalListResponse:
    rentals, total = await rental_service.list_rentals(
        db, status=rental_status, limit=limit, offset=offset
    )
    response.headers["X-Total-Count"] = str(total)
    return RentalListResponse(
        items=[RentalResponse.model_validate(r) for r in rentals],
        total_count=total,
    )


@router.get("/rentals/{rental_id}", response_model=RentalResponse, responses={**AUTH_ERRORS, **NOT_FOUND})
async def admin_get_rental(
    rental_id: UUID,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> RentalResponse:
    return RentalResponse.model_validate(await rental_service.get_rental(db, rental_id))


@router.patch(
    "/rentals/{rental_id}/status",
    response_model=RentalResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
)
async def admin_set_rental_status(
    rental_id: UUID,
    data: RentalStatusUpdate,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> RentalResponse:
    rental = await admin_service.set_rental_status(
        db, rental_id, data.status, principal, payment_status=data.payment_status
    )
    return RentalResponse.model_validate(rental)


# ══════════════════════════════════════════════════════════════════════════
# Review Management
# ══════════════════════════════════════════════════════════════════════════


@router.get("/reviews", response_model=ReviewListResponse, responses=AUTH_ERRORS, summary="All reviews, public or not")
async def admin_list_reviews(
    response: Response,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewListResponse:
    reviews, total = await review_service.list_reviews(
        db, limit=limit, offset=offset, public_only=False
    )
    response.headers["X-Total-Count"] = str(total)
    return ReviewListResponse(
        items=[ReviewResponse.model_validate(r) for r in reviews],
        total_count=total,
    )


@router.get("/reviews/{review_id}", response_model=ReviewResponse, responses={**AUTH_ERRORS, **NOT_FOUND})
async def admin_get_review(
    review_id: UUID,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    return ReviewResponse.model_validate(await review_service.get_review(db, review_id))


@router.delete(
    "/reviews/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**AUTH_ERRORS, **NOT_FOUND},
)
async def admin_delete_review(
    review_id: UUID,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await admin_service.delete_review(db, review_id, principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/reviews/{review_id}/respond",
    response_model=ReviewResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
)
async def admin_respond_to_review(
    review_id: UUID,
    data: AdminReply,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    review = await admin_service.respond_to_review(db, review_id, data.response, principal)
    return ReviewResponse.model_validate(review)


# ══════════════════════════════════════════════════════════════════════════
# Single Staff Account (registered last: /{admin_id} would shadow the above)
# ══════════════════════════════════════════════════════════════════════════


@router.get("/{admin_id}", response_model=AdminResponse, responses={**AUTH_ERRORS, **NOT_FOUND})
async def get_admin(
    admin_id: UUID,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> AdminResponse:
    return AdminResponse.model_validate(await admin_service.get_admin(db, admin_id))


@router.patch(
    "/{admin_id}",
    response_model=AdminResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND, **CONFLICT},
    summary="Update a staff account (super admin)",
)
async def update_admin(
    admin_id: UUID,
    data: AdminUpdate,
    _: Principal = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db_session),
) -> AdminResponse:
    admin = await admin_service.update_admin(db, admin_id, data)
    return AdminResponse.model_validate(admin)


@router.delete(
    "/{admin_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Delete a staff account (super admin)",
)
async def delete_admin(
    admin_id: UUID,
    principal: Principal = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await admin_service.delete_admin(db, admin_id, principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
