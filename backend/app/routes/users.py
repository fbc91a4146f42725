"""
RentCar Backend — User Route Handlers
=======================================

What:  Registration, login and profile management under /api/users.
Who:   Called by the web client's sign-up/sign-in forms and profile pages.

Access:
    register / login      → public
    profile               → any authenticated user
    list, verify-*        → admin
    get / update / delete → the user themself or an admin
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.exceptions import PermissionDeniedError
from app.schemas.common import AUTH_ERRORS, BAD_REQUEST, CONFLICT, NOT_FOUND
from app.schemas.user import (
    AuthResponse,
    LoginRequest,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from app.security import Principal, get_current_principal, require_admin
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/users", tags=["Users"])


def ensure_self_or_admin(user_id: UUID, principal: Principal) -> None:
    if not (principal.is_admin or principal.id == user_id):
        raise PermissionDeniedError("You can only access your own account")


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**BAD_REQUEST, **CONFLICT},
    summary="Create an account",
    description=(
        "Registers a customer or owner account and returns it with an access token. "
        "Email and phone number must be unique."
    ),
)
async def register(
    data: UserCreate,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user, token = await user_service.register(db, data)
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={**AUTH_ERRORS, **BAD_REQUEST},
    summary="Exchange credentials for an access token",
)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user, token = await user_service.login(db, data.email, data.password)
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.get(
    "/profile",
    response_model=UserResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Current user's profile",
)
async def get_profile(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await user_service.get_user(db, principal.id)
    return UserResponse.model_validate(user)


@router.get(
    "",
    response_model=UserListResponse,
    responses=AUTH_ERRORS,
    summary="List all users (admin)",
)
async def list_users(
    response: Response,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserListResponse:
    users, total = await user_service.list_users(db, limit=limit, offset=offset)
    response.headers["X-Total-Count"] = str(total)
    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in users],
        total_count=total,
    )


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Get a user by ID",
)
async def get_user(
    user_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    ensure_self_or_admin(user_id, principal)
    user = await user_service.get_user(db, user_id)
    return UserResponse.model_validate(user)


@router.patch(
    "/{user_id}",
    response_model=UserResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND, **CONFLICT},
    summary="Update profile fields",
    description="Only the fields present in the body are changed.",
)
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    ensure_self_or_admin(user_id, principal)
    user = await user_service.update_user(db, user_id, data)
    return UserResponse.model_validate(user)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**AUTH_ERRORS, **NOT_FOUND, **BAD_REQUEST},
    summary="Delete an account",
    description="Refused while the user has pending or active rentals, as renter or owner.",
)
async def delete_user(
    user_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    ensure_self_or_admin(user_id, principal)
    await user_service.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{user_id}/verify-email",
    response_model=UserResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Mark the email address as verified (admin)",
)
async def verify_email(
    user_id: UUID,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await user_service.verify_email(db, user_id)
    return UserResponse.model_validate(user)


@router.post(
    "/{user_id}/verify-phone",
    response_model=UserResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Mark the phone number as verified (admin)",
)
async def verify_phone(
    user_id: UUID,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await user_service.verify_phone(db, user_id)
    return UserResponse.model_validate(user)
