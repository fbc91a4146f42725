"""
RentCar Backend — Review Route Handlers
=========================================

What:  Verified car reviews under /api/reviews.
Who:   Renters write and edit their reviews; everyone can read them;
       admins moderate and reply.

Anonymous reviews are serialized through ReviewResponse.from_review(),
which drops the author's user_id.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.car import RatingStats
from app.schemas.common import AUTH_ERRORS, BAD_REQUEST, CONFLICT, NOT_FOUND
from app.schemas.review import (
    AdminReply,
    ReviewCreate,
    ReviewListResponse,
    ReviewReport,
    ReviewResponse,
    ReviewUpdate,
)
from app.security import Principal, get_current_principal, require_admin
from app.services.review_service import review_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


@router.post(
    "",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**AUTH_ERRORS, **NOT_FOUND, **BAD_REQUEST, **CONFLICT},
    summary="Review a car you have rented",
)
async def create_review(
    data: ReviewCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    review = await review_service.create_review(db, data, principal.id)
    return ReviewResponse.from_review(review)


@router.get("", response_model=ReviewListResponse, summary="Public reviews, newest first")
async def list_reviews(
    response: Response,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewListResponse:
    reviews, total = await review_service.list_reviews(db, limit=limit, offset=offset)
    response.headers["X-Total-Count"] = str(total)
    return ReviewListResponse(
        items=[ReviewResponse.from_review(r) for r in reviews],
        total_count=total,
    )


@router.get("/car/{car_id}", response_model=List[ReviewResponse], responses=NOT_FOUND)
async def reviews_for_car(
    car_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> List[ReviewResponse]:
    reviews = await review_service.list_by_car(db, car_id)
    return [ReviewResponse.from_review(r) for r in reviews]


@router.get("/user/{user_id}", response_model=List[ReviewResponse])
async def reviews_by_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> List[ReviewResponse]:
    reviews = await review_service.list_by_user(db, user_id)
    return [ReviewResponse.from_review(r) for r in reviews]


@router.get(
    "/stats/car/{car_id}",
    response_model=RatingStats,
    responses=NOT_FOUND,
    summary="Star distribution for a car",
)
async def car_rating_stats(
    car_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> RatingStats:
    return await review_service.car_rating_stats(db, car_id)


@router.get(
    "/stats/owner/{owner_id}",
    response_model=RatingStats,
    responses=NOT_FOUND,
    summary="Star distribution across an owner's cars",
)
async def owner_rating_stats(
    owner_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> RatingStats:
    return await review_service.owner_rating_stats(db, owner_id)


@router.get("/{review_id}", response_model=ReviewResponse, responses=NOT_FOUND)
async def get_review(
    review_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    review = await review_service.get_review(db, review_id)
    return ReviewResponse.from_review(review)


@router.patch(
    "/{review_id}",
    response_model=ReviewResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Edit a review (author or admin)",
)
async def update_review(
    review_id: UUID,
    data: ReviewUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    review = await review_service.update_review(db, review_id, data, principal)
    return ReviewResponse.from_review(review)


@router.delete(
    "/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Delete a review (author or admin)",
)
async def delete_review(
    review_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await review_service.delete_review(db, review_id, principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{review_id}/helpful", response_model=ReviewResponse, responses={**AUTH_ERRORS, **NOT_FOUND})
async def mark_helpful(
    review_id: UUID,
    _: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    review = await review_service.mark_helpful(db, review_id)
    return ReviewResponse.from_review(review)


@router.post("/{review_id}/report", response_model=ReviewResponse, responses={**AUTH_ERRORS, **NOT_FOUND})
async def report_review(
    review_id: UUID,
    data: ReviewReport,
    _: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    review = await review_service.report_review(db, review_id, data.reason)
    return ReviewResponse.from_review(review)


@router.post(
    "/{review_id}/respond",
    response_model=ReviewResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Attach an official reply (admin)",
)
async def respond_to_review(
    review_id: UUID,
    data: AdminReply,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    review = await review_service.respond(db, review_id, data.response)
    return ReviewResponse.from_review(review)
