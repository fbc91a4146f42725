"""
RentCar Backend — Ranking Route Handlers
==========================================

What:  Loyalty rankings and leaderboards under /api/ranking.
Who:   The client's leaderboard and "my progress" widgets; admins curate
       rankings and trigger full refreshes.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.exceptions import NotFoundError
from app.models.enums import RankingType
from app.schemas.common import AUTH_ERRORS, CONFLICT, NOT_FOUND
from app.schemas.ranking import (
    CarRankingResponse,
    LeaderboardEntry,
    RankingCreate,
    RankingResponse,
    RankingUpdate,
    RefreshResponse,
)
from app.security import Principal, get_current_principal, require_admin
from app.services.ranking_service import ranking_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/ranking", tags=["Ranking"])


@router.post(
    "",
    response_model=RankingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**AUTH_ERRORS, **NOT_FOUND, **CONFLICT},
    summary="Create a ranking row (admin)",
)
async def create_ranking(
    data: RankingCreate,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> RankingResponse:
    ranking = await ranking_service.create_ranking(db, data)
    return RankingResponse.model_validate(ranking)


@router.get("", response_model=List[RankingResponse], summary="Active rankings by score")
async def list_rankings(
    ranking_type: Optional[RankingType] = Query(default=None, alias="type"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
) -> List[RankingResponse]:
    rankings = await ranking_service.list_rankings(db, ranking_type, limit=limit, offset=offset)
    return [RankingResponse.model_validate(r) for r in rankings]


@router.get("/leaderboard", response_model=List[LeaderboardEntry], summary="Top renters")
async def leaderboard(
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> List[LeaderboardEntry]:
    return await ranking_service.leaderboard(db, limit=limit)


@router.get("/top/{ranking_type}", response_model=List[LeaderboardEntry], summary="Top of one ranking type")
async def top_rankings(
    ranking_type: RankingType,
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> List[LeaderboardEntry]:
    return await ranking_service.top(db, ranking_type, limit=limit)


@router.get(
    "/me",
    response_model=RankingResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="The caller's renter ranking",
    description="Calculated on first access if the caller has no ranking yet.",
)
async def my_ranking(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> RankingResponse:
    try:
        ranking = await ranking_service.get_user_ranking(db, principal.id)
    except NotFoundError:
        ranking = await ranking_service.calculate_user_ranking(db, principal.id)
    return RankingResponse.model_validate(ranking)


@router.get("/user/{user_id}", response_model=RankingResponse, responses=NOT_FOUND)
async def user_ranking(
    user_id: UUID,
    ranking_type: RankingType = Query(default=RankingType.RENTAL_COUNT, alias="type"),
    db: AsyncSession = Depends(get_db_session),
) -> RankingResponse:
    ranking = await ranking_service.get_user_ranking(db, user_id, ranking_type)
    return RankingResponse.model_validate(ranking)


@router.get(
    "/car/{car_id}",
    response_model=CarRankingResponse,
    responses=NOT_FOUND,
    summary="Computed score for a car",
)
async def car_ranking(
    car_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> CarRankingResponse:
    return await ranking_service.car_ranking(db, car_id)


@router.post(
    "/recalculate/me",
    response_model=RankingResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Recalculate the caller's renter ranking",
)
async def recalculate_my_ranking(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> RankingResponse:
    ranking = await ranking_service.calculate_user_ranking(db, principal.id)
    return RankingResponse.model_validate(ranking)


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    responses=AUTH_ERRORS,
    summary="Recalculate every ranking and reassign positions (admin)",
)
async def refresh_rankings(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> RefreshResponse:
    users_ranked, owners_ranked = await ranking_service.refresh_all(db)
    return RefreshResponse(users_ranked=users_ranked, owners_ranked=owners_ranked)


@router.get("/{ranking_id}", response_model=RankingResponse, responses=NOT_FOUND)
async def get_ranking(
    ranking_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> RankingResponse:
    ranking = await ranking_service.get_ranking(db, ranking_id)
    return RankingResponse.model_validate(ranking)


@router.patch(
    "/{ranking_id}",
    response_model=RankingResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Update a ranking",
    description="Its own user may change badges, monthly goals and the motivation message.",
)
async def update_ranking(
    ranking_id: UUID,
    data: RankingUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> RankingResponse:
    ranking = await ranking_service.update_ranking(db, ranking_id, data, principal)
    return RankingResponse.model_validate(ranking)


@router.delete(
    "/{ranking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**AUTH_ERRORS, **NOT_FOUND},
)
async def delete_ranking(
    ranking_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await ranking_service.delete_ranking(db, ranking_id, principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
