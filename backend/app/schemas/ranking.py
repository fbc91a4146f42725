"""
RentCar Backend — Ranking Request/Response Schemas
====================================================

What:  Pydantic models for loyalty rankings, leaderboards and car scores.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.enums import RankingType, TierLevel


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RankingCreate(BaseModel):
    """Admin-curated ranking row (computed rankings are created automatically)."""
    user_id: uuid.UUID
    type: RankingType
    score: float = Field(default=0, ge=0)
    tier: TierLevel = TierLevel.BRONZE
    points: int = Field(default=0, ge=0)
    badges: Optional[List[str]] = None
    special_title: Optional[str] = Field(default=None, max_length=100)
    is_featured: bool = False
    monthly_goals: Optional[Dict[str, Any]] = None
    motivation_message: Optional[str] = Field(default=None, max_length=500)


class RankingUpdate(BaseModel):
    """
    Body of PATCH /api/ranking/{id}.

    The ranking's own user may only change badges, monthly_goals and
    motivation_message; the remaining fields are admin-only.
    """
    score: Optional[float] = Field(default=None, ge=0)
    tier: Optional[TierLevel] = None
    points: Optional[int] = Field(default=None, ge=0)
    badges: Optional[List[str]] = None
    special_title: Optional[str] = Field(default=None, max_length=100)
    is_featured: Optional[bool] = None
    is_active: Optional[bool] = None
    monthly_goals: Optional[Dict[str, Any]] = None
    monthly_goal_progress: Optional[int] = Field(default=None, ge=0)
    monthly_goal_completed: Optional[bool] = None
    motivation_message: Optional[str] = Field(default=None, max_length=500)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class RankingResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: RankingType
    score: float
    rank: Optional[int] = None
    previous_rank: Optional[int] = None
    rank_change: int
    tier: TierLevel
    points: int
    total_points: int
    points_to_next_tier: int
    achievements: Optional[List[str]] = None
    badges: Optional[List[str]] = None
    statistics: Optional[Dict[str, Any]] = None
    special_title: Optional[str] = None
    is_featured: bool
    last_activity: Optional[datetime] = None
    streak_days: int
    streak_start_date: Optional[datetime] = None
    last_streak_date: Optional[datetime] = None
    monthly_goals: Optional[Dict[str, Any]] = None
    monthly_goal_completed: bool
    monthly_goal_progress: int
    motivation_message: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LeaderboardEntry(BaseModel):
    position: int
    user_id: uuid.UUID
    first_name: str
    last_name: str
    profile_picture: Optional[str] = None
    type: RankingType
    score: float
    tier: TierLevel
    points: int
    rank_change: int
    achievements: List[str] = Field(default_factory=list)


class CarRankingResponse(BaseModel):
    car_id: uuid.UUID
    score: int
    statistics: Dict[str, Any]


class RefreshResponse(BaseModel):
    users_ranked: int
    owners_ranked: int
