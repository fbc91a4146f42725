"""
RentCar Backend — Review Request/Response Schemas
===================================================

What:  Pydantic models for writing, moderating and reading reviews.

Validation rules:
    rating 1–5 (whole stars), title 5–100 chars, comment 10–1000 chars,
    each rating_breakdown dimension 1–5.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.enums import ReviewType


class RatingBreakdown(BaseModel):
    cleanliness: Optional[int] = Field(default=None, ge=1, le=5)
    comfort: Optional[int] = Field(default=None, ge=1, le=5)
    performance: Optional[int] = Field(default=None, ge=1, le=5)
    value: Optional[int] = Field(default=None, ge=1, le=5)
    safety: Optional[int] = Field(default=None, ge=1, le=5)


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ReviewCreate(BaseModel):
    """Body of POST /api/reviews."""
    car_id: uuid.UUID
    rental_id: Optional[uuid.UUID] = None
    type: ReviewType = ReviewType.CAR_REVIEW
    rating: int = Field(ge=1, le=5)
    title: Optional[str] = Field(default=None, min_length=5, max_length=100)
    comment: Optional[str] = Field(default=None, min_length=10, max_length=1000)
    photos: Optional[List[str]] = None
    rating_breakdown: Optional[RatingBreakdown] = None
    pros: Optional[List[str]] = None
    cons: Optional[List[str]] = None
    recommendation: Optional[str] = Field(default=None, max_length=500)
    is_public: bool = True
    is_anonymous: bool = False


class ReviewUpdate(BaseModel):
    """Body of PATCH /api/reviews/{id}; marks the review as edited."""
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    title: Optional[str] = Field(default=None, min_length=5, max_length=100)
    comment: Optional[str] = Field(default=None, min_length=10, max_length=1000)
    photos: Optional[List[str]] = None
    rating_breakdown: Optional[RatingBreakdown] = None
    pros: Optional[List[str]] = None
    cons: Optional[List[str]] = None
    recommendation: Optional[str] = Field(default=None, max_length=500)
    is_public: Optional[bool] = None
    is_anonymous: Optional[bool] = None
    edit_reason: Optional[str] = Field(default=None, max_length=500)


class ReviewReport(BaseModel):
    reason: str = Field(min_length=5, max_length=500)


class AdminReply(BaseModel):
    response: str = Field(min_length=1, max_length=1000)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ReviewResponse(BaseModel):
    """
    Public review view.

    Anonymous reviews are returned with user_id = null; the author is still
    stored so edits, deletes and the one-review-per-car rule keep working.
    """
    id: uuid.UUID
    type: ReviewType
    rating: int
    title: Optional[str] = None
    comment: Optional[str] = None
    photos: Optional[List[str]] = None
    is_verified: bool
    helpful_count: int
    report_count: int
    is_reported: bool
    admin_response: Optional[str] = None
    is_edited: bool
    edited_at: Optional[datetime] = None
    edit_reason: Optional[str] = None
    rating_breakdown: Optional[dict] = None
    pros: Optional[List[str]] = None
    cons: Optional[List[str]] = None
    recommendation: Optional[str] = None
    is_public: bool
    is_anonymous: bool
    user_id: Optional[uuid.UUID] = None
    car_id: uuid.UUID
    rental_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_review(cls, review) -> "ReviewResponse":
        data = cls.model_validate(review)
        if review.is_anonymous:
            data.user_id = None
        return data


class ReviewListResponse(BaseModel):
    items: List[ReviewResponse]
    total_count: int
