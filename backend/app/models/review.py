"""
RentCar Backend — Review SQLAlchemy Model
===========================================

What:  ORM model for the `reviews` table: renter feedback on a car.
Why:   Reviews drive car.rating, the owner's user.rating and part of every
       ranking score, so each write is followed by an AVG/COUNT refresh.

Constraints:
    - UNIQUE (user_id, car_id): one review per renter per car
    - rating is 1–5 (CHECK), sub-ratings in rating_breakdown are 1–5 as well
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.enums import ReviewType
from app.models.types import JSONType, UTCDateTime, enum_column, utcnow


class Review(Base):
    """A rating and comment left by a renter about a car they rented."""

    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    type: Mapped[ReviewType] = mapped_column(
        enum_column(ReviewType, "review_type"), nullable=False, default=ReviewType.CAR_REVIEW
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str | None] = mapped_column(String(100), nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    photos: Mapped[list | None] = mapped_column(JSONType, nullable=True)

    # ── Trust & Moderation ────────────────────────────────────────────────
    # is_verified: the author completed a rental of this car (always true today)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    helpful_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    report_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_reported: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    report_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_response: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Edit Trail ────────────────────────────────────────────────────────
    is_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    edited_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    edit_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Detail ────────────────────────────────────────────────────────────
    # rating_breakdown: {"cleanliness": 5, "comfort": 4, "performance": 4, "value": 5, "safety": 5}
    rating_breakdown: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    pros: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    cons: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    recommendation: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    car_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cars.id", ondelete="CASCADE"), nullable=False
    )
    rental_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("rental_history.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("user_id", "car_id", name="uq_reviews_user_car"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        Index("idx_reviews_car", "car_id"),
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, car={self.car_id}, rating={self.rating})>"
