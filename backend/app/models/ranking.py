"""
RentCar Backend — Ranking SQLAlchemy Model
============================================

What:  ORM model for the `rankings` table: gamified loyalty standing per user.
Who:   RankingService writes it; the leaderboard endpoints read it.

One row per (user, ranking type):
    rental_count → renter ranking (score from rentals, spend, ratings, reviews)
    earnings     → owner ranking (score from earnings, fleet size, ratings)
Other types are accepted for admin-curated rankings.

rank / previous_rank / rank_change are only written by RankingService.rerank,
so they describe the standing at the last refresh, not live order.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.enums import RankingType, TierLevel
from app.models.types import JSONType, Money, UTCDateTime, enum_column, utcnow


class Ranking(Base):
    """A user's score, tier, points and achievements for one ranking type."""

    __tablename__ = "rankings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    type: Mapped[RankingType] = mapped_column(
        enum_column(RankingType, "ranking_type"), nullable=False
    )

    # ── Standing ──────────────────────────────────────────────────────────
    score: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    previous_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rank_change: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tier: Mapped[TierLevel] = mapped_column(
        enum_column(TierLevel, "tier_level"), nullable=False, default=TierLevel.BRONZE
    )

    # ── Points ────────────────────────────────────────────────────────────
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    points_to_next_tier: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ── Rewards ───────────────────────────────────────────────────────────
    achievements: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    badges: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    statistics: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    special_title: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # ── Activity Streak ───────────────────────────────────────────────────
    last_activity: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    streak_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak_start_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    last_streak_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    # ── Goals ─────────────────────────────────────────────────────────────
    monthly_goals: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    monthly_goal_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    monthly_goal_progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    motivation_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("user_id", "type", name="uq_rankings_user_type"),
        Index("idx_rankings_type_score", "type", "score"),
    )

    def __repr__(self) -> str:
        return (
            f"<Ranking(user={self.user_id}, type='{self.type}', score={self.score}, "
            f"tier='{self.tier}')>"
        )
