"""
RentCar Backend — Ranking Service (Loyalty & Leaderboards)
============================================================

What:  Computes and stores gamified standings: scores, tiers, points,
       achievements, activity streaks and leaderboard positions.
Who:   Called by routes/ranking.py; RentalService and ReviewService call
       calculate_*/record_activity after the events that move a score.

Persisted rankings:
    rental_count → every renter (score from rentals, spend, ratings given, reviews)
    earnings     → every owner with at least one car
Car scores are derived on demand and never stored.

Ranking Flow:
    complete rental / write review
        → record_activity()          (daily streak)
        → calculate_user_ranking()   (score, tier, points, achievements)
        → calculate_owner_ranking()  (after a rental completes)
    POST /api/ranking/refresh
        → recalculate everyone, then rerank() to assign positions

Statistics stored on a renter ranking (`statistics` JSON):
    total_rentals, total_spent, average_rating, review_count, loyalty_points,
    consecutive_rentals, longest_rental, favorite_car_type, preferred_location,
    referral_count, damaged_rentals, early_returns, weekend_rentals
"""

import logging
import uuid
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from app.models.car import Car
from app.models.enums import LOGIN_STATUSES, RankingType, RentalStatus
from app.models.ranking import Ranking
from app.models.rental import Rental
from app.models.review import Review
from app.models.user import User
from app.schemas.ranking import (
    CarRankingResponse,
    LeaderboardEntry,
    RankingCreate,
    RankingUpdate,
)
from app.security import Principal
from app.services import scoring
from app.services.persistence import flush, get_or_404, update_fields

logger = logging.getLogger(__name__)

# Fields the ranking's own user may change; everything else is admin-only
SELF_EDITABLE_FIELDS = frozenset({"badges", "monthly_goals", "motivation_message"})


def charged_total(rental: Rental) -> float:
    """What the renter paid in the end: booking total plus return fees."""
    return round((rental.total_cost or 0) + rental.total_fees, 2)


class RankingService:
    """Stateless business logic for the `rankings` table."""

    # ══════════════════════════════════════════════════════════════════════
    # Statistics
    # ══════════════════════════════════════════════════════════════════════

    async def user_statistics(
        self, db: AsyncSession, user_id: uuid.UUID
    ) -> Tuple[scoring.RenterStats, Dict[str, Any]]:
        """
        Gather everything a renter's score depends on.

        Returns the typed inputs for scoring plus the JSON-friendly summary
        stored on the ranking row.
        """
        rows = (
            await db.execute(
                select(Rental, Car.type, Car.location)
                .join(Car, Car.id == Rental.car_id)
                .where(Rental.user_id == user_id)
                .order_by(Rental.start_date.desc())
            )
        ).all()
        completed = [row for row in rows if row[0].status == RentalStatus.COMPLETED]

        review_row = (
            await db.execute(
                select(func.avg(Review.rating), func.count(Review.id)).where(
                    Review.user_id == user_id
                )
            )
        ).one()
        average_rating = round(float(review_row[0] or 0), 2)
        review_count = int(review_row[1] or 0)

        total_rentals = len(completed)
        total_spent = round(sum(charged_total(row[0]) for row in completed), 2)

        # Most recent run of completed rentals, broken by a cancellation
        consecutive = 0
        for rental, _, _ in rows:
            if rental.status == RentalStatus.COMPLETED:
                consecutive += 1
            elif rental.status == RentalStatus.CANCELLED:
                break

        car_types = Counter(row[1].value for row in completed if row[1] is not None)
        locations = Counter(
            (row[0].pickup_location or row[2]) for row in completed if (row[0].pickup_location or row[2])
        )

        stats = scoring.RenterStats(
            total_rentals=total_rentals,
            total_spent=total_spent,
            average_rating=average_rating,
            review_count=review_count,
            loyalty_points=scoring.loyalty_points(total_rentals),
            damaged_rentals=sum(1 for row in completed if (row[0].damage_fees or 0) > 0),
            early_returns=sum(
                1
                for row in completed
                if row[0].actual_return_date and row[0].actual_return_date < row[0].end_date
            ),
            weekend_rentals=sum(1 for row in completed if scoring.is_weekend_start(row[0].start_date)),
        )
        summary = {
            "total_rentals": stats.total_rentals,
            "total_spent": stats.total_spent,
            "average_rating": stats.average_rating,
            "review_count": stats.review_count,
            "loyalty_points": stats.loyalty_points,
            "consecutive_rentals": consecutive,
            "longest_rental": max((row[0].duration for row in completed), default=0),
            "favorite_car_type": car_types.most_common(1)[0][0] if car_types else None,
            "preferred_location": locations.most_common(1)[0][0] if locations else None,
            "referral_count": 0,
            "damaged_rentals": stats.damaged_rentals,
            "early_returns": stats.early_returns,
            "weekend_rentals": stats.weekend_rentals,
        }
        return stats, summary

    async def owner_statistics(self, db: AsyncSession, owner_id: uuid.UUID) -> Dict[str, Any]:
        fleet = (
            await db.execute(
                select(
                    func.count(Car.id),
                    func.coalesce(func.sum(Car.total_earnings), 0),
                    func.coalesce(func.sum(Car.total_rentals), 0),
                ).where(Car.owner_id == owner_id)
            )
        ).one()
        reviews = (
            await db.execute(
                select(func.avg(Review.rating), func.count(Review.id))
                .join(Car, Car.id == Review.car_id)
                .where(Car.owner_id == owner_id)
            )
        ).one()
        return {
            "total_cars": int(fleet[0] or 0),
            "total_earnings": round(float(fleet[1] or 0), 2),
            "total_rentals": int(fleet[2] or 0),
            "average_rating": round(float(reviews[0] or 0), 2),
            "review_count": int(reviews[1] or 0),
        }

    async def car_statistics(self, db: AsyncSession, car_id: uuid.UUID) -> Dict[str, Any]:
        completed = await db.scalar(
            select(func.count(Rental.id)).where(
                Rental.car_id == car_id, Rental.status == RentalStatus.COMPLETED
            )
        )
        reviews = (
            await db.execute(
                select(func.avg(Review.rating), func.count(Review.id)).where(
                    Review.car_id == car_id
                )
            )
        ).one()
        return {
            "total_rentals": int(completed or 0),
            "average_rating": round(float(reviews[0] or 0), 2),
            "review_count": int(reviews[1] or 0),
        }

    # ══════════════════════════════════════════════════════════════════════
    # Calculation
    # ══════════════════════════════════════════════════════════════════════

    async def calculate_user_ranking(self, db: AsyncSession, user_id: uuid.UUID) -> Ranking:
        await get_or_404(db, User, user_id, "user")
        stats, summary = await self.user_statistics(db, user_id)

        score = scoring.user_score(
            stats.total_rentals, stats.total_spent, stats.average_rating, stats.review_count
        )
        tier = scoring.tier_for_score(score)
        total_points = stats.loyalty_points

        ranking = await self._get_or_create(db, user_id, RankingType.RENTAL_COUNT)
        ranking.score = score
        ranking.tier = tier
        ranking.points = scoring.ranking_points(
            stats.total_rentals, stats.average_rating, stats.review_count
        )
        ranking.total_points = total_points
        ranking.points_to_next_tier = scoring.points_to_next_tier(tier, total_points)
        ranking.achievements = [a.value for a in scoring.achievements_for(stats)]
        ranking.statistics = summary
        ranking.last_activity = datetime.now(timezone.utc)
        await flush(db, "save the ranking")
        logger.info("Ranking recalculated for user %s: score=%s tier=%s", user_id, score, tier.value)
        return ranking

    async def calculate_owner_ranking(self, db: AsyncSession, owner_id: uuid.UUID) -> Ranking:
        await get_or_404(db, User, owner_id, "user")
        stats = await self.owner_statistics(db, owner_id)

        score = scoring.owner_score(
            stats["total_earnings"], stats["total_cars"], stats["average_rating"], stats["total_rentals"]
        )
        tier = scoring.tier_for_score(score)
        total_points = scoring.loyalty_points(stats["total_rentals"])

        ranking = await self._get_or_create(db, owner_id, RankingType.EARNINGS)
        ranking.score = score
        ranking.tier = tier
        ranking.points = scoring.ranking_points(
            stats["total_rentals"], stats["average_rating"], stats["review_count"]
        )
        ranking.total_points = total_points
        ranking.points_to_next_tier = scoring.points_to_next_tier(tier, total_points)
        ranking.statistics = stats
        ranking.last_activity = datetime.now(timezone.utc)
        await flush(db, "save the owner ranking")
        logger.info("Owner ranking recalculated for %s: score=%s", owner_id, score)
        return ranking

    async def car_ranking(self, db: AsyncSession, car_id: uuid.UUID) -> CarRankingResponse:
        await get_or_404(db, Car, car_id, "car")
        stats = await self.car_statistics(db, car_id)
        score = scoring.car_score(
            stats["average_rating"], stats["total_rentals"], stats["review_count"]
        )
        return CarRankingResponse(car_id=car_id, score=score, statistics=stats)

    async def record_activity(
        self, db: AsyncSession, user_id: uuid.UUID, when: Optional[datetime] = None
    ) -> Ranking:
        """
        Advance the daily activity streak.

        Same calendar day (UTC) → unchanged; next day → +1; any gap → restart at 1.
        """
        when = when or datetime.now(timezone.utc)
        ranking = await self._get_or_create(db, user_id, RankingType.RENTAL_COUNT)
        today = when.date()
        last = ranking.last_streak_date.date() if ranking.last_streak_date else None

        if last == today:
            pass
        elif last is not None and last == today - timedelta(days=1):
            ranking.streak_days = (ranking.streak_days or 0) + 1
        else:
            ranking.streak_days = 1
            ranking.streak_start_date = when

        ranking.last_streak_date = when
        ranking.last_activity = when
        await flush(db, "record activity")
        return ranking

    async def rerank(self, db: AsyncSession, ranking_type: RankingType) -> int:
        """Assign 1-based positions by score; remember the previous position."""
        result = await db.execute(
            select(Ranking)
            .where(Ranking.type == ranking_type, Ranking.is_active.is_(True))
            .order_by(Ranking.score.desc(), Ranking.created_at.asc())
        )
        rankings = list(result.scalars().all())
        for position, ranking in enumerate(rankings, start=1):
            previous = ranking.rank
            ranking.previous_rank = previous
            ranking.rank = position
            ranking.rank_change = (previous - position) if previous else 0
        await flush(db, "rerank")
        return len(rankings)

    async def refresh_all(self, db: AsyncSession) -> Tuple[int, int]:
        user_ids = (
            await db.execute(select(User.id).where(User.status.in_(LOGIN_STATUSES)))
        ).scalars().all()
        for user_id in user_ids:
            await self.calculate_user_ranking(db, user_id)

        owner_ids = (await db.execute(select(Car.owner_id).distinct())).scalars().all()
        for owner_id in owner_ids:
            await self.calculate_owner_ranking(db, owner_id)

        await self.rerank(db, RankingType.RENTAL_COUNT)
        await self.rerank(db, RankingType.EARNINGS)
        logger.info("Rankings refreshed: %d users, %d owners", len(user_ids), len(owner_ids))
        return len(user_ids), len(owner_ids)

    # ══════════════════════════════════════════════════════════════════════
    # CRUD
    # ══════════════════════════════════════════════════════════════════════

    async def create_ranking(self, db: AsyncSession, data: RankingCreate) -> Ranking:
        await get_or_404(db, User, data.user_id, "user")
        if await self._find(db, data.user_id, data.type) is not None:
            raise ConflictError("A ranking of this type already exists for the user", field="type")
        ranking = Ranking(**data.model_dump())
        ranking.total_points = data.points
        ranking.points_to_next_tier = scoring.points_to_next_tier(data.tier, data.points)
        db.add(ranking)
        await flush(db, "create the ranking")
        logger.info("Ranking created: %s (%s) for user %s", ranking.id, data.type.value, data.user_id)
        return ranking

    async def list_rankings(
        self,
        db: AsyncSession,
        ranking_type: Optional[RankingType] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Ranking]:
        query = select(Ranking).where(Ranking.is_active.is_(True))
        if ranking_type:
            query = query.where(Ranking.type == ranking_type)
        result = await db.execute(
            query.order_by(Ranking.score.desc(), Ranking.created_at.asc()).limit(limit).offset(offset)
        )
        return list(result.scalars().all())

    async def get_ranking(self, db: AsyncSession, ranking_id: uuid.UUID) -> Ranking:
        return await get_or_404(db, Ranking, ranking_id, "ranking")

    async def get_user_ranking(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        ranking_type: RankingType = RankingType.RENTAL_COUNT,
    ) -> Ranking:
        ranking = await self._find(db, user_id, ranking_type)
        if ranking is None:
            raise NotFoundError(resource="ranking", resource_id=str(user_id))
        return ranking

    async def update_ranking(
        self, db: AsyncSession, ranking_id: uuid.UUID, data: RankingUpdate, principal: Principal
    ) -> Ranking:
        ranking = await self.get_ranking(db, ranking_id)
        changes = update_fields(ranking, data)
        if not principal.is_admin:
            if ranking.user_id != principal.id:
                raise PermissionDeniedError("You can only update your own ranking")
            forbidden = set(changes) - SELF_EDITABLE_FIELDS
            if forbidden:
                raise PermissionDeniedError(
                    "Only admins can change these ranking fields",
                    context={"fields": sorted(forbidden)},
                )
        for field, value in changes.items():
            setattr(ranking, field, value)
        if "points" in changes:
            ranking.total_points = changes["points"]
        if "points" in changes or "tier" in changes:
            ranking.points_to_next_tier = scoring.points_to_next_tier(ranking.tier, ranking.total_points)
        await flush(db, "update the ranking")
        return ranking

    async def delete_ranking(
        self, db: AsyncSession, ranking_id: uuid.UUID, principal: Principal
    ) -> None:
        ranking = await self.get_ranking(db, ranking_id)
        if not principal.is_admin and ranking.user_id != principal.id:
            raise PermissionDeniedError("You can only delete your own ranking")
        await db.delete(ranking)
        await flush(db, "delete the ranking")

    # ══════════════════════════════════════════════════════════════════════
    # Leaderboards
    # ══════════════════════════════════════════════════════════════════════

    async def top(
        self, db: AsyncSession, ranking_type: RankingType, limit: int = 10
    ) -> List[LeaderboardEntry]:
        rows = (
            await db.execute(
                select(Ranking, User)
                .join(User, User.id == Ranking.user_id)
                .where(Ranking.type == ranking_type, Ranking.is_active.is_(True))
                .order_by(Ranking.score.desc(), Ranking.created_at.asc())
                .limit(limit)
            )
        ).all()
        return [
            LeaderboardEntry(
                position=position,
                user_id=user.id,
                first_name=user.first_name,
                last_name=user.last_name,
                profile_picture=user.profile_picture,
                type=ranking.type,
                score=ranking.score,
                tier=ranking.tier,
                points=ranking.points,
                rank_change=ranking.rank_change,
                achievements=ranking.achievements or [],
            )
            for position, (ranking, user) in enumerate(rows, start=1)
        ]

    async def leaderboard(self, db: AsyncSession, limit: int = 20) -> List[LeaderboardEntry]:
        return await self.top(db, RankingType.RENTAL_COUNT, limit)

    # ── Internal ──────────────────────────────────────────────────────────

    async def _find(
        self, db: AsyncSession, user_id: uuid.UUID, ranking_type: RankingType
    ) -> Optional[Ranking]:
        result = await db.execute(
            select(Ranking).where(Ranking.user_id == user_id, Ranking.type == ranking_type)
        )
        return result.scalar_one_or_none()

    async def _get_or_create(
        self, db: AsyncSession, user_id: uuid.UUID, ranking_type: RankingType
    ) -> Ranking:
        ranking = await self._find(db, user_id, ranking_type)
        if ranking is None:
            ranking = Ranking(user_id=user_id, type=ranking_type)
            db.add(ranking)
            await flush(db, "create the ranking")
        return ranking


# ── Singleton Instance ────────────────────────────────────────────────────
ranking_service = RankingService()
