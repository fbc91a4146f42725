"""
RentCar Backend — Review Service
==================================

What:  Verified reviews of cars: writing, editing, moderation, and the rating
       aggregates that hang off them.
Who:   Called by routes/reviews.py and routes/admin.py.

Rules:
    - only a user with a completed rental of the car may review it
    - one review per (user, car); a second attempt is a 409
    - every write refreshes the car's and the owner's rating from the
      reviews table, so the aggregates never drift
    - writing a review counts as activity for the reviewer's streak and ranking
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ConflictError, PermissionDeniedError, ValidationError
from app.models.car import Car
from app.models.enums import RentalStatus
from app.models.rental import Rental
from app.models.review import Review
from app.schemas.car import RatingStats
from app.schemas.review import ReviewCreate, ReviewUpdate
from app.security import Principal
from app.services.car_service import build_rating_stats, car_service
from app.services.persistence import flush, get_or_404, update_fields
from app.services.ranking_service import ranking_service
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

# Reports after which a review is flagged for moderation
REPORT_THRESHOLD = 1


class ReviewService:
    """Stateless business logic for the `reviews` table."""

    # ── Create ────────────────────────────────────────────────────────────

    async def create_review(
        self, db: AsyncSession, data: ReviewCreate, user_id: uuid.UUID
    ) -> Review:
        """
        Raises:
            NotFoundError: car (or the referenced rental) does not exist
            ValidationError: no completed rental of this car by the user
            ConflictError: the user already reviewed this car
        """
        car = await car_service.get_car(db, data.car_id)
        rental = await self._completed_rental(db, user_id, car.id, data.rental_id)
        if rental is None:
            raise ValidationError(
                "You can only review cars you have rented and returned", field="car_id"
            )

        existing = await db.scalar(
            select(Review.id).where(Review.user_id == user_id, Review.car_id == car.id)
        )
        if existing:
            raise ConflictError("You have already reviewed this car", field="car_id")

        review = Review(
            **data.model_dump(exclude={"car_id", "rental_id"}, exclude_none=True),
            car_id=car.id,
            rental_id=rental.id,
            user_id=user_id,
            is_verified=True,
        )
        db.add(review)
        await flush(db, "create the review")

        await self._refresh_ratings(db, car.id)
        await ranking_service.record_activity(db, user_id)
        await ranking_service.calculate_user_ranking(db, user_id)
        logger.info("Review created: %s car=%s rating=%d", review.id, car.id, review.rating)
        return review

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_review(self, db: AsyncSession, review_id: uuid.UUID) -> Review:
        return await get_or_404(db, Review, review_id, "review")

    async def list_reviews(
        self,
        db: AsyncSession,
        limit: int = 20,
        offset: int = 0,
        public_only: bool = True,
    ) -> Tuple[List[Review], int]:
        conditions = [Review.is_public.is_(True)] if public_only else []
        result = await db.execute(
            select(Review)
            .where(*conditions)
            .order_by(Review.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        total = await db.scalar(select(func.count(Review.id)).where(*conditions))
        return list(result.scalars().all()), total or 0

    async def list_by_car(self, db: AsyncSession, car_id: uuid.UUID) -> List[Review]:
        await car_service.get_car(db, car_id)
        result = await db.execute(
            select(Review)
            .where(Review.car_id == car_id, Review.is_public.is_(True))
            .order_by(Review.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_by_user(self, db: AsyncSession, user_id: uuid.UUID) -> List[Review]:
        """Public, non-anonymous reviews written by a user."""
        result = await db.execute(
            select(Review)
            .where(
                Review.user_id == user_id,
                Review.is_public.is_(True),
                Review.is_anonymous.is_(False),
            )
            .order_by(Review.created_at.desc())
        )
        return list(result.scalars().all())

    async def car_rating_stats(self, db: AsyncSession, car_id: uuid.UUID) -> RatingStats:
        await car_service.get_car(db, car_id)
        return await car_service.rating_stats(db, car_id)

    async def owner_rating_stats(self, db: AsyncSession, owner_id: uuid.UUID) -> RatingStats:
        await user_service.get_user(db, owner_id)
        result = await db.execute(
            select(Review.rating)
            .join(Car, Car.id == Review.car_id)
            .where(Car.owner_id == owner_id)
        )
        return build_rating_stats(list(result.scalars().all()))

    # ── Writes ────────────────────────────────────────────────────────────

    async def update_review(
        self, db: AsyncSession, review_id: uuid.UUID, data: ReviewUpdate, principal: Principal
    ) -> Review:
        review = await self.get_review(db, review_id)
        self._ensure_author(review, principal)
        changes = update_fields(review, data)
        rating_changed = "rating" in changes and changes["rating"] != review.rating
        for field, value in changes.items():
            setattr(review, field, value)
        review.is_edited = True
        review.edited_at = datetime.now(timezone.utc)
        await flush(db, "update the review")

        if rating_changed:
            await self._refresh_ratings(db, review.car_id)
        logger.info("Review updated: %s", review.id)
        return review

    async def delete_review(
        self, db: AsyncSession, review_id: uuid.UUID, principal: Principal
    ) -> None:
        review = await self.get_review(db, review_id)
        self._ensure_author(review, principal)
        car_id, author_id = review.car_id, review.user_id
        await db.delete(review)
        await flush(db, "delete the review")
        await self._refresh_ratings(db, car_id)
        await ranking_service.calculate_user_ranking(db, author_id)
        logger.info("Review deleted: %s", review_id)

    async def mark_helpful(self, db: AsyncSession, review_id: uuid.UUID) -> Review:
        review = await self.get_review(db, review_id)
        review.helpful_count = (review.helpful_count or 0) + 1
        await flush(db, "mark the review helpful")
        return review

    async def report_review(self, db: AsyncSession, review_id: uuid.UUID, reason: str) -> Review:
        review = await self.get_review(db, review_id)
        review.report_count = (review.report_count or 0) + 1
        review.report_reason = reason
        review.is_reported = review.report_count >= REPORT_THRESHOLD
        await flush(db, "report the review")
        logger.warning("Review reported: %s (%d reports)", review.id, review.report_count)
        return review

    async def respond(self, db: AsyncSession, review_id: uuid.UUID, response: str) -> Review:
        review = await self.get_review(db, review_id)
        review.admin_response = response
        await flush(db, "respond to the review")
        return review

    # ── Internal ──────────────────────────────────────────────────────────

    @staticmethod
    def _ensure_author(review: Review, principal: Principal) -> None:
        if not (principal.is_admin or review.user_id == principal.id):
            raise PermissionDeniedError("You can only modify your own reviews")

    async def _completed_rental(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        car_id: uuid.UUID,
        rental_id: Optional[uuid.UUID],
    ) -> Optional[Rental]:
        if rental_id is not None:
            rental = await get_or_404(db, Rental, rental_id, "rental")
            if (
                rental.user_id != user_id
                or rental.car_id != car_id
                or rental.status != RentalStatus.COMPLETED
            ):
                return None
            return rental
        result = await db.execute(
            select(Rental)
            .where(
                Rental.user_id == user_id,
                Rental.car_id == car_id,
                Rental.status == RentalStatus.COMPLETED,
            )
            .order_by(Rental.end_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _refresh_ratings(self, db: AsyncSession, car_id: uuid.UUID) -> None:
        car = await car_service.refresh_rating(db, car_id)
        if car is not None:
            await user_service.refresh_owner_rating(db, car.owner_id)
        await flush(db, "refresh ratings")


# ── Singleton Instance ────────────────────────────────────────────────────
review_service = ReviewService()
