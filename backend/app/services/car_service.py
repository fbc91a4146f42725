"""
RentCar Backend — Car Service
===============================

What:  Listing management and discovery for cars: CRUD, filtered browsing,
       text search, radius search, popularity, rating aggregates.
Who:   Called by routes/cars.py and routes/admin.py; RentalService and
       ReviewService use the status/aggregate helpers.

Ownership rules:
    - only owners and admins may list cars; admins may list on behalf of an owner
    - only the car's owner or an admin may edit, re-status or delete it
    - a car with pending/active bookings cannot be deleted

Status rules:
    `is_available` mirrors `status == available` and is only ever written
    through set_status().
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import PermissionDeniedError, ValidationError
from app.models.car import Car
from app.models.enums import BLOCKING_STATUSES, CarStatus, CarType, UserRole
from app.models.rental import Rental
from app.models.review import Review
from app.models.user import User
from app.schemas.car import CarCreate, CarDetailResponse, CarFilters, CarUpdate, RatingStats
from app.schemas.user import UserSummary
from app.security import Principal
from app.services.persistence import flush, get_or_404, update_fields
from app.services.scoring import haversine_km, rating_distribution

logger = logging.getLogger(__name__)

LISTING_ROLES = frozenset({UserRole.OWNER, UserRole.ADMIN})
KM_PER_DEGREE_LAT = 111.0


class CarService:
    """Stateless business logic for the `cars` table."""

    # ── Create ────────────────────────────────────────────────────────────

    async def create_car(self, db: AsyncSession, data: CarCreate, principal: Principal) -> Car:
        """
        List a new car.

        Raises:
            PermissionDeniedError: caller (or target owner) is not an owner/admin,
                                   or a non-admin tried to list for someone else
            NotFoundError: owner account does not exist
        """
        owner_id = principal.id
        if data.owner_id is not None and data.owner_id != principal.id:
            if not principal.is_admin:
                raise PermissionDeniedError("Only admins can list cars for another owner")
            owner_id = data.owner_id

        owner = await get_or_404(db, User, owner_id, "user")
        if owner.role not in LISTING_ROLES:
            raise PermissionDeniedError("Only car owners and admins can list cars")

        car = Car(
            **data.model_dump(exclude={"owner_id"}, exclude_none=True),
            owner_id=owner.id,
        )
        self.set_status(car, CarStatus.AVAILABLE)
        db.add(car)
        await flush(db, "create the car")
        logger.info("Car listed: %s (%s %s) by owner %s", car.id, car.brand, car.model, owner.id)
        return car

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_car(self, db: AsyncSession, car_id: uuid.UUID) -> Car:
        return await get_or_404(db, Car, car_id, "car")

    async def get_car_detail(self, db: AsyncSession, car_id: uuid.UUID) -> CarDetailResponse:
        car = await self.get_car(db, car_id)
        owner = await db.get(User, car.owner_id)
        detail = CarDetailResponse.model_validate(car)
        detail.owner = UserSummary.model_validate(owner) if owner else None
        detail.rating_stats = await self.rating_stats(db, car.id)
        return detail

    async def list_cars(
        self,
        db: AsyncSession,
        filters: CarFilters,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Car], int]:
        """
        Filtered browse, cheapest first.

        When `available` is not given only cars with status `available`
        are returned; available=false lists everything else.
        """
        conditions = []
        if filters.available is None or filters.available:
            conditions.append(Car.status == CarStatus.AVAILABLE)
        else:
            conditions.append(Car.status != CarStatus.AVAILABLE)
        if filters.type:
            conditions.append(Car.type == filters.type)
        if filters.fuel_type:
            conditions.append(Car.fuel_type == filters.fuel_type)
        if filters.transmission:
            conditions.append(Car.transmission == filters.transmission)
        if filters.min_price is not None:
            conditions.append(Car.daily_rate >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(Car.daily_rate <= filters.max_price)
        if filters.location:
            conditions.append(Car.location.ilike(f"%{filters.location}%"))
        if filters.brand:
            conditions.append(Car.brand.ilike(f"%{filters.brand}%"))
        if filters.model:
            conditions.append(Car.model.ilike(f"%{filters.model}%"))
        if filters.seats:
            conditions.append(Car.seats >= filters.seats)

        result = await db.execute(
            select(Car)
            .where(*conditions)
            .order_by(Car.daily_rate.asc(), Car.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        total = await db.scalar(select(func.count(Car.id)).where(*conditions))
        return list(result.scalars().all()), total or 0

    async def list_all(
        self, db: AsyncSession, limit: int = 20, offset: int = 0
    ) -> Tuple[List[Car], int]:
        """Every car regardless of status (admin view)."""
        result = await db.execute(
            select(Car).order_by(Car.created_at.desc()).limit(limit).offset(offset)
        )
        total = await db.scalar(select(func.count(Car.id)))
        return list(result.scalars().all()), total or 0

    async def list_by_owner(self, db: AsyncSession, owner_id: uuid.UUID) -> List[Car]:
        result = await db.execute(
            select(Car).where(Car.owner_id == owner_id).order_by(Car.created_at.desc())
        )
        return list(result.scalars().all())

    async def search(self, db: AsyncSession, term: str, limit: int = 20) -> List[Car]:
        pattern = f"%{term.strip()}%"
        result = await db.execute(
            select(Car)
            .where(
                Car.status == CarStatus.AVAILABLE,
                or_(
                    Car.brand.ilike(pattern),
                    Car.model.ilike(pattern),
                    Car.description.ilike(pattern),
                    Car.location.ilike(pattern),
                ),
            )
            .order_by(Car.rating.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def nearby(
        self,
        db: AsyncSession,
        latitude: float,
        longitude: float,
        radius_km: float = 50,
        limit: int = 50,
    ) -> List[Tuple[Car, float]]:
        """
        Available cars within `radius_km`, nearest first.

        A latitude band narrows the candidates in SQL; exact great-circle
        distance is then computed per car.
        """
        lat_delta = radius_km / KM_PER_DEGREE_LAT
        result = await db.execute(
            select(Car).where(
                Car.status == CarStatus.AVAILABLE,
                Car.latitude.is_not(None),
                Car.longitude.is_not(None),
                Car.latitude.between(latitude - lat_delta, latitude + lat_delta),
            )
        )
        matches = []
        for car in result.scalars().all():
            distance = haversine_km(latitude, longitude, car.latitude, car.longitude)
            if distance <= radius_km:
                matches.append((car, round(distance, 2)))
        matches.sort(key=lambda pair: pair[1])
        return matches[:limit]

    async def popular(self, db: AsyncSession, limit: int = 10) -> List[Car]:
        result = await db.execute(
            select(Car).order_by(Car.total_rentals.desc(), Car.rating.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def by_type(self, db: AsyncSession, car_type: CarType) -> List[Car]:
        result = await db.execute(
            select(Car)
            .where(Car.type == car_type, Car.status == CarStatus.AVAILABLE)
            .order_by(Car.daily_rate.asc())
        )
        return list(result.scalars().all())

    # ── Writes ────────────────────────────────────────────────────────────

    async def update_car(
        self, db: AsyncSession, car_id: uuid.UUID, data: CarUpdate, principal: Principal
    ) -> Car:
        car = await self.get_car(db, car_id)
        self.ensure_can_manage(car, principal)
        for field, value in update_fields(car, data).items():
            setattr(car, field, value)
        await flush(db, "update the car")
        logger.info("Car updated: %s (%s)", car.id, ", ".join(sorted(data.model_fields_set)))
        return car

    async def update_status(
        self, db: AsyncSession, car_id: uuid.UUID, status: CarStatus, principal: Principal
    ) -> Car:
        car = await self.get_car(db, car_id)
        self.ensure_can_manage(car, principal)
        self.set_status(car, status)
        await flush(db, "update the car status")
        logger.info("Car %s status → %s", car.id, status.value)
        return car

    async def delete_car(self, db: AsyncSession, car_id: uuid.UUID, principal: Principal) -> None:
        car = await self.get_car(db, car_id)
        self.ensure_can_manage(car, principal)
        if await self.has_blocking_rentals(db, car.id):
            raise ValidationError("Cannot delete a car with pending or active rentals")
        await db.delete(car)
        await flush(db, "delete the car")
        logger.info("Car deleted: %s", car_id)

    # ── Helpers used by other services ────────────────────────────────────

    @staticmethod
    def set_status(car: Car, status: CarStatus) -> None:
        car.status = status
        car.is_available = status == CarStatus.AVAILABLE

    @staticmethod
    def ensure_can_manage(car: Car, principal: Principal) -> None:
        if not (principal.is_admin or car.owner_id == principal.id):
            raise PermissionDeniedError("You can only manage your own cars")

    async def has_blocking_rentals(self, db: AsyncSession, car_id: uuid.UUID) -> bool:
        count = await db.scalar(
            select(func.count(Rental.id)).where(
                Rental.car_id == car_id, Rental.status.in_(BLOCKING_STATUSES)
            )
        )
        return bool(count)

    async def record_completed_rental(self, db: AsyncSession, car: Car, amount: float) -> None:
        car.total_rentals = (car.total_rentals or 0) + 1
        car.total_earnings = round((car.total_earnings or 0) + amount, 2)

    async def refresh_rating(self, db: AsyncSession, car_id: uuid.UUID) -> Optional[Car]:
        """Recompute rating/review_count from the reviews table."""
        row = (
            await db.execute(
                select(func.avg(Review.rating), func.count(Review.id)).where(
                    Review.car_id == car_id
                )
            )
        ).one()
        car = await db.get(Car, car_id)
        if car is None:
            return None
        car.rating = round(float(row[0] or 0), 2)
        car.review_count = int(row[1] or 0)
        return car

    async def rating_stats(self, db: AsyncSession, car_id: uuid.UUID) -> RatingStats:
        result = await db.execute(select(Review.rating).where(Review.car_id == car_id))
        return build_rating_stats(list(result.scalars().all()))


def build_rating_stats(ratings: List[int]) -> RatingStats:
    total = len(ratings)
    return RatingStats(
        total_reviews=total,
        average_rating=round(sum(ratings) / total, 2) if total else 0.0,
        distribution=rating_distribution(ratings),
    )


# ── Singleton Instance ────────────────────────────────────────────────────
car_service = CarService()
