"""
RentCar Backend — Rental Service (Booking Lifecycle)
======================================================

What:  Everything that happens to a booking: quoting, availability checks,
       creation, payment, pickup, return, cancellation and extension.
Who:   Called by routes/history.py and routes/admin.py.

Lifecycle:

    create ──► pending/pending ──pay──► pending/paid ──start──► active
                   │                                             │   ▲
                   └──cancel──► cancelled ◄──cancel──────────────┤  extend
                                                                 ▼
                                                            complete ──► completed

Car status follows the bookings:
    booking created on an available car   → reserved
    pickup (start)                         → rented
    complete / cancel / delete             → released (see _release_car)

Side effects of completion:
    car    total_rentals +1, total_earnings += charged total
    renter total_rentals +1, total_spent    += charged total
    renter streak recorded; renter and owner rankings recalculated
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import PermissionDeniedError, ValidationError
from app.models.car import Car
from app.models.enums import (
    BLOCKING_STATUSES,
    UNBOOKABLE_CAR_STATUSES,
    CarStatus,
    PaymentStatus,
    RentalStatus,
)
from app.models.rental import Rental
from app.models.types import ensure_utc
from app.schemas.rental import (
    CompleteRentalRequest,
    QuoteResponse,
    RentalCreate,
    RentalStatsResponse,
    RentalUpdate,
)
from app.security import Principal
from app.services import scoring
from app.services.car_service import car_service
from app.services.persistence import flush, get_or_404, update_fields
from app.services.ranking_service import charged_total, ranking_service
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

# A booking that is under way (car picked up, not yet returned)
ONGOING_STATUSES = frozenset({RentalStatus.ACTIVE, RentalStatus.EXTENDED, RentalStatus.OVERDUE})
CLOSED_STATUSES = frozenset({RentalStatus.COMPLETED, RentalStatus.CANCELLED})


class RentalService:
    """Stateless business logic for the `rental_history` table."""

    # ══════════════════════════════════════════════════════════════════════
    # Pricing & Availability
    # ══════════════════════════════════════════════════════════════════════

    async def quote(
        self, db: AsyncSession, car_id: uuid.UUID, start: datetime, end: datetime
    ) -> QuoteResponse:
        start, end = ensure_utc(start), ensure_utc(end)
        if end <= start:
            raise ValidationError("End date must be after start date", field="end_date")
        car = await car_service.get_car(db, car_id)
        quote = scoring.quote_price(
            scoring.billable_days(start, end), car.daily_rate, car.weekly_rate, car.monthly_rate
        )
        return QuoteResponse(
            car_id=car.id,
            start_date=start,
            end_date=end,
            duration=quote.duration,
            rate_basis=quote.rate_basis,
            daily_rate=quote.daily_rate,
            total_cost=quote.total_cost,
            deposit=car.deposit or 0,
        )

    async def has_conflict(
        self,
        db: AsyncSession,
        car_id: uuid.UUID,
        start: datetime,
        end: datetime,
        exclude_rental_id: Optional[uuid.UUID] = None,
    ) -> bool:
        """True if a blocking booking of the car overlaps [start, end)."""
        query = select(func.count(Rental.id)).where(
            Rental.car_id == car_id,
            Rental.status.in_(BLOCKING_STATUSES),
            Rental.start_date < end,
            Rental.end_date > start,
        )
        if exclude_rental_id is not None:
            query = query.where(Rental.id != exclude_rental_id)
        return bool(await db.scalar(query))

    async def check_availability(
        self, db: AsyncSession, car_id: uuid.UUID, start: datetime, end: datetime
    ) -> bool:
        start, end = ensure_utc(start), ensure_utc(end)
        if end <= start:
            raise ValidationError("End date must be after start date", field="end_date")
        car = await car_service.get_car(db, car_id)
        if car.status in UNBOOKABLE_CAR_STATUSES:
            return False
        return not await self.has_conflict(db, car.id, start, end)

    async def available_cars(
        self,
        db: AsyncSession,
        start: datetime,
        end: datetime,
        location: Optional[str] = None,
    ) -> List[Car]:
        start, end = ensure_utc(start), ensure_utc(end)
        if end <= start:
            raise ValidationError("End date must be after start date", field="end_date")
        booked = select(Rental.car_id).where(
            Rental.status.in_(BLOCKING_STATUSES),
            Rental.start_date < end,
            Rental.end_date > start,
        )
        query = select(Car).where(
            Car.status.not_in(UNBOOKABLE_CAR_STATUSES),
            Car.id.not_in(booked),
        )
        if location:
            query = query.where(Car.location.ilike(f"%{location}%"))
        result = await db.execute(query.order_by(Car.daily_rate.asc()))
        return list(result.scalars().all())

    # ══════════════════════════════════════════════════════════════════════
    # Booking
    # ══════════════════════════════════════════════════════════════════════

    async def create_rental(
        self, db: AsyncSession, data: RentalCreate, user_id: uuid.UUID
    ) -> Rental:
        """
        Book a car for [start_date, end_date).

        Raises:
            ValidationError: bad dates, own car, car out of service, or dates taken
            NotFoundError: car does not exist
        """
        start, end = ensure_utc(data.start_date), ensure_utc(data.end_date)
        if start <= datetime.now(timezone.utc):
            raise ValidationError("Start date must be in the future", field="start_date")
        if end <= start:
            raise ValidationError("End date must be after start date", field="end_date")

        car = await car_service.get_car(db, data.car_id)
        if car.owner_id == user_id:
            raise ValidationError("You cannot rent your own car", field="car_id")
        if car.status in UNBOOKABLE_CAR_STATUSES:
            raise ValidationError("Car is not available for rental", field="car_id")
        if await self.has_conflict(db, car.id, start, end):
            raise ValidationError("Car is not available for the selected dates", field="start_date")

        quote = scoring.quote_price(
            scoring.billable_days(start, end), car.daily_rate, car.weekly_rate, car.monthly_rate
        )
        rental = Rental(
            **data.model_dump(exclude={"car_id", "start_date", "end_date"}, exclude_none=True),
            car_id=car.id,
            user_id=user_id,
            start_date=start,
            end_date=end,
            duration=quote.duration,
            daily_rate=quote.daily_rate,
            total_cost=quote.total_cost,
            deposit=car.deposit or 0,
            status=RentalStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
        )
        db.add(rental)
        if car.status == CarStatus.AVAILABLE:
            car_service.set_status(car, CarStatus.RESERVED)
        await flush(db, "create the rental")
        logger.info(
            "Rental created: %s car=%s user=%s days=%d total=%.2f (%s)",
            rental.id, car.id, user_id, quote.duration, quote.total_cost, quote.rate_basis,
        )
        return rental

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_rental(
        self, db: AsyncSession, rental_id: uuid.UUID, principal: Optional[Principal] = None
    ) -> Rental:
        """Load a rental; with a principal, only the renter, car owner or an admin may see it."""
        rental = await get_or_404(db, Rental, rental_id, "rental")
        if principal is not None and not principal.is_admin and rental.user_id != principal.id:
            car = await db.get(Car, rental.car_id)
            if car is None or car.owner_id != principal.id:
                raise PermissionDeniedError("You do not have access to this rental")
        return rental

    async def list_rentals(
        self,
        db: AsyncSession,
        status: Optional[RentalStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Rental], int]:
        conditions = [Rental.status == status] if status else []
        result = await db.execute(
            select(Rental)
            .where(*conditions)
            .order_by(Rental.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        total = await db.scalar(select(func.count(Rental.id)).where(*conditions))
        return list(result.scalars().all()), total or 0

    async def list_by_user(
        self, db: AsyncSession, user_id: uuid.UUID, limit: int = 20, offset: int = 0
    ) -> Tuple[List[Rental], int]:
        result = await db.execute(
            select(Rental)
            .where(Rental.user_id == user_id)
            .order_by(Rental.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        total = await db.scalar(select(func.count(Rental.id)).where(Rental.user_id == user_id))
        return list(result.scalars().all()), total or 0

    async def list_by_car(
        self, db: AsyncSession, car_id: uuid.UUID, principal: Principal
    ) -> List[Rental]:
        car = await car_service.get_car(db, car_id)
        if not (principal.is_admin or car.owner_id == principal.id):
            raise PermissionDeniedError("Only the car owner can view its rentals")
        result = await db.execute(
            select(Rental).where(Rental.car_id == car.id).order_by(Rental.created_at.desc())
        )
        return list(result.scalars().all())

    async def rental_stats(
        self, db: AsyncSession, user_id: Optional[uuid.UUID] = None
    ) -> RentalStatsResponse:
        conditions = [Rental.user_id == user_id] if user_id else []
        completed = Rental.status == RentalStatus.COMPLETED
        row = (
            await db.execute(
                select(
                    func.count(Rental.id),
                    func.sum(case((Rental.status == RentalStatus.PENDING, 1), else_=0)),
                    func.sum(case((Rental.status.in_(ONGOING_STATUSES), 1), else_=0)),
                    func.sum(case((completed, 1), else_=0)),
                    func.sum(case((Rental.status == RentalStatus.CANCELLED, 1), else_=0)),
                    func.sum(case((completed, Rental.total_cost), else_=0)),
                    func.avg(Rental.total_cost),
                ).where(*conditions)
            )
        ).one()
        return RentalStatsResponse(
            total_rentals=int(row[0] or 0),
            pending_rentals=int(row[1] or 0),
            active_rentals=int(row[2] or 0),
            completed_rentals=int(row[3] or 0),
            cancelled_rentals=int(row[4] or 0),
            total_revenue=round(float(row[5] or 0), 2),
            average_cost=round(float(row[6] or 0), 2),
        )

    # ── Record management ─────────────────────────────────────────────────

    async def update_rental(
        self, db: AsyncSession, rental_id: uuid.UUID, data: RentalUpdate, principal: Principal
    ) -> Rental:
        rental = await get_or_404(db, Rental, rental_id, "rental")
        self._ensure_renter(rental, principal)
        if rental.status in CLOSED_STATUSES:
            raise ValidationError(f"Cannot update a {rental.status.value} rental", field="status")
        for field, value in update_fields(rental, data).items():
            setattr(rental, field, value)
        await flush(db, "update the rental")
        return rental

    async def delete_rental(
        self, db: AsyncSession, rental_id: uuid.UUID, principal: Principal
    ) -> None:
        rental = await get_or_404(db, Rental, rental_id, "rental")
        self._ensure_renter(rental, principal)
        if rental.status in ONGOING_STATUSES:
            raise ValidationError("Cannot delete an active rental", field="status")
        was_blocking = rental.status in BLOCKING_STATUSES
        car_id = rental.car_id
        await db.delete(rental)
        await flush(db, "delete the rental")
        if was_blocking:
            car = await db.get(Car, car_id)
            if car is not None:
                await self._release_car(db, car)
        logger.info("Rental deleted: %s", rental_id)

    async def set_status(
        self,
        db: AsyncSession,
        rental_id: uuid.UUID,
        status: RentalStatus,
        payment_status: Optional[PaymentStatus] = None,
    ) -> Rental:
        """Admin override; closing a booking this way still releases its car."""
        rental = await get_or_404(db, Rental, rental_id, "rental")
        rental.status = status
        if payment_status is not None:
            rental.payment_status = payment_status
        await flush(db, "update the rental status")
        if status in CLOSED_STATUSES:
            car = await db.get(Car, rental.car_id)
            if car is not None:
                await self._release_car(db, car, exclude_rental_id=rental.id)
        logger.info("Rental %s status → %s", rental.id, status.value)
        return rental

    # ══════════════════════════════════════════════════════════════════════
    # Transitions
    # ══════════════════════════════════════════════════════════════════════

    async def process_payment(
        self,
        db: AsyncSession,
        rental_id: uuid.UUID,
        amount: float,
        principal: Principal,
        payment_method: Optional[str] = None,
    ) -> Rental:
        rental = await get_or_404(db, Rental, rental_id, "rental")
        self._ensure_renter(rental, principal)
        if rental.payment_status == PaymentStatus.PAID:
            raise ValidationError("Rental is already paid", field="payment_status")
        if rental.status == RentalStatus.CANCELLED:
            raise ValidationError("Cannot pay for a cancelled rental", field="status")
        if amount < rental.total_cost:
            raise ValidationError(
                f"Payment amount must cover the total cost of {rental.total_cost:.2f}",
                field="amount",
            )
        rental.amount_paid = round(amount, 2)
        rental.payment_status = PaymentStatus.PAID
        await flush(db, "record the payment")
        logger.info(
            "Rental %s paid: %.2f via %s", rental.id, amount, payment_method or "unspecified"
        )
        return rental

    async def start_rental(
        self, db: AsyncSession, rental_id: uuid.UUID, principal: Principal
    ) -> Rental:
        rental = await get_or_404(db, Rental, rental_id, "rental")
        car = await car_service.get_car(db, rental.car_id)
        self._ensure_car_owner(car, principal)
        if rental.status != RentalStatus.PENDING:
            raise ValidationError("Only pending rentals can be started", field="status")
        if rental.payment_status != PaymentStatus.PAID:
            raise ValidationError("Rental must be paid before it starts", field="payment_status")

        rental.status = RentalStatus.ACTIVE
        rental.initial_mileage = car.mileage
        car_service.set_status(car, CarStatus.RENTED)
        await flush(db, "start the rental")
        logger.info("Rental started: %s (car %s)", rental.id, car.id)
        return rental

    async def complete_rental(
        self,
        db: AsyncSession,
        rental_id: uuid.UUID,
        data: CompleteRentalRequest,
        principal: Principal,
    ) -> Rental:
        """
        Record the return inspection and close the booking.

        Late fees are whole late days × the booking's daily rate.
        """
        rental = await get_or_404(db, Rental, rental_id, "rental")
        car = await car_service.get_car(db, rental.car_id)
        self._ensure_car_owner(car, principal)
        if rental.status not in ONGOING_STATUSES:
            raise ValidationError("Only active rentals can be completed", field="status")

        returned = ensure_utc(data.actual_return_date) or datetime.now(timezone.utc)
        rental.actual_return_date = returned
        rental.late_fees = round(scoring.late_days(rental.end_date, returned) * rental.daily_rate, 2)
        rental.damage_fees = data.damage_fees
        rental.fuel_fees = data.fuel_fees
        rental.cleaning_fees = data.cleaning_fees
        rental.deposit_returned = data.deposit_returned
        if data.damage_description is not None:
            rental.damage_description = data.damage_description
        if data.damage_photos is not None:
            rental.damage_photos = data.damage_photos
        if data.insurance_claim is not None:
            rental.insurance_claim = data.insurance_claim
        if data.notes is not None:
            rental.notes = data.notes
        if data.final_mileage is not None:
            rental.final_mileage = data.final_mileage
            car.mileage = data.final_mileage
        rental.status = RentalStatus.COMPLETED
        await flush(db, "complete the rental")

        await self._release_car(db, car, exclude_rental_id=rental.id)
        charged = charged_total(rental)
        await car_service.record_completed_rental(db, car, charged)
        await user_service.record_completed_rental(db, rental.user_id, charged)
        await flush(db, "update rental totals")

        await ranking_service.record_activity(db, rental.user_id)
        await ranking_service.calculate_user_ranking(db, rental.user_id)
        await ranking_service.calculate_owner_ranking(db, car.owner_id)
        logger.info(
            "Rental completed: %s charged=%.2f late_fees=%.2f", rental.id, charged, rental.late_fees
        )
        return rental

    async def cancel_rental(
        self,
        db: AsyncSession,
        rental_id: uuid.UUID,
        principal: Principal,
        reason: Optional[str] = None,
    ) -> Rental:
        rental = await get_or_404(db, Rental, rental_id, "rental")
        self._ensure_renter(rental, principal)
        if rental.status == RentalStatus.COMPLETED:
            raise ValidationError("Cannot cancel a completed rental", field="status")
        if rental.status == RentalStatus.CANCELLED:
            raise ValidationError("Rental is already cancelled", field="status")

        rental.status = RentalStatus.CANCELLED
        rental.cancellation_reason = reason
        await flush(db, "cancel the rental")
        car = await db.get(Car, rental.car_id)
        if car is not None:
            await self._release_car(db, car, exclude_rental_id=rental.id)
        logger.info("Rental cancelled: %s (%s)", rental.id, reason or "no reason given")
        return rental

    async def extend_rental(
        self, db: AsyncSession, rental_id: uuid.UUID, days: int, principal: Principal
    ) -> Rental:
        rental = await get_or_404(db, Rental, rental_id, "rental")
        self._ensure_renter(rental, principal)
        if days < 1:
            raise ValidationError("Extension must be at least one day", field="days")
        if rental.status not in ONGOING_STATUSES:
            raise ValidationError("Only active rentals can be extended", field="status")

        new_end = rental.end_date + timedelta(days=days)
        if await self.has_conflict(
            db, rental.car_id, rental.end_date, new_end, exclude_rental_id=rental.id
        ):
            raise ValidationError("Car is not available for the extension period", field="days")

        cost = round(rental.daily_rate * days, 2)
        rental.end_date = new_end
        rental.duration += days
        rental.extension_days = (rental.extension_days or 0) + days
        rental.extension_cost = round((rental.extension_cost or 0) + cost, 2)
        rental.total_cost = round(rental.total_cost + cost, 2)
        rental.is_extended = True
        await flush(db, "extend the rental")
        logger.info("Rental extended: %s by %d days (+%.2f)", rental.id, days, cost)
        return rental

    # ── Internal ──────────────────────────────────────────────────────────

    @staticmethod
    def _ensure_renter(rental: Rental, principal: Principal) -> None:
        if not (principal.is_admin or rental.user_id == principal.id):
            raise PermissionDeniedError("Only the renter can manage this rental")

    @staticmethod
    def _ensure_car_owner(car: Car, principal: Principal) -> None:
        if not (principal.is_admin or car.owner_id == principal.id):
            raise PermissionDeniedError("Only the car owner can manage this rental")

    async def _release_car(
        self, db: AsyncSession, car: Car, exclude_rental_id: Optional[uuid.UUID] = None
    ) -> None:
        """
        Put a car back on the market once a booking closes.

        Cars under maintenance or out of service keep their status. A car
        another renter still has stays rented; otherwise it is reserved if
        other pending bookings remain, else available.
        """
        if car.status in UNBOOKABLE_CAR_STATUSES:
            return

        async def remaining(statuses) -> int:
            query = select(func.count(Rental.id)).where(
                Rental.car_id == car.id, Rental.status.in_(statuses)
            )
            if exclude_rental_id is not None:
                query = query.where(Rental.id != exclude_rental_id)
            return await db.scalar(query) or 0

        if await remaining(ONGOING_STATUSES):
            status = CarStatus.RENTED
        elif await remaining({RentalStatus.PENDING}):
            status = CarStatus.RESERVED
        else:
            status = CarStatus.AVAILABLE
        car_service.set_status(car, status)
        await flush(db, "release the car")


# ── Singleton Instance ────────────────────────────────────────────────────
rental_service = RentalService()
