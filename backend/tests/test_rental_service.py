"""
RentCar Backend — Rental Service Tests
========================================

What:  Tests for the booking lifecycle in RentalService.
Why:   Double bookings, wrong totals or a car stuck in "rented" are the
       failures customers notice first.
How:   Real SQLite database per test; rentals created through the service
       where the rules matter and through the factory for past dates.

What we test:
    ✅ Booking validation order: dates, car, own car, car status, overlap
    ✅ Back-to-back bookings allowed; overlapping ones rejected
    ✅ Quote uses the cheapest rate tier; booking reserves the car
    ✅ Pay → start → complete with late, damage and fuel fees
    ✅ Completion updates car/renter totals and both rankings
    ✅ Cancel and delete release the car; extend checks the next booking
    ✅ Access control for renter, car owner and admin
"""

import uuid
from datetime import timedelta

import pytest
import pytest_asyncio

from app.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from app.models.car import Car
from app.models.enums import CarStatus, PaymentStatus, RankingType, RentalStatus, UserRole
from app.models.user import User
from app.schemas.rental import CompleteRentalRequest, RentalCreate, RentalUpdate
from app.security import Principal
from app.services.ranking_service import ranking_service
from app.services.rental_service import RentalService


def principal_for(user, role=None) -> Principal:
    return Principal(id=user.id, email=user.email, role=role or user.role)


@pytest_asyncio.fixture
async def marketplace(make_user, make_car):
    """One owner with one car, one renter, one platform admin."""
    owner = await make_user(role=UserRole.OWNER)
    renter = await make_user()
    admin = await make_user(role=UserRole.ADMIN)
    car = await make_car(owner, daily_rate=50.0, weekly_rate=280.0, deposit=150.0)
    return owner, renter, admin, car


class TestBooking:

    def setup_method(self):
        self.service = RentalService()

    @pytest.mark.asyncio
    async def test_create_rental_prices_and_reserves(self, db_session, marketplace, utc):
        owner, renter, _, car = marketplace
        start = utc(days=2)
        rental = await self.service.create_rental(
            db_session,
            RentalCreate(car_id=car.id, start_date=start, end_date=start + timedelta(days=3)),
            renter.id,
        )
        assert rental.status == RentalStatus.PENDING
        assert rental.payment_status == PaymentStatus.PENDING
        assert rental.duration == 3
        assert rental.total_cost == 150.0
        assert rental.deposit == 150.0
        assert car.status == CarStatus.RESERVED
        assert car.is_available is False

    @pytest.mark.asyncio
    async def test_week_long_booking_uses_weekly_rate(self, db_session, marketplace, utc):
        _, renter, _, car = marketplace
        start = utc(days=1)
        rental = await self.service.create_rental(
            db_session,
            RentalCreate(car_id=car.id, start_date=start, end_date=start + timedelta(days=7)),
            renter.id,
        )
        assert rental.daily_rate == 40.0
        assert rental.total_cost == 280.0

    @pytest.mark.asyncio
    async def test_start_in_past_rejected(self, db_session, marketplace, utc):
        _, renter, _, car = marketplace
        with pytest.raises(ValidationError, match="future"):
            await self.service.create_rental(
                db_session,
                RentalCreate(car_id=car.id, start_date=utc(days=-1), end_date=utc(days=2)),
                renter.id,
            )

    @pytest.mark.asyncio
    async def test_end_before_start_rejected(self, db_session, marketplace, utc):
        _, renter, _, car = marketplace
        with pytest.raises(ValidationError, match="after start"):
            await self.service.create_rental(
                db_session,
                RentalCreate(car_id=car.id, start_date=utc(days=3), end_date=utc(days=2)),
                renter.id,
            )

    @pytest.mark.asyncio
    async def test_unknown_car(self, db_session, marketplace, utc):
        _, renter, _, _ = marketplace
        with pytest.raises(NotFoundError):
            await self.service.create_rental(
                db_session,
                RentalCreate(car_id=uuid.uuid4(), start_date=utc(days=1), end_date=utc(days=2)),
                renter.id,
            )

    @pytest.mark.asyncio
    async def test_owner_cannot_rent_own_car(self, db_session, marketplace, utc):
        owner, _, _, car = marketplace
        with pytest.raises(ValidationError, match="own car"):
            await self.service.create_rental(
                db_session,
                RentalCreate(car_id=car.id, start_date=utc(days=1), end_date=utc(days=2)),
                owner.id,
            )

    @pytest.mark.asyncio
    async def test_car_in_maintenance_rejected(self, db_session, make_user, make_car, utc):
        owner = await make_user(role=UserRole.OWNER)
        renter = await make_user()
        car = await make_car(owner, status=CarStatus.MAINTENANCE, is_available=False)
        with pytest.raises(ValidationError, match="not available for rental"):
            await self.service.create_rental(
                db_session,
                RentalCreate(car_id=car.id, start_date=utc(days=1), end_date=utc(days=2)),
                renter.id,
            )

    @pytest.mark.asyncio
    async def test_overlap_rejected(self, db_session, marketplace, make_user, utc):
        _, renter, _, car = marketplace
        other = await make_user()
        start = utc(days=5)
        await self.service.create_rental(
            db_session,
            RentalCreate(car_id=car.id, start_date=start, end_date=start + timedelta(days=3)),
            renter.id,
        )
        with pytest.raises(ValidationError, match="selected dates"):
            await self.service.create_rental(
                db_session,
                RentalCreate(
                    car_id=car.id,
                    start_date=start + timedelta(days=2),
                    end_date=start + timedelta(days=6),
                ),
                other.id,
            )

    @pytest.mark.asyncio
    async def test_back_to_back_allowed(self, db_session, marketplace, make_user, utc):
        _, renter, _, car = marketplace
        other = await make_user()
        start = utc(days=5)
        first = await self.service.create_rental(
            db_session,
            RentalCreate(car_id=car.id, start_date=start, end_date=start + timedelta(days=3)),
            renter.id,
        )
        second = await self.service.create_rental(
            db_session,
            RentalCreate(
                car_id=car.id, start_date=first.end_date, end_date=first.end_date + timedelta(days=2)
            ),
            other.id,
        )
        assert second.id != first.id

    @pytest.mark.asyncio
    async def test_cancelled_booking_frees_dates(self, db_session, marketplace, make_rental, utc):
        _, renter, _, car = marketplace
        start = utc(days=5)
        await make_rental(renter, car, start, status=RentalStatus.CANCELLED)
        assert await self.service.check_availability(
            db_session, car.id, start, start + timedelta(days=1)
        )


class TestAvailabilityAndQuote:

    def setup_method(self):
        self.service = RentalService()

    @pytest.mark.asyncio
    async def test_quote(self, db_session, marketplace, utc):
        _, _, _, car = marketplace
        start = utc(days=1)
        quote = await self.service.quote(db_session, car.id, start, start + timedelta(days=2, hours=3))
        assert quote.duration == 3
        assert quote.rate_basis == "daily"
        assert quote.total_cost == 150.0
        assert quote.deposit == 150.0

    @pytest.mark.asyncio
    async def test_quote_rejects_inverted_range(self, db_session, marketplace, utc):
        _, _, _, car = marketplace
        with pytest.raises(ValidationError):
            await self.service.quote(db_session, car.id, utc(days=3), utc(days=1))

    @pytest.mark.asyncio
    async def test_availability_reflects_bookings(self, db_session, marketplace, make_rental, utc):
        _, renter, _, car = marketplace
        start = utc(days=3)
        await make_rental(renter, car, start, days=2)
        assert not await self.service.check_availability(
            db_session, car.id, start + timedelta(days=1), start + timedelta(days=4)
        )
        assert await self.service.check_availability(
            db_session, car.id, start + timedelta(days=2), start + timedelta(days=4)
        )

    @pytest.mark.asyncio
    async def test_available_cars_excludes_booked_and_unbookable(
        self, db_session, marketplace, make_car, make_rental, utc
    ):
        owner, renter, _, booked = marketplace
        free = await make_car(owner, brand="Free", location="Austin, TX")
        await make_car(owner, brand="Broken", status=CarStatus.OUT_OF_SERVICE, is_available=False)
        start = utc(days=3)
        await make_rental(renter, booked, start, days=2)

        cars = await self.service.available_cars(db_session, start, start + timedelta(days=1))
        assert [c.id for c in cars] == [free.id]


class TestLifecycle:

    def setup_method(self):
        self.service = RentalService()

    async def _book(self, db_session, renter, car, utc, days=3):
        start = utc(days=1)
        return await self.service.create_rental(
            db_session,
            RentalCreate(car_id=car.id, start_date=start, end_date=start + timedelta(days=days)),
            renter.id,
        )

    @pytest.mark.asyncio
    async def test_payment_must_cover_total(self, db_session, marketplace, utc):
        _, renter, _, car = marketplace
        rental = await self._book(db_session, renter, car, utc)
        with pytest.raises(ValidationError, match="total cost"):
            await self.service.process_payment(db_session, rental.id, 100, principal_for(renter))

    @pytest.mark.asyncio
    async def test_payment_once(self, db_session, marketplace, utc):
        _, renter, _, car = marketplace
        rental = await self._book(db_session, renter, car, utc)
        rental = await self.service.process_payment(db_session, rental.id, 150, principal_for(renter))
        assert rental.payment_status == PaymentStatus.PAID
        assert rental.amount_paid == 150
        with pytest.raises(ValidationError, match="already paid"):
            await self.service.process_payment(db_session, rental.id, 150, principal_for(renter))

    @pytest.mark.asyncio
    async def test_stranger_cannot_pay(self, db_session, marketplace, make_user, utc):
        _, renter, _, car = marketplace
        stranger = await make_user()
        rental = await self._book(db_session, renter, car, utc)
        with pytest.raises(PermissionDeniedError):
            await self.service.process_payment(db_session, rental.id, 150, principal_for(stranger))

    @pytest.mark.asyncio
    async def test_start_requires_payment(self, db_session, marketplace, utc):
        owner, renter, _, car = marketplace
        rental = await self._book(db_session, renter, car, utc)
        with pytest.raises(ValidationError, match="paid"):
            await self.service.start_rental(db_session, rental.id, principal_for(owner))

    @pytest.mark.asyncio
    async def test_renter_cannot_start(self, db_session, marketplace, utc):
        _, renter, _, car = marketplace
        rental = await self._book(db_session, renter, car, utc)
        await self.service.process_payment(db_session, rental.id, 150, principal_for(renter))
        with pytest.raises(PermissionDeniedError):
            await self.service.start_rental(db_session, rental.id, principal_for(renter))

    @pytest.mark.asyncio
    async def test_start_marks_car_rented(self, db_session, marketplace, utc):
        owner, renter, _, car = marketplace
        rental = await self._book(db_session, renter, car, utc)
        await self.service.process_payment(db_session, rental.id, 150, principal_for(renter))
        rental = await self.service.start_rental(db_session, rental.id, principal_for(owner))
        assert rental.status == RentalStatus.ACTIVE
        assert rental.initial_mileage == car.mileage
        assert car.status == CarStatus.RENTED

    @pytest.mark.asyncio
    async def test_complete_on_time(self, db_session, marketplace, utc):
        owner, renter, _, car = marketplace
        rental = await self._book(db_session, renter, car, utc)
        await self.service.process_payment(db_session, rental.id, 150, principal_for(renter))
        await self.service.start_rental(db_session, rental.id, principal_for(owner))

        rental = await self.service.complete_rental(
            db_session,
            rental.id,
            CompleteRentalRequest(actual_return_date=rental.end_date, final_mileage=10450),
            principal_for(owner),
        )
        assert rental.status == RentalStatus.COMPLETED
        assert rental.late_fees == 0
        assert car.status == CarStatus.AVAILABLE
        assert car.mileage == 10450
        assert car.total_rentals == 1
        assert car.total_earnings == 150.0

        user = await db_session.get(User, renter.id)
        assert user.total_rentals == 1
        assert user.total_spent == 150.0

    @pytest.mark.asyncio
    async def test_complete_late_with_fees(self, db_session, marketplace, make_rental, utc):
        owner, renter, _, car = marketplace
        rental = await make_rental(
            renter, car, utc(days=-5), days=3,
            status=RentalStatus.ACTIVE, payment_status=PaymentStatus.PAID,
        )
        returned = rental.end_date + timedelta(days=1, hours=2)

        rental = await self.service.complete_rental(
            db_session,
            rental.id,
            CompleteRentalRequest(actual_return_date=returned, damage_fees=120, fuel_fees=30),
            principal_for(owner),
        )
        # 2 late days at the booking's 50/day
        assert rental.late_fees == 100.0
        assert rental.total_fees == 250.0
        car_row = await db_session.get(Car, car.id)
        assert car_row.total_earnings == 400.0

    @pytest.mark.asyncio
    async def test_complete_updates_rankings(self, db_session, marketplace, make_rental, utc):
        owner, renter, _, car = marketplace
        rental = await make_rental(
            renter, car, utc(days=-4), days=3,
            status=RentalStatus.ACTIVE, payment_status=PaymentStatus.PAID,
        )
        await self.service.complete_rental(
            db_session, rental.id, CompleteRentalRequest(), principal_for(owner)
        )

        renter_rank = await ranking_service.get_user_ranking(db_session, renter.id)
        assert renter_rank.statistics["total_rentals"] == 1
        assert renter_rank.total_points == 10
        assert "first_rental" in renter_rank.achievements
        assert renter_rank.streak_days == 1

        owner_rank = await ranking_service.get_user_ranking(
            db_session, owner.id, RankingType.EARNINGS
        )
        assert owner_rank.statistics["total_rentals"] == 1

    @pytest.mark.asyncio
    async def test_cannot_complete_pending(self, db_session, marketplace, utc):
        owner, renter, _, car = marketplace
        rental = await self._book(db_session, renter, car, utc)
        with pytest.raises(ValidationError, match="active"):
            await self.service.complete_rental(
                db_session, rental.id, CompleteRentalRequest(), principal_for(owner)
            )


class TestCancelExtendDelete:

    def setup_method(self):
        self.service = RentalService()

    @pytest.mark.asyncio
    async def test_cancel_releases_car(self, db_session, marketplace, utc):
        _, renter, _, car = marketplace
        start = utc(days=1)
        rental = await self.service.create_rental(
            db_session,
            RentalCreate(car_id=car.id, start_date=start, end_date=start + timedelta(days=2)),
            renter.id,
        )
        rental = await self.service.cancel_rental(
            db_session, rental.id, principal_for(renter), reason="Plans changed"
        )
        assert rental.status == RentalStatus.CANCELLED
        assert rental.cancellation_reason == "Plans changed"
        assert car.status == CarStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_cancel_keeps_reservation_for_other_pending(
        self, db_session, marketplace, make_user, utc
    ):
        _, renter, _, car = marketplace
        other = await make_user()
        start = utc(days=1)
        first = await self.service.create_rental(
            db_session,
            RentalCreate(car_id=car.id, start_date=start, end_date=start + timedelta(days=2)),
            renter.id,
        )
        await self.service.create_rental(
            db_session,
            RentalCreate(
                car_id=car.id,
                start_date=start + timedelta(days=5),
                end_date=start + timedelta(days=6),
            ),
            other.id,
        )
        await self.service.cancel_rental(db_session, first.id, principal_for(renter))
        assert car.status == CarStatus.RESERVED

    @pytest.mark.asyncio
    async def test_cancel_later_booking_keeps_car_rented(
        self, db_session, marketplace, make_user, make_car, make_rental, utc
    ):
        owner, renter, admin, _ = marketplace
        car = await make_car(owner, status=CarStatus.RENTED)
        await make_rental(renter, car, utc(days=-1), days=3, status=RentalStatus.ACTIVE)
        later = await make_rental(await make_user(), car, utc(days=10))

        await self.service.cancel_rental(db_session, later.id, principal_for(admin))
        assert car.status == CarStatus.RENTED
        assert not car.is_available

    @pytest.mark.asyncio
    async def test_delete_later_booking_keeps_car_rented(
        self, db_session, marketplace, make_user, make_car, make_rental, utc
    ):
        owner, renter, admin, _ = marketplace
        car = await make_car(owner, status=CarStatus.RENTED)
        await make_rental(renter, car, utc(days=-1), days=3, status=RentalStatus.ACTIVE)
        later = await make_rental(await make_user(), car, utc(days=10))

        await self.service.delete_rental(db_session, later.id, principal_for(admin))
        assert car.status == CarStatus.RENTED

    @pytest.mark.asyncio
    async def test_cannot_cancel_twice(self, db_session, marketplace, make_rental, utc):
        _, renter, _, car = marketplace
        rental = await make_rental(renter, car, utc(days=2), status=RentalStatus.CANCELLED)
        with pytest.raises(ValidationError, match="already cancelled"):
            await self.service.cancel_rental(db_session, rental.id, principal_for(renter))

    @pytest.mark.asyncio
    async def test_extend_adds_days_and_cost(self, db_session, marketplace, make_rental, utc):
        _, renter, _, car = marketplace
        rental = await make_rental(renter, car, utc(days=-1), days=3, status=RentalStatus.ACTIVE)
        original_end = rental.end_date

        rental = await self.service.extend_rental(db_session, rental.id, 2, principal_for(renter))
        assert rental.end_date == original_end + timedelta(days=2)
        assert rental.duration == 5
        assert rental.extension_days == 2
        assert rental.extension_cost == 100.0
        assert rental.total_cost == 250.0
        assert rental.is_extended

    @pytest.mark.asyncio
    async def test_extend_blocked_by_next_booking(
        self, db_session, marketplace, make_user, make_rental, utc
    ):
        _, renter, _, car = marketplace
        other = await make_user()
        rental = await make_rental(renter, car, utc(days=-1), days=3, status=RentalStatus.ACTIVE)
        await make_rental(other, car, rental.end_date + timedelta(days=1), days=2)
        with pytest.raises(ValidationError, match="extension"):
            await self.service.extend_rental(db_session, rental.id, 3, principal_for(renter))

    @pytest.mark.asyncio
    async def test_extend_requires_active(self, db_session, marketplace, make_rental, utc):
        _, renter, _, car = marketplace
        rental = await make_rental(renter, car, utc(days=2))
        with pytest.raises(ValidationError, match="active"):
            await self.service.extend_rental(db_session, rental.id, 1, principal_for(renter))

    @pytest.mark.asyncio
    async def test_delete_active_refused(self, db_session, marketplace, make_rental, utc):
        _, renter, _, car = marketplace
        rental = await make_rental(renter, car, utc(days=-1), status=RentalStatus.ACTIVE)
        with pytest.raises(ValidationError):
            await self.service.delete_rental(db_session, rental.id, principal_for(renter))

    @pytest.mark.asyncio
    async def test_delete_pending_releases_car(self, db_session, marketplace, utc):
        _, renter, _, car = marketplace
        start = utc(days=1)
        rental = await self.service.create_rental(
            db_session,
            RentalCreate(car_id=car.id, start_date=start, end_date=start + timedelta(days=2)),
            renter.id,
        )
        await self.service.delete_rental(db_session, rental.id, principal_for(renter))
        assert car.status == CarStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_update_closed_rental_refused(self, db_session, marketplace, make_rental, utc):
        _, renter, _, car = marketplace
        rental = await make_rental(renter, car, utc(days=-10), status=RentalStatus.COMPLETED)
        with pytest.raises(ValidationError):
            await self.service.update_rental(
                db_session, rental.id, RentalUpdate(notes="late note"), principal_for(renter)
            )


class TestReadsAndStats:

    def setup_method(self):
        self.service = RentalService()

    @pytest.mark.asyncio
    async def test_get_rental_access(self, db_session, marketplace, make_user, make_rental, utc):
        owner, renter, admin, car = marketplace
        stranger = await make_user()
        rental = await make_rental(renter, car, utc(days=2))

        for user in (renter, owner, admin):
            fetched = await self.service.get_rental(db_session, rental.id, principal_for(user))
            assert fetched.id == rental.id
        with pytest.raises(PermissionDeniedError):
            await self.service.get_rental(db_session, rental.id, principal_for(stranger))

    @pytest.mark.asyncio
    async def test_list_by_car_owner_only(self, db_session, marketplace, make_rental, utc):
        owner, renter, _, car = marketplace
        await make_rental(renter, car, utc(days=2))
        assert len(await self.service.list_by_car(db_session, car.id, principal_for(owner))) == 1
        with pytest.raises(PermissionDeniedError):
            await self.service.list_by_car(db_session, car.id, principal_for(renter))

    @pytest.mark.asyncio
    async def test_stats(self, db_session, marketplace, make_rental, utc):
        _, renter, _, car = marketplace
        await make_rental(renter, car, utc(days=-20), status=RentalStatus.COMPLETED)
        await make_rental(renter, car, utc(days=-10), status=RentalStatus.CANCELLED)
        await make_rental(renter, car, utc(days=-1), status=RentalStatus.ACTIVE)
        await make_rental(renter, car, utc(days=5))

        stats = await self.service.rental_stats(db_session, renter.id)
        assert stats.total_rentals == 4
        assert stats.pending_rentals == 1
        assert stats.active_rentals == 1
        assert stats.completed_rentals == 1
        assert stats.cancelled_rentals == 1
        assert stats.total_revenue == 150.0
        assert stats.average_cost == 150.0

    @pytest.mark.asyncio
    async def test_admin_status_override_releases_car(
        self, db_session, marketplace, make_rental, utc
    ):
        _, renter, _, car = marketplace
        car.status = CarStatus.RENTED
        rental = await make_rental(renter, car, utc(days=-1), status=RentalStatus.ACTIVE)
        await self.service.set_status(db_session, rental.id, RentalStatus.CANCELLED)
        assert car.status == CarStatus.AVAILABLE
