"""
RentCar Backend — User Service Tests
======================================

What:  Tests for UserService: registration, login, updates, deletion guards
       and the verification flow.
How:   Real SQLite database per test (see conftest.database).

What we test:
    ✅ Registration hashes the password, lowercases the email, issues a token
    ✅ Duplicate email / phone → ConflictError; admin self-registration refused
    ✅ Login: wrong password, unknown email, suspended account
    ✅ Partial update, uniqueness on update, password rehash
    ✅ Delete refused while the user has a pending or active rental
    ✅ Email + phone verification promotes an active account to verified
"""

import uuid

import pytest
from sqlalchemy import func, select

from app.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from app.models.car import Car
from app.models.enums import RentalStatus, UserRole, UserStatus
from app.models.rental import Rental
from app.schemas.user import UserCreate, UserUpdate
from app.security import decode_token, verify_password
from app.services.user_service import UserService


def registration(**overrides) -> UserCreate:
    fields = {
        "first_name": "Maria",
        "last_name": "Lopez",
        "email": "Maria.Lopez@Example.com",
        "phone_number": "+15125550100",
        "password": "s3cret-password",
        "role": UserRole.CUSTOMER,
    }
    fields.update(overrides)
    return UserCreate(**fields)


class TestRegistration:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_register_creates_user_and_token(self, db_session):
        user, token = await self.service.register(db_session, registration())

        assert user.id is not None
        assert user.email == "maria.lopez@example.com"
        assert user.password != "s3cret-password"
        assert verify_password("s3cret-password", user.password)
        assert user.status == UserStatus.ACTIVE
        assert user.terms_accepted_at is not None

        principal = decode_token(token)
        assert principal.id == user.id
        assert principal.role == UserRole.CUSTOMER

    @pytest.mark.asyncio
    async def test_register_owner(self, db_session):
        user, _ = await self.service.register(db_session, registration(role=UserRole.OWNER))
        assert user.role == UserRole.OWNER

    @pytest.mark.asyncio
    async def test_register_admin_refused(self, db_session):
        with pytest.raises(ValidationError, match="customer or owner"):
            await self.service.register(db_session, registration(role=UserRole.ADMIN))

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, db_session, make_user):
        await make_user(email="maria.lopez@example.com")
        with pytest.raises(ConflictError) as exc_info:
            await self.service.register(db_session, registration())
        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_duplicate_phone_conflicts(self, db_session, make_user):
        await make_user(phone_number="+15125550100")
        with pytest.raises(ConflictError) as exc_info:
            await self.service.register(db_session, registration())
        assert exc_info.value.field == "phone_number"


class TestLogin:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_login_success_is_case_insensitive(self, db_session):
        await self.service.register(db_session, registration())
        user, token = await self.service.login(db_session, "MARIA.LOPEZ@example.com", "s3cret-password")
        assert decode_token(token).id == user.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, db_session):
        await self.service.register(db_session, registration())
        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            await self.service.login(db_session, "maria.lopez@example.com", "not-it")

    @pytest.mark.asyncio
    async def test_unknown_email(self, db_session):
        with pytest.raises(AuthenticationError):
            await self.service.login(db_session, "nobody@example.com", "whatever")

    @pytest.mark.asyncio
    async def test_suspended_account_cannot_log_in(self, db_session, make_user):
        user = await make_user(status=UserStatus.SUSPENDED)
        with pytest.raises(ValidationError, match="not active"):
            await self.service.login(db_session, user.email, "Passw0rd!secure")

    @pytest.mark.asyncio
    async def test_verified_account_can_log_in(self, db_session, make_user):
        user = await make_user(status=UserStatus.VERIFIED)
        logged_in, _ = await self.service.login(db_session, user.email, "Passw0rd!secure")
        assert logged_in.id == user.id


class TestUpdateAndDelete:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_partial_update(self, db_session, make_user):
        user = await make_user(city="Austin")
        updated = await self.service.update_user(
            db_session, user.id, UserUpdate(first_name="Renamed", bio="Road-tripper")
        )
        assert updated.first_name == "Renamed"
        assert updated.bio == "Road-tripper"
        assert updated.city == "Austin"

    @pytest.mark.asyncio
    async def test_update_to_taken_email_conflicts(self, db_session, make_user):
        taken = await make_user()
        user = await make_user()
        with pytest.raises(ConflictError):
            await self.service.update_user(db_session, user.id, UserUpdate(email=taken.email))

    @pytest.mark.asyncio
    async def test_update_keeping_own_email_is_fine(self, db_session, make_user):
        user = await make_user()
        updated = await self.service.update_user(db_session, user.id, UserUpdate(email=user.email))
        assert updated.email == user.email

    @pytest.mark.asyncio
    async def test_password_change_rehashes(self, db_session, make_user):
        user = await make_user()
        updated = await self.service.update_user(
            db_session, user.id, UserUpdate(password="brand-new-password")
        )
        assert verify_password("brand-new-password", updated.password)

    @pytest.mark.asyncio
    async def test_get_missing_user(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.get_user(db_session, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_delete_user(self, db_session, make_user):
        user = await make_user()
        await self.service.delete_user(db_session, user.id)
        with pytest.raises(NotFoundError):
            await self.service.get_user(db_session, user.id)

    @pytest.mark.asyncio
    async def test_delete_refused_with_pending_rental(
        self, db_session, make_user, make_car, make_rental, utc
    ):
        owner = await make_user(role=UserRole.OWNER)
        renter = await make_user()
        car = await make_car(owner)
        await make_rental(renter, car, utc(days=2))

        with pytest.raises(ValidationError, match="pending or active"):
            await self.service.delete_user(db_session, renter.id)
        # The owner is blocked too: the booking is on their car
        with pytest.raises(ValidationError):
            await self.service.delete_user(db_session, owner.id)

    @pytest.mark.asyncio
    async def test_delete_allowed_after_completion(
        self, db_session, make_user, make_car, make_rental, utc
    ):
        owner = await make_user(role=UserRole.OWNER)
        renter = await make_user()
        car = await make_car(owner)
        await make_rental(renter, car, utc(days=-10), status=RentalStatus.COMPLETED)
        await self.service.delete_user(db_session, renter.id)

    @pytest.mark.asyncio
    async def test_delete_owner_cascades_to_cars_and_history(
        self, db_session, make_user, make_car, make_rental, utc
    ):
        owner = await make_user(role=UserRole.OWNER)
        renter = await make_user()
        car = await make_car(owner)
        await make_rental(renter, car, utc(days=-10), status=RentalStatus.COMPLETED)

        await self.service.delete_user(db_session, owner.id)

        assert await db_session.scalar(select(func.count(Car.id))) == 0
        assert await db_session.scalar(select(func.count(Rental.id))) == 0
        # The renter account itself is untouched
        assert (await self.service.get_user(db_session, renter.id)).id == renter.id


class TestVerification:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_email_alone_does_not_verify_account(self, db_session, make_user):
        user = await make_user()
        user = await self.service.verify_email(db_session, user.id)
        assert user.email_verified
        assert user.status == UserStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_both_channels_verify_account(self, db_session, make_user):
        user = await make_user()
        await self.service.verify_email(db_session, user.id)
        user = await self.service.verify_phone(db_session, user.id)
        assert user.phone_verified
        assert user.status == UserStatus.VERIFIED

    @pytest.mark.asyncio
    async def test_status_and_role_changes(self, db_session, make_user):
        user = await make_user()
        user = await self.service.change_status(db_session, user.id, UserStatus.SUSPENDED)
        assert user.status == UserStatus.SUSPENDED
        user = await self.service.change_role(db_session, user.id, UserRole.OWNER)
        assert user.role == UserRole.OWNER
