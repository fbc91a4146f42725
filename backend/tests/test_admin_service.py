"""
RentCar Backend — Admin Service Tests
=======================================

What:  Tests for staff accounts and platform oversight.
How:   Real SQLite database per test; staff principals carry kind=admin so
       record_action finds their row.

What we test:
    ✅ Super admins get every permission by default; duplicates conflict
    ✅ Login lockout after repeated failures, and its reset on success
    ✅ Inactive staff cannot log in; nobody deletes their own account
    ✅ Bootstrap is idempotent
    ✅ Oversight actions bump the staff action counters
    ✅ Dashboard and grouped statistics
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.exceptions import AuthenticationError, ConflictError, ValidationError
from app.models.enums import (
    AdminPermission,
    AdminRole,
    AdminStatus,
    CarType,
    RentalStatus,
    UserRole,
    UserStatus,
)
from app.schemas.admin import AdminCreate, AdminUpdate
from app.security import ACCOUNT_ADMIN, Principal, decode_token
from app.services.admin_service import AdminService

DEFAULT_PASSWORD = "Passw0rd!secure"  # conftest factories hash this


def staff_principal(admin) -> Principal:
    return Principal(
        id=admin.id,
        email=admin.email,
        role=UserRole.ADMIN,
        kind=ACCOUNT_ADMIN,
        admin_role=admin.role,
    )


def staff(**overrides) -> AdminCreate:
    fields = {
        "first_name": "Sam",
        "last_name": "Rivera",
        "email": "Sam.Rivera@RentCar.example",
        "password": "staff-password-1",
    }
    fields.update(overrides)
    return AdminCreate(**fields)


class TestStaffAccounts:

    def setup_method(self):
        self.service = AdminService()

    @pytest.mark.asyncio
    async def test_super_admin_gets_all_permissions(self, db_session):
        admin, token = await self.service.create_admin(
            db_session, staff(role=AdminRole.SUPER_ADMIN)
        )
        assert admin.email == "sam.rivera@rentcar.example"
        assert set(admin.permissions) == {p.value for p in AdminPermission}
        principal = decode_token(token)
        assert principal.is_super_admin

    @pytest.mark.asyncio
    async def test_explicit_permissions_kept(self, db_session):
        admin, _ = await self.service.create_admin(
            db_session,
            staff(role=AdminRole.MODERATOR, permissions=[AdminPermission.REVIEW_MODERATION]),
        )
        assert admin.permissions == ["review_moderation"]

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, db_session, make_admin):
        await make_admin(email="sam.rivera@rentcar.example")
        with pytest.raises(ConflictError):
            await self.service.create_admin(db_session, staff())

    @pytest.mark.asyncio
    async def test_update_password_clears_change_flag(self, db_session, make_admin):
        admin = await make_admin(requires_password_change=True)
        admin = await self.service.update_admin(
            db_session, admin.id, AdminUpdate(password="rotated-password", department="Ops")
        )
        assert not admin.requires_password_change
        assert admin.password_changed_at is not None
        assert admin.department == "Ops"

    @pytest.mark.asyncio
    async def test_cannot_delete_self(self, db_session, make_admin):
        admin = await make_admin()
        with pytest.raises(ValidationError, match="own admin account"):
            await self.service.delete_admin(db_session, admin.id, staff_principal(admin))

    @pytest.mark.asyncio
    async def test_bootstrap_is_idempotent(self, db_session):
        first = await self.service.bootstrap_super_admin(
            db_session, "root@rentcar.example", "bootstrap-password"
        )
        second = await self.service.bootstrap_super_admin(
            db_session, "root@rentcar.example", "bootstrap-password"
        )
        assert first.role == AdminRole.SUPER_ADMIN
        assert second is None


class TestStaffLogin:

    def setup_method(self):
        self.service = AdminService()

    @pytest.mark.asyncio
    async def test_login_records_ip(self, db_session, make_admin):
        admin = await make_admin()
        logged_in, token = await self.service.login(
            db_session, admin.email, DEFAULT_PASSWORD, ip="10.0.0.7"
        )
        assert logged_in.last_login_ip == "10.0.0.7"
        assert logged_in.is_online
        assert decode_token(token).is_staff

    @pytest.mark.asyncio
    async def test_lockout_after_repeated_failures(self, db_session, make_admin):
        admin = await make_admin()
        for _ in range(5):
            with pytest.raises(AuthenticationError, match="Invalid credentials"):
                await self.service.login(db_session, admin.email, "wrong-password")

        assert admin.account_locked_until is not None
        with pytest.raises(AuthenticationError, match="locked"):
            await self.service.login(db_session, admin.email, DEFAULT_PASSWORD)

    @pytest.mark.asyncio
    async def test_success_resets_failure_counter(self, db_session, make_admin):
        admin = await make_admin()
        with pytest.raises(AuthenticationError):
            await self.service.login(db_session, admin.email, "wrong-password")
        assert admin.failed_login_attempts == 1
        await self.service.login(db_session, admin.email, DEFAULT_PASSWORD)
        assert admin.failed_login_attempts == 0

    @pytest.mark.asyncio
    async def test_expired_lock_allows_login(self, db_session, make_admin):
        admin = await make_admin(
            account_locked_until=datetime.now(timezone.utc) - timedelta(minutes=1)
        )
        logged_in, _ = await self.service.login(db_session, admin.email, DEFAULT_PASSWORD)
        assert logged_in.account_locked_until is None

    @pytest.mark.asyncio
    async def test_inactive_staff_refused(self, db_session, make_admin):
        admin = await make_admin(status=AdminStatus.SUSPENDED)
        with pytest.raises(ValidationError, match="not active"):
            await self.service.login(db_session, admin.email, DEFAULT_PASSWORD)


class TestOversight:

    def setup_method(self):
        self.service = AdminService()

    @pytest.mark.asyncio
    async def test_actions_are_counted(self, db_session, make_admin, make_user):
        admin = await make_admin()
        user = await make_user()
        principal = staff_principal(admin)

        await self.service.set_user_status(db_session, user.id, UserStatus.SUSPENDED, principal)
        await self.service.set_user_role(db_session, user.id, UserRole.OWNER, principal)
        assert user.status == UserStatus.SUSPENDED
        assert user.role == UserRole.OWNER
        assert admin.total_actions == 2
        assert admin.successful_actions == 2

    @pytest.mark.asyncio
    async def test_user_admin_actions_not_counted(self, db_session, make_user):
        acting = await make_user(role=UserRole.ADMIN)
        target = await make_user()
        principal = Principal(id=acting.id, email=acting.email, role=UserRole.ADMIN)
        user = await self.service.set_user_status(
            db_session, target.id, UserStatus.INACTIVE, principal
        )
        assert user.status == UserStatus.INACTIVE

    @pytest.mark.asyncio
    async def test_dashboard(self, db_session, make_user, make_car, make_rental, utc):
        owner = await make_user(role=UserRole.OWNER)
        renter = await make_user()
        car = await make_car(owner)
        await make_rental(renter, car, utc(days=-10), status=RentalStatus.COMPLETED)
        await make_rental(renter, car, utc(days=-1), status=RentalStatus.ACTIVE)
        await make_rental(renter, car, utc(days=5))

        stats = await self.service.dashboard(db_session)
        assert stats.total_users == 2
        assert stats.total_cars == 1
        assert stats.total_rentals == 3
        assert stats.active_rentals == 1
        assert stats.pending_rentals == 1
        assert stats.total_revenue == 150.0
        assert stats.total_reviews == 0

    @pytest.mark.asyncio
    async def test_dashboard_counts_extended_and_overdue_as_active(
        self, db_session, make_user, make_car, make_rental, utc
    ):
        owner = await make_user(role=UserRole.OWNER)
        car = await make_car(owner)
        await make_rental(await make_user(), car, utc(days=-2), status=RentalStatus.ACTIVE)
        await make_rental(await make_user(), car, utc(days=-20), status=RentalStatus.EXTENDED)
        await make_rental(await make_user(), car, utc(days=-40), status=RentalStatus.OVERDUE)
        await make_rental(await make_user(), car, utc(days=-60), status=RentalStatus.CANCELLED)

        stats = await self.service.dashboard(db_session)
        assert stats.active_rentals == 3
        assert stats.pending_rentals == 0

    @pytest.mark.asyncio
    async def test_grouped_statistics(self, db_session, make_user, make_car, make_rental, utc):
        owner = await make_user(role=UserRole.OWNER)
        renter = await make_user()
        await make_car(owner, type=CarType.SUV, daily_rate=100.0)
        sedan = await make_car(owner)
        await make_rental(renter, sedan, utc(days=-10), status=RentalStatus.COMPLETED)
        await make_rental(renter, sedan, utc(days=-5), status=RentalStatus.COMPLETED)

        roles = {s.role: s.count for s in await self.service.users_by_role(db_session)}
        assert roles == {"customer": 1, "owner": 1}

        types = {s.type: s.count for s in await self.service.cars_by_type(db_session)}
        assert types == {"suv": 1, "sedan": 1}

        statuses = await self.service.rentals_by_status(db_session)
        assert len(statuses) == 1
        assert statuses[0].status == "completed"
        assert statuses[0].count == 2
        assert statuses[0].total_cost == 300.0
