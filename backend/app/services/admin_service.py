"""
RentCar Backend — Admin Service
=================================

What:  Staff accounts (the `admins` table) and the oversight operations they
       run against users, cars, rentals and reviews, plus dashboard statistics.
Who:   Called by routes/admin.py; bootstrap_super_admin() runs at startup.

Staff login:
    unknown email               → 401
    locked until the future     → 401 naming the unlock time
    wrong password              → failed_login_attempts += 1; at the limit the
                                  account is locked for ADMIN_LOCKOUT_MINUTES.
                                  The counter is committed before the 401 is
                                  raised, otherwise the request rollback in
                                  get_db_session would discard it.
    status other than active    → 400
    success                     → counters reset, last_login/IP recorded

Every management action taken with a staff token bumps the account's
total_actions / successful_actions counters.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import AuthenticationError, ConflictError, ValidationError
from app.models.admin import Admin
from app.models.car import Car
from app.models.enums import (
    AdminPermission,
    AdminRole,
    AdminStatus,
    CarStatus,
    PaymentStatus,
    RentalStatus,
    UserRole,
    UserStatus,
)
from app.models.rental import Rental
from app.models.review import Review
from app.models.user import User
from app.schemas.admin import (
    AdminCreate,
    AdminUpdate,
    CarTypeStat,
    DashboardStats,
    RentalStatusStat,
    UserRoleStat,
)
from app.security import ACCOUNT_ADMIN, Principal, create_access_token, hash_password, verify_password
from app.services.car_service import car_service
from app.services.persistence import flush, get_or_404, update_fields
from app.services.rental_service import ONGOING_STATUSES, rental_service
from app.services.review_service import review_service
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

ALL_PERMISSIONS = [p.value for p in AdminPermission]


class AdminService:
    """Stateless business logic for staff accounts and oversight."""

    # ══════════════════════════════════════════════════════════════════════
    # Staff Accounts
    # ══════════════════════════════════════════════════════════════════════

    @staticmethod
    def issue_token(admin: Admin) -> str:
        return create_access_token(
            admin.id,
            admin.email,
            UserRole.ADMIN,
            kind=ACCOUNT_ADMIN,
            admin_role=admin.role,
        )

    async def create_admin(self, db: AsyncSession, data: AdminCreate) -> Tuple[Admin, str]:
        email = data.email.lower()
        await self._ensure_unique(db, email=email, phone_number=data.phone_number)

        if data.permissions is not None:
            permissions = [p.value for p in data.permissions]
        else:
            permissions = ALL_PERMISSIONS if data.role == AdminRole.SUPER_ADMIN else []

        admin = Admin(
            **data.model_dump(exclude={"email", "password", "permissions"}, exclude_none=True),
            email=email,
            password=hash_password(data.password),
            permissions=permissions,
            status=AdminStatus.ACTIVE,
            password_changed_at=datetime.now(timezone.utc),
        )
        db.add(admin)
        await flush(db, "create the admin")
        logger.info("Admin created: %s (role=%s)", admin.id, admin.role.value)
        return admin, self.issue_token(admin)

    async def login(
        self, db: AsyncSession, email: str, password: str, ip: Optional[str] = None
    ) -> Tuple[Admin, str]:
        admin = await self.get_by_email(db, email)
        if admin is None:
            raise AuthenticationError("Invalid credentials")

        now = datetime.now(timezone.utc)
        if admin.account_locked_until and admin.account_locked_until > now:
            raise AuthenticationError(
                f"Account is locked until {admin.account_locked_until.isoformat()}",
                context={"locked_until": admin.account_locked_until.isoformat()},
            )

        if not verify_password(password, admin.password):
            admin.failed_login_attempts = (admin.failed_login_attempts or 0) + 1
            if admin.failed_login_attempts >= settings.admin_max_failed_logins:
                admin.account_locked_until = now + timedelta(minutes=settings.admin_lockout_minutes)
                admin.failed_login_attempts = 0
                logger.warning("Admin account locked after repeated failures: %s", admin.id)
            await db.commit()
            raise AuthenticationError("Invalid credentials")

        if admin.status != AdminStatus.ACTIVE:
            raise ValidationError("Admin account is not active", field="status")

        admin.failed_login_attempts = 0
        admin.account_locked_until = None
        admin.last_login = now
        admin.last_login_ip = ip
        admin.is_online = True
        await flush(db, "record the admin login")
        logger.info("Admin logged in: %s from %s", admin.id, ip or "unknown")
        return admin, self.issue_token(admin)

    async def get_admin(self, db: AsyncSession, admin_id: uuid.UUID) -> Admin:
        return await get_or_404(db, Admin, admin_id, "admin")

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[Admin]:
        result = await db.execute(select(Admin).where(Admin.email == email.lower()))
        return result.scalar_one_or_none()

    async def list_admins(
        self, db: AsyncSession, limit: int = 20, offset: int = 0
    ) -> Tuple[List[Admin], int]:
        result = await db.execute(
            select(Admin).order_by(Admin.created_at.desc()).limit(limit).offset(offset)
        )
        total = await db.scalar(select(func.count(Admin.id)))
        return list(result.scalars().all()), total or 0

    async def update_admin(
        self, db: AsyncSession, admin_id: uuid.UUID, data: AdminUpdate
    ) -> Admin:
        admin = await self.get_admin(db, admin_id)
        changes = update_fields(admin, data)

        new_email = changes.pop("email", None)
        new_phone = changes.pop("phone_number", None)
        if new_email is not None:
            new_email = new_email.lower()
        await self._ensure_unique(
            db,
            email=new_email if new_email and new_email != admin.email else None,
            phone_number=new_phone if new_phone and new_phone != admin.phone_number else None,
            exclude_id=admin.id,
        )
        if new_email:
            admin.email = new_email
        if new_phone:
            admin.phone_number = new_phone

        new_password = changes.pop("password", None)
        if new_password:
            admin.password = hash_password(new_password)
            admin.password_changed_at = datetime.now(timezone.utc)
            admin.requires_password_change = False

        if "permissions" in changes:
            permissions = changes.pop("permissions")
            admin.permissions = [AdminPermission(p).value for p in permissions or []]

        for field, value in changes.items():
            setattr(admin, field, value)
        await flush(db, "update the admin")
        logger.info("Admin updated: %s (%s)", admin.id, ", ".join(sorted(data.model_fields_set)))
        return admin

    async def delete_admin(
        self, db: AsyncSession, admin_id: uuid.UUID, principal: Principal
    ) -> None:
        admin = await self.get_admin(db, admin_id)
        if admin.id == principal.id:
            raise ValidationError("You cannot delete your own admin account")
        await db.delete(admin)
        await flush(db, "delete the admin")
        logger.info("Admin deleted: %s", admin_id)

    async def bootstrap_super_admin(
        self, db: AsyncSession, email: str, password: str
    ) -> Optional[Admin]:
        """Create the first super admin if no account with this email exists."""
        if await self.get_by_email(db, email) is not None:
            return None
        admin, _ = await self.create_admin(
            db,
            AdminCreate(
                first_name="System",
                last_name="Administrator",
                email=email,
                password=password,
                role=AdminRole.SUPER_ADMIN,
            ),
        )
        logger.info("Bootstrap super admin created: %s", admin.email)
        return admin

    # ══════════════════════════════════════════════════════════════════════
    # Oversight
    # ══════════════════════════════════════════════════════════════════════

    async def record_action(self, db: AsyncSession, principal: Principal) -> None:
        """Count a successful management action against the staff account."""
        if not principal.is_staff:
            return
        admin = await db.get(Admin, principal.id)
        if admin is None:
            return
        admin.total_actions = (admin.total_actions or 0) + 1
        admin.successful_actions = (admin.successful_actions or 0) + 1
        await flush(db, "record the admin action")

    # ── Users ─────────────────────────────────────────────────────────────

    async def set_user_status(
        self, db: AsyncSession, user_id: uuid.UUID, status: UserStatus, principal: Principal
    ) -> User:
        user = await user_service.change_status(db, user_id, status)
        await self.record_action(db, principal)
        return user

    async def set_user_role(
        self, db: AsyncSession, user_id: uuid.UUID, role: UserRole, principal: Principal
    ) -> User:
        user = await user_service.change_role(db, user_id, role)
        await self.record_action(db, principal)
        return user

    async def delete_user(
        self, db: AsyncSession, user_id: uuid.UUID, principal: Principal
    ) -> None:
        await user_service.delete_user(db, user_id)
        await self.record_action(db, principal)

    # ── Cars ──────────────────────────────────────────────────────────────

    async def set_car_status(
        self, db: AsyncSession, car_id: uuid.UUID, status: CarStatus, principal: Principal
    ) -> Car:
        car = await car_service.update_status(db, car_id, status, principal)
        await self.record_action(db, principal)
        return car

    async def delete_car(self, db: AsyncSession, car_id: uuid.UUID, principal: Principal) -> None:
        await car_service.delete_car(db, car_id, principal)
        await self.record_action(db, principal)

    # ── Rentals ───────────────────────────────────────────────────────────

    async def set_rental_status(
        self,
        db: AsyncSession,
        rental_id: uuid.UUID,
        status: RentalStatus,
        principal: Principal,
        payment_status: Optional[PaymentStatus] = None,
    ) -> Rental:
        rental = await rental_service.set_status(db, rental_id, status, payment_status)
        await self.record_action(db, principal)
        return rental

    # ── Reviews ───────────────────────────────────────────────────────────

    async def delete_review(
        self, db: AsyncSession, review_id: uuid.UUID, principal: Principal
    ) -> None:
        await review_service.delete_review(db, review_id, principal)
        await self.record_action(db, principal)

    async def respond_to_review(
        self, db: AsyncSession, review_id: uuid.UUID, response: str, principal: Principal
    ) -> Review:
        review = await review_service.respond(db, review_id, response)
        await self.record_action(db, principal)
        return review

    # ══════════════════════════════════════════════════════════════════════
    # Statistics
    # ══════════════════════════════════════════════════════════════════════

    async def dashboard(self, db: AsyncSession) -> DashboardStats:
        rentals = (
            await db.execute(
                select(
                    func.count(Rental.id),
                    func.sum(case((Rental.status.in_(ONGOING_STATUSES), 1), else_=0)),
                    func.sum(case((Rental.status == RentalStatus.PENDING, 1), else_=0)),
                    func.sum(
                        case((Rental.status == RentalStatus.COMPLETED, Rental.total_cost), else_=0)
                    ),
                )
            )
        ).one()
        return DashboardStats(
            total_users=await db.scalar(select(func.count(User.id))) or 0,
            total_cars=await db.scalar(select(func.count(Car.id))) or 0,
            total_rentals=int(rentals[0] or 0),
            total_reviews=await db.scalar(select(func.count(Review.id))) or 0,
            active_rentals=int(rentals[1] or 0),
            pending_rentals=int(rentals[2] or 0),
            total_revenue=round(float(rentals[3] or 0), 2),
        )

    async def users_by_role(self, db: AsyncSession) -> List[UserRoleStat]:
        rows = (
            await db.execute(
                select(
                    User.role,
                    func.count(User.id),
                    func.avg(User.rating),
                    func.sum(User.total_rentals),
                    func.sum(User.total_spent),
                ).group_by(User.role)
            )
        ).all()
        return [
            UserRoleStat(
                role=role.value,
                count=int(count),
                average_rating=round(float(avg or 0), 2),
                total_rentals=int(rentals or 0),
                total_spent=round(float(spent or 0), 2),
            )
            for role, count, avg, rentals, spent in rows
        ]

    async def cars_by_type(self, db: AsyncSession) -> List[CarTypeStat]:
        rows = (
            await db.execute(
                select(
                    Car.type,
                    func.count(Car.id),
                    func.avg(Car.rating),
                    func.sum(Car.total_rentals),
                    func.sum(Car.total_earnings),
                ).group_by(Car.type)
            )
        ).all()
        return [
            CarTypeStat(
                type=car_type.value,
                count=int(count),
                average_rating=round(float(avg or 0), 2),
                total_rentals=int(rentals or 0),
                total_earnings=round(float(earnings or 0), 2),
            )
            for car_type, count, avg, rentals, earnings in rows
        ]

    async def rentals_by_status(self, db: AsyncSession) -> List[RentalStatusStat]:
        rows = (
            await db.execute(
                select(
                    Rental.status,
                    func.count(Rental.id),
                    func.avg(Rental.total_cost),
                    func.sum(Rental.total_cost),
                ).group_by(Rental.status)
            )
        ).all()
        return [
            RentalStatusStat(
                status=status.value,
                count=int(count),
                average_cost=round(float(avg or 0), 2),
                total_cost=round(float(total or 0), 2),
            )
            for status, count, avg, total in rows
        ]

    # ── Internal ──────────────────────────────────────────────────────────

    async def _ensure_unique(
        self,
        db: AsyncSession,
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        if email:
            query = select(Admin.id).where(Admin.email == email)
            if exclude_id:
                query = query.where(Admin.id != exclude_id)
            if await db.scalar(query):
                raise ConflictError("Admin with this email already exists", field="email")
        if phone_number:
            query = select(Admin.id).where(Admin.phone_number == phone_number)
            if exclude_id:
                query = query.where(Admin.id != exclude_id)
            if await db.scalar(query):
                raise ConflictError(
                    "Admin with this phone number already exists", field="phone_number"
                )


# ── Singleton Instance ────────────────────────────────────────────────────
admin_service = AdminService()
