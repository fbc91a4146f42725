"""
RentCar Backend — User Service
================================

What:  Account lifecycle for marketplace users: registration, login,
       profile updates, status/role changes and rating aggregates.
Who:   Called by routes/users.py and routes/admin.py; RentalService and
       ReviewService call the aggregate helpers.

Rules:
    - email and phone_number are unique (409 on clash, checked before insert
      and backed by unique indexes)
    - self-registration may pick customer or owner, never admin
    - only active or verified accounts may log in
    - a user with pending/active bookings (as renter or as owner) cannot be deleted
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import AuthenticationError, ConflictError, ValidationError
from app.models.car import Car
from app.models.enums import BLOCKING_STATUSES, LOGIN_STATUSES, UserRole, UserStatus
from app.models.rental import Rental
from app.models.review import Review
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate
from app.security import ACCOUNT_USER, create_access_token, hash_password, verify_password
from app.services.persistence import flush, get_or_404, update_fields

logger = logging.getLogger(__name__)

SELF_SERVICE_ROLES = frozenset({UserRole.CUSTOMER, UserRole.OWNER})


class UserService:
    """Stateless business logic for the `users` table."""

    # ── Authentication ────────────────────────────────────────────────────

    @staticmethod
    def issue_token(user: User) -> str:
        return create_access_token(user.id, user.email, user.role, kind=ACCOUNT_USER)

    async def register(self, db: AsyncSession, data: UserCreate) -> Tuple[User, str]:
        """
        Create an account and log it in.

        Raises:
            ValidationError: requested role is admin
            ConflictError: email or phone number already registered
        """
        if data.role not in SELF_SERVICE_ROLES:
            raise ValidationError("Role must be customer or owner", field="role")

        email = data.email.lower()
        await self._ensure_unique(db, email=email, phone_number=data.phone_number)

        profile = data.model_dump(
            exclude={"password", "role", "accept_terms", "email"},
            exclude_none=True,
        )
        user = User(
            **profile,
            email=email,
            password=hash_password(data.password),
            role=data.role,
            status=UserStatus.ACTIVE,
        )
        if data.accept_terms:
            now = datetime.now(timezone.utc)
            user.terms_accepted_at = now
            user.privacy_accepted_at = now

        db.add(user)
        await flush(db, "register the user")
        logger.info("User registered: %s (role=%s)", user.id, user.role.value)
        return user, self.issue_token(user)

    async def login(self, db: AsyncSession, email: str, password: str) -> Tuple[User, str]:
        """
        Raises:
            AuthenticationError: unknown email or wrong password
            ValidationError: account is inactive or suspended
        """
        user = await self.get_by_email(db, email)
        if user is None or not verify_password(password, user.password):
            raise AuthenticationError("Invalid credentials")
        if user.status not in LOGIN_STATUSES:
            raise ValidationError("Account is not active", field="status")
        logger.info("User logged in: %s", user.id)
        return user, self.issue_token(user)

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        return await get_or_404(db, User, user_id, "user")

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def list_users(
        self, db: AsyncSession, limit: int = 20, offset: int = 0
    ) -> Tuple[List[User], int]:
        result = await db.execute(
            select(User).order_by(User.created_at.desc()).limit(limit).offset(offset)
        )
        total = await db.scalar(select(func.count(User.id)))
        return list(result.scalars().all()), total or 0

    # ── Writes ────────────────────────────────────────────────────────────

    async def update_user(self, db: AsyncSession, user_id: uuid.UUID, data: UserUpdate) -> User:
        """Apply only the fields present in the request body."""
        user = await self.get_user(db, user_id)
        changes = update_fields(user, data)

        new_email = changes.pop("email", None)
        new_phone = changes.pop("phone_number", None)
        if new_email is not None:
            new_email = new_email.lower()
        await self._ensure_unique(
            db,
            email=new_email if new_email and new_email != user.email else None,
            phone_number=new_phone if new_phone and new_phone != user.phone_number else None,
            exclude_id=user.id,
        )
        if new_email:
            user.email = new_email
        if new_phone:
            user.phone_number = new_phone

        new_password = changes.pop("password", None)
        if new_password:
            user.password = hash_password(new_password)

        for field, value in changes.items():
            setattr(user, field, value)

        await flush(db, "update the user")
        logger.info("User updated: %s (%s)", user.id, ", ".join(sorted(data.model_fields_set)))
        return user

    async def delete_user(self, db: AsyncSession, user_id: uuid.UUID) -> None:
        user = await self.get_user(db, user_id)
        if await self.has_blocking_rentals(db, user.id):
            raise ValidationError("Cannot delete a user with pending or active rentals")
        await db.delete(user)
        await flush(db, "delete the user")
        logger.info("User deleted: %s", user_id)

    async def change_status(self, db: AsyncSession, user_id: uuid.UUID, status: UserStatus) -> User:
        user = await self.get_user(db, user_id)
        user.status = status
        await flush(db, "change the user status")
        logger.info("User %s status → %s", user.id, status.value)
        return user

    async def change_role(self, db: AsyncSession, user_id: uuid.UUID, role: UserRole) -> User:
        user = await self.get_user(db, user_id)
        user.role = role
        await flush(db, "change the user role")
        logger.info("User %s role → %s", user.id, role.value)
        return user

    async def verify_email(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await self.get_user(db, user_id)
        user.email_verified = True
        if user.phone_verified and user.status == UserStatus.ACTIVE:
            user.status = UserStatus.VERIFIED
        await flush(db, "verify the email")
        return user

    async def verify_phone(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await self.get_user(db, user_id)
        user.phone_verified = True
        if user.email_verified and user.status == UserStatus.ACTIVE:
            user.status = UserStatus.VERIFIED
        await flush(db, "verify the phone number")
        return user

    # ── Aggregates ────────────────────────────────────────────────────────

    async def record_completed_rental(
        self, db: AsyncSession, user_id: uuid.UUID, amount: float
    ) -> User:
        user = await self.get_user(db, user_id)
        user.total_rentals = (user.total_rentals or 0) + 1
        user.total_spent = round((user.total_spent or 0) + amount, 2)
        return user

    async def refresh_owner_rating(self, db: AsyncSession, owner_id: uuid.UUID) -> None:
        """Owner rating = AVG over every review of every car the owner lists."""
        row = (
            await db.execute(
                select(func.avg(Review.rating), func.count(Review.id))
                .join(Car, Car.id == Review.car_id)
                .where(Car.owner_id == owner_id)
            )
        ).one()
        owner = await db.get(User, owner_id)
        if owner is None:
            return
        owner.rating = round(float(row[0] or 0), 2)
        owner.review_count = int(row[1] or 0)

    async def has_blocking_rentals(self, db: AsyncSession, user_id: uuid.UUID) -> bool:
        """Pending/active bookings where the user is the renter or the car owner."""
        owned_cars = select(Car.id).where(Car.owner_id == user_id)
        count = await db.scalar(
            select(func.count(Rental.id)).where(
                Rental.status.in_(BLOCKING_STATUSES),
                or_(Rental.user_id == user_id, Rental.car_id.in_(owned_cars)),
            )
        )
        return bool(count)

    # ── Internal ──────────────────────────────────────────────────────────

    async def _ensure_unique(
        self,
        db: AsyncSession,
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        if email:
            query = select(User.id).where(User.email == email)
            if exclude_id:
                query = query.where(User.id != exclude_id)
            if await db.scalar(query):
                raise ConflictError("User with this email already exists", field="email")
        if phone_number:
            query = select(User.id).where(User.phone_number == phone_number)
            if exclude_id:
                query = query.where(User.id != exclude_id)
            if await db.scalar(query):
                raise ConflictError(
                    "User with this phone number already exists", field="phone_number"
                )


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
