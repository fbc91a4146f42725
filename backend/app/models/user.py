"""
RentCar Backend — User SQLAlchemy Model
=========================================

What:  ORM model for the `users` table: customers renting cars and owners
       listing them (platform staff live in `admins`, see models/admin.py).
Who:   Used by UserService for accounts/auth, by RentalService and
       ReviewService to maintain the denormalised counters below.

Table Design Rationale:
    - email and phone_number are UNIQUE: both are login/contact identifiers
    - password holds a bcrypt hash, never the plain value
    - rating / review_count: reviews received on cars this user owns
      (recomputed with AVG/COUNT after every review write)
    - total_rentals / total_spent: completed rentals as a renter
      (bumped by RentalService.complete_rental)
"""

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.enums import UserRole, UserStatus
from app.models.types import JSONType, Money, UTCDateTime, enum_column, utcnow


class User(Base):
    """A marketplace account (customer or car owner)."""

    __tablename__ = "users"

    # ── Identity ──────────────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)

    # ── Address ───────────────────────────────────────────────────────────
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # ── Role & Status ─────────────────────────────────────────────────────
    role: Mapped[UserRole] = mapped_column(
        enum_column(UserRole, "user_role"), nullable=False, default=UserRole.CUSTOMER
    )
    status: Mapped[UserStatus] = mapped_column(
        enum_column(UserStatus, "user_status"), nullable=False, default=UserStatus.ACTIVE
    )
    profile_picture: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # ── Driver & Business Documents ───────────────────────────────────────
    driver_license_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    driver_license_expiry: Mapped[date | None] = mapped_column(Date, nullable=True)
    business_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    business_license: Mapped[str | None] = mapped_column(String(100), nullable=True)
    insurance_provider: Mapped[str | None] = mapped_column(String(100), nullable=True)
    insurance_policy_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # ── Emergency Contact ─────────────────────────────────────────────────
    emergency_contact_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    emergency_contact_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    emergency_contact_relationship: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # ── Preferences & Consent ─────────────────────────────────────────────
    # preferences: free-form dict (preferred car types, max daily rate, …)
    preferences: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    preferred_language: Mapped[str] = mapped_column(String(10), nullable=False, default="en")
    timezone: Mapped[str] = mapped_column(String(50), nullable=False, default="UTC")
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    phone_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    preferred_payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notification_preferences: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    marketing_consent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    terms_accepted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    privacy_accepted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Denormalised Aggregates ───────────────────────────────────────────
    rating: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_rentals: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_spent: Mapped[float] = mapped_column(Money, nullable=False, default=0)

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_users_role", "role"),
        Index("idx_users_status", "status"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
