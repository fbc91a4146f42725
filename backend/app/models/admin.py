"""
RentCar Backend — Admin SQLAlchemy Model
==========================================

What:  ORM model for the `admins` table: platform staff accounts.
Why separate from users:
    Staff never rent or list cars, carry their own role ladder
    (super_admin > admin > moderator > support) and need login hardening
    (lockout after repeated failures) that marketplace users do not.

Tokens issued to admins carry role "admin" plus `admin_role`, so the same
bearer dependency in app/security.py serves both account kinds.
"""

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.enums import AdminRole, AdminStatus
from app.models.types import JSONType, UTCDateTime, enum_column, utcnow


class Admin(Base):
    """A staff account with moderation and management powers."""

    __tablename__ = "admins"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True, unique=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[AdminRole] = mapped_column(
        enum_column(AdminRole, "admin_role"), nullable=False, default=AdminRole.ADMIN
    )
    status: Mapped[AdminStatus] = mapped_column(
        enum_column(AdminStatus, "admin_status"), nullable=False, default=AdminStatus.ACTIVE
    )
    permissions: Mapped[list | None] = mapped_column(JSONType, nullable=True)

    # ── Employment ────────────────────────────────────────────────────────
    employee_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    hire_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    supervisor: Mapped[str | None] = mapped_column(String(100), nullable=True)
    assigned_regions: Mapped[list | None] = mapped_column(JSONType, nullable=True)

    # ── Activity Counters ─────────────────────────────────────────────────
    total_actions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    successful_actions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_actions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ── Session & Login Hardening ─────────────────────────────────────────
    last_login: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    last_login_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    last_login_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    failed_login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    account_locked_until: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    two_factor_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    requires_password_change: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    password_changed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (Index("idx_admins_role", "role"),)

    def __repr__(self) -> str:
        return f"<Admin(id={self.id}, email='{self.email}', role='{self.role}')>"
