"""
RentCar Backend — Rental SQLAlchemy Model
===========================================

What:  ORM model for the `rental_history` table: one row per booking.
Who:   RentalService (booking lifecycle), RankingService (renter statistics),
       ReviewService (proof that the reviewer actually rented the car).

Lifecycle:
    pending ──pay──▶ pending/paid ──start──▶ active ──complete──▶ completed
       │                                        │
       └────────────── cancel ──────────────────┴──▶ cancelled
    active ──extend──▶ active (end_date moved, is_extended = True)

Date range semantics:
    A booking occupies its car over the half-open interval [start_date, end_date).
    A new booking conflicts with an existing blocking one iff
    existing.start_date < new.end_date AND existing.end_date > new.start_date,
    so back-to-back bookings (one ends exactly when the next starts) are fine.
    idx_rentals_car_dates backs that lookup.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.enums import PaymentStatus, RentalStatus
from app.models.types import JSONType, Money, UTCDateTime, enum_column, utcnow


class Rental(Base):
    """A booking of one car by one user over a date range."""

    __tablename__ = "rental_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # ── Period ────────────────────────────────────────────────────────────
    start_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    actual_return_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # billable days

    # ── Money ─────────────────────────────────────────────────────────────
    daily_rate: Mapped[float] = mapped_column(Money, nullable=False)
    total_cost: Mapped[float] = mapped_column(Money, nullable=False)
    amount_paid: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    deposit: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    deposit_returned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    late_fees: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    damage_fees: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    fuel_fees: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    cleaning_fees: Mapped[float] = mapped_column(Money, nullable=False, default=0)

    # ── State ─────────────────────────────────────────────────────────────
    status: Mapped[RentalStatus] = mapped_column(
        enum_column(RentalStatus, "rental_status"), nullable=False, default=RentalStatus.PENDING
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        enum_column(PaymentStatus, "payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )

    # ── Handover ──────────────────────────────────────────────────────────
    pickup_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    return_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    pickup_latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    pickup_longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    return_latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    return_longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    initial_mileage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    final_mileage: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # ── Notes, Damage & Claims ────────────────────────────────────────────
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    damage_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    damage_photos: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    insurance_claim: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # ── Extensions ────────────────────────────────────────────────────────
    is_extended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    extension_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    extension_cost: Mapped[float] = mapped_column(Money, nullable=False, default=0)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    car_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("cars.id", ondelete="CASCADE"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_rentals_car_dates", "car_id", "start_date", "end_date"),
        Index("idx_rentals_user", "user_id"),
        Index("idx_rentals_status", "status"),
    )

    @property
    def total_fees(self) -> float:
        return round(
            (self.late_fees or 0)
            + (self.damage_fees or 0)
            + (self.fuel_fees or 0)
            + (self.cleaning_fees or 0),
            2,
        )

    def __repr__(self) -> str:
        return (
            f"<Rental(id={self.id}, car={self.car_id}, user={self.user_id}, "
            f"status='{self.status}')>"
        )
