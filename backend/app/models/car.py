"""
RentCar Backend — Car SQLAlchemy Model
========================================

What:  ORM model for the `cars` table: vehicles listed by owners.
Who:   CarService (listing CRUD, search), RentalService (booking state),
       ReviewService (rating refresh), RankingService (car score).

Status vs is_available:
    `status` is the single source of truth. `is_available` is kept as a
    denormalised flag (True iff status == available) because list filters
    and the public API have always exposed it; CarService.set_status keeps the
    two in step.

Query Patterns:
    - Public listing: WHERE status = 'available' [AND type/price/seat filters]
      → idx_cars_status, idx_cars_daily_rate
    - Owner dashboard: WHERE owner_id = :id → idx_cars_owner
    - Popular cars: ORDER BY total_rentals DESC, rating DESC
"""

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, Float, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.enums import CarStatus, CarType, FuelType, TransmissionType
from app.models.types import JSONType, Money, UTCDateTime, enum_column, utcnow


class Car(Base):
    """A rentable vehicle belonging to one owner."""

    __tablename__ = "cars"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # ── Vehicle Description ───────────────────────────────────────────────
    brand: Mapped[str] = mapped_column(String(50), nullable=False)
    model: Mapped[str] = mapped_column(String(50), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[CarType] = mapped_column(enum_column(CarType, "car_type"), nullable=False)
    fuel_type: Mapped[FuelType] = mapped_column(enum_column(FuelType, "fuel_type"), nullable=False)
    transmission: Mapped[TransmissionType] = mapped_column(
        enum_column(TransmissionType, "transmission_type"), nullable=False
    )
    color: Mapped[str | None] = mapped_column(String(30), nullable=True)
    engine_size: Mapped[float | None] = mapped_column(Float, nullable=True)  # litres
    horsepower: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mileage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    seats: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    doors: Mapped[int] = mapped_column(Integer, nullable=False, default=4)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Pricing ───────────────────────────────────────────────────────────
    # weekly/monthly rates are optional discounts; quotes fall back to daily_rate
    daily_rate: Mapped[float] = mapped_column(Money, nullable=False)
    weekly_rate: Mapped[float | None] = mapped_column(Money, nullable=True)
    monthly_rate: Mapped[float | None] = mapped_column(Money, nullable=True)
    deposit: Mapped[float] = mapped_column(Money, nullable=False, default=0)

    # ── Availability ──────────────────────────────────────────────────────
    status: Mapped[CarStatus] = mapped_column(
        enum_column(CarStatus, "car_status"), nullable=False, default=CarStatus.AVAILABLE
    )
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    features: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    images: Mapped[list | None] = mapped_column(JSONType, nullable=True)

    # ── Registration & Insurance ──────────────────────────────────────────
    license_plate: Mapped[str | None] = mapped_column(String(20), nullable=True)
    vin: Mapped[str | None] = mapped_column(String(17), nullable=True)
    insurance: Mapped[str | None] = mapped_column(String(100), nullable=True)
    insurance_expiry: Mapped[date | None] = mapped_column(Date, nullable=True)
    registration_expiry: Mapped[date | None] = mapped_column(Date, nullable=True)

    # ── Denormalised Aggregates ───────────────────────────────────────────
    rating: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_rentals: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_earnings: Mapped[float] = mapped_column(Money, nullable=False, default=0)

    # ── Location ──────────────────────────────────────────────────────────
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_cars_owner", "owner_id"),
        Index("idx_cars_status", "status"),
        Index("idx_cars_type", "type"),
        Index("idx_cars_daily_rate", "daily_rate"),
    )

    def __repr__(self) -> str:
        return (
            f"<Car(id={self.id}, {self.brand} {self.model} {self.year}, "
            f"status='{self.status}')>"
        )
