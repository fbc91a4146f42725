"""
RentCar Backend — Rental Request/Response Schemas
===================================================

What:  Pydantic models for booking, lifecycle transitions and rental reporting.

Date handling:
    start_date / end_date are ISO 8601 datetimes. Naive values are read as UTC.
    Ordering rules (start in the future, end after start) are business rules
    checked by RentalService and answered with 400, not schema errors.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.enums import PaymentStatus, RentalStatus


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RentalCreate(BaseModel):
    """Body of POST /api/history."""
    car_id: uuid.UUID
    start_date: datetime
    end_date: datetime
    pickup_location: Optional[str] = Field(default=None, max_length=255)
    return_location: Optional[str] = Field(default=None, max_length=255)
    pickup_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    pickup_longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    return_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    return_longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    notes: Optional[str] = Field(default=None, max_length=2000)


class RentalUpdate(BaseModel):
    """Body of PATCH /api/history/{id}: handover details only."""
    pickup_location: Optional[str] = Field(default=None, max_length=255)
    return_location: Optional[str] = Field(default=None, max_length=255)
    pickup_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    pickup_longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    return_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    return_longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    notes: Optional[str] = Field(default=None, max_length=2000)


class PaymentRequest(BaseModel):
    amount: float = Field(gt=0, description="Must cover the rental's total_cost")
    payment_method: Optional[str] = Field(default=None, max_length=50)


class CompleteRentalRequest(BaseModel):
    """Return inspection recorded by the owner (or an admin)."""
    actual_return_date: Optional[datetime] = Field(
        default=None, description="Defaults to now; late fees apply past end_date"
    )
    final_mileage: Optional[int] = Field(default=None, ge=0)
    damage_fees: float = Field(default=0, ge=0)
    fuel_fees: float = Field(default=0, ge=0)
    cleaning_fees: float = Field(default=0, ge=0)
    damage_description: Optional[str] = Field(default=None, max_length=2000)
    damage_photos: Optional[List[str]] = None
    insurance_claim: Optional[str] = Field(default=None, max_length=100)
    deposit_returned: bool = True
    notes: Optional[str] = Field(default=None, max_length=2000)


class CancelRentalRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class ExtendRentalRequest(BaseModel):
    days: int = Field(ge=1, le=90)


class RentalStatusUpdate(BaseModel):
    """Admin override of lifecycle/payment state."""
    status: RentalStatus
    payment_status: Optional[PaymentStatus] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class RentalResponse(BaseModel):
    id: uuid.UUID
    car_id: uuid.UUID
    user_id: uuid.UUID
    start_date: datetime
    end_date: datetime
    actual_return_date: Optional[datetime] = None
    duration: int
    daily_rate: float
    total_cost: float
    amount_paid: float
    deposit: float
    deposit_returned: bool
    late_fees: float
    damage_fees: float
    fuel_fees: float
    cleaning_fees: float
    total_fees: float
    status: RentalStatus
    payment_status: PaymentStatus
    pickup_location: Optional[str] = None
    return_location: Optional[str] = None
    pickup_latitude: Optional[float] = None
    pickup_longitude: Optional[float] = None
    return_latitude: Optional[float] = None
    return_longitude: Optional[float] = None
    initial_mileage: Optional[int] = None
    final_mileage: Optional[int] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    damage_description: Optional[str] = None
    damage_photos: Optional[List[str]] = None
    insurance_claim: Optional[str] = None
    is_extended: bool
    extension_days: int
    extension_cost: float
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RentalListResponse(BaseModel):
    items: List[RentalResponse]
    total_count: int


class QuoteResponse(BaseModel):
    """Price for a prospective booking, using the cheapest applicable rate tier."""
    car_id: uuid.UUID
    start_date: datetime
    end_date: datetime
    duration: int = Field(description="Billable days (partial days round up)")
    rate_basis: str = Field(description="daily, weekly or monthly")
    daily_rate: float = Field(description="Effective per-day rate for this duration")
    total_cost: float
    deposit: float


class AvailabilityResponse(BaseModel):
    car_id: uuid.UUID
    start_date: datetime
    end_date: datetime
    available: bool


class RentalStatsResponse(BaseModel):
    total_rentals: int
    pending_rentals: int
    active_rentals: int
    completed_rentals: int
    cancelled_rentals: int
    total_revenue: float = Field(description="Sum of total_cost over completed rentals")
    average_cost: float
