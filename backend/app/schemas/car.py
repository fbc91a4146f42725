"""
RentCar Backend — Car Request/Response Schemas
================================================

What:  Pydantic models for listing, filtering and describing cars.

Validation rules (listing):
    brand 2–50 chars, model 1–50, year 1900–2030, seats 1–12, doors 2–6,
    engine_size 0.5–10.0 litres, horsepower 50–1000, daily_rate ≥ 10,
    latitude ±90, longitude ±180, VIN exactly 17 characters.
"""

import uuid
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.enums import CarStatus, CarType, FuelType, TransmissionType
from app.schemas.user import UserSummary


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class CarCreate(BaseModel):
    """Body of POST /api/cars."""
    brand: str = Field(min_length=2, max_length=50)
    model: str = Field(min_length=1, max_length=50)
    year: int = Field(ge=1900, le=2030)
    type: CarType
    fuel_type: FuelType
    transmission: TransmissionType
    color: Optional[str] = Field(default=None, max_length=30)
    engine_size: Optional[float] = Field(default=None, ge=0.5, le=10.0)
    horsepower: Optional[int] = Field(default=None, ge=50, le=1000)
    mileage: int = Field(default=0, ge=0)
    seats: int = Field(default=5, ge=1, le=12)
    doors: int = Field(default=4, ge=2, le=6)
    description: Optional[str] = Field(default=None, max_length=2000)
    daily_rate: float = Field(ge=10)
    weekly_rate: Optional[float] = Field(default=None, gt=0)
    monthly_rate: Optional[float] = Field(default=None, gt=0)
    deposit: float = Field(default=0, ge=0)
    features: Optional[List[str]] = None
    images: Optional[List[str]] = None
    license_plate: Optional[str] = Field(default=None, min_length=3, max_length=20)
    vin: Optional[str] = Field(default=None, min_length=17, max_length=17)
    insurance: Optional[str] = Field(default=None, max_length=100)
    insurance_expiry: Optional[date] = None
    registration_expiry: Optional[date] = None
    location: Optional[str] = Field(default=None, max_length=255)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    owner_id: Optional[uuid.UUID] = Field(
        default=None,
        description="Admins only: list the car on behalf of this owner",
    )


class CarUpdate(BaseModel):
    """Body of PATCH /api/cars/{id}; only provided fields change."""
    brand: Optional[str] = Field(default=None, min_length=2, max_length=50)
    model: Optional[str] = Field(default=None, min_length=1, max_length=50)
    year: Optional[int] = Field(default=None, ge=1900, le=2030)
    type: Optional[CarType] = None
    fuel_type: Optional[FuelType] = None
    transmission: Optional[TransmissionType] = None
    color: Optional[str] = Field(default=None, max_length=30)
    engine_size: Optional[float] = Field(default=None, ge=0.5, le=10.0)
    horsepower: Optional[int] = Field(default=None, ge=50, le=1000)
    mileage: Optional[int] = Field(default=None, ge=0)
    seats: Optional[int] = Field(default=None, ge=1, le=12)
    doors: Optional[int] = Field(default=None, ge=2, le=6)
    description: Optional[str] = Field(default=None, max_length=2000)
    daily_rate: Optional[float] = Field(default=None, ge=10)
    weekly_rate: Optional[float] = Field(default=None, gt=0)
    monthly_rate: Optional[float] = Field(default=None, gt=0)
    deposit: Optional[float] = Field(default=None, ge=0)
    features: Optional[List[str]] = None
    images: Optional[List[str]] = None
    license_plate: Optional[str] = Field(default=None, min_length=3, max_length=20)
    vin: Optional[str] = Field(default=None, min_length=17, max_length=17)
    insurance: Optional[str] = Field(default=None, max_length=100)
    insurance_expiry: Optional[date] = None
    registration_expiry: Optional[date] = None
    location: Optional[str] = Field(default=None, max_length=255)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class CarStatusUpdate(BaseModel):
    status: CarStatus


class CarFilters(BaseModel):
    """
    Query filters for GET /api/cars.

    `available` left unset means "only cars currently available", which is
    what a renter browsing the marketplace expects.
    """
    type: Optional[CarType] = None
    fuel_type: Optional[FuelType] = None
    transmission: Optional[TransmissionType] = None
    min_price: Optional[float] = Field(default=None, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)
    location: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    seats: Optional[int] = Field(default=None, ge=1, le=12)
    available: Optional[bool] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class CarResponse(BaseModel):
    id: uuid.UUID
    brand: str
    model: str
    year: int
    type: CarType
    fuel_type: FuelType
    transmission: TransmissionType
    color: Optional[str] = None
    engine_size: Optional[float] = None
    horsepower: Optional[int] = None
    mileage: int
    seats: int
    doors: int
    description: Optional[str] = None
    daily_rate: float
    weekly_rate: Optional[float] = None
    monthly_rate: Optional[float] = None
    deposit: float
    status: CarStatus
    is_available: bool
    features: Optional[List[str]] = None
    images: Optional[List[str]] = None
    license_plate: Optional[str] = None
    vin: Optional[str] = None
    insurance: Optional[str] = None
    insurance_expiry: Optional[date] = None
    registration_expiry: Optional[date] = None
    rating: float
    review_count: int
    total_rentals: int
    total_earnings: float
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RatingStats(BaseModel):
    """Star histogram for a car or an owner; distribution keys are 5 → 1."""
    total_reviews: int
    average_rating: float
    distribution: Dict[int, int]


class CarDetailResponse(CarResponse):
    owner: Optional[UserSummary] = None
    rating_stats: Optional[RatingStats] = None


class NearbyCarResponse(CarResponse):
    distance_km: float


class CarListResponse(BaseModel):
    items: List[CarResponse]
    total_count: int
