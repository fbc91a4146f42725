"""
RentCar Backend — User Request/Response Schemas
=================================================

What:  Pydantic models for registration, login, profile reads and updates.
Why:   Keeps the password hash and internal counters out of request bodies
       and the password hash out of every response.

Validation rules:
    - names: 2–100 characters
    - phone_number: E.164 (leading '+', up to 15 digits)
    - password: 8–255 characters (hashed before it ever reaches the DB)
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from app.models.enums import UserRole, UserStatus

PHONE_PATTERN = r"^\+[1-9]\d{1,14}$"


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class UserProfileFields(BaseModel):
    """Optional profile data accepted on both registration and update."""
    date_of_birth: Optional[date] = None
    address: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=20)
    country: Optional[str] = Field(default=None, max_length=100)
    profile_picture: Optional[str] = Field(default=None, max_length=500)
    driver_license_number: Optional[str] = Field(default=None, max_length=50)
    driver_license_expiry: Optional[date] = None
    business_name: Optional[str] = Field(default=None, max_length=200)
    business_license: Optional[str] = Field(default=None, max_length=100)
    insurance_provider: Optional[str] = Field(default=None, max_length=100)
    insurance_policy_number: Optional[str] = Field(default=None, max_length=100)
    emergency_contact_name: Optional[str] = Field(default=None, max_length=200)
    emergency_contact_phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    emergency_contact_relationship: Optional[str] = Field(default=None, max_length=50)
    preferences: Optional[dict] = None
    preferred_language: Optional[str] = Field(default=None, max_length=10)
    timezone: Optional[str] = Field(default=None, max_length=50)
    preferred_payment_method: Optional[str] = Field(default=None, max_length=50)
    notification_preferences: Optional[List[str]] = None
    marketing_consent: Optional[bool] = None
    bio: Optional[str] = Field(default=None, max_length=2000)


class UserCreate(UserProfileFields):
    """Body of POST /api/users/register."""
    first_name: str = Field(min_length=2, max_length=100)
    last_name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    phone_number: str = Field(pattern=PHONE_PATTERN, min_length=10, max_length=20)
    password: str = Field(min_length=8, max_length=255)
    role: UserRole = Field(
        default=UserRole.CUSTOMER,
        description="customer or owner; admin cannot be self-assigned",
    )
    accept_terms: bool = Field(default=True, description="Records terms/privacy acceptance time")


class UserUpdate(UserProfileFields):
    """Body of PATCH /api/users/{id}; only provided fields change."""
    first_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    password: Optional[str] = Field(default=None, min_length=8, max_length=255)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=255)


class UserStatusUpdate(BaseModel):
    status: UserStatus


class UserRoleUpdate(BaseModel):
    role: UserRole


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserResponse(BaseModel):
    """Full account view (owner of the account or an admin)."""
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone_number: str
    role: UserRole
    status: UserStatus
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    profile_picture: Optional[str] = None
    driver_license_number: Optional[str] = None
    driver_license_expiry: Optional[date] = None
    business_name: Optional[str] = None
    business_license: Optional[str] = None
    insurance_provider: Optional[str] = None
    insurance_policy_number: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None
    preferences: Optional[dict] = None
    preferred_language: str = "en"
    timezone: str = "UTC"
    email_verified: bool = False
    phone_verified: bool = False
    preferred_payment_method: Optional[str] = None
    notification_preferences: Optional[List[str]] = None
    marketing_consent: bool = False
    terms_accepted_at: Optional[datetime] = None
    privacy_accepted_at: Optional[datetime] = None
    bio: Optional[str] = None
    rating: float = 0
    review_count: int = 0
    total_rentals: int = 0
    total_spent: float = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    """Public card shown next to a listing (no contact details)."""
    id: uuid.UUID
    first_name: str
    last_name: str
    profile_picture: Optional[str] = None
    rating: float = 0
    review_count: int = 0

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Returned by register and login."""
    user: UserResponse
    token: str
    token_type: str = "bearer"


class UserListResponse(BaseModel):
    items: List[UserResponse]
    total_count: int
