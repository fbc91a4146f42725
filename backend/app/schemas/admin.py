"""
RentCar Backend — Admin Request/Response Schemas
==================================================

What:  Pydantic models for staff accounts and the admin dashboard statistics.
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from app.models.enums import AdminPermission, AdminRole, AdminStatus
from app.schemas.user import PHONE_PATTERN


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class AdminCreate(BaseModel):
    first_name: str = Field(min_length=2, max_length=100)
    last_name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    phone_number: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    password: str = Field(min_length=8, max_length=255)
    role: AdminRole = AdminRole.ADMIN
    permissions: Optional[List[AdminPermission]] = None
    employee_id: Optional[str] = Field(default=None, max_length=50)
    hire_date: Optional[date] = None
    department: Optional[str] = Field(default=None, max_length=100)
    supervisor: Optional[str] = Field(default=None, max_length=100)
    assigned_regions: Optional[List[str]] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


class AdminUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    password: Optional[str] = Field(default=None, min_length=8, max_length=255)
    role: Optional[AdminRole] = None
    status: Optional[AdminStatus] = None
    permissions: Optional[List[AdminPermission]] = None
    employee_id: Optional[str] = Field(default=None, max_length=50)
    hire_date: Optional[date] = None
    department: Optional[str] = Field(default=None, max_length=100)
    supervisor: Optional[str] = Field(default=None, max_length=100)
    assigned_regions: Optional[List[str]] = None
    two_factor_enabled: Optional[bool] = None
    requires_password_change: Optional[bool] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


class AdminLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=255)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class AdminResponse(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str] = None
    role: AdminRole
    status: AdminStatus
    permissions: Optional[List[str]] = None
    employee_id: Optional[str] = None
    hire_date: Optional[date] = None
    department: Optional[str] = None
    supervisor: Optional[str] = None
    assigned_regions: Optional[List[str]] = None
    total_actions: int
    successful_actions: int
    failed_actions: int
    last_login: Optional[datetime] = None
    last_login_ip: Optional[str] = None
    is_online: bool
    failed_login_attempts: int
    account_locked_until: Optional[datetime] = None
    two_factor_enabled: bool
    requires_password_change: bool
    password_changed_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AdminAuthResponse(BaseModel):
    admin: AdminResponse
    token: str
    token_type: str = "bearer"


class AdminListResponse(BaseModel):
    items: List[AdminResponse]
    total_count: int


class DashboardStats(BaseModel):
    total_users: int
    total_cars: int
    total_rentals: int
    total_reviews: int
    active_rentals: int
    pending_rentals: int
    total_revenue: float


class UserRoleStat(BaseModel):
    role: str
    count: int
    average_rating: float
    total_rentals: int
    total_spent: float


class CarTypeStat(BaseModel):
    type: str
    count: int
    average_rating: float
    total_rentals: int
    total_earnings: float


class RentalStatusStat(BaseModel):
    status: str
    count: int
    average_cost: float
    total_cost: float
