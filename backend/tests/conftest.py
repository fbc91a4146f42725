"""
RentCar Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides a real (SQLite) database, an API client and factories for
       the rows most tests need: users, cars, rentals and staff accounts.
How:   The environment is pointed at a throwaway SQLite file BEFORE any app
       import, so app.database builds its engine against it. Every test gets
       freshly created tables and drops them afterwards.
Who:   Used by all test files in the tests/ directory.

Fixture Hierarchy:
    database     → create_all / drop_all around each test, engine disposed after
    ├── db_session       → AsyncSession for service-level tests
    ├── test_client      → HTTPX AsyncClient over ASGITransport (no server)
    └── factories        → make_user, make_car, make_rental, make_admin

Factories commit, so rows they create are visible to requests sent through
test_client (which opens its own session per request).
"""

import os
import tempfile

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must happen before `app` is imported: settings and the engine read it once
_TEST_DIR = tempfile.mkdtemp(prefix="rentcar_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["JWT_SECRET"] = "test-secret-with-enough-length-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["DB_AUTO_CREATE"] = "false"
os.environ["BOOTSTRAP_ADMIN_EMAIL"] = ""
os.environ["BOOTSTRAP_ADMIN_PASSWORD"] = ""

from datetime import datetime, timedelta, timezone  # noqa: E402
from itertools import count  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

import app.models  # noqa: E402,F401
from app.database import Base, async_session_factory, engine  # noqa: E402
from app.models.admin import Admin  # noqa: E402
from app.models.car import Car  # noqa: E402
from app.models.enums import (  # noqa: E402
    AdminRole,
    AdminStatus,
    CarStatus,
    CarType,
    FuelType,
    PaymentStatus,
    RentalStatus,
    TransmissionType,
    UserRole,
    UserStatus,
)
from app.models.rental import Rental  # noqa: E402
from app.models.user import User  # noqa: E402
from app.security import hash_password  # noqa: E402
from app.services.admin_service import admin_service  # noqa: E402
from app.services.user_service import user_service  # noqa: E402

DEFAULT_PASSWORD = "Passw0rd!secure"

_sequence = count(1)


def _utc(days: float = 0, hours: float = 0) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days, hours=hours)


def _auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def database():
    """Fresh tables for each test; pooled connections closed afterwards."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Connections are bound to this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    """
    Provides an AsyncSession on the test database.

    Services only flush; tests that need data visible to other sessions
    commit explicitly (the factories below do).
    """
    async with async_session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def test_client(database):
    """
    Provides an async HTTP test client for endpoint testing.

    ASGITransport does not run the lifespan, so no startup probe or
    bootstrap admin: tables come from the `database` fixture.
    """
    from app.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ══════════════════════════════════════════════════════════════════════════
# Factories
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def make_user(db_session):
    async def factory(role: UserRole = UserRole.CUSTOMER, **overrides) -> User:
        n = next(_sequence)
        fields = {
            "first_name": "Test",
            "last_name": f"User{n}",
            "email": f"user{n}@example.com",
            "phone_number": f"+1555{n:07d}",
            "password": hash_password(DEFAULT_PASSWORD),
            "role": role,
            "status": UserStatus.ACTIVE,
        }
        fields.update(overrides)
        user = User(**fields)
        db_session.add(user)
        await db_session.commit()
        return user

    return factory


@pytest.fixture
def make_car(db_session):
    async def factory(owner: User, **overrides) -> Car:
        fields = {
            "brand": "Toyota",
            "model": "Corolla",
            "year": 2022,
            "type": CarType.SEDAN,
            "fuel_type": FuelType.GASOLINE,
            "transmission": TransmissionType.AUTOMATIC,
            "daily_rate": 50.0,
            "deposit": 200.0,
            "mileage": 10000,
            "location": "Austin, TX",
            "status": CarStatus.AVAILABLE,
            "is_available": True,
            "owner_id": owner.id,
        }
        fields.update(overrides)
        car = Car(**fields)
        db_session.add(car)
        await db_session.commit()
        return car

    return factory


@pytest.fixture
def make_rental(db_session):
    """Inserts a rental row directly, bypassing booking rules (e.g. past dates)."""

    async def factory(user: User, car: Car, start: datetime, days: int = 3, **overrides) -> Rental:
        fields = {
            "user_id": user.id,
            "car_id": car.id,
            "start_date": start,
            "end_date": start + timedelta(days=days),
            "duration": days,
            "daily_rate": car.daily_rate,
            "total_cost": round(car.daily_rate * days, 2),
            "deposit": car.deposit,
            "status": RentalStatus.PENDING,
            "payment_status": PaymentStatus.PENDING,
        }
        fields.update(overrides)
        rental = Rental(**fields)
        db_session.add(rental)
        await db_session.commit()
        return rental

    return factory


@pytest.fixture
def make_admin(db_session):
    async def factory(role: AdminRole = AdminRole.SUPER_ADMIN, **overrides) -> Admin:
        n = next(_sequence)
        fields = {
            "first_name": "Staff",
            "last_name": f"Member{n}",
            "email": f"admin{n}@example.com",
            "password": hash_password(DEFAULT_PASSWORD),
            "role": role,
            "status": AdminStatus.ACTIVE,
            "permissions": [],
        }
        fields.update(overrides)
        admin = Admin(**fields)
        db_session.add(admin)
        await db_session.commit()
        return admin

    return factory


@pytest.fixture
def user_token():
    return user_service.issue_token


@pytest.fixture
def admin_token():
    return admin_service.issue_token


# ══════════════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def utc():
    """utc(days=2) → an aware UTC instant two days from now."""
    return _utc


@pytest.fixture
def auth_headers():
    return _auth_headers
