"""
RentCar Backend — Authentication & Authorization
==================================================

What:  Password hashing, JWT issuing/decoding and the FastAPI dependencies
       that turn a bearer token into a `Principal`.
Why:   Every non-public endpoint needs to know who is calling and in which role;
       keeping it in one module means routes only declare Depends(require_…).
How:   passlib (bcrypt) for passwords, PyJWT (HS256) for tokens,
       fastapi.security.HTTPBearer for header extraction.

Token claims:
    sub / id    → account UUID (user or admin)
    email       → account email
    role        → customer | owner | admin
    kind        → "user" (users table) or "admin" (admins table)
    admin_role  → super_admin | admin | moderator | support (admin tokens only)
    iat / exp   → issued-at / expiry (JWT_EXPIRES_MINUTES, default 24h)

Tokens are stateless: a suspended account keeps a valid token until it expires.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

from app.config import settings
from app.exceptions import AuthenticationError, PermissionDeniedError
from app.models.enums import AdminRole, UserRole

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)
bearer_scheme = HTTPBearer(auto_error=False)

ACCOUNT_USER = "user"
ACCOUNT_ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as read from a verified access token."""

    id: uuid.UUID
    email: str
    role: UserRole
    kind: str = ACCOUNT_USER
    admin_role: Optional[AdminRole] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_staff(self) -> bool:
        """True for accounts stored in the admins table."""
        return self.kind == ACCOUNT_ADMIN

    @property
    def is_super_admin(self) -> bool:
        return self.is_staff and self.admin_role == AdminRole.SUPER_ADMIN


# ══════════════════════════════════════════════════════════════════════════
# Passwords
# ══════════════════════════════════════════════════════════════════════════

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Malformed hash in the database: treat as a failed match
        logger.warning("Stored password hash could not be parsed")
        return False


# ══════════════════════════════════════════════════════════════════════════
# Tokens
# ══════════════════════════════════════════════════════════════════════════

def create_access_token(
    subject_id: uuid.UUID,
    email: str,
    role: UserRole,
    kind: str = ACCOUNT_USER,
    admin_role: Optional[AdminRole] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    now = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=expires_minutes or settings.jwt_expires_minutes)
    payload: Dict[str, Any] = {
        "sub": str(subject_id),
        "id": str(subject_id),
        "email": email,
        "role": UserRole(role).value,
        "kind": kind,
        "iat": int(now.timestamp()),
        "exp": int((now + lifetime).timestamp()),
    }
    if admin_role is not None:
        payload["admin_role"] = AdminRole(admin_role).value
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Principal:
    """
    Verify signature and expiry, then map claims onto a Principal.

    Raises:
        AuthenticationError: expired, forged, or structurally incomplete token
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")

    raw_id = payload.get("id") or payload.get("sub")
    raw_role = payload.get("role")
    if not raw_id or not raw_role:
        raise AuthenticationError("Invalid token payload")

    try:
        admin_role = payload.get("admin_role")
        return Principal(
            id=uuid.UUID(str(raw_id)),
            email=payload.get("email", ""),
            role=UserRole(raw_role),
            kind=payload.get("kind", ACCOUNT_USER),
            admin_role=AdminRole(admin_role) if admin_role else None,
        )
    except ValueError:
        raise AuthenticationError("Invalid token payload")


# ══════════════════════════════════════════════════════════════════════════
# FastAPI Dependencies
# ══════════════════════════════════════════════════════════════════════════

async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    """Any authenticated caller (user or admin)."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authenticated")
    return decode_token(credentials.credentials)


async def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Principal]:
    """Caller if a valid token was sent, else None (public endpoints with extras)."""
    if credentials is None or not credentials.credentials:
        return None
    return decode_token(credentials.credentials)


def require_roles(*roles: UserRole) -> Callable:
    """
    Build a dependency that admits only the given roles.

    Usage:
        @router.post("/cars")
        async def create(principal: Principal = Depends(require_roles(UserRole.OWNER, UserRole.ADMIN))):
    """
    allowed = frozenset(roles)

    async def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            raise PermissionDeniedError(
                "Insufficient role for this action",
                context={"required": sorted(r.value for r in allowed)},
            )
        return principal

    return dependency


require_admin = require_roles(UserRole.ADMIN)


async def require_super_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    if not principal.is_super_admin:
        raise PermissionDeniedError("Super admin privileges required")
    return principal
