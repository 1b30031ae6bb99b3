"""
Authentication Utility - JWT and Password handling.

Provides:
- Pluggable password hashing (bcrypt by default)
- JWT token creation/verification
- FastAPI dependencies turning a bearer token into a Principal
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select

from campus_placement.core.config import get_settings
from campus_placement.db.database import get_db_session
from campus_placement.db.tables import coordinators, students
from campus_placement.schemas.schemas import Principal, UserRole

# Bearer token extractor
bearer_scheme = HTTPBearer()


# ============================================================
# PASSWORD HASHING
# ============================================================

class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...

    def verify(self, password: str, hashed: str) -> bool: ...


class BcryptHasher:
    """passlib bcrypt context; rounds default to settings.bcrypt_rounds."""

    def __init__(self, rounds: Optional[int] = None):
        self.context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds or get_settings().bcrypt_rounds,
        )

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        return self.context.verify(password, hashed)


_password_hasher: PasswordHasher = None


def get_password_hasher() -> PasswordHasher:
    """Get or create the process-wide hasher (singleton pattern)"""
    global _password_hasher
    if _password_hasher is None:
        _password_hasher = BcryptHasher()
    return _password_hasher


def set_password_hasher(hasher: Optional[PasswordHasher]) -> None:
    """Swap the process-wide hasher; None restores the bcrypt default lazily."""
    global _password_hasher
    _password_hasher = hasher


# ============================================================
# JWT
# ============================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_principal_token(principal: Principal) -> str:
    return create_access_token({"sub": str(principal.id), "role": principal.role.value})


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


# ============================================================
# FASTAPI DEPENDENCIES
# ============================================================

def get_current_principal(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> Principal:
    """
    FastAPI dependency - Get the authenticated caller.

    Usage:
        @router.get("/protected")
        def route(principal: Principal = Depends(get_current_principal)):
            return principal
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if not payload:
        raise credentials_exception

    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or role not in (UserRole.coordinator.value, UserRole.student.value):
        raise credentials_exception

    principal = Principal(id=int(user_id), role=role)

    # Verify account still exists (students can be deleted by coordinators)
    table = coordinators if principal.is_coordinator else students
    with get_db_session() as db:
        row = db.execute(select(table.c.id).where(table.c.id == principal.id)).fetchone()

    if not row:
        raise credentials_exception

    return principal


def require_student(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Dependency - Require student role."""
    if not principal.is_student:
        raise HTTPException(status_code=403, detail="Students only")
    return principal


def require_coordinator(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Dependency - Require coordinator role."""
    if not principal.is_coordinator:
        raise HTTPException(status_code=403, detail="Coordinators only")
    return principal
