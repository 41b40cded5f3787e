# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Authentication: JWT, password and OTP hashing, and the employee session gate."""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from staffportal_server.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)

ADMIN_ROLE = "admin"
EMPLOYEE_ROLE = "employee"


def hash_password(password: str) -> str:
    """Hash a password (or OTP) for storage."""
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a password (or OTP) against its hash."""
    return pwd_context.verify(plain, hashed)


def generate_otp(length: int | None = None) -> str:
    """Numeric one-time passcode."""
    length = length or settings.otp_length
    return "".join(secrets.choice("0123456789") for _ in range(length))


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
        return payload
    except JWTError:
        return None


def create_onboarding_token(invite_token: str, email: str) -> str:
    """Employee session credential, valid for onboarding_session_minutes."""
    return create_access_token(
        {
            "sub": invite_token,
            "invite_token": invite_token,
            "email": email,
            "role": EMPLOYEE_ROLE,
            "onboarding_allowed": True,
        },
        expires_delta=timedelta(minutes=settings.onboarding_session_minutes),
    )


@dataclass(frozen=True)
class EmployeeSession:
    invite_token: str
    email: str
    role: str = EMPLOYEE_ROLE


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def employee_session_from_token(token: str, invite_token: str) -> EmployeeSession:
    """Validate an employee credential for one invitation. Raises 401/403."""
    payload = decode_token(token)
    if not payload:
        raise _unauthorized("Invalid or expired authentication token")
    if payload.get("role") != EMPLOYEE_ROLE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied. Employee role required.")
    if payload.get("onboarding_allowed") is not True:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Onboarding access not granted")
    if payload.get("invite_token") != invite_token:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Token does not match invitation")
    return EmployeeSession(invite_token=payload["invite_token"], email=payload.get("email", ""))


async def require_employee_session(
    invite_token: str,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> EmployeeSession:
    """Dependency for routes under /invitations/{invite_token}/...: the bearer must be an
    employee session issued for that invite token."""
    if not credentials:
        raise _unauthorized("No valid authentication token provided")
    return employee_session_from_token(credentials.credentials, invite_token)


async def get_current_admin_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> int:
    """Extract and validate the admin ID from a JWT. Raises 401 if invalid."""
    if not credentials:
        raise _unauthorized("Not authenticated")
    payload = decode_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid or expired token")
    if payload.get("role") != ADMIN_ROLE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin required")
    admin_id = payload.get("sub")
    if not admin_id:
        raise _unauthorized("Invalid token")
    return int(admin_id)
