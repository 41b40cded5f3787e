# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""The employee's onboarding credential and the guard every wizard action passes through."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from jose import JWTError, jwt

from staffportal_server.wizard.errors import SessionExpiredError, SessionRejectedError


@dataclass(frozen=True)
class EmployeeSession:
    """Credential issued by OTP verification, bound to one invite token.

    Claims are read without verifying the signature. That is only used to spot a
    lapsed credential before a request; the service checks the signature.
    """

    token: str
    invite_token: str
    email: str
    employee_name: str = ""

    @property
    def claims(self) -> dict[str, Any]:
        try:
            return jwt.get_unverified_claims(self.token)
        except JWTError:
            return {}

    @property
    def expires_at(self) -> datetime | None:
        exp = self.claims.get("exp")
        if exp is None:
            return None
        return datetime.fromtimestamp(exp, tz=timezone.utc)

    def is_expired(self, now: datetime | None = None) -> bool:
        expires_at = self.expires_at
        if expires_at is None:
            return True
        return (now or datetime.now(timezone.utc)) >= expires_at

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


class SessionGuard:
    """Holds the current session. ``require()`` is the only way wizard actions get it."""

    def __init__(self, session: EmployeeSession | None = None):
        self._session = session

    @property
    def session(self) -> EmployeeSession | None:
        return self._session

    def require(self, invite_token: str | None = None) -> EmployeeSession:
        session = self._session
        if session is None:
            raise SessionRejectedError("No onboarding session")
        if invite_token is not None and session.invite_token != invite_token:
            raise SessionRejectedError("Session belongs to a different invitation")
        if session.claims.get("invite_token", session.invite_token) != session.invite_token:
            raise SessionRejectedError("Session token does not match invitation")
        if session.is_expired():
            raise SessionExpiredError()
        return session

    def replace(self, session: EmployeeSession) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None
