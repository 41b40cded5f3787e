# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Invitation model - one onboarding attempt for an invited employee."""

import enum
import secrets
import uuid
from datetime import datetime, timedelta

from sqlalchemy import DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from staffportal_server.config import settings
from staffportal_server.models.base import Base
from staffportal_server.models.timestamp import TimestampMixin, as_utc, utcnow


class InvitationStatus(str, enum.Enum):
    SENT = "SENT"
    VERIFIED = "VERIFIED"
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"


def new_invite_token() -> str:
    return secrets.token_urlsafe(32)


class Invitation(Base, TimestampMixin):
    """Invitation to onboard. Admin sends an email with a link and OTP; the employee
    verifies the OTP and works through the onboarding wizard."""

    __tablename__ = "invitations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    employee_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    invite_token: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True, default=new_invite_token
    )
    otp_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    otp_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[InvitationStatus] = mapped_column(
        Enum(
            InvitationStatus,
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=InvitationStatus.SENT,
        nullable=False,
        index=True,
    )
    # Derived from the saved progress record; not authoritative on its own
    onboarding_progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Start of the 30-day window. Equals created_at until an OTP resend revives an expired invite.
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    def is_otp_valid(self, now: datetime | None = None) -> bool:
        if not self.otp_hash or not self.otp_expires_at:
            return False
        return (now or utcnow()) < as_utc(self.otp_expires_at)

    @property
    def expires_at(self) -> datetime:
        return as_utc(self.sent_at) + timedelta(days=settings.invitation_expire_days)

    def is_expired(self, now: datetime | None = None) -> bool:
        """True once the invitation window has passed without completion."""
        if self.status == InvitationStatus.COMPLETED:
            return False
        if self.status == InvitationStatus.EXPIRED:
            return True
        return (now or utcnow()) >= self.expires_at

    def refresh_expiry(self, now: datetime | None = None) -> bool:
        """Lazily flip status to EXPIRED. Returns True when the status changed."""
        if self.status in (InvitationStatus.COMPLETED, InvitationStatus.EXPIRED):
            return False
        if self.is_expired(now):
            self.status = InvitationStatus.EXPIRED
            return True
        return False
