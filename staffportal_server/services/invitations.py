# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Invitation lookups, lazy expiry and OTP issuance."""

import logging
from datetime import datetime, timedelta

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staffportal_server.auth import generate_otp, hash_password
from staffportal_server.config import settings
from staffportal_server.errors import InvitationCompletedError, InvitationExpiredError, InvitationNotVerifiedError
from staffportal_server.models import Invitation, InvitationStatus
from staffportal_server.models.activity_log import ActionType, ActorRole
from staffportal_server.models.timestamp import utcnow
from staffportal_server.services.activity import Actor, log_invitation

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = Actor(id="system", role=ActorRole.SYSTEM, name="System")

# Statuses in which the employee may save progress, submit and complete
IN_PROGRESS_STATUSES = (InvitationStatus.VERIFIED, InvitationStatus.PENDING)


async def get_invitation_by_token(db: AsyncSession, invite_token: str) -> Invitation:
    result = await db.execute(select(Invitation).where(Invitation.invite_token == invite_token))
    inv = result.scalar_one_or_none()
    if not inv:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invitation not found")
    return inv


async def get_invitation_by_id(db: AsyncSession, invitation_id: str) -> Invitation:
    result = await db.execute(select(Invitation).where(Invitation.id == invitation_id))
    inv = result.scalar_one_or_none()
    if not inv:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invitation not found")
    return inv


async def apply_lazy_expiry(db: AsyncSession, inv: Invitation, now: datetime | None = None) -> bool:
    """Mark the invitation EXPIRED if its window has passed. Commits the change so it
    survives an error response raised right after. Returns True when it is expired."""
    if inv.refresh_expiry(now):
        logger.info("Invitation %s expired", inv.id)
        await log_invitation(
            db, SYSTEM_ACTOR, ActionType.ONBOARDING_EXPIRED, inv,
            f"Onboarding invitation for {inv.employee_name} expired",
        )
        await db.commit()
    return inv.status == InvitationStatus.EXPIRED


async def ensure_not_expired(db: AsyncSession, inv: Invitation) -> None:
    if await apply_lazy_expiry(db, inv):
        raise InvitationExpiredError()


async def ensure_in_progress(db: AsyncSession, inv: Invitation) -> None:
    """Guard for employee actions: the invitation must be verified and still open."""
    if inv.status == InvitationStatus.COMPLETED:
        raise InvitationCompletedError()
    await ensure_not_expired(db, inv)
    if inv.status not in IN_PROGRESS_STATUSES:
        raise InvitationNotVerifiedError()


def issue_otp(inv: Invitation, now: datetime | None = None) -> str:
    """Store a fresh hashed OTP on the invitation and return the plain code."""
    now = now or utcnow()
    otp = generate_otp()
    inv.otp_hash = hash_password(otp)
    inv.otp_expires_at = now + timedelta(minutes=settings.otp_expire_minutes)
    return otp


def reissue_otp(inv: Invitation, now: datetime | None = None) -> str:
    """Resend: new code and expiry. An expired invitation goes back to SENT with a fresh window."""
    if inv.status == InvitationStatus.COMPLETED:
        raise InvitationCompletedError("Cannot resend OTP for completed invitation")
    now = now or utcnow()
    inv.refresh_expiry(now)
    if inv.status == InvitationStatus.EXPIRED:
        inv.status = InvitationStatus.SENT
        inv.sent_at = now
    return issue_otp(inv, now)
