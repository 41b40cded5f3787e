# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Invitations API: admin invites, OTP verification and the employee's onboarding session.

Routes under /invitations/{invite_token}/... act for the employee and need the
short-lived bearer issued by /verify-otp.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from staffportal_server.api.schemas import (
    CompleteRequest,
    InvitationCreate,
    InvitationResponse,
    OnboardingSessionResponse,
    OtpRequest,
    OtpVerifyRequest,
    ProgressLoadResponse,
    ProgressSaveRequest,
    ProgressSaveResponse,
    ProgressState,
    SessionInfo,
    StaffResponse,
    SubmissionResponse,
    SubmitRequest,
    TokenVerifyRequest,
)
from staffportal_server.auth import (
    EmployeeSession,
    create_onboarding_token,
    employee_session_from_token,
    require_employee_session,
    verify_password,
)
from staffportal_server.config import settings
from staffportal_server.database import get_db
from staffportal_server.errors import InvitationCompletedError, OtpError
from staffportal_server.models import AdminUser, Invitation, InvitationStatus, OnboardingProgress, StaffMember
from staffportal_server.models.activity_log import ActionType
from staffportal_server.models.timestamp import utcnow
from staffportal_server.onboarding.progress import (
    check_step_order,
    next_last_completed,
    progress_expiry,
    progress_percentage,
)
from staffportal_server.onboarding.submission import assemble_staff_record, new_application_ref
from staffportal_server.onboarding.validation import EMAIL_RE, form_errors
from staffportal_server.rate_limit import rate_limit_dep
from staffportal_server.routers.admin import require_admin
from staffportal_server.services.activity import admin_actor, employee_actor, log_invitation, log_staff
from staffportal_server.services.email import send_invitation_email, send_otp_resend_email
from staffportal_server.services.invitations import (
    apply_lazy_expiry,
    ensure_in_progress,
    ensure_not_expired,
    get_invitation_by_id,
    get_invitation_by_token,
    issue_otp,
    reissue_otp,
)
from staffportal_server.services.staff import create_staff_member

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invitations", tags=["invitations"])


async def _get_progress(db: AsyncSession, invite_token: str) -> OnboardingProgress | None:
    result = await db.execute(
        select(OnboardingProgress).where(OnboardingProgress.invite_token == invite_token)
    )
    return result.scalar_one_or_none()


async def _get_live_progress(db: AsyncSession, invite_token: str) -> OnboardingProgress | None:
    """Saved progress, dropping it first if it has outlived its expiry."""
    progress = await _get_progress(db, invite_token)
    if progress and progress.is_expired():
        logger.info("Discarding expired onboarding progress for invitation %s", invite_token[:8])
        await db.delete(progress)
        await db.flush()
        return None
    return progress


# Admin


@router.post("/send", response_model=InvitationResponse, status_code=status.HTTP_201_CREATED)
async def send_invitation(
    body: InvitationCreate,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> InvitationResponse:
    """Create an invitation and email the onboarding link with its OTP. Admin only."""
    employee_name = body.employee_name.strip()
    email = body.email.strip().lower()
    if not employee_name:
        raise HTTPException(status_code=400, detail="Employee name is required")
    if not EMAIL_RE.match(email):
        raise HTTPException(status_code=400, detail="Valid email is required")
    existing = await db.execute(select(StaffMember.id).where(StaffMember.email == email))
    if existing.first():
        raise HTTPException(status_code=400, detail="A staff member with this email already exists")
    existing_inv = await db.execute(select(Invitation).where(Invitation.email == email))
    if existing_inv.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="An invitation has already been sent to this email")

    inv = Invitation(employee_name=employee_name, email=email, sent_at=utcnow())
    otp = issue_otp(inv)
    db.add(inv)
    await db.flush()
    await log_invitation(
        db, admin_actor(admin), ActionType.INVITATION_SENT, inv,
        f"Onboarding invitation sent to {employee_name} ({email})",
    )
    await db.commit()
    logger.info("Invitation %s sent by admin %s", inv.id, admin.id)
    await send_invitation_email(email, employee_name, inv.invite_token, otp)
    return InvitationResponse.model_validate(inv)


@router.get("", response_model=list[InvitationResponse])
async def list_invitations(
    _admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[InvitationResponse]:
    """All invitations, newest first. Admin only."""
    result = await db.execute(select(Invitation).order_by(Invitation.created_at.desc()))
    invitations = result.scalars().all()
    for inv in invitations:
        await apply_lazy_expiry(db, inv)
    return [InvitationResponse.model_validate(inv) for inv in invitations]


@router.post("/{invitation_id}/resend-otp")
async def resend_otp(
    invitation_id: str,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Issue a new OTP and email it. Revives an expired invitation. Admin only."""
    inv = await get_invitation_by_id(db, invitation_id)
    otp = reissue_otp(inv)
    await log_invitation(
        db, admin_actor(admin), ActionType.OTP_RESENT, inv,
        f"OTP resent to {inv.employee_name} ({inv.email})",
    )
    await db.commit()
    await send_otp_resend_email(inv.email, inv.employee_name, inv.invite_token, otp)
    return {"message": "OTP resent successfully", "status": inv.status.value}


@router.delete("/{invitation_id}")
async def delete_invitation(
    invitation_id: str,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Delete an invitation and any saved progress. Admin only."""
    inv = await get_invitation_by_id(db, invitation_id)
    await db.execute(delete(OnboardingProgress).where(OnboardingProgress.invite_token == inv.invite_token))
    await log_invitation(
        db, admin_actor(admin), ActionType.INVITATION_DELETED, inv,
        f"Invitation for {inv.employee_name} ({inv.email}) deleted",
    )
    await db.delete(inv)
    await db.commit()
    return {"message": "Invitation deleted successfully"}


# Public


@router.post("/verify-otp", response_model=OnboardingSessionResponse, dependencies=[Depends(rate_limit_dep)])
async def verify_otp(
    body: OtpVerifyRequest,
    db: AsyncSession = Depends(get_db),
) -> OnboardingSessionResponse:
    """Exchange the emailed OTP for a 15-minute onboarding session."""
    inv = await get_invitation_by_token(db, body.invite_token)
    if inv.status == InvitationStatus.COMPLETED:
        raise InvitationCompletedError("This invitation has already been used")
    await ensure_not_expired(db, inv)
    if not inv.is_otp_valid():
        raise OtpError("The OTP has expired. Please request a new one.", error_code="OTP_EXPIRED")
    if not verify_password(body.otp.strip(), inv.otp_hash):
        raise OtpError()

    now = utcnow()
    if inv.status == InvitationStatus.SENT:
        inv.status = InvitationStatus.VERIFIED
    inv.verified_at = now
    inv.otp_hash = None
    inv.otp_expires_at = None
    await log_invitation(
        db, employee_actor(inv), ActionType.OTP_VERIFIED, inv,
        f"{inv.employee_name} verified their onboarding OTP",
    )
    await db.commit()
    return OnboardingSessionResponse(
        token=create_onboarding_token(inv.invite_token, inv.email),
        expires_in=settings.onboarding_session_minutes * 60,
        invite_token=inv.invite_token,
        employee_name=inv.employee_name,
        email=inv.email,
    )


@router.post("/request-otp", dependencies=[Depends(rate_limit_dep)])
async def request_otp(
    body: OtpRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Employee asks for a fresh OTP from the onboarding link."""
    inv = await get_invitation_by_token(db, body.invite_token)
    otp = reissue_otp(inv)
    await log_invitation(
        db, employee_actor(inv), ActionType.OTP_RESENT, inv,
        f"{inv.employee_name} requested a new OTP",
    )
    await db.commit()
    await send_otp_resend_email(inv.email, inv.employee_name, inv.invite_token, otp)
    return {"message": "A new OTP has been sent to your email"}


@router.post("/verify-token", response_model=SessionInfo)
async def verify_token(body: TokenVerifyRequest) -> SessionInfo:
    """Check that an onboarding session is still valid for this invitation."""
    session = employee_session_from_token(body.onboarding_token, body.invite_token)
    return SessionInfo(
        role=session.role,
        onboarding_allowed=True,
        invite_token=session.invite_token,
        email=session.email,
    )


@router.get("/{invite_token}", response_model=InvitationResponse)
async def get_invitation(
    invite_token: str,
    db: AsyncSession = Depends(get_db),
) -> InvitationResponse:
    """Invitation status for the onboarding link."""
    inv = await get_invitation_by_token(db, invite_token)
    await apply_lazy_expiry(db, inv)
    return InvitationResponse.model_validate(inv)


# Employee (onboarding session)


@router.post("/{invite_token}/progress", response_model=ProgressSaveResponse)
async def save_progress(
    invite_token: str,
    body: ProgressSaveRequest,
    _session: EmployeeSession = Depends(require_employee_session),
    db: AsyncSession = Depends(get_db),
) -> ProgressSaveResponse:
    """Autosave the wizard. Completion only moves forward; the first save starts onboarding."""
    inv = await get_invitation_by_token(db, invite_token)
    await ensure_in_progress(db, inv)

    progress = await _get_live_progress(db, invite_token)
    stored_last = progress.last_completed_step if progress else None
    check_step_order(body.step, stored_last)
    last_completed = next_last_completed(body.step, body.is_step_completed, stored_last)

    now = utcnow()
    form_data = body.form_data.model_dump(mode="json")
    if progress is None:
        progress = OnboardingProgress(invite_token=invite_token)
        db.add(progress)
    progress.current_step = body.step
    progress.last_completed_step = last_completed
    progress.form_data = form_data
    progress.expires_at = progress_expiry(now)
    progress.updated_at = now

    inv.onboarding_progress = progress_percentage(last_completed)
    if inv.status == InvitationStatus.VERIFIED:
        inv.status = InvitationStatus.PENDING
        await log_invitation(
            db, employee_actor(inv), ActionType.ONBOARDING_STARTED, inv,
            f"{inv.employee_name} started onboarding",
        )
    await db.commit()
    return ProgressSaveResponse(
        current_step=progress.current_step,
        last_completed_step=progress.last_completed_step,
        onboarding_progress=inv.onboarding_progress,
        saved_at=now,
    )


@router.get("/{invite_token}/progress", response_model=ProgressLoadResponse)
async def load_progress(
    invite_token: str,
    _session: EmployeeSession = Depends(require_employee_session),
    db: AsyncSession = Depends(get_db),
) -> ProgressLoadResponse:
    """Saved wizard state, if any."""
    inv = await get_invitation_by_token(db, invite_token)
    if inv.status == InvitationStatus.COMPLETED:
        raise InvitationCompletedError()
    await ensure_not_expired(db, inv)
    progress = await _get_live_progress(db, invite_token)
    if progress is None:
        return ProgressLoadResponse(has_progress=False)
    return ProgressLoadResponse(
        has_progress=True,
        progress=ProgressState(
            current_step=progress.current_step,
            last_completed_step=progress.last_completed_step,
            form_data=progress.form_data,
            saved_at=progress.updated_at,
            expires_at=progress.expires_at,
        ),
    )


@router.delete("/{invite_token}/progress")
async def clear_progress(
    invite_token: str,
    _session: EmployeeSession = Depends(require_employee_session),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Remove saved wizard state."""
    progress = await _get_progress(db, invite_token)
    if progress is None:
        raise HTTPException(status_code=404, detail="No saved progress found")
    await db.delete(progress)
    await db.commit()
    return {"message": "Progress cleared successfully"}


@router.post("/{invite_token}/submit", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def submit_onboarding(
    invite_token: str,
    body: SubmitRequest,
    _session: EmployeeSession = Depends(require_employee_session),
    db: AsyncSession = Depends(get_db),
) -> SubmissionResponse:
    """Create the staff record from the finished wizard form."""
    inv = await get_invitation_by_token(db, invite_token)
    await ensure_in_progress(db, inv)
    incomplete = form_errors(body.form_data)
    if incomplete:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Onboarding form is incomplete", "steps": incomplete},
        )
    staff = await create_staff_member(db, assemble_staff_record(body.form_data))
    await log_staff(
        db, employee_actor(inv), ActionType.STAFF_CREATED, staff.id, staff.name,
        f"{staff.name} submitted their onboarding application",
        {"source": "onboarding", "invitation_id": inv.id},
    )
    await db.commit()
    logger.info("Onboarding submitted for invitation %s -> staff %s", inv.id, staff.id)
    return SubmissionResponse(staff=StaffResponse.model_validate(staff), application_ref=new_application_ref())


@router.patch("/{invite_token}/complete", response_model=InvitationResponse)
async def complete_invitation(
    invite_token: str,
    body: CompleteRequest | None = None,
    _session: EmployeeSession = Depends(require_employee_session),
    db: AsyncSession = Depends(get_db),
) -> InvitationResponse:
    """Mark the invitation COMPLETED. Terminal."""
    inv = await get_invitation_by_token(db, invite_token)
    await ensure_in_progress(db, inv)
    inv.status = InvitationStatus.COMPLETED
    inv.onboarding_progress = body.onboarding_progress if body else 100
    await log_invitation(
        db, employee_actor(inv), ActionType.ONBOARDING_COMPLETED, inv,
        f"{inv.employee_name} completed onboarding",
    )
    await db.commit()
    return InvitationResponse.model_validate(inv)
