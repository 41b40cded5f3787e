# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Staff records API. Admin only."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from staffportal_server.api.schemas import (
    BulkAction,
    BulkActionRequest,
    BulkDeleteRequest,
    BulkResult,
    BulkStatusRequest,
    BulkUpdateRequest,
    StaffCreate,
    StaffResponse,
    StaffUpdate,
)
from staffportal_server.database import get_db
from staffportal_server.models import AdminUser, StaffDocument, StaffMember
from staffportal_server.models.activity_log import ActionType, EntityType
from staffportal_server.models.staff import VerificationStatus
from staffportal_server.routers.admin import require_admin
from staffportal_server.services.activity import Actor, admin_actor, log_activity, log_document, log_staff
from staffportal_server.services.staff import (
    create_staff_member,
    document_from_payload,
    ensure_email_available,
    get_staff_or_404,
    log_document_status_change,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/staff", tags=["staff"])

BULK_ACTION_TO_STATUS = {
    BulkAction.VERIFY: VerificationStatus.VERIFIED,
    BulkAction.REJECT: VerificationStatus.REJECTED,
    BulkAction.PENDING: VerificationStatus.PENDING,
}
ALLOWED_BULK_STATUSES = (VerificationStatus.VERIFIED, VerificationStatus.REJECTED, VerificationStatus.PENDING)

EMPLOYMENT_ALLOCATION_FIELDS = ("location", "shift_type", "pay_type", "start_date", "end_date")
IMMIGRATION_FIELDS = ("citizenship_status", "visa_type", "visa_other", "share_code")
PERSONAL_DETAIL_FIELDS = ("name", "email", "phone_number", "address", "dob", "gender", "avatar")
REQUIRED_FIELDS = frozenset({
    "name", "email", "phone_number", "dob", "address", "gender", "start_date", "employment_type",
    "verification_status", "dbs_status", "location", "onboarding_progress", "citizenship_status",
})


async def _set_verification_status(
    db: AsyncSession, actor: Actor, staff_ids: list[str], new_status: VerificationStatus
) -> BulkResult:
    result = await db.execute(
        update(StaffMember)
        .where(StaffMember.id.in_(staff_ids), StaffMember.verification_status != new_status)
        .values(verification_status=new_status)
        .execution_options(synchronize_session=False)
    )
    count = result.rowcount or 0
    await log_activity(
        db, actor, ActionType.BULK_STATUS_UPDATE, EntityType.STAFF, "bulk",
        f"{actor.name} updated {count} staff to {new_status.value}",
        {"count": count, "status": new_status.value, "staff_ids": staff_ids},
    )
    await db.commit()
    return BulkResult(updated_count=count, status=new_status)


@router.patch("/bulk-action", response_model=BulkResult)
async def bulk_action(
    body: BulkActionRequest,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> BulkResult:
    """Apply VERIFY, REJECT or PENDING to many staff records."""
    return await _set_verification_status(db, admin_actor(admin), body.staff_ids, BULK_ACTION_TO_STATUS[body.action])


@router.patch("/bulk-status", response_model=BulkResult)
async def bulk_status(
    body: BulkStatusRequest,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> BulkResult:
    if body.status not in ALLOWED_BULK_STATUSES:
        allowed = ", ".join(s.value for s in ALLOWED_BULK_STATUSES)
        raise HTTPException(status_code=400, detail=f"status must be one of: {allowed}")
    return await _set_verification_status(db, admin_actor(admin), body.staff_ids, body.status)


@router.patch("/bulk-update", response_model=BulkResult)
async def bulk_update(
    body: BulkUpdateRequest,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> BulkResult:
    """Set pay rate, employment type or location on many staff records."""
    values: dict[str, Any] = {}
    if body.employment_type is not None:
        values["employment_type"] = body.employment_type
    if body.hourly_pay_rate is not None:
        values["hourly_pay_rate"] = body.hourly_pay_rate
    if body.location is not None:
        values["location"] = body.location.strip()
    if not values:
        raise HTTPException(
            status_code=400,
            detail="Provide at least one of: hourly_pay_rate, employment_type, location",
        )
    result = await db.execute(
        update(StaffMember)
        .where(StaffMember.id.in_(body.staff_ids))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    count = result.rowcount or 0
    actor = admin_actor(admin)
    await log_activity(
        db, actor, ActionType.BULK_UPDATE, EntityType.STAFF, "bulk",
        f"{actor.name} updated {', '.join(values)} for {count} staff",
        {"count": count, "fields": list(values), "staff_ids": body.staff_ids},
    )
    await db.commit()
    return BulkResult(updated_count=count, updated_fields=list(values))


@router.post("/bulk-delete", response_model=BulkResult)
async def bulk_delete(
    body: BulkDeleteRequest,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> BulkResult:
    await db.execute(delete(StaffDocument).where(StaffDocument.staff_id.in_(body.staff_ids)))
    result = await db.execute(delete(StaffMember).where(StaffMember.id.in_(body.staff_ids)))
    count = result.rowcount or 0
    actor = admin_actor(admin)
    await log_activity(
        db, actor, ActionType.BULK_DELETE, EntityType.STAFF, "bulk",
        f"{actor.name} deleted {count} staff",
        {"count": count, "staff_ids": body.staff_ids},
    )
    await db.commit()
    return BulkResult(deleted_count=count)


@router.get("", response_model=list[StaffResponse])
async def list_staff(
    _admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[StaffResponse]:
    result = await db.execute(select(StaffMember).order_by(StaffMember.created_at.desc()))
    return [StaffResponse.model_validate(s) for s in result.scalars().all()]


@router.get("/status/{verification_status}", response_model=list[StaffResponse])
async def list_staff_by_status(
    verification_status: VerificationStatus,
    _admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[StaffResponse]:
    result = await db.execute(
        select(StaffMember)
        .where(StaffMember.verification_status == verification_status)
        .order_by(StaffMember.created_at.desc())
    )
    return [StaffResponse.model_validate(s) for s in result.scalars().all()]


@router.get("/{staff_id}", response_model=StaffResponse)
async def get_staff(
    staff_id: str,
    _admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> StaffResponse:
    return StaffResponse.model_validate(await get_staff_or_404(db, staff_id))


@router.post("", response_model=StaffResponse, status_code=status.HTTP_201_CREATED)
async def create_staff(
    body: StaffCreate,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> StaffResponse:
    """Create a staff record directly, without an onboarding invitation."""
    staff = await create_staff_member(db, body)
    actor = admin_actor(admin)
    await log_staff(
        db, actor, ActionType.STAFF_CREATED, staff.id, staff.name,
        f"{actor.name} created staff profile for {staff.name}",
        {"source": "admin"},
    )
    await db.commit()
    return StaffResponse.model_validate(staff)


@router.put("/{staff_id}", response_model=StaffResponse)
async def replace_staff(
    staff_id: str,
    body: StaffCreate,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> StaffResponse:
    """Replace every field of a staff record, documents included."""
    staff = await get_staff_or_404(db, staff_id)
    email = str(body.email).strip().lower()
    await ensure_email_available(db, email, exclude_id=staff.id)
    for key, value in body.model_dump(exclude={"documents", "email", "declarations"}).items():
        setattr(staff, key, value)
    if body.work_preference is not None:
        staff.work_preference = body.work_preference.value
    staff.email = email
    staff.declarations = body.declarations.model_dump()
    # Old rows must be gone before new ones reuse their ids
    staff.documents.clear()
    await db.flush()
    staff.documents.extend(document_from_payload(d) for d in body.documents)
    actor = admin_actor(admin)
    await log_staff(db, actor, ActionType.STAFF_UPDATED, staff.id, staff.name, f"{actor.name} updated {staff.name}")
    await db.commit()
    await db.refresh(staff)
    return StaffResponse.model_validate(staff)


def _changed(staff: StaffMember, data: dict[str, Any], fields: tuple[str, ...]) -> list[str]:
    return [f for f in fields if f in data and data[f] != getattr(staff, f)]


@router.patch("/{staff_id}", response_model=StaffResponse)
async def update_staff(
    staff_id: str,
    body: StaffUpdate,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> StaffResponse:
    """Partial update. Each kind of change gets its own activity entry."""
    staff = await get_staff_or_404(db, staff_id)
    actor = admin_actor(admin)
    data = {
        k: v for k, v in body.model_dump(exclude_unset=True, exclude={"documents"}).items()
        if v is not None or k not in REQUIRED_FIELDS
    }
    if data.get("email"):
        data["email"] = str(data["email"]).strip().lower()
        await ensure_email_available(db, data["email"], exclude_id=staff.id)
    if data.get("work_preference") is not None:
        data["work_preference"] = data["work_preference"].value
    if body.declarations is not None:
        data["declarations"] = body.declarations.model_dump()

    # Snapshot before applying so each activity compares against the stored value
    old_verification = staff.verification_status
    old_pay_rate = staff.hourly_pay_rate
    old_contract = staff.contract_status
    allocation_changed = _changed(staff, data, EMPLOYMENT_ALLOCATION_FIELDS)
    immigration_changed = _changed(staff, data, IMMIGRATION_FIELDS)
    personal_changed = _changed(staff, data, PERSONAL_DETAIL_FIELDS)
    notes_changed = _changed(staff, data, ("auditor_notes",))

    for key, value in data.items():
        setattr(staff, key, value)

    document_changes = []
    if body.documents is not None:
        existing = {d.id: d for d in staff.documents}
        for doc_data in body.documents:
            doc = existing.get(doc_data.id)
            if doc is None:
                doc = document_from_payload(doc_data)
                staff.documents.append(doc)
                document_changes.append((doc, None))
                continue
            old_status = doc.status
            for key, value in doc_data.model_dump(exclude={"id"}).items():
                setattr(doc, key, value)
            if old_status != doc.status:
                document_changes.append((doc, old_status))
    await db.flush()

    new_verification = staff.verification_status
    if new_verification != old_verification:
        if new_verification == VerificationStatus.VERIFIED:
            await log_staff(
                db, actor, ActionType.STAFF_VERIFIED, staff.id, staff.name,
                f"{actor.name} verified and activated {staff.name}",
            )
        elif new_verification == VerificationStatus.REJECTED:
            await log_staff(
                db, actor, ActionType.STAFF_REJECTED, staff.id, staff.name,
                f"{actor.name} rejected application for {staff.name}",
            )
        else:
            await log_staff(
                db, actor, ActionType.VERIFICATION_STATUS_CHANGED, staff.id, staff.name,
                f"{actor.name} changed verification status for {staff.name} "
                f"from {old_verification.value} to {new_verification.value}",
                {"old_status": old_verification.value, "new_status": new_verification.value},
            )
    if staff.hourly_pay_rate != old_pay_rate and staff.hourly_pay_rate is not None:
        await log_staff(
            db, actor, ActionType.HOURLY_PAY_RATE_UPDATED, staff.id, staff.name,
            f"{actor.name} updated hourly pay rate for {staff.name} "
            f"from £{old_pay_rate if old_pay_rate is not None else 'N/A'} to £{staff.hourly_pay_rate}",
            {"old_rate": old_pay_rate, "new_rate": staff.hourly_pay_rate},
        )
    if staff.contract_status != old_contract and staff.contract_status is not None:
        await log_staff(
            db, actor, ActionType.EMPLOYMENT_STATUS_CHANGED, staff.id, staff.name,
            f"{actor.name} changed employment status for {staff.name} "
            f"from {old_contract.value if old_contract else 'N/A'} to {staff.contract_status.value}",
        )
    if allocation_changed:
        await log_staff(
            db, actor, ActionType.EMPLOYMENT_ALLOCATION_UPDATED, staff.id, staff.name,
            f"{actor.name} updated employment allocation for {staff.name}",
            {"changed_fields": allocation_changed},
        )
    if immigration_changed:
        await log_staff(
            db, actor, ActionType.IMMIGRATION_INFO_UPDATED, staff.id, staff.name,
            f"{actor.name} updated immigration/right-to-work info for {staff.name}",
            {"changed_fields": immigration_changed},
        )
    if notes_changed:
        await log_staff(
            db, actor, ActionType.AUDITOR_NOTES_UPDATED, staff.id, staff.name,
            f"{actor.name} updated auditor notes for {staff.name}",
        )
    for doc, old_status in document_changes:
        if old_status is None:
            await log_document(
                db, actor, ActionType.DOCUMENT_ADDED, staff.id, staff.name, doc.id, doc.name,
                f"{actor.name} added new document '{doc.name}' for {staff.name}",
            )
        else:
            await log_document_status_change(db, actor, staff, doc, old_status, doc.status)
    if personal_changed:
        await log_staff(
            db, actor, ActionType.STAFF_UPDATED, staff.id, staff.name,
            f"{actor.name} updated {', '.join(personal_changed)} for {staff.name}",
            {"changed_fields": personal_changed},
        )
    await db.commit()
    await db.refresh(staff)
    return StaffResponse.model_validate(staff)


@router.delete("/{staff_id}")
async def delete_staff(
    staff_id: str,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    staff = await get_staff_or_404(db, staff_id)
    actor = admin_actor(admin)
    await log_staff(db, actor, ActionType.STAFF_DELETED, staff.id, staff.name, f"{actor.name} deleted {staff.name}")
    await db.delete(staff)
    await db.commit()
    return {"message": "Staff member deleted successfully"}
