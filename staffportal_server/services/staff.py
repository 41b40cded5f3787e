# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Staff record persistence shared by the admin API and onboarding submission."""

import uuid
from datetime import date

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from staffportal_server.api.schemas import DocumentCreate, DocumentResponse, StaffCreate
from staffportal_server.models import StaffDocument, StaffMember
from staffportal_server.models.activity_log import ActionType
from staffportal_server.models.staff import DocumentStatus
from staffportal_server.services.activity import Actor, log_document


async def get_staff_or_404(db: AsyncSession, staff_id: str) -> StaffMember:
    result = await db.execute(select(StaffMember).where(StaffMember.id == staff_id))
    staff = result.scalar_one_or_none()
    if not staff:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff member not found")
    return staff


async def ensure_email_available(db: AsyncSession, email: str, exclude_id: str | None = None) -> None:
    query = select(StaffMember.id).where(func.lower(StaffMember.email) == email.lower())
    if exclude_id:
        query = query.where(StaffMember.id != exclude_id)
    if (await db.execute(query)).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A staff member with this email already exists",
        )


def document_from_payload(data: DocumentCreate | DocumentResponse) -> StaffDocument:
    return StaffDocument(
        id=data.id or f"doc-{uuid.uuid4().hex[:12]}",
        name=data.name,
        type=data.type,
        upload_date=data.upload_date or date.today(),
        status=data.status,
        file_url=data.file_url,
        file_name=data.file_name,
    )


async def create_staff_member(db: AsyncSession, data: StaffCreate) -> StaffMember:
    """Insert a staff record with its documents. Raises 400 if the email is taken."""
    email = str(data.email).strip().lower()
    await ensure_email_available(db, email)
    fields = data.model_dump(exclude={"documents", "email", "declarations"})
    if data.work_preference is not None:
        fields["work_preference"] = data.work_preference.value
    staff = StaffMember(
        **fields,
        email=email,
        declarations=data.declarations.model_dump(),
        documents=[document_from_payload(d) for d in data.documents],
    )
    db.add(staff)
    await db.flush()
    return staff


async def log_document_status_change(
    db: AsyncSession,
    actor: Actor,
    staff: StaffMember,
    document: StaffDocument,
    old_status: DocumentStatus,
    new_status: DocumentStatus,
) -> None:
    if new_status == DocumentStatus.VERIFIED:
        action = ActionType.DOCUMENT_VERIFIED
        message = f"{actor.name} verified {document.name} for {staff.name}"
    elif new_status == DocumentStatus.REJECTED:
        action = ActionType.DOCUMENT_REJECTED
        message = f"{actor.name} rejected {document.name} for {staff.name}"
    else:
        action = ActionType.DOCUMENT_STATUS_UPDATED
        message = (
            f"{actor.name} updated status of '{document.name}' for {staff.name} "
            f"from {old_status.value} to {new_status.value}"
        )
    await log_document(
        db, actor, action, staff.id, staff.name, document.id, document.name, message,
        {"old_status": old_status.value, "new_status": new_status.value},
    )
