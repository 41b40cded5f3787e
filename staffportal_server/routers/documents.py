# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Compliance documents attached to staff records."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from staffportal_server.api.schemas import DocumentCreate, DocumentResponse, DocumentUpdate
from staffportal_server.database import get_db
from staffportal_server.models import AdminUser, StaffDocument, StaffMember
from staffportal_server.models.activity_log import ActionType, ActorRole
from staffportal_server.routers.admin import require_admin
from staffportal_server.services.activity import Actor, admin_actor, log_document
from staffportal_server.services.staff import document_from_payload, get_staff_or_404, log_document_status_change

router = APIRouter(prefix="/documents", tags=["documents"])


def _find_document(staff: StaffMember, document_id: str) -> StaffDocument:
    for doc in staff.documents:
        if doc.id == document_id:
            return doc
    raise HTTPException(status_code=404, detail="Document not found")


@router.get("/staff/{staff_id}", response_model=list[DocumentResponse])
async def list_documents(
    staff_id: str,
    _admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[DocumentResponse]:
    staff = await get_staff_or_404(db, staff_id)
    return [DocumentResponse.model_validate(d) for d in staff.documents]


@router.post("/staff/{staff_id}", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def add_document(
    staff_id: str,
    body: DocumentCreate,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> DocumentResponse:
    """Attach a document. uploaded_by="employee" records it as the staff member's own upload."""
    staff = await get_staff_or_404(db, staff_id)
    doc = document_from_payload(body)
    if any(d.id == doc.id for d in staff.documents):
        raise HTTPException(status_code=400, detail="A document with this id already exists")
    staff.documents.append(doc)
    await db.flush()
    if body.uploaded_by == "employee":
        actor = Actor(id=staff.email, role=ActorRole.EMPLOYEE, name=staff.name)
        await log_document(
            db, actor, ActionType.DOCUMENT_UPLOADED, staff.id, staff.name, doc.id, doc.name,
            f"{staff.name} uploaded {doc.name}",
        )
    else:
        actor = admin_actor(admin)
        await log_document(
            db, actor, ActionType.DOCUMENT_ADDED, staff.id, staff.name, doc.id, doc.name,
            f"{actor.name} added new document '{doc.name}' for {staff.name}",
        )
    await db.commit()
    return DocumentResponse.model_validate(doc)


@router.put("/staff/{staff_id}/document/{document_id}", response_model=DocumentResponse)
async def update_document(
    staff_id: str,
    document_id: str,
    body: DocumentUpdate,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> DocumentResponse:
    staff = await get_staff_or_404(db, staff_id)
    doc = _find_document(staff, document_id)
    old_status = doc.status
    for key, value in body.model_dump(exclude_unset=True).items():
        if value is not None or key in ("file_url", "file_name"):
            setattr(doc, key, value)
    await db.flush()
    if doc.status != old_status:
        await log_document_status_change(db, admin_actor(admin), staff, doc, old_status, doc.status)
    await db.commit()
    return DocumentResponse.model_validate(doc)


@router.delete("/staff/{staff_id}/document/{document_id}")
async def delete_document(
    staff_id: str,
    document_id: str,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    staff = await get_staff_or_404(db, staff_id)
    doc = _find_document(staff, document_id)
    actor = admin_actor(admin)
    await log_document(
        db, actor, ActionType.DOCUMENT_DELETED, staff.id, staff.name, doc.id, doc.name,
        f"{actor.name} deleted document '{doc.name}' for {staff.name}",
    )
    staff.documents.remove(doc)
    await db.commit()
    return {"message": "Document deleted successfully"}
