# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Turn a finished wizard form into a staff record payload."""

import secrets
import time
import uuid
from datetime import date
from urllib.parse import quote

from staffportal_server.api.schemas import DocumentCreate, StaffCreate
from staffportal_server.models.staff import (
    DBSStatus,
    DocumentStatus,
    DocumentType,
    EmploymentType,
    ShiftType,
    VerificationStatus,
)
from staffportal_server.onboarding.form import FILE_SLOTS, WizardFormData

# slot -> (document id prefix, display name, type)
DOCUMENT_SLOTS: dict[str, tuple[str, str, DocumentType]] = {
    "passport": ("passport", "Passport", DocumentType.IMG),
    "brp": ("brp", "Biometric Residence Permit (BRP)", DocumentType.IMG),
    "residence_card": ("residence", "UK Residence Card / Frontier Worker Permit", DocumentType.IMG),
    "driving_licence": ("licence", "Driving Licence", DocumentType.IMG),
    "share_code_screenshot": ("sharecode", "RTW Share Code Screenshot", DocumentType.IMG),
    "term_dates_document": ("termdates", "Official Term Dates", DocumentType.PDF),
    "dbs_certificate": ("dbs", "DBS Certificate", DocumentType.IMG),
    "salary_slip": ("salaryslip", "Last 3 Month Salary Slip", DocumentType.PDF),
}

SHIFT_PATTERN_TO_SHIFT_TYPE: dict[str, ShiftType] = {
    "Mornings Only": ShiftType.MORNING,
    "Afternoons Only": ShiftType.EVENING,
    "Evenings / Weekends": ShiftType.NIGHT,
}

AVATAR_URL = "https://ui-avatars.com/api/?name={name}&background=2e4150&color=fff&size=150"


def new_application_ref() -> str:
    """Reference quoted back to the applicant, e.g. APP-LZ3K9Q1-7F2A."""
    stamp = _base36(int(time.time() * 1000))
    return f"APP-{stamp}-{secrets.token_hex(2).upper()}"


def _base36(value: int) -> str:
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    out = ""
    while value:
        value, rem = divmod(value, 36)
        out = digits[rem] + out
    return out or "0"


def build_documents(form: WizardFormData, today: date) -> list[DocumentCreate]:
    documents = []
    for slot in FILE_SLOTS:
        attachment = getattr(form, slot)
        if attachment is None:
            continue
        prefix, name, doc_type = DOCUMENT_SLOTS[slot]
        status = DocumentStatus.PENDING
        if slot == "dbs_certificate" and form.has_dbs:
            status = DocumentStatus.VERIFIED
        documents.append(
            DocumentCreate(
                id=f"{prefix}-{uuid.uuid4().hex[:12]}",
                name=name,
                type=doc_type,
                upload_date=today,
                status=status,
                file_name=attachment.name,
                file_url=attachment.data_url,
                uploaded_by="employee",
            )
        )
    return documents


def assemble_staff_record(form: WizardFormData, today: date | None = None) -> StaffCreate:
    """Build the staff record for a completed onboarding form.

    Employment allocation fields are left for an admin to fill in; the shift type is
    pre-filled only when the preferred pattern maps onto one.
    """
    today = today or date.today()
    details = form.personal_details
    avatar = form.passport_photo.data_url if form.passport_photo else AVATAR_URL.format(name=quote(details.name))
    return StaffCreate(
        name=details.name.strip(),
        email=details.email.strip().lower(),
        phone_number=details.phone_number.strip(),
        dob=details.dob,
        address=details.address.strip(),
        gender=details.gender.strip() or "Not specified",
        start_date=today,
        employment_type=form.employment_type or EmploymentType.CONTRACTOR,
        verification_status=VerificationStatus.PENDING,
        avatar=avatar,
        dbs_status=DBSStatus.CLEARED if form.has_dbs else DBSStatus.NOT_STARTED,
        location="TBD",
        onboarding_progress=100,
        citizenship_status=form.citizenship_status.value if form.citizenship_status else "",
        visa_type=form.visa_type.value if form.visa_type else None,
        visa_other=form.visa_other.strip() or None,
        share_code=form.share_code.strip() or None,
        uni_name=form.uni_name.strip() or None,
        course_name=form.course_name.strip() or None,
        term_start=form.term_start,
        term_end=form.term_end,
        work_preference=form.work_preference,
        preferred_shift_pattern=form.preferred_shift_pattern or None,
        shift_type=SHIFT_PATTERN_TO_SHIFT_TYPE.get(form.preferred_shift_pattern),
        declarations=form.declarations.model_copy(),
        documents=build_documents(form, today),
    )
