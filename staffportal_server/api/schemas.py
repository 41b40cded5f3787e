# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pydantic schemas for API request/response."""

import enum
from datetime import date, datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints

from staffportal_server.models.invitation import InvitationStatus
from staffportal_server.models.staff import (
    ContractStatus,
    DBSStatus,
    DocumentStatus,
    DocumentType,
    EmploymentType,
    PayType,
    ShiftType,
    VerificationStatus,
)
from staffportal_server.onboarding.form import Declarations, WizardFormData
from staffportal_server.onboarding.steps import FINAL_STEP, FIRST_STEP, WorkPreference

StaffId = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


# Auth
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AdminLogin(BaseModel):
    username: str
    password: str


class AdminResponse(BaseModel):
    id: int
    username: str
    email: str
    name: str
    role: str | None = None
    bio: str | None = None
    profile_picture: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdminProfileUpdate(BaseModel):
    name: str | None = None
    email: EmailStr | None = None
    bio: str | None = None
    role: str | None = None
    profile_picture: str | None = None


class AdminPictureUpdate(BaseModel):
    profile_picture: str | None = None


class AdminBioUpdate(BaseModel):
    bio: str | None = None


# Invitations
class InvitationCreate(BaseModel):
    employee_name: str
    email: str  # validated in endpoint


class InvitationResponse(BaseModel):
    id: str
    employee_name: str
    email: str
    invite_token: str
    status: InvitationStatus
    onboarding_progress: int
    created_at: datetime
    verified_at: datetime | None = None
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OtpVerifyRequest(BaseModel):
    invite_token: str
    otp: str


class OtpRequest(BaseModel):
    invite_token: str


class OnboardingSessionResponse(BaseModel):
    """Short-lived employee credential issued after OTP verification."""

    token: str
    token_type: str = "bearer"
    expires_in: int
    invite_token: str
    employee_name: str
    email: str


class TokenVerifyRequest(BaseModel):
    onboarding_token: str
    invite_token: str


class SessionInfo(BaseModel):
    role: str
    onboarding_allowed: bool
    invite_token: str
    email: str


# Onboarding progress
class ProgressSaveRequest(BaseModel):
    step: int = Field(ge=FIRST_STEP, le=FINAL_STEP)
    form_data: WizardFormData
    is_step_completed: bool = False


class ProgressSaveResponse(BaseModel):
    current_step: int
    last_completed_step: int
    onboarding_progress: int
    saved_at: datetime


class ProgressState(BaseModel):
    current_step: int
    last_completed_step: int
    form_data: WizardFormData
    saved_at: datetime
    expires_at: datetime


class ProgressLoadResponse(BaseModel):
    has_progress: bool
    progress: ProgressState | None = None


class CompleteRequest(BaseModel):
    onboarding_progress: int = Field(default=100, ge=0, le=100)


# Staff & documents
class DocumentCreate(BaseModel):
    id: str | None = None
    name: str
    type: DocumentType
    upload_date: date | None = None
    status: DocumentStatus = DocumentStatus.PENDING
    file_url: str | None = None
    file_name: str | None = None
    uploaded_by: str = "admin"


class DocumentUpdate(BaseModel):
    name: str | None = None
    type: DocumentType | None = None
    status: DocumentStatus | None = None
    file_url: str | None = None
    file_name: str | None = None


class DocumentResponse(BaseModel):
    id: str
    name: str
    type: DocumentType
    upload_date: date
    status: DocumentStatus
    file_url: str | None = None
    file_name: str | None = None

    model_config = ConfigDict(from_attributes=True)


class StaffBase(BaseModel):
    name: str
    email: EmailStr
    phone_number: str
    dob: date
    address: str
    gender: str = "Not specified"
    start_date: date
    employment_type: EmploymentType
    verification_status: VerificationStatus = VerificationStatus.PENDING
    avatar: str | None = None
    dbs_status: DBSStatus = DBSStatus.NOT_STARTED
    location: str = "TBD"
    onboarding_progress: int = Field(default=0, ge=0, le=100)

    citizenship_status: str
    visa_type: str | None = None
    visa_other: str | None = None
    share_code: str | None = None
    uni_name: str | None = None
    course_name: str | None = None
    term_start: date | None = None
    term_end: date | None = None
    work_preference: WorkPreference | None = None
    preferred_shift_pattern: str | None = None
    declarations: Declarations = Field(default_factory=Declarations)

    hourly_pay_rate: float | None = Field(default=None, ge=0)
    pay_type: PayType | None = None
    shift_type: ShiftType | None = None
    contract_status: ContractStatus | None = None
    end_date: date | None = None
    auditor_notes: str | None = None


class StaffCreate(StaffBase):
    documents: list[DocumentCreate] = Field(default_factory=list)


class StaffUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    name: str | None = None
    email: EmailStr | None = None
    phone_number: str | None = None
    dob: date | None = None
    address: str | None = None
    gender: str | None = None
    start_date: date | None = None
    employment_type: EmploymentType | None = None
    verification_status: VerificationStatus | None = None
    avatar: str | None = None
    dbs_status: DBSStatus | None = None
    location: str | None = None
    onboarding_progress: int | None = Field(default=None, ge=0, le=100)
    citizenship_status: str | None = None
    visa_type: str | None = None
    visa_other: str | None = None
    share_code: str | None = None
    uni_name: str | None = None
    course_name: str | None = None
    term_start: date | None = None
    term_end: date | None = None
    work_preference: WorkPreference | None = None
    preferred_shift_pattern: str | None = None
    declarations: Declarations | None = None
    hourly_pay_rate: float | None = Field(default=None, ge=0)
    pay_type: PayType | None = None
    shift_type: ShiftType | None = None
    contract_status: ContractStatus | None = None
    end_date: date | None = None
    auditor_notes: str | None = None
    documents: list[DocumentResponse] | None = None


class StaffResponse(StaffBase):
    id: str
    email: str
    documents: list[DocumentResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SubmitRequest(BaseModel):
    form_data: WizardFormData


class SubmissionResponse(BaseModel):
    staff: StaffResponse
    application_ref: str | None = None


class BulkAction(str, enum.Enum):
    VERIFY = "VERIFY"
    REJECT = "REJECT"
    PENDING = "PENDING"


class BulkActionRequest(BaseModel):
    action: BulkAction
    staff_ids: list[StaffId] = Field(min_length=1)


class BulkStatusRequest(BaseModel):
    status: VerificationStatus
    staff_ids: list[StaffId] = Field(min_length=1)


class BulkUpdateRequest(BaseModel):
    staff_ids: list[StaffId] = Field(min_length=1)
    hourly_pay_rate: float | None = Field(default=None, ge=0)
    employment_type: EmploymentType | None = None
    location: str | None = None


class BulkDeleteRequest(BaseModel):
    staff_ids: list[StaffId] = Field(min_length=1)


class BulkResult(BaseModel):
    updated_count: int = 0
    deleted_count: int = 0
    status: VerificationStatus | None = None
    updated_fields: list[str] = Field(default_factory=list)


# Activity
class ActivityResponse(BaseModel):
    id: int
    actor_id: str
    actor_role: str
    actor_name: str
    action_type: str
    entity_type: str
    entity_id: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    total: int
    page: int
    pages: int
    limit: int


class ActivityPage(BaseModel):
    activities: list[ActivityResponse]
    pagination: Pagination
