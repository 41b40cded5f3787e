# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Staff record and document models."""

import enum
import uuid
from datetime import date

from sqlalchemy import JSON, Date, Enum, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staffportal_server.models.base import Base
from staffportal_server.models.timestamp import TimestampMixin


def _enum_column(enum_cls: type[enum.Enum], length: int = 32) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda e: [m.value for m in e],
    )


class EmploymentType(str, enum.Enum):
    CONTRACTOR = "Contractor"
    PERMANENT = "Permanent"
    TEMPORARY = "Temporary"
    SUB_CONTRACTOR = "Sub-contractor"


class VerificationStatus(str, enum.Enum):
    VERIFIED = "Verified"
    PENDING = "Pending"
    DOCS_REQUIRED = "Docs Required"
    REJECTED = "Rejected"


class DBSStatus(str, enum.Enum):
    CLEARED = "Cleared"
    AWAITING_DOCS = "Awaiting Docs"
    NOT_STARTED = "Not Started"
    EXPIRED = "Expired"


class DocumentStatus(str, enum.Enum):
    VERIFIED = "Verified"
    PENDING = "Pending"
    REJECTED = "Rejected"


class DocumentType(str, enum.Enum):
    PDF = "PDF"
    IMG = "IMG"
    DOC = "DOC"


class PayType(str, enum.Enum):
    HOURLY = "Hourly"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"


class ShiftType(str, enum.Enum):
    MORNING = "Morning"
    EVENING = "Evening"
    NIGHT = "Night"
    ANY = "Any"


class ContractStatus(str, enum.Enum):
    ACTIVE = "Active"
    PAUSED = "Paused"
    ENDED = "Ended"


class StaffMember(Base, TimestampMixin):
    """Finalized staff profile. Created by onboarding submission or by an admin."""

    __tablename__ = "staff"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    phone_number: Mapped[str] = mapped_column(String(64), nullable=False)
    dob: Mapped[date] = mapped_column(Date, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    gender: Mapped[str] = mapped_column(String(32), default="Not specified", nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    employment_type: Mapped[EmploymentType] = mapped_column(_enum_column(EmploymentType), nullable=False)
    verification_status: Mapped[VerificationStatus] = mapped_column(
        _enum_column(VerificationStatus), default=VerificationStatus.PENDING, nullable=False, index=True
    )
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    dbs_status: Mapped[DBSStatus] = mapped_column(
        _enum_column(DBSStatus), default=DBSStatus.NOT_STARTED, nullable=False
    )
    location: Mapped[str] = mapped_column(String(255), default="TBD", nullable=False)
    onboarding_progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Collected by the onboarding wizard
    citizenship_status: Mapped[str] = mapped_column(String(64), nullable=False)
    visa_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    visa_other: Mapped[str | None] = mapped_column(String(255), nullable=True)
    share_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    uni_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    course_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    term_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    term_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    work_preference: Mapped[str | None] = mapped_column(String(16), nullable=True)
    preferred_shift_pattern: Mapped[str | None] = mapped_column(String(64), nullable=True)
    declarations: Mapped[dict[str, bool]] = mapped_column(JSON, default=dict, nullable=False)

    # Employment allocation (admin only)
    hourly_pay_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    pay_type: Mapped[PayType | None] = mapped_column(_enum_column(PayType), nullable=True)
    shift_type: Mapped[ShiftType | None] = mapped_column(_enum_column(ShiftType), nullable=True)
    contract_status: Mapped[ContractStatus | None] = mapped_column(_enum_column(ContractStatus), nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    auditor_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    documents: Mapped[list["StaffDocument"]] = relationship(
        "StaffDocument",
        back_populates="staff",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="StaffDocument.row_id",
    )


class StaffDocument(Base):
    """Compliance document attached to a staff record."""

    __tablename__ = "staff_documents"
    __table_args__ = (UniqueConstraint("staff_id", "id", name="uq_staff_documents_staff_id_id"),)

    row_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    staff_id: Mapped[str] = mapped_column(ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True)
    id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[DocumentType] = mapped_column(_enum_column(DocumentType, 8), nullable=False)
    upload_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[DocumentStatus] = mapped_column(
        _enum_column(DocumentStatus), default=DocumentStatus.PENDING, nullable=False
    )
    # Inline data URL or external URL
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    staff: Mapped["StaffMember"] = relationship("StaffMember", back_populates="documents")
