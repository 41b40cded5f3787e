# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Activity log model - append-only audit trail."""

import enum
from typing import Any

from sqlalchemy import JSON, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from staffportal_server.models.base import Base
from staffportal_server.models.timestamp import TimestampMixin


class ActorRole(str, enum.Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"
    SYSTEM = "system"


class EntityType(str, enum.Enum):
    STAFF = "Staff"
    DOCUMENT = "Document"
    INVITATION = "Invitation"
    SYSTEM = "System"


class ActionType(str, enum.Enum):
    # Invitation & onboarding
    INVITATION_SENT = "INVITATION_SENT"
    OTP_VERIFIED = "OTP_VERIFIED"
    ONBOARDING_STARTED = "ONBOARDING_STARTED"
    ONBOARDING_COMPLETED = "ONBOARDING_COMPLETED"
    ONBOARDING_EXPIRED = "ONBOARDING_EXPIRED"
    INVITATION_DELETED = "INVITATION_DELETED"
    OTP_RESENT = "OTP_RESENT"
    # Documents
    DOCUMENT_UPLOADED = "DOCUMENT_UPLOADED"
    DOCUMENT_VERIFIED = "DOCUMENT_VERIFIED"
    DOCUMENT_REJECTED = "DOCUMENT_REJECTED"
    DOCUMENT_STATUS_UPDATED = "DOCUMENT_STATUS_UPDATED"
    DOCUMENT_DELETED = "DOCUMENT_DELETED"
    DOCUMENT_ADDED = "DOCUMENT_ADDED"
    # Staff profile
    STAFF_CREATED = "STAFF_CREATED"
    STAFF_UPDATED = "STAFF_UPDATED"
    STAFF_DELETED = "STAFF_DELETED"
    EMPLOYMENT_ALLOCATION_UPDATED = "EMPLOYMENT_ALLOCATION_UPDATED"
    HOURLY_PAY_RATE_UPDATED = "HOURLY_PAY_RATE_UPDATED"
    EMPLOYMENT_STATUS_CHANGED = "EMPLOYMENT_STATUS_CHANGED"
    IMMIGRATION_INFO_UPDATED = "IMMIGRATION_INFO_UPDATED"
    AUDITOR_NOTES_UPDATED = "AUDITOR_NOTES_UPDATED"
    # Verification & compliance
    STAFF_VERIFIED = "STAFF_VERIFIED"
    STAFF_REJECTED = "STAFF_REJECTED"
    VERIFICATION_STATUS_CHANGED = "VERIFICATION_STATUS_CHANGED"
    BULK_STATUS_UPDATE = "BULK_STATUS_UPDATE"
    BULK_UPDATE = "BULK_UPDATE"
    BULK_DELETE = "BULK_DELETE"


class ActivityLog(Base, TimestampMixin):
    """One audit entry: who did what to which entity."""

    __tablename__ = "activity_logs"
    __table_args__ = (
        Index("ix_activity_logs_entity", "entity_type", "entity_id"),
        Index("ix_activity_logs_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    actor_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    actor_role: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    actor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    action_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    details: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)
