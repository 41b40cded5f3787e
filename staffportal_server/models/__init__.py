# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Database models."""

from staffportal_server.models.base import Base
from staffportal_server.models.admin_user import AdminUser
from staffportal_server.models.invitation import Invitation, InvitationStatus
from staffportal_server.models.onboarding_progress import OnboardingProgress
from staffportal_server.models.staff import StaffDocument, StaffMember
from staffportal_server.models.activity_log import ActivityLog

__all__ = [
    "Base",
    "AdminUser",
    "Invitation",
    "InvitationStatus",
    "OnboardingProgress",
    "StaffMember",
    "StaffDocument",
    "ActivityLog",
]
