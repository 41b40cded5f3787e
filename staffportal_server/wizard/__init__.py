# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Employee-side onboarding wizard driving the StaffPortal API."""

from staffportal_server.wizard.client import OnboardingClient
from staffportal_server.wizard.flow import OnboardingWizard
from staffportal_server.wizard.session import EmployeeSession, SessionGuard

__all__ = ["EmployeeSession", "OnboardingClient", "OnboardingWizard", "SessionGuard"]
