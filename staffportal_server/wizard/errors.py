# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Errors raised to the wizard's caller. Each maps to a distinct recovery path."""


class WizardError(Exception):
    """Base class. ``detail`` keeps the underlying message for diagnostics."""

    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class ServiceUnreachableError(WizardError):
    def __init__(self, base_url: str, detail: str | None = None):
        super().__init__(
            f"Could not reach the onboarding service at {base_url}. "
            "Check that the server is running and reachable, then try again.",
            detail,
        )
        self.base_url = base_url


class SessionExpiredError(WizardError):
    """The onboarding session has lapsed; verify the OTP again."""

    def __init__(self, detail: str | None = None):
        super().__init__("Your session has expired. Please verify your OTP again.", detail)


class SessionRejectedError(WizardError):
    """No session, or one the service refused for this invitation."""

    def __init__(self, detail: str | None = None):
        super().__init__("You are not signed in to this onboarding session. Please verify your OTP.", detail)


class InvalidOtpError(WizardError):
    pass


class InvitationExpiredError(WizardError):
    def __init__(self, detail: str | None = None):
        super().__init__("This invitation has expired. Please contact your administrator for a new one.", detail)


class InvitationCompletedError(WizardError):
    def __init__(self, detail: str | None = None):
        super().__init__("This onboarding has already been completed.", detail)


class StepOrderViolationError(WizardError):
    def __init__(self, message: str, last_completed_step: int):
        super().__init__(message)
        self.last_completed_step = last_completed_step


class ActionFailedError(WizardError):
    """Anything else the service rejected or failed on. Not retried."""

    def __init__(self, detail: str | None = None):
        super().__init__("The action failed. Please try again.", detail)
