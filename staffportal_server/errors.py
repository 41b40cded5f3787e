# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Onboarding state errors and their HTTP rendering.

Plain request problems use HTTPException. These cover invitation state conflicts
that clients must tell apart (expired, already completed, out-of-order save).
"""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class OnboardingError(Exception):
    """Base for onboarding state errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "ONBOARDING_ERROR"

    def __init__(self, message: str, **extra: Any):
        self.message = message
        self.extra = extra
        super().__init__(message)


class InvitationExpiredError(OnboardingError):
    status_code = status.HTTP_410_GONE
    error_code = "INVITATION_EXPIRED"

    def __init__(self, message: str = "This invitation has expired"):
        super().__init__(message)


class InvitationCompletedError(OnboardingError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "INVITATION_COMPLETED"

    def __init__(self, message: str = "This invitation has already been completed"):
        super().__init__(message)


class InvitationNotVerifiedError(OnboardingError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "INVITATION_NOT_VERIFIED"

    def __init__(self, message: str = "The OTP for this invitation has not been verified"):
        super().__init__(message)


class StepOrderViolationError(OnboardingError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "STEP_ORDER_VIOLATION"

    def __init__(self, message: str, last_completed_step: int):
        super().__init__(message, last_completed_step=last_completed_step)
        self.last_completed_step = last_completed_step


class OtpError(OnboardingError):
    """Wrong or expired one-time passcode."""

    error_code = "INVALID_OTP"

    def __init__(self, message: str = "The OTP you entered is incorrect", error_code: str | None = None):
        super().__init__(message)
        if error_code:
            self.error_code = error_code


async def onboarding_error_handler(request: Request, exc: OnboardingError) -> JSONResponse:
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.error_code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.error_code, **exc.extra},
    )
