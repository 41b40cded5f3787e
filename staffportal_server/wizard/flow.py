# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""The onboarding wizard as driven by an employee session.

Holds the form in memory, gates navigation on the per-step rules and persists
progress at step boundaries only: a completion save before leaving a step and an
arrival save after landing on the next one.
"""

import logging
from typing import Any

from staffportal_server.api.schemas import SubmissionResponse
from staffportal_server.models.invitation import InvitationStatus
from staffportal_server.onboarding import steps
from staffportal_server.onboarding.attachments import UploadedFile, encode_upload, restore_uploads
from staffportal_server.onboarding.form import FILE_SLOTS, WizardFormData
from staffportal_server.onboarding.resume import resolve_resume_step
from staffportal_server.onboarding.validation import can_advance, form_errors, validate_step
from staffportal_server.wizard.client import OnboardingClient
from staffportal_server.wizard.errors import InvitationCompletedError, InvitationExpiredError, WizardError
from staffportal_server.wizard.session import EmployeeSession, SessionGuard

logger = logging.getLogger(__name__)

ATTACHMENT_SLOTS = ("passport_photo", *FILE_SLOTS)
_VISA_FIELDS = {"visa_type": None, "visa_other": ""}


class OnboardingWizard:
    """One employee's pass through the onboarding steps."""

    def __init__(self, client: OnboardingClient, invite_token: str, guard: SessionGuard | None = None):
        self.client = client
        self.invite_token = invite_token
        self.guard = guard or SessionGuard()
        self.form = WizardFormData()
        self.uploads: dict[str, UploadedFile] = {}
        self.errors: dict[str, str] = {}
        self.step = steps.FIRST_STEP
        # As acknowledged by the server; None until the first save
        self.last_completed_step: int | None = None

    # Session

    async def sign_in(self, otp: str) -> EmployeeSession:
        session = await self.client.verify_otp(self.invite_token, otp)
        self.guard.replace(session)
        return session

    async def start(self) -> int:
        """Enter the wizard: check the session and invitation, then restore saved progress.

        Returns the internal step to show.
        """
        session = self.guard.require(self.invite_token)
        await self.client.verify_session(session)
        invitation = await self.client.get_invitation(self.invite_token)
        if invitation.status == InvitationStatus.COMPLETED:
            self.guard.clear()
            raise InvitationCompletedError()
        if invitation.status == InvitationStatus.EXPIRED:
            raise InvitationExpiredError()

        loaded = await self.client.load_progress(session)
        if not loaded.has_progress or loaded.progress is None:
            self.step = steps.FIRST_STEP
            self.last_completed_step = None
            return self.step

        progress = loaded.progress
        self.form = progress.form_data
        self.uploads = restore_uploads(self.form)
        self.last_completed_step = progress.last_completed_step
        self.step = resolve_resume_step(progress.current_step, progress.last_completed_step, self.active_steps)
        logger.debug(
            "Resuming %s at step %s (saved %s, last completed %s)",
            self.invite_token[:8], self.step, progress.current_step, progress.last_completed_step,
        )
        return self.step

    # Position

    @property
    def active_steps(self) -> list[int]:
        return steps.get_active_steps(self.form.citizenship_status, self.form.visa_type)

    @property
    def display_step(self) -> int:
        return steps.display_step(self.step, self.active_steps)

    @property
    def total_steps(self) -> int:
        return steps.total_steps(self.active_steps)

    @property
    def is_last_step(self) -> bool:
        return steps.is_last_step(self.step, self.active_steps)

    @property
    def title(self) -> str:
        return steps.STEP_TITLES[self.step]

    # Form

    def update(self, **fields: Any) -> None:
        for name, value in fields.items():
            setattr(self.form, name, value)
            self.errors.pop(name, None)

    def set_citizenship(self, status: steps.CitizenshipStatus | str) -> None:
        """Record the citizenship answer. Leaving Non-EU resets the visa type only; student
        details stay on the form in case the answer changes back."""
        self.update(citizenship_status=status)
        if not steps.requires_visa_type(self.form.citizenship_status):
            self.update(**_VISA_FIELDS)

    def attach(self, slot: str, upload: UploadedFile) -> None:
        if slot not in ATTACHMENT_SLOTS:
            raise ValueError(f"Unknown attachment slot: {slot}")
        setattr(self.form, slot, encode_upload(upload))
        self.uploads[slot] = upload
        self.errors.pop(slot, None)

    def detach(self, slot: str) -> None:
        if slot not in ATTACHMENT_SLOTS:
            raise ValueError(f"Unknown attachment slot: {slot}")
        setattr(self.form, slot, None)
        self.uploads.pop(slot, None)

    # Navigation

    def can_advance(self) -> bool:
        return can_advance(self.step, self.form)

    def validate(self) -> bool:
        return validate_step(self.step, self.form, self.errors)

    async def next(self) -> bool:
        """Advance to the next active step. Returns False (with ``errors`` filled) if the
        current step is incomplete. Use ``submit()`` on the last step."""
        if self.is_last_step:
            raise ValueError("Already on the last step; submit instead")
        if not self.validate():
            return False
        session = self.guard.require(self.invite_token)
        leaving = self.step
        arriving = steps.next_step(leaving, self.active_steps)
        if arriving is None:
            # Current step dropped out of the active steps; rejoin the sequence
            arriving = resolve_resume_step(None, leaving, self.active_steps)

        # Re-confirming a step behind confirmed progress would be refused by the server
        if self.last_completed_step is None or leaving >= self.last_completed_step:
            saved = await self.client.save_progress(session, leaving, self.form, is_step_completed=True)
            self.last_completed_step = saved.last_completed_step
        self.step = arriving
        self.errors.clear()
        if arriving >= self.last_completed_step:
            saved = await self.client.save_progress(session, arriving, self.form, is_step_completed=False)
            self.last_completed_step = saved.last_completed_step
        return True

    def back(self) -> int:
        """Previous active step, without saving. Stays put on the first step."""
        previous = steps.previous_step(self.step, self.active_steps)
        if previous is not None:
            self.step = previous
            self.errors.clear()
        return self.step

    # Submission

    async def submit(self) -> SubmissionResponse | None:
        """Create the staff record. Returns None, with ``errors`` filled and ``step`` moved to
        the first incomplete step, when the form is not finished.

        The last step is saved as completed first. Only the staff record write decides
        success. The final save, marking the invitation complete and clearing saved
        progress are best effort and only logged on failure.
        """
        incomplete = form_errors(self.form)
        if incomplete:
            self.step = min(incomplete)
            self.errors.clear()
            self.errors.update(incomplete[self.step])
            return None
        session = self.guard.require(self.invite_token)
        if self.last_completed_step is not None and self.step >= self.last_completed_step:
            try:
                saved = await self.client.save_progress(session, self.step, self.form, is_step_completed=True)
                self.last_completed_step = saved.last_completed_step
            except WizardError as e:
                logger.warning("Failed to save final step for %s: %s (%s)", self.invite_token[:8], e, e.detail)
        submission = await self.client.submit(session, self.form)

        try:
            await self.client.complete(session, onboarding_progress=100)
        except WizardError as e:
            logger.error("Failed to mark invitation %s complete: %s (%s)", self.invite_token[:8], e, e.detail)
        try:
            await self.client.clear_progress(session)
        except WizardError as e:
            logger.warning("Failed to clear progress for %s: %s (%s)", self.invite_token[:8], e, e.detail)

        self.guard.clear()
        return submission
