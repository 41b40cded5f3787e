# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Autosave bookkeeping applied by the server on every progress save."""

from datetime import datetime, timedelta

from staffportal_server.config import settings
from staffportal_server.errors import StepOrderViolationError
from staffportal_server.onboarding.steps import FIRST_STEP, TOTAL_STEP_SLOTS


def check_step_order(step: int, stored_last_completed: int | None) -> None:
    """Reject saves that start past step 1 or jump back behind confirmed progress.

    ``stored_last_completed`` is None when nothing has been saved yet. Any step at or
    beyond the last completed one is accepted, since the active steps can grow or
    shrink between visits.
    """
    if stored_last_completed is None:
        if step > FIRST_STEP:
            raise StepOrderViolationError("Must start from step 1", last_completed_step=0)
        return
    if step < stored_last_completed:
        raise StepOrderViolationError(
            f"Cannot go backwards. Last completed step is {stored_last_completed}.",
            last_completed_step=stored_last_completed,
        )


def next_last_completed(step: int, is_step_completed: bool, stored_last_completed: int | None) -> int:
    """New last-completed step: advances only on confirmed completion and never decreases."""
    if stored_last_completed is None:
        return step
    if is_step_completed:
        return max(stored_last_completed, step)
    return stored_last_completed


def progress_percentage(last_completed_step: int) -> int:
    """Percentage over the fixed ten step slots, whatever the applicant's active steps are."""
    return int(round(last_completed_step / TOTAL_STEP_SLOTS * 100))


def progress_expiry(now: datetime) -> datetime:
    return now + timedelta(days=settings.progress_expire_days)
