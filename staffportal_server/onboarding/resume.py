# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Where a resumed wizard session lands."""

from staffportal_server.onboarding.steps import FIRST_STEP


def resolve_resume_step(
    current_step: int | None,
    last_completed_step: int | None,
    active_steps: list[int],
) -> int:
    """Pick the step to resume on given the saved position and the recomputed active steps.

    The saved current step wins while it is still active. If the active steps changed
    since the save (an earlier answer was edited), continue after the last completed
    step in the new sequence, stay on it when it is the final step, or fall forward to
    the first active step at or beyond it.
    """
    if not active_steps:
        return FIRST_STEP
    last_completed = last_completed_step or FIRST_STEP
    saved = current_step or last_completed
    if saved in active_steps:
        return saved

    if last_completed in active_steps:
        index = active_steps.index(last_completed)
        if index < len(active_steps) - 1:
            return active_steps[index + 1]
        return active_steps[index]

    for step in active_steps:
        if step >= last_completed:
            return step
    return active_steps[0]
