# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Wizard step sequencing.

Internal step numbers are fixed (1-10). Which of them are active depends on the
citizenship and visa answers, so the list is recomputed from those two fields
whenever it is needed and never stored.

    1  citizenship / immigration status
    2  personal details
    3  right-to-work share code      (skipped for UK and Irish citizens)
    4  visa type                     (Non-EU visa / BRP holders only)
    5  student visa details          (Student Visa only)
    6  identity documents and salary slip
    7  employment type and work preference
    8  DBS check
    9  availability and shift preference
    10 declarations (final step)
"""

import enum

FIRST_STEP = 1
FINAL_STEP = 10
TOTAL_STEP_SLOTS = 10

RIGHT_TO_WORK_STEP = 3
VISA_TYPE_STEP = 4
STUDENT_VISA_STEP = 5

STEP_TITLES: dict[int, str] = {
    1: "Citizenship / Immigration Status",
    2: "Personal Details",
    3: "Right to Work",
    4: "Visa Type",
    5: "Student Visa Details",
    6: "Identity Proof",
    7: "Employment Type",
    8: "DBS Check",
    9: "Employment Preferences",
    10: "Declarations",
}


class CitizenshipStatus(str, enum.Enum):
    UK_CITIZEN = "UK Citizen"
    IRISH_CITIZEN = "Irish Citizen"
    EU_EEA_CITIZEN = "EU / EEA Citizen"
    NON_EU_VISA_HOLDER = "Non-EU Citizen (Visa / BRP holder)"
    OVERSEAS_CONTRACTOR = "Overseas Contractor (not working inside UK)"


class VisaType(str, enum.Enum):
    STUDENT = "Student Visa"
    SKILLED_WORKER = "Skilled Worker Visa"
    GRADUATE = "Graduate Visa"
    DEPENDANT = "Dependant Visa"
    OTHER = "Other"


class WorkPreference(str, enum.Enum):
    FULL_TIME = "Full-Time"
    PART_TIME = "Part-Time"


RIGHT_TO_WORK_EXEMPT = frozenset({CitizenshipStatus.UK_CITIZEN, CitizenshipStatus.IRISH_CITIZEN})


def _as_citizenship(value: CitizenshipStatus | str | None) -> CitizenshipStatus | None:
    if value is None or value == "":
        return None
    try:
        return CitizenshipStatus(value)
    except ValueError:
        return None


def _as_visa(value: VisaType | str | None) -> VisaType | None:
    if value is None or value == "":
        return None
    try:
        return VisaType(value)
    except ValueError:
        return None


def requires_right_to_work(citizenship_status: CitizenshipStatus | str | None) -> bool:
    """Step 3 applies to everyone except UK and Irish citizens (including an unset answer)."""
    return _as_citizenship(citizenship_status) not in RIGHT_TO_WORK_EXEMPT


def requires_visa_type(citizenship_status: CitizenshipStatus | str | None) -> bool:
    return _as_citizenship(citizenship_status) == CitizenshipStatus.NON_EU_VISA_HOLDER


def get_active_steps(
    citizenship_status: CitizenshipStatus | str | None,
    visa_type: VisaType | str | None,
) -> list[int]:
    """Ordered internal step numbers that apply to this applicant."""
    steps = [1, 2]
    if requires_right_to_work(citizenship_status):
        steps.append(RIGHT_TO_WORK_STEP)
    if requires_visa_type(citizenship_status):
        steps.append(VISA_TYPE_STEP)
        if _as_visa(visa_type) == VisaType.STUDENT:
            steps.append(STUDENT_VISA_STEP)
    steps.extend([6, 7, 8, 9, 10])
    return steps


def display_step(step: int, active_steps: list[int]) -> int:
    """1-based position of an internal step within the active steps (0 if inactive)."""
    try:
        return active_steps.index(step) + 1
    except ValueError:
        return 0


def total_steps(active_steps: list[int]) -> int:
    return len(active_steps)


def is_last_step(step: int, active_steps: list[int]) -> bool:
    return bool(active_steps) and active_steps[-1] == step


def next_step(step: int, active_steps: list[int]) -> int | None:
    """Following active step, or None on the last one."""
    position = display_step(step, active_steps)
    if position == 0 or position >= len(active_steps):
        return None
    return active_steps[position]


def previous_step(step: int, active_steps: list[int]) -> int | None:
    position = display_step(step, active_steps)
    if position <= 1:
        return None
    return active_steps[position - 2]
