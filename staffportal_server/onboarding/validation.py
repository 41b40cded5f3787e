# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Per-step field rules gating forward navigation in the wizard.

Both the silent check (enable/disable "Next") and the error-reporting check read
the same rule table, so "can I advance" and "why can't I advance" cannot disagree.
Rules for a field are tried in order and the first failure is reported.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass

from staffportal_server.config import settings
from staffportal_server.onboarding.form import IDENTITY_SLOTS, WizardFormData
from staffportal_server.onboarding.steps import VisaType, get_active_steps, requires_right_to_work

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SHARE_CODE_LENGTH = 9

AVAILABILITY_PLACEHOLDERS = frozenset({"", "Select Availability"})
SHIFT_PATTERN_PLACEHOLDERS = frozenset({"", "Select Shift Pattern"})


@dataclass(frozen=True)
class FieldRule:
    field: str
    message: str
    fails: Callable[[WizardFormData], bool]


def _blank(value: str | None) -> bool:
    return not (value or "").strip()


def _photo_not_image(form: WizardFormData) -> bool:
    photo = form.passport_photo
    return photo is not None and not photo.content_type.startswith("image/")


def _photo_too_large(form: WizardFormData) -> bool:
    photo = form.passport_photo
    return photo is not None and photo.size > settings.max_photo_bytes


def _term_order_invalid(form: WizardFormData) -> bool:
    return form.term_start is not None and form.term_end is not None and form.term_start >= form.term_end


STEP_RULES: dict[int, tuple[FieldRule, ...]] = {
    1: (
        FieldRule("citizenship_status", "Please select your citizenship status",
                  lambda f: f.citizenship_status is None),
    ),
    2: (
        FieldRule("name", "Full name is required", lambda f: _blank(f.personal_details.name)),
        FieldRule("email", "Email address is required", lambda f: _blank(f.personal_details.email)),
        FieldRule("email", "Please enter a valid email address",
                  lambda f: not EMAIL_RE.match(f.personal_details.email.strip())),
        FieldRule("phone_number", "Phone number is required", lambda f: _blank(f.personal_details.phone_number)),
        FieldRule("dob", "Date of birth is required", lambda f: f.personal_details.dob is None),
        FieldRule("address", "Current address is required", lambda f: _blank(f.personal_details.address)),
        FieldRule("passport_photo", "Passport size photo is required", lambda f: f.passport_photo is None),
        FieldRule("passport_photo", "Please upload an image file (JPG, PNG)", _photo_not_image),
        FieldRule("passport_photo", "Image size should be less than 5MB", _photo_too_large),
        FieldRule("gender", "Gender is required", lambda f: _blank(f.personal_details.gender)),
    ),
    3: (
        FieldRule("share_code", "Share code is required", lambda f: _blank(f.share_code)),
        FieldRule("share_code", "Share code must be 9 characters",
                  lambda f: len(f.share_code.strip()) != SHARE_CODE_LENGTH),
        FieldRule("share_code_screenshot", "Share code screenshot is required",
                  lambda f: f.share_code_screenshot is None),
    ),
    4: (
        FieldRule("visa_type", "Please select a visa type", lambda f: f.visa_type is None),
        FieldRule("visa_other", "Please specify your visa type",
                  lambda f: f.visa_type == VisaType.OTHER and _blank(f.visa_other)),
    ),
    5: (
        FieldRule("uni_name", "University/College name is required", lambda f: _blank(f.uni_name)),
        FieldRule("course_name", "Course name is required", lambda f: _blank(f.course_name)),
        FieldRule("term_start", "Term start date is required", lambda f: f.term_start is None),
        FieldRule("term_end", "Term end date is required", lambda f: f.term_end is None),
        FieldRule("term_end", "Term end date must be after term start date", _term_order_invalid),
        FieldRule("term_dates_document", "Term dates document is required",
                  lambda f: f.term_dates_document is None),
        FieldRule("has_agreed_to_hours", "You must agree to the working hours declaration",
                  lambda f: not f.has_agreed_to_hours),
    ),
    6: (
        FieldRule("identity_proof", "Please upload at least one identity document",
                  lambda f: all(getattr(f, slot) is None for slot in IDENTITY_SLOTS)),
        FieldRule("salary_slip", "Last 3 month salary slip is required", lambda f: f.salary_slip is None),
    ),
    7: (
        FieldRule("employment_type", "Please select an employment type", lambda f: f.employment_type is None),
        FieldRule("work_preference", "Please select Full-Time or Part-Time", lambda f: f.work_preference is None),
    ),
    8: (
        FieldRule("has_dbs", "Please indicate if you have a DBS certificate", lambda f: f.has_dbs is None),
        FieldRule("dbs_certificate", "Please upload your DBS certificate",
                  lambda f: f.has_dbs is True and f.dbs_certificate is None),
    ),
    9: (
        FieldRule("availability_to_start", "Availability to start is required",
                  lambda f: f.availability_to_start.strip() in AVAILABILITY_PLACEHOLDERS),
        FieldRule("preferred_shift_pattern", "Preferred shift pattern is required",
                  lambda f: f.preferred_shift_pattern.strip() in SHIFT_PATTERN_PLACEHOLDERS),
    ),
    10: (
        FieldRule("accuracy", "You must confirm the information is accurate",
                  lambda f: not f.declarations.accuracy),
        FieldRule("rtw", "You must consent to Right-to-Work verification", lambda f: not f.declarations.rtw),
        FieldRule("approval", "You must understand employment is subject to approval",
                  lambda f: not f.declarations.approval),
        FieldRule("gdpr", "You must consent to secure storage of your data", lambda f: not f.declarations.gdpr),
    ),
}

# Steps whose rules only apply while the step is active
_STEP_APPLIES: dict[int, Callable[[WizardFormData], bool]] = {
    3: lambda f: requires_right_to_work(f.citizenship_status),
}


def step_errors(step: int, form: WizardFormData) -> dict[str, str]:
    """Field -> message for every invalid field on this step (empty when the step is complete)."""
    applies = _STEP_APPLIES.get(step)
    if applies is not None and not applies(form):
        return {}
    errors: dict[str, str] = {}
    for rule in STEP_RULES.get(step, ()):
        if rule.field in errors:
            continue
        if rule.fails(form):
            errors[rule.field] = rule.message
    return errors


def can_advance(step: int, form: WizardFormData) -> bool:
    """Silent check used to enable or disable forward navigation."""
    return not step_errors(step, form)


def validate_step(step: int, form: WizardFormData, errors: dict[str, str]) -> bool:
    """Replace the contents of ``errors`` with this step's messages. Returns True when valid."""
    errors.clear()
    errors.update(step_errors(step, form))
    return not errors


def form_errors(form: WizardFormData) -> dict[int, dict[str, str]]:
    """Errors for every active step that is not complete, keyed by internal step number."""
    result = {}
    for step in get_active_steps(form.citizenship_status, form.visa_type):
        errors = step_errors(step, form)
        if errors:
            result[step] = errors
    return result
