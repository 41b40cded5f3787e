# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Wizard form data: one optional field per wizard question.

This is what the autosave stores. Files travel inline as data URLs so a resumed
session can rebuild them without a separate upload store.
"""

import base64
import binascii
import re
from datetime import date
from typing import Any
from urllib.parse import unquote_to_bytes

from pydantic import BaseModel, ConfigDict, Field, field_validator

from staffportal_server.models.staff import EmploymentType
from staffportal_server.onboarding.steps import CitizenshipStatus, VisaType, WorkPreference

FORM_SCHEMA_VERSION = 1

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[^;,]*)(?P<params>(;[^;,]*)*?)(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)

# Attachment slots on the form, in the order documents are assembled
FILE_SLOTS = (
    "passport",
    "brp",
    "residence_card",
    "driving_licence",
    "share_code_screenshot",
    "term_dates_document",
    "dbs_certificate",
    "salary_slip",
)
IDENTITY_SLOTS = ("passport", "brp", "residence_card", "driving_licence")


class InvalidAttachmentError(ValueError):
    """Raised when an inline attachment cannot be decoded."""


class FileAttachment(BaseModel):
    """A file carried inline as a data URL."""

    name: str
    data_url: str

    @classmethod
    def from_bytes(cls, name: str, content: bytes, content_type: str = "application/octet-stream") -> "FileAttachment":
        encoded = base64.b64encode(content).decode("ascii")
        return cls(name=name, data_url=f"data:{content_type};base64,{encoded}")

    @property
    def content_type(self) -> str:
        match = _DATA_URL_RE.match(self.data_url)
        if not match or not match.group("mime"):
            return "application/octet-stream"
        return match.group("mime")

    def decode(self) -> bytes:
        match = _DATA_URL_RE.match(self.data_url)
        if not match:
            raise InvalidAttachmentError(f"{self.name}: not a data URL")
        data = match.group("data")
        if not match.group("b64"):
            return unquote_to_bytes(data)
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidAttachmentError(f"{self.name}: {e}") from e

    @property
    def size(self) -> int:
        """Decoded size in bytes, computed without decoding."""
        match = _DATA_URL_RE.match(self.data_url)
        if not match:
            return 0
        data = match.group("data")
        if not match.group("b64"):
            return len(unquote_to_bytes(data))
        return len(data) * 3 // 4 - data[-2:].count("=")


class PersonalDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    email: str = ""
    phone_number: str = ""
    dob: date | None = None
    address: str = ""
    gender: str = ""

    @field_validator("dob", mode="before")
    @classmethod
    def _blank_date(cls, value: Any) -> Any:
        return None if value == "" else value


class Declarations(BaseModel):
    model_config = ConfigDict(extra="ignore")

    accuracy: bool = False
    rtw: bool = False
    approval: bool = False
    gdpr: bool = False

    def all_confirmed(self) -> bool:
        return self.accuracy and self.rtw and self.approval and self.gdpr


class WizardFormData(BaseModel):
    """Everything the wizard has collected so far. All fields optional."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    schema_version: int = FORM_SCHEMA_VERSION

    # Step 1
    citizenship_status: CitizenshipStatus | None = None
    # Step 2
    personal_details: PersonalDetails = Field(default_factory=PersonalDetails)
    passport_photo: FileAttachment | None = None
    # Step 3
    share_code: str = ""
    share_code_screenshot: FileAttachment | None = None
    # Step 4
    visa_type: VisaType | None = None
    visa_other: str = ""
    # Step 5
    uni_name: str = ""
    course_name: str = ""
    term_start: date | None = None
    term_end: date | None = None
    term_dates_document: FileAttachment | None = None
    has_agreed_to_hours: bool = False
    # Step 6
    passport: FileAttachment | None = None
    brp: FileAttachment | None = None
    residence_card: FileAttachment | None = None
    driving_licence: FileAttachment | None = None
    salary_slip: FileAttachment | None = None
    # Step 7
    employment_type: EmploymentType | None = None
    work_preference: WorkPreference | None = None
    # Step 8
    has_dbs: bool | None = None
    dbs_certificate: FileAttachment | None = None
    # Step 9
    availability_to_start: str = ""
    preferred_shift_pattern: str = ""
    # Step 10
    declarations: Declarations = Field(default_factory=Declarations)

    @field_validator(
        "citizenship_status", "visa_type", "employment_type", "work_preference", "term_start", "term_end",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        return None if value == "" else value

    def attachments(self) -> dict[str, FileAttachment]:
        """Populated file slots, passport photo included."""
        found: dict[str, FileAttachment] = {}
        if self.passport_photo is not None:
            found["passport_photo"] = self.passport_photo
        for slot in FILE_SLOTS:
            attachment = getattr(self, slot)
            if attachment is not None:
                found[slot] = attachment
        return found
