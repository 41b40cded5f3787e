# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Conversion between inline attachments and file-like uploads."""

import io
import logging
from dataclasses import dataclass

from staffportal_server.onboarding.form import FileAttachment, InvalidAttachmentError, WizardFormData

logger = logging.getLogger(__name__)


@dataclass
class UploadedFile:
    """An uploaded file held in memory."""

    name: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    def open(self) -> io.BytesIO:
        return io.BytesIO(self.content)


def encode_upload(upload: UploadedFile) -> FileAttachment:
    return FileAttachment.from_bytes(upload.name, upload.content, upload.content_type)


def decode_attachment(attachment: FileAttachment) -> UploadedFile:
    return UploadedFile(
        name=attachment.name,
        content=attachment.decode(),
        content_type=attachment.content_type,
    )


def restore_uploads(form: WizardFormData) -> dict[str, UploadedFile]:
    """Decode every inline attachment on the form. Undecodable ones are skipped."""
    uploads: dict[str, UploadedFile] = {}
    for slot, attachment in form.attachments().items():
        try:
            uploads[slot] = decode_attachment(attachment)
        except InvalidAttachmentError as e:
            logger.warning("Skipping attachment %s on resume: %s", slot, e)
    return uploads
