# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Onboarding progress model - autosaved wizard state per invitation."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from staffportal_server.models.base import Base
from staffportal_server.models.timestamp import TimestampMixin, as_utc, utcnow


class OnboardingProgress(Base, TimestampMixin):
    """Partial wizard state keyed by invite token. Removed on completion or once expires_at passes."""

    __tablename__ = "onboarding_progress"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    invite_token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    last_completed_step: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    current_step: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    form_data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= as_utc(self.expires_at)
