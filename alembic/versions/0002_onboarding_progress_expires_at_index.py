# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later
"""Add index on onboarding_progress.expires_at for expired progress cleanup.

Revision ID: 0002_progress_expires_idx
Revises: 0001_activity_created_idx
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op

revision: str = "0002_progress_expires_idx"
down_revision: Union[str, None] = "0001_activity_created_idx"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_index(
        "ix_onboarding_progress_expires_at",
        "onboarding_progress",
        ["expires_at"],
        unique=False,
        if_not_exists=True,
    )


def downgrade() -> None:
    op.drop_index("ix_onboarding_progress_expires_at", table_name="onboarding_progress")
