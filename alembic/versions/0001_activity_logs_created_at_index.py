# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later
"""Add index on activity_logs.created_at for the recent and paginated activity feeds.

Revision ID: 0001_activity_created_idx
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op

revision: str = "0001_activity_created_idx"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_index(
        "ix_activity_logs_created_at",
        "activity_logs",
        ["created_at"],
        unique=False,
        if_not_exists=True,
    )


def downgrade() -> None:
    op.drop_index("ix_activity_logs_created_at", table_name="activity_logs")
