# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Activity logging. Every audit write goes through here.

Logging is best-effort: each entry is written in its own savepoint, and a failed
write is logged and swallowed so it never fails the action being audited.
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from staffportal_server.models import ActivityLog, AdminUser, Invitation
from staffportal_server.models.activity_log import ActionType, ActorRole, EntityType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    id: str
    role: ActorRole
    name: str


def admin_actor(admin: AdminUser) -> Actor:
    return Actor(id=str(admin.id), role=ActorRole.ADMIN, name=admin.name or admin.username)


def employee_actor(invitation: Invitation) -> Actor:
    # Employees have no account; the invite token identifies them
    return Actor(id=invitation.invite_token, role=ActorRole.EMPLOYEE, name=invitation.employee_name)


async def log_activity(
    db: AsyncSession,
    actor: Actor,
    action: ActionType,
    entity_type: EntityType,
    entity_id: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> None:
    entry = ActivityLog(
        actor_id=actor.id,
        actor_role=actor.role.value,
        actor_name=actor.name,
        action_type=action.value,
        entity_type=entity_type.value,
        entity_id=entity_id,
        message=message,
        details=details or {},
    )
    # Pending changes of the audited action flush here, outside the savepoint
    await db.flush()
    try:
        async with db.begin_nested():
            db.add(entry)
    except SQLAlchemyError:
        logger.exception("Failed to log activity %s for %s %s", action.value, entity_type.value, entity_id)
        if entry in db:
            db.expunge(entry)


async def log_invitation(
    db: AsyncSession, actor: Actor, action: ActionType, invitation: Invitation, message: str
) -> None:
    await log_activity(
        db, actor, action, EntityType.INVITATION, invitation.id, message,
        {"employee_name": invitation.employee_name},
    )


async def log_staff(
    db: AsyncSession,
    actor: Actor,
    action: ActionType,
    staff_id: str,
    staff_name: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> None:
    await log_activity(
        db, actor, action, EntityType.STAFF, staff_id, message,
        {"staff_name": staff_name, **(details or {})},
    )


async def log_document(
    db: AsyncSession,
    actor: Actor,
    action: ActionType,
    staff_id: str,
    staff_name: str,
    document_id: str,
    document_name: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> None:
    await log_activity(
        db, actor, action, EntityType.DOCUMENT, document_id, message,
        {"staff_id": staff_id, "staff_name": staff_name, "document_name": document_name, **(details or {})},
    )
