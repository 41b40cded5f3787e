# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Activity log API. Admin only, read-only."""

import math

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from staffportal_server.api.schemas import ActivityPage, ActivityResponse, Pagination
from staffportal_server.database import get_db
from staffportal_server.models import ActivityLog, AdminUser
from staffportal_server.routers.admin import require_admin

router = APIRouter(prefix="/activity", tags=["activity"])


def _newest_first(query):
    return query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())


@router.get("/recent", response_model=list[ActivityResponse])
async def recent_activity(
    limit: int = Query(10, ge=1, le=100),
    _admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[ActivityResponse]:
    """Latest N entries."""
    result = await db.execute(_newest_first(select(ActivityLog)).limit(limit))
    return [ActivityResponse.model_validate(a) for a in result.scalars().all()]


@router.get("", response_model=ActivityPage)
async def list_activity(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    actor_role: str | None = None,
    action_type: str | None = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    _admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ActivityPage:
    """Paginated and filterable."""
    filters = []
    if actor_role:
        filters.append(ActivityLog.actor_role == actor_role)
    if action_type:
        filters.append(ActivityLog.action_type == action_type)
    if entity_type:
        filters.append(ActivityLog.entity_type == entity_type)
    if entity_id:
        filters.append(ActivityLog.entity_id == entity_id)

    total = await db.scalar(select(func.count()).select_from(ActivityLog).where(*filters)) or 0
    result = await db.execute(
        _newest_first(select(ActivityLog).where(*filters)).offset((page - 1) * limit).limit(limit)
    )
    return ActivityPage(
        activities=[ActivityResponse.model_validate(a) for a in result.scalars().all()],
        pagination=Pagination(total=total, page=page, pages=math.ceil(total / limit), limit=limit),
    )


@router.get("/entity/{entity_type}/{entity_id}", response_model=list[ActivityResponse])
async def entity_activity(
    entity_type: str,
    entity_id: str,
    _admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[ActivityResponse]:
    result = await db.execute(
        _newest_first(
            select(ActivityLog).where(ActivityLog.entity_type == entity_type, ActivityLog.entity_id == entity_id)
        )
    )
    return [ActivityResponse.model_validate(a) for a in result.scalars().all()]
