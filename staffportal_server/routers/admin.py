# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Admin API - profile of the signed-in administrator. Requires admin user."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staffportal_server.api.schemas import AdminBioUpdate, AdminPictureUpdate, AdminProfileUpdate, AdminResponse
from staffportal_server.auth import get_current_admin_id
from staffportal_server.database import get_db
from staffportal_server.models import AdminUser

router = APIRouter(prefix="/admin", tags=["admin"])


async def require_admin(
    admin_id: int = Depends(get_current_admin_id),
    db: AsyncSession = Depends(get_db),
) -> AdminUser:
    """Dependency: require an active admin account."""
    result = await db.execute(select(AdminUser).where(AdminUser.id == admin_id))
    admin = result.scalar_one_or_none()
    if not admin or not admin.is_active:
        raise HTTPException(status_code=403, detail="Admin required")
    return admin


@router.get("/profile", response_model=AdminResponse)
async def get_profile(admin: AdminUser = Depends(require_admin)) -> AdminResponse:
    return AdminResponse.model_validate(admin)


@router.put("/profile", response_model=AdminResponse)
async def update_profile(
    body: AdminProfileUpdate,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AdminResponse:
    """Update name, email, bio, role or picture. Only fields sent are changed."""
    data = body.model_dump(exclude_unset=True)
    if "name" in data and not (data["name"] or "").strip():
        raise HTTPException(status_code=400, detail="Name cannot be empty")
    if data.get("email"):
        email = str(data["email"]).strip().lower()
        existing = await db.execute(
            select(AdminUser).where(AdminUser.email == email, AdminUser.id != admin.id)
        )
        if existing.scalar_one_or_none():
            raise HTTPException(status_code=400, detail="Email already in use")
        data["email"] = email
    elif "email" in data:
        del data["email"]
    for key, value in data.items():
        setattr(admin, key, value.strip() if isinstance(value, str) and key == "name" else value)
    await db.commit()
    return AdminResponse.model_validate(admin)


@router.patch("/profile/picture", response_model=AdminResponse)
async def update_picture(
    body: AdminPictureUpdate,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AdminResponse:
    admin.profile_picture = body.profile_picture
    await db.commit()
    return AdminResponse.model_validate(admin)


@router.patch("/profile/bio", response_model=AdminResponse)
async def update_bio(
    body: AdminBioUpdate,
    admin: AdminUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AdminResponse:
    admin.bio = body.bio
    await db.commit()
    return AdminResponse.model_validate(admin)
