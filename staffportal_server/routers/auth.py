# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Admin authentication API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from staffportal_server.api.schemas import AdminLogin, AdminResponse, Token
from staffportal_server.auth import ADMIN_ROLE, create_access_token, verify_password
from staffportal_server.database import get_db
from staffportal_server.models import AdminUser
from staffportal_server.rate_limit import rate_limit_dep
from staffportal_server.routers.admin import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Token, dependencies=[Depends(rate_limit_dep)])
async def login(
    data: AdminLogin,
    db: AsyncSession = Depends(get_db),
) -> Token:
    """Authenticate with username or email and return a JWT."""
    login_name = data.username.strip()
    result = await db.execute(
        select(AdminUser).where(
            or_(AdminUser.username == login_name, AdminUser.email == login_name.lower()),
            AdminUser.is_active == True,
        )
    )
    admin = result.scalar_one_or_none()
    if not admin or not verify_password(data.password, admin.password_hash):
        logger.info("Failed admin login for %s", login_name)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    token = create_access_token({"sub": str(admin.id), "role": ADMIN_ROLE})
    return Token(access_token=token)


@router.get("/me", response_model=AdminResponse)
async def me(admin: AdminUser = Depends(require_admin)) -> AdminResponse:
    """Get current admin profile."""
    return AdminResponse.model_validate(admin)
