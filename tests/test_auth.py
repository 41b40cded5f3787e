# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Admin auth and profile endpoint tests."""

import pytest
from fastapi import HTTPException
from httpx import AsyncClient

from staffportal_server.auth import hash_password
from staffportal_server.models import AdminUser
from staffportal_server import rate_limit
from staffportal_server.rate_limit import check_rate_limit, reset_rate_limits

pytestmark = pytest.mark.anyio


async def test_health(client: AsyncClient):
    r = await client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    root = await client.get("/")
    assert root.json()["api"] == "/api/v1"


async def test_login_invalid_credentials(client: AsyncClient, admin):
    """Login with wrong password returns 401."""
    r = await client.post(
        "/api/v1/auth/login",
        json={"username": "admin", "password": "wrong"},
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid username or password"


async def test_login_and_me(client: AsyncClient, admin):
    """Login by username or email, then call /me with the token."""
    for login_name in ("admin", "ADMIN@example.com"):
        r = await client.post(
            "/api/v1/auth/login",
            json={"username": login_name, "password": "correct-horse"},
        )
        assert r.status_code == 200, r.text
        token = r.json()["access_token"]
        me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["username"] == "admin"


async def test_me_requires_auth(client: AsyncClient):
    """GET /auth/me without token returns 401."""
    r = await client.get("/api/v1/auth/me")
    assert r.status_code == 401


async def test_employee_token_is_not_admin(client: AsyncClient, invite, sign_in):
    """An onboarding session cannot reach admin endpoints."""
    inv = await invite()
    headers = await sign_in(inv["invite_token"])
    r = await client.get("/api/v1/staff", headers=headers)
    assert r.status_code == 403


async def test_login_rate_limited(client: AsyncClient, admin):
    statuses = []
    for _ in range(11):
        r = await client.post("/api/v1/auth/login", json={"username": "admin", "password": "nope"})
        statuses.append(r.status_code)
    assert statuses[:10] == [401] * 10
    assert statuses[10] == 429
    assert int(r.headers["Retry-After"]) >= 1


async def test_rate_limit_window_slides():
    reset_rate_limits()
    path = "/api/v1/invitations/request-otp"
    for t in (0.0, 10.0, 20.0):
        check_rate_limit("10.0.0.1", path, now=t)
    with pytest.raises(HTTPException) as exc_info:
        check_rate_limit("10.0.0.1", path, now=30.0)
    assert exc_info.value.headers["Retry-After"] == "270"
    # Other clients and paths are counted separately
    check_rate_limit("10.0.0.2", path, now=30.0)
    check_rate_limit("10.0.0.1", "/api/v1/staff", now=30.0)
    # The oldest hit leaves the window after five minutes
    check_rate_limit("10.0.0.1", path, now=300.0)
    reset_rate_limits()


async def test_idle_clients_are_forgotten(monkeypatch):
    reset_rate_limits()
    monkeypatch.setattr(rate_limit, "SWEEP_THRESHOLD", 2)
    login = "/api/v1/auth/login"
    check_rate_limit("10.0.0.1", login, now=0.0)
    check_rate_limit("10.0.0.2", login, now=30.0)
    check_rate_limit("10.0.0.3", login, now=61.0)
    assert set(rate_limit._hits) == {("10.0.0.2", login), ("10.0.0.3", login)}
    reset_rate_limits()


async def test_update_profile(client: AsyncClient, admin_headers):
    r = await client.put(
        "/api/v1/admin/profile",
        json={"name": "  Ada Lovelace ", "bio": "Compliance lead"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json()["name"] == "Ada Lovelace"
    assert r.json()["bio"] == "Compliance lead"

    r = await client.put("/api/v1/admin/profile", json={"name": "  "}, headers=admin_headers)
    assert r.status_code == 400

    r = await client.patch(
        "/api/v1/admin/profile/picture",
        json={"profile_picture": "https://example.com/ada.png"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    profile = await client.get("/api/v1/admin/profile", headers=admin_headers)
    assert profile.json()["profile_picture"] == "https://example.com/ada.png"


async def test_profile_email_must_be_unique(client: AsyncClient, admin_headers, session_maker):
    async with session_maker() as session:
        session.add(AdminUser(username="other", email="other@example.com", password_hash=hash_password("x")))
        await session.commit()

    r = await client.put("/api/v1/admin/profile", json={"email": "other@example.com"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Email already in use"
