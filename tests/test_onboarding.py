# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Employee onboarding endpoints: autosave, resume, submission and completion."""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select, update

from staffportal_server.auth import create_onboarding_token
from staffportal_server.models import ActivityLog, Invitation, OnboardingProgress, StaffMember
from staffportal_server.models.timestamp import utcnow
from staffportal_server.onboarding.steps import CitizenshipStatus, VisaType

pytestmark = pytest.mark.anyio


@pytest.fixture
async def onboarding(invite, sign_in):
    """A verified invitation: (invite_token, employee headers)."""
    inv = await invite()
    headers = await sign_in(inv["invite_token"])
    return inv["invite_token"], headers


async def _save(client: AsyncClient, token: str, headers: dict, step: int, form, completed: bool):
    return await client.post(
        f"/api/v1/invitations/{token}/progress",
        json={"step": step, "form_data": form.model_dump(mode="json"), "is_step_completed": completed},
        headers=headers,
    )


async def _count(session_maker, action: str) -> int:
    async with session_maker() as session:
        result = await session.execute(select(ActivityLog).where(ActivityLog.action_type == action))
        return len(result.scalars().all())


async def test_progress_requires_session(client: AsyncClient, invite, make_form):
    inv = await invite()
    r = await _save(client, inv["invite_token"], {}, 1, make_form(), True)
    assert r.status_code == 401
    r = await _save(client, inv["invite_token"], {"Authorization": "Bearer garbage"}, 1, make_form(), True)
    assert r.status_code == 401


async def test_progress_requires_verified_invitation(client: AsyncClient, invite, make_form):
    """A session token alone is not enough while the OTP is still unverified."""
    inv = await invite()
    headers = {"Authorization": f"Bearer {create_onboarding_token(inv['invite_token'], inv['email'])}"}
    r = await _save(client, inv["invite_token"], headers, 1, make_form(), True)
    assert r.status_code == 409
    assert r.json()["error"] == "INVITATION_NOT_VERIFIED"


async def test_first_save_must_be_step_1(client: AsyncClient, onboarding, make_form):
    token, headers = onboarding
    r = await _save(client, token, headers, 2, make_form(), False)
    assert r.status_code == 409
    assert r.json() == {
        "detail": "Must start from step 1",
        "error": "STEP_ORDER_VIOLATION",
        "last_completed_step": 0,
    }


async def test_uk_citizen_resumes_on_step_2(client: AsyncClient, onboarding, make_form, session_maker):
    """Completing step 1 as a UK citizen then loading returns step 2 with step 1 completed."""
    token, headers = onboarding
    form = make_form(CitizenshipStatus.UK_CITIZEN)
    r = await _save(client, token, headers, 1, form, True)
    assert r.status_code == 200
    assert r.json()["last_completed_step"] == 1
    r = await _save(client, token, headers, 2, form, False)
    assert r.status_code == 200
    assert r.json()["onboarding_progress"] == 10

    loaded = await client.get(f"/api/v1/invitations/{token}/progress", headers=headers)
    assert loaded.status_code == 200
    progress = loaded.json()["progress"]
    assert loaded.json()["has_progress"] is True
    assert progress["current_step"] == 2
    assert progress["last_completed_step"] == 1
    assert progress["form_data"]["citizenship_status"] == "UK Citizen"
    assert progress["form_data"]["passport_photo"]["data_url"].startswith("data:image/png;base64,")

    invitation = await client.get(f"/api/v1/invitations/{token}")
    assert invitation.json()["status"] == "PENDING"
    assert invitation.json()["onboarding_progress"] == 10
    assert await _count(session_maker, "ONBOARDING_STARTED") == 1


async def test_last_completed_never_decreases(client: AsyncClient, onboarding, make_form):
    token, headers = onboarding
    form = make_form()
    for step in (1, 2):
        assert (await _save(client, token, headers, step, form, True)).status_code == 200
    r = await _save(client, token, headers, 6, form, True)
    assert r.json()["last_completed_step"] == 6
    assert r.json()["onboarding_progress"] == 60

    # Arrival at a later step does not move completion
    r = await _save(client, token, headers, 7, form, False)
    assert r.json()["last_completed_step"] == 6

    r = await _save(client, token, headers, 2, form, True)
    assert r.status_code == 409
    assert r.json()["last_completed_step"] == 6

    # Re-saving the last completed step is allowed
    r = await _save(client, token, headers, 6, form, True)
    assert r.status_code == 200
    assert r.json()["last_completed_step"] == 6


async def test_no_progress(client: AsyncClient, onboarding):
    token, headers = onboarding
    r = await client.get(f"/api/v1/invitations/{token}/progress", headers=headers)
    assert r.json() == {"has_progress": False, "progress": None}
    r = await client.delete(f"/api/v1/invitations/{token}/progress", headers=headers)
    assert r.status_code == 404


async def test_expired_progress_is_discarded(client: AsyncClient, onboarding, make_form, session_maker):
    token, headers = onboarding
    await _save(client, token, headers, 1, make_form(), True)
    async with session_maker() as session:
        await session.execute(
            update(OnboardingProgress)
            .where(OnboardingProgress.invite_token == token)
            .values(expires_at=utcnow() - timedelta(seconds=1))
        )
        await session.commit()

    r = await client.get(f"/api/v1/invitations/{token}/progress", headers=headers)
    assert r.json()["has_progress"] is False
    async with session_maker() as session:
        rows = await session.execute(select(OnboardingProgress))
        assert rows.scalars().all() == []

    # Saving starts over from step 1
    r = await _save(client, token, headers, 2, make_form(), True)
    assert r.status_code == 409


async def test_clear_progress(client: AsyncClient, onboarding, make_form):
    token, headers = onboarding
    await _save(client, token, headers, 1, make_form(), True)
    r = await client.delete(f"/api/v1/invitations/{token}/progress", headers=headers)
    assert r.status_code == 200
    r = await client.get(f"/api/v1/invitations/{token}/progress", headers=headers)
    assert r.json()["has_progress"] is False


async def test_expired_invitation_blocks_progress(client: AsyncClient, onboarding, make_form, session_maker):
    token, headers = onboarding
    async with session_maker() as session:
        await session.execute(
            update(Invitation).where(Invitation.invite_token == token).values(sent_at=utcnow() - timedelta(days=30))
        )
        await session.commit()
    r = await _save(client, token, headers, 1, make_form(), True)
    assert r.status_code == 410
    r = await client.get(f"/api/v1/invitations/{token}/progress", headers=headers)
    assert r.status_code == 410
    assert r.json()["error"] == "INVITATION_EXPIRED"


async def test_submit_creates_staff_record(client: AsyncClient, onboarding, make_form, admin_headers, session_maker):
    token, headers = onboarding
    form = make_form(CitizenshipStatus.NON_EU_VISA_HOLDER, VisaType.STUDENT)
    r = await client.post(
        f"/api/v1/invitations/{token}/submit",
        json={"form_data": form.model_dump(mode="json")},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["application_ref"].startswith("APP-")
    staff = body["staff"]
    assert staff["email"] == "jane@example.com"
    assert staff["verification_status"] == "Pending"
    assert staff["visa_type"] == "Student Visa"
    assert {d["name"] for d in staff["documents"]} == {
        "Passport", "RTW Share Code Screenshot", "Official Term Dates", "Last 3 Month Salary Slip",
    }

    listing = await client.get("/api/v1/staff", headers=admin_headers)
    assert [s["id"] for s in listing.json()] == [staff["id"]]
    async with session_maker() as session:
        entry = (
            await session.execute(select(ActivityLog).where(ActivityLog.action_type == "STAFF_CREATED"))
        ).scalar_one()
    assert entry.actor_role == "employee"
    assert entry.details["source"] == "onboarding"


async def test_submit_rejects_incomplete_form(client: AsyncClient, onboarding, make_form, session_maker):
    token, headers = onboarding
    form = make_form(CitizenshipStatus.EU_EEA_CITIZEN, share_code="", salary_slip=None)
    r = await client.post(
        f"/api/v1/invitations/{token}/submit",
        json={"form_data": form.model_dump(mode="json")},
        headers=headers,
    )
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["message"] == "Onboarding form is incomplete"
    assert detail["steps"] == {
        "3": {"share_code": "Share code is required"},
        "6": {"salary_slip": "Last 3 month salary slip is required"},
    }
    async with session_maker() as session:
        assert (await session.execute(select(StaffMember))).scalars().all() == []


async def test_complete_is_terminal(client: AsyncClient, onboarding, make_form, admin_headers, session_maker):
    """Only a verified or pending invitation can complete; afterwards every action is refused."""
    token, headers = onboarding
    form = make_form()
    await _save(client, token, headers, 1, form, True)

    r = await client.patch(f"/api/v1/invitations/{token}/complete", json={"onboarding_progress": 100}, headers=headers)
    assert r.status_code == 200
    assert r.json()["status"] == "COMPLETED"
    assert r.json()["onboarding_progress"] == 100

    again = await client.patch(f"/api/v1/invitations/{token}/complete", headers=headers)
    assert again.status_code == 409
    assert again.json()["error"] == "INVITATION_COMPLETED"

    r = await client.post(
        f"/api/v1/invitations/{token}/submit", json={"form_data": form.model_dump(mode="json")}, headers=headers
    )
    assert r.status_code == 409
    r = await _save(client, token, headers, 2, form, True)
    assert r.status_code == 409
    r = await client.get(f"/api/v1/invitations/{token}/progress", headers=headers)
    assert r.status_code == 409

    async with session_maker() as session:
        inv_id = (await session.execute(select(Invitation.id).where(Invitation.invite_token == token))).scalar_one()
    r = await client.post(f"/api/v1/invitations/{inv_id}/resend-otp", headers=admin_headers)
    assert r.status_code == 409
    assert await _count(session_maker, "ONBOARDING_COMPLETED") == 1


async def test_sent_invitation_cannot_complete(client: AsyncClient, invite):
    inv = await invite()
    headers = {"Authorization": f"Bearer {create_onboarding_token(inv['invite_token'], inv['email'])}"}
    r = await client.patch(f"/api/v1/invitations/{inv['invite_token']}/complete", headers=headers)
    assert r.status_code == 409
    assert r.json()["error"] == "INVITATION_NOT_VERIFIED"


async def test_completed_invitation_rejects_otp(client: AsyncClient, onboarding, fixed_otp):
    token, headers = onboarding
    await client.patch(f"/api/v1/invitations/{token}/complete", headers=headers)
    r = await client.post("/api/v1/invitations/verify-otp", json={"invite_token": token, "otp": fixed_otp})
    assert r.status_code == 409
    assert r.json()["detail"] == "This invitation has already been used"
