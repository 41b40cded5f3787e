# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Staff records, documents and the activity feed."""

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.anyio


def staff_payload(name: str = "Sam Carter", email: str = "sam@example.com", **overrides) -> dict:
    payload = {
        "name": name,
        "email": email,
        "phone_number": "07700 900456",
        "dob": "1990-07-01",
        "address": "22 Mill Lane, Leeds",
        "gender": "Male",
        "start_date": "2026-01-05",
        "employment_type": "Permanent",
        "citizenship_status": "Irish Citizen",
        "documents": [
            {"id": "passport-1", "name": "Passport", "type": "IMG"},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_staff(client, admin_headers):
    async def _create(**kwargs) -> dict:
        r = await client.post("/api/v1/staff", json=staff_payload(**kwargs), headers=admin_headers)
        assert r.status_code == 201, r.text
        return r.json()

    return _create


async def _entity_actions(client: AsyncClient, headers: dict, entity_type: str, entity_id: str) -> list[str]:
    r = await client.get(f"/api/v1/activity/entity/{entity_type}/{entity_id}", headers=headers)
    assert r.status_code == 200
    return [a["action_type"] for a in r.json()]


async def test_staff_requires_admin(client: AsyncClient):
    r = await client.get("/api/v1/staff")
    assert r.status_code == 401


async def test_create_and_get(client: AsyncClient, admin_headers, create_staff):
    staff = await create_staff(email="Sam@Example.com")
    assert staff["email"] == "sam@example.com"
    assert staff["verification_status"] == "Pending"
    assert staff["documents"][0]["id"] == "passport-1"
    assert staff["documents"][0]["status"] == "Pending"

    r = await client.get(f"/api/v1/staff/{staff['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["name"] == "Sam Carter"
    assert await _entity_actions(client, admin_headers, "Staff", staff["id"]) == ["STAFF_CREATED"]


async def test_duplicate_email_rejected(client: AsyncClient, admin_headers, create_staff):
    await create_staff()
    r = await client.post("/api/v1/staff", json=staff_payload(name="Other"), headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "A staff member with this email already exists"


async def test_invitation_blocked_for_existing_staff(client: AsyncClient, admin_headers, create_staff):
    await create_staff()
    r = await client.post(
        "/api/v1/invitations/send",
        json={"employee_name": "Sam", "email": "sam@example.com"},
        headers=admin_headers,
    )
    assert r.status_code == 400


async def test_unknown_staff(client: AsyncClient, admin_headers):
    r = await client.get("/api/v1/staff/missing", headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["detail"] == "Staff member not found"


async def test_patch_logs_each_kind_of_change(client: AsyncClient, admin_headers, create_staff):
    staff = await create_staff()
    r = await client.patch(
        f"/api/v1/staff/{staff['id']}",
        json={
            "verification_status": "Verified",
            "hourly_pay_rate": 12.5,
            "location": "Leeds Office",
            "auditor_notes": "Checked in person",
            "phone_number": "07700 900999",
            "name": None,
        },
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text
    updated = r.json()
    assert updated["verification_status"] == "Verified"
    assert updated["hourly_pay_rate"] == 12.5
    assert updated["name"] == "Sam Carter"

    actions = await _entity_actions(client, admin_headers, "Staff", staff["id"])
    assert set(actions) == {
        "STAFF_CREATED",
        "STAFF_VERIFIED",
        "HOURLY_PAY_RATE_UPDATED",
        "EMPLOYMENT_ALLOCATION_UPDATED",
        "AUDITOR_NOTES_UPDATED",
        "STAFF_UPDATED",
    }


async def test_patch_without_changes_logs_nothing(client: AsyncClient, admin_headers, create_staff):
    staff = await create_staff()
    r = await client.patch(f"/api/v1/staff/{staff['id']}", json={"location": "TBD"}, headers=admin_headers)
    assert r.status_code == 200
    assert await _entity_actions(client, admin_headers, "Staff", staff["id"]) == ["STAFF_CREATED"]


async def test_patch_documents(client: AsyncClient, admin_headers, create_staff):
    staff = await create_staff()
    document = staff["documents"][0]
    r = await client.patch(
        f"/api/v1/staff/{staff['id']}",
        json={
            "documents": [
                {**document, "status": "Verified"},
                {"id": "dbs-1", "name": "DBS Certificate", "type": "PDF", "upload_date": "2026-01-06",
                 "status": "Pending"},
            ]
        },
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text
    assert {d["id"]: d["status"] for d in r.json()["documents"]} == {"passport-1": "Verified", "dbs-1": "Pending"}
    assert await _entity_actions(client, admin_headers, "Document", "passport-1") == ["DOCUMENT_VERIFIED"]
    assert await _entity_actions(client, admin_headers, "Document", "dbs-1") == ["DOCUMENT_ADDED"]


async def test_replace_staff(client: AsyncClient, admin_headers, create_staff):
    staff = await create_staff()
    r = await client.put(
        f"/api/v1/staff/{staff['id']}",
        json=staff_payload(
            name="Samantha Carter",
            documents=[{"id": "passport-1", "name": "Passport (renewed)", "type": "IMG"}],
        ),
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text
    assert r.json()["name"] == "Samantha Carter"
    assert [d["name"] for d in r.json()["documents"]] == ["Passport (renewed)"]


async def test_delete_staff(client: AsyncClient, admin_headers, create_staff):
    staff = await create_staff()
    r = await client.delete(f"/api/v1/staff/{staff['id']}", headers=admin_headers)
    assert r.status_code == 200
    r = await client.get(f"/api/v1/staff/{staff['id']}", headers=admin_headers)
    assert r.status_code == 404


async def test_bulk_action_counts_changed_rows(client: AsyncClient, admin_headers, create_staff):
    first = await create_staff(email="a@example.com")
    second = await create_staff(email="b@example.com")
    await client.patch(f"/api/v1/staff/{first['id']}", json={"verification_status": "Verified"}, headers=admin_headers)

    r = await client.patch(
        "/api/v1/staff/bulk-action",
        json={"action": "VERIFY", "staff_ids": [first["id"], second["id"], "missing"]},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json()["updated_count"] == 1
    assert r.json()["status"] == "Verified"

    verified = await client.get("/api/v1/staff/status/Verified", headers=admin_headers)
    assert {s["id"] for s in verified.json()} == {first["id"], second["id"]}
    assert await _entity_actions(client, admin_headers, "Staff", "bulk") == ["BULK_STATUS_UPDATE"]


async def test_bulk_status_rejects_other_statuses(client: AsyncClient, admin_headers, create_staff):
    staff = await create_staff()
    r = await client.patch(
        "/api/v1/staff/bulk-status",
        json={"status": "Docs Required", "staff_ids": [staff["id"]]},
        headers=admin_headers,
    )
    assert r.status_code == 400
    r = await client.patch(
        "/api/v1/staff/bulk-status",
        json={"status": "Rejected", "staff_ids": [staff["id"]]},
        headers=admin_headers,
    )
    assert r.json()["updated_count"] == 1


async def test_bulk_update(client: AsyncClient, admin_headers, create_staff):
    first = await create_staff(email="a@example.com")
    second = await create_staff(email="b@example.com")
    ids = [first["id"], second["id"]]

    r = await client.patch("/api/v1/staff/bulk-update", json={"staff_ids": ids}, headers=admin_headers)
    assert r.status_code == 400

    r = await client.patch(
        "/api/v1/staff/bulk-update",
        json={"staff_ids": ids, "hourly_pay_rate": 11.44, "location": "  Manchester "},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json()["updated_count"] == 2
    assert set(r.json()["updated_fields"]) == {"hourly_pay_rate", "location"}
    staff = await client.get(f"/api/v1/staff/{first['id']}", headers=admin_headers)
    assert staff.json()["location"] == "Manchester"


async def test_bulk_delete(client: AsyncClient, admin_headers, create_staff):
    first = await create_staff(email="a@example.com")
    second = await create_staff(email="b@example.com")
    r = await client.post(
        "/api/v1/staff/bulk-delete", json={"staff_ids": [first["id"], second["id"]]}, headers=admin_headers
    )
    assert r.status_code == 200
    assert r.json()["deleted_count"] == 2
    listing = await client.get("/api/v1/staff", headers=admin_headers)
    assert listing.json() == []
    docs = await client.get(f"/api/v1/documents/staff/{first['id']}", headers=admin_headers)
    assert docs.status_code == 404


async def test_document_endpoints(client: AsyncClient, admin_headers, create_staff):
    staff = await create_staff()
    base = f"/api/v1/documents/staff/{staff['id']}"

    r = await client.post(base, json={"name": "Payslip", "type": "PDF", "uploaded_by": "employee"}, headers=admin_headers)
    assert r.status_code == 201
    payslip = r.json()
    assert payslip["id"].startswith("doc-")

    r = await client.post(base, json={"id": "passport-1", "name": "Passport", "type": "IMG"}, headers=admin_headers)
    assert r.status_code == 400

    r = await client.put(f"{base}/document/{payslip['id']}", json={"status": "Rejected"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "Rejected"

    r = await client.delete(f"{base}/document/passport-1", headers=admin_headers)
    assert r.status_code == 200
    r = await client.delete(f"{base}/document/passport-1", headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["detail"] == "Document not found"

    listing = await client.get(base, headers=admin_headers)
    assert [d["id"] for d in listing.json()] == [payslip["id"]]

    actions = await _entity_actions(client, admin_headers, "Document", payslip["id"])
    assert actions == ["DOCUMENT_REJECTED", "DOCUMENT_UPLOADED"]
    feed = await client.get("/api/v1/activity", params={"actor_role": "employee"}, headers=admin_headers)
    assert [a["action_type"] for a in feed.json()["activities"]] == ["DOCUMENT_UPLOADED"]


async def test_activity_feed_pagination(client: AsyncClient, admin_headers, create_staff):
    for i in range(3):
        await create_staff(email=f"staff{i}@example.com", name=f"Staff {i}")

    r = await client.get("/api/v1/activity", params={"page": 1, "limit": 2}, headers=admin_headers)
    assert r.status_code == 200
    page = r.json()
    assert page["pagination"] == {"total": 3, "page": 1, "pages": 2, "limit": 2}
    assert [a["details"]["staff_name"] for a in page["activities"]] == ["Staff 2", "Staff 1"]

    r = await client.get("/api/v1/activity", params={"page": 2, "limit": 2}, headers=admin_headers)
    assert [a["details"]["staff_name"] for a in r.json()["activities"]] == ["Staff 0"]

    recent = await client.get("/api/v1/activity/recent", params={"limit": 1}, headers=admin_headers)
    assert len(recent.json()) == 1
    assert recent.json()[0]["actor_name"] == "Ada Admin"

    filtered = await client.get(
        "/api/v1/activity", params={"action_type": "STAFF_DELETED"}, headers=admin_headers
    )
    assert filtered.json()["pagination"]["total"] == 0
    assert filtered.json()["pagination"]["pages"] == 0
