# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pytest fixtures. API tests run against a throwaway SQLite database (aiosqlite)."""

from datetime import date

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from staffportal_server.auth import ADMIN_ROLE, create_access_token, hash_password
from staffportal_server.database import build_engine, get_db
from staffportal_server.main import app
from staffportal_server.models import AdminUser, Base
from staffportal_server.models.staff import EmploymentType
from staffportal_server.onboarding.form import Declarations, FileAttachment, PersonalDetails, WizardFormData
from staffportal_server.onboarding.steps import CitizenshipStatus, VisaType, WorkPreference, requires_right_to_work
from staffportal_server.rate_limit import reset_rate_limits

FIXED_OTP = "246810"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
PDF_BYTES = b"%PDF-1.4\n% staffportal test\n"


@pytest.fixture
def anyio_backend():
    return "asyncio"


def png(name: str = "photo.png") -> FileAttachment:
    return FileAttachment.from_bytes(name, PNG_BYTES, "image/png")


def pdf(name: str = "document.pdf") -> FileAttachment:
    return FileAttachment.from_bytes(name, PDF_BYTES, "application/pdf")


def build_form(
    citizenship: CitizenshipStatus | None = CitizenshipStatus.UK_CITIZEN,
    visa_type: VisaType | None = None,
    email: str = "jane@example.com",
    **overrides,
) -> WizardFormData:
    """A form that passes every rule for the given citizenship and visa answers."""
    data = {
        "citizenship_status": citizenship,
        "personal_details": PersonalDetails(
            name="Jane Doe",
            email=email,
            phone_number="07700 900123",
            dob=date(1995, 4, 12),
            address="1 High Street, London",
            gender="Female",
        ),
        "passport_photo": png(),
        "passport": png("passport.png"),
        "salary_slip": pdf("payslips.pdf"),
        "employment_type": EmploymentType.CONTRACTOR,
        "work_preference": WorkPreference.PART_TIME,
        "has_dbs": False,
        "availability_to_start": "Immediately",
        "preferred_shift_pattern": "Mornings Only",
        "declarations": Declarations(accuracy=True, rtw=True, approval=True, gdpr=True),
    }
    if requires_right_to_work(citizenship):
        data["share_code"] = "ABC123XYZ"
        data["share_code_screenshot"] = png("share-code.png")
    if visa_type is not None:
        data["visa_type"] = visa_type
    if visa_type == VisaType.STUDENT:
        data.update(
            uni_name="University of Leeds",
            course_name="MSc Data Science",
            term_start=date(2025, 9, 22),
            term_end=date(2026, 6, 12),
            term_dates_document=pdf("term-dates.pdf"),
            has_agreed_to_hours=True,
        )
    data.update(overrides)
    return WizardFormData(**data)


@pytest.fixture
def make_form():
    return build_form


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'staffportal.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    reset_rate_limits()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def admin(session_maker) -> AdminUser:
    async with session_maker() as session:
        admin = AdminUser(
            username="admin",
            email="admin@example.com",
            password_hash=hash_password("correct-horse"),
            name="Ada Admin",
        )
        session.add(admin)
        await session.commit()
        return admin


@pytest.fixture
def admin_headers(admin) -> dict[str, str]:
    token = create_access_token({"sub": str(admin.id), "role": ADMIN_ROLE})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def fixed_otp(monkeypatch) -> str:
    monkeypatch.setattr("staffportal_server.services.invitations.generate_otp", lambda: FIXED_OTP)
    return FIXED_OTP


@pytest.fixture
def invite(client, admin_headers, fixed_otp):
    """Send an invitation as the admin; returns the invitation JSON."""
    async def _invite(employee_name: str = "Jane Doe", email: str = "jane@example.com") -> dict:
        r = await client.post(
            "/api/v1/invitations/send",
            json={"employee_name": employee_name, "email": email},
            headers=admin_headers,
        )
        assert r.status_code == 201, r.text
        return r.json()

    return _invite


@pytest.fixture
def sign_in(client, fixed_otp):
    """Verify the OTP for an invite token; returns employee auth headers."""
    async def _sign_in(invite_token: str) -> dict[str, str]:
        r = await client.post(
            "/api/v1/invitations/verify-otp",
            json={"invite_token": invite_token, "otp": fixed_otp},
        )
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['token']}"}

    return _sign_in
