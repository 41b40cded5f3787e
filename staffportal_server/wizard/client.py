# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""HTTP client for the onboarding endpoints of the StaffPortal API."""

import logging
from typing import Any

import httpx

from staffportal_server.api.schemas import (
    InvitationResponse,
    ProgressLoadResponse,
    ProgressSaveResponse,
    SessionInfo,
    SubmissionResponse,
)
from staffportal_server.onboarding.form import WizardFormData
from staffportal_server.wizard.errors import (
    ActionFailedError,
    InvalidOtpError,
    InvitationCompletedError,
    InvitationExpiredError,
    ServiceUnreachableError,
    SessionExpiredError,
    SessionRejectedError,
    StepOrderViolationError,
)
from staffportal_server.wizard.session import EmployeeSession

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _error_detail(body: Any) -> str:
    if isinstance(body, dict):
        detail = body.get("detail")
        if isinstance(detail, dict):
            return str(detail.get("message", detail))
        if detail is not None:
            return str(detail)
    return str(body)


def raise_for_response(response: httpx.Response) -> None:
    """Translate a failed response into the matching wizard error."""
    if response.is_success:
        return
    try:
        body = response.json()
    except ValueError:
        body = response.text
    code = body.get("error") if isinstance(body, dict) else None
    detail = _error_detail(body)

    if code == "INVITATION_EXPIRED":
        raise InvitationExpiredError(detail)
    if code == "INVITATION_COMPLETED":
        raise InvitationCompletedError(detail)
    if code == "STEP_ORDER_VIOLATION":
        raise StepOrderViolationError(detail, int(body.get("last_completed_step", 0)))
    if code in ("INVALID_OTP", "OTP_EXPIRED"):
        raise InvalidOtpError(detail)
    if response.status_code == 401:
        raise SessionExpiredError(detail)
    if response.status_code == 403:
        raise SessionRejectedError(detail)
    raise ActionFailedError(detail)


class OnboardingClient:
    """Calls the invitation and progress endpoints. One request per call, no retries.

    Pass an existing ``httpx.AsyncClient`` (e.g. one bound to an ASGI app) or let the
    client own one for ``base_url``.
    """

    def __init__(self, base_url: str = "http://localhost:8080", http: httpx.AsyncClient | None = None,
                 timeout: float = 10.0):
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.base_url = str(self.http.base_url).rstrip("/")

    async def __aenter__(self) -> "OnboardingClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        session: EmployeeSession | None = None,
        json: Any = None,
    ) -> Any:
        headers = session.headers if session else None
        try:
            response = await self.http.request(method, f"{API_PREFIX}{path}", headers=headers, json=json)
        except httpx.TransportError as e:
            logger.warning("Onboarding service unreachable: %s %s: %s", method, path, e)
            raise ServiceUnreachableError(self.base_url, str(e)) from e
        raise_for_response(response)
        return response.json()

    async def health(self) -> bool:
        try:
            await self._request("GET", "/health")
        except (ServiceUnreachableError, ActionFailedError):
            return False
        return True

    async def get_invitation(self, invite_token: str) -> InvitationResponse:
        data = await self._request("GET", f"/invitations/{invite_token}")
        return InvitationResponse.model_validate(data)

    async def verify_otp(self, invite_token: str, otp: str) -> EmployeeSession:
        data = await self._request(
            "POST", "/invitations/verify-otp", json={"invite_token": invite_token, "otp": otp}
        )
        return EmployeeSession(
            token=data["token"],
            invite_token=data["invite_token"],
            email=data["email"],
            employee_name=data.get("employee_name", ""),
        )

    async def request_otp(self, invite_token: str) -> None:
        await self._request("POST", "/invitations/request-otp", json={"invite_token": invite_token})

    async def verify_session(self, session: EmployeeSession) -> SessionInfo:
        """Ask the service to validate the credential. Fails closed: an unreachable
        service raises rather than trusting the locally decoded token."""
        data = await self._request(
            "POST",
            "/invitations/verify-token",
            json={"onboarding_token": session.token, "invite_token": session.invite_token},
        )
        return SessionInfo.model_validate(data)

    async def save_progress(
        self, session: EmployeeSession, step: int, form: WizardFormData, is_step_completed: bool
    ) -> ProgressSaveResponse:
        data = await self._request(
            "POST",
            f"/invitations/{session.invite_token}/progress",
            session,
            json={
                "step": step,
                "form_data": form.model_dump(mode="json"),
                "is_step_completed": is_step_completed,
            },
        )
        return ProgressSaveResponse.model_validate(data)

    async def load_progress(self, session: EmployeeSession) -> ProgressLoadResponse:
        data = await self._request("GET", f"/invitations/{session.invite_token}/progress", session)
        return ProgressLoadResponse.model_validate(data)

    async def clear_progress(self, session: EmployeeSession) -> None:
        await self._request("DELETE", f"/invitations/{session.invite_token}/progress", session)

    async def submit(self, session: EmployeeSession, form: WizardFormData) -> SubmissionResponse:
        data = await self._request(
            "POST",
            f"/invitations/{session.invite_token}/submit",
            session,
            json={"form_data": form.model_dump(mode="json")},
        )
        return SubmissionResponse.model_validate(data)

    async def complete(self, session: EmployeeSession, onboarding_progress: int = 100) -> InvitationResponse:
        data = await self._request(
            "PATCH",
            f"/invitations/{session.invite_token}/complete",
            session,
            json={"onboarding_progress": onboarding_progress},
        )
        return InvitationResponse.model_validate(data)
