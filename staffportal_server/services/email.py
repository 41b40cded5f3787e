# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Email sending service. Logs to console when SMTP not configured."""

import html
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from staffportal_server.config import settings

logger = logging.getLogger(__name__)


def onboarding_url(invite_token: str) -> str:
    base = (settings.frontend_url or settings.base_url).rstrip("/")
    return f"{base}/onboarding/auth/{invite_token}"


def wrap_body_html(plain_body: str) -> str:
    """Wrap plain text body in minimal HTML."""
    body_escaped = html.escape(plain_body).replace("\n", "<br>\n")
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; color: #333; max-width: 600px;">
<div style="background-color: #f2f6f9; padding: 30px; border-radius: 10px; white-space: pre-wrap;">{body_escaped}</div>
</body>
</html>"""


async def send_email(to: str, subject: str, body: str, html_body: bool = True) -> None:
    """Send an email (plain and HTML). Logs to console if SMTP not configured."""
    if settings.smtp_host and settings.smtp_user:
        try:
            import smtplib
            if html_body:
                msg = MIMEMultipart("alternative")
                msg["Subject"] = subject
                msg["From"] = settings.smtp_from
                msg["To"] = to
                msg.attach(MIMEText(body, "plain"))
                msg.attach(MIMEText(wrap_body_html(body), "html"))
            else:
                msg = MIMEText(body, "plain")
                msg["Subject"] = subject
                msg["From"] = settings.smtp_from
                msg["To"] = to
            with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
                server.starttls()
                server.login(settings.smtp_user, settings.smtp_password or "")
                server.sendmail(settings.smtp_from, [to], msg.as_string())
        except Exception as e:
            logger.exception("Failed to send email: %s", e)
    else:
        # Body carries the OTP; keep it out of logs
        logger.info("Email (SMTP not configured): To=%s Subject=%s", to, subject)


async def send_invitation_email(to: str, employee_name: str, invite_token: str, otp: str) -> None:
    company = settings.company_name
    body = (
        f"Welcome to {company}, {employee_name}!\n\n"
        f"You have been invited to join {company}. Please complete your onboarding using the link below:\n\n"
        f"{onboarding_url(invite_token)}\n\n"
        f"Your OTP code: {otp}\n"
        f"This OTP will expire in {settings.otp_expire_minutes} minutes.\n\n"
        "1. Open the onboarding link\n"
        "2. Enter the OTP code when prompted\n"
        "3. Complete the onboarding form\n\n"
        "If you did not expect this invitation, please ignore this email."
    )
    await send_email(to, f"{company} - Employee Onboarding Invitation", body)


async def send_otp_resend_email(to: str, employee_name: str, invite_token: str, otp: str) -> None:
    company = settings.company_name
    body = (
        f"Hello {employee_name},\n\n"
        f"A new OTP has been issued for your {company} onboarding.\n\n"
        f"Your new OTP code: {otp}\n"
        f"This OTP will expire in {settings.otp_expire_minutes} minutes. Any previous code no longer works.\n\n"
        f"Continue your onboarding at:\n{onboarding_url(invite_token)}"
    )
    await send_email(to, f"{company} - Your New Onboarding OTP", body)
