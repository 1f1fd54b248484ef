"""
Outbound notifications.

Invite emails go out over SMTP. ``smtplib`` is blocking, so every call runs
in the default thread pool. With no ``smtp_host`` configured the message is
only logged, which is what local development and the test suite use.
"""

from __future__ import annotations

import asyncio
import smtplib
from email.message import EmailMessage
from html import escape
from urllib.parse import urlencode

import structlog

from app.core.config import Settings, get_settings
from app.core.errors import NotificationError

log = structlog.get_logger()

INVITE_SUBJECT = "You're Invited!"


def build_accept_url(api_url: str, *, token: str, email: str, password: str) -> str:
    query = urlencode({"token": token, "email": email, "password": password})
    return f"{api_url.rstrip('/')}/api/v1/invites/accept?{query}"


def render_invite(*, name: str, email: str, password: str, role: str, accept_url: str) -> str:
    return (
        f"<p>Hello {escape(name)},</p>\n"
        f"<p>You've been invited as <b>{escape(role)}</b>.</p>\n"
        f"<p><strong>Email:</strong> {escape(email)}</p>\n"
        f"<p><strong>Password:</strong> {escape(password)}</p>\n"
        f'<a href="{escape(accept_url)}">Click here to login</a> (Valid 24 hrs)\n'
    )


class NotificationSender:
    """Sends invite emails. Failures surface as ``NotificationError``."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    @property
    def enabled(self) -> bool:
        return bool(self.settings.smtp_host)

    async def send_invite(
        self,
        email: str,
        name: str,
        password: str,
        role: str,
        token: str,
    ) -> None:
        accept_url = build_accept_url(
            self.settings.api_url, token=token, email=email, password=password
        )
        message = EmailMessage()
        message["Subject"] = INVITE_SUBJECT
        message["From"] = self.settings.email_from_address
        message["To"] = email
        message.set_content(f"You've been invited as {role}. Sign in: {accept_url}")
        message.add_alternative(
            render_invite(
                name=name, email=email, password=password, role=role, accept_url=accept_url
            ),
            subtype="html",
        )

        if not self.enabled:
            log.info("notification.logged", to=email, subject=INVITE_SUBJECT, role=role)
            return

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._deliver, message)
        except (smtplib.SMTPException, OSError) as exc:
            log.warning("notification.failed", to=email, error=type(exc).__name__, detail=str(exc))
            raise NotificationError(f"Could not send invite to {email}") from exc
        log.info("notification.sent", to=email, subject=INVITE_SUBJECT)

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=30) as smtp:
            if self.settings.smtp_use_tls:
                smtp.starttls()
            if self.settings.smtp_username:
                smtp.login(self.settings.smtp_username, self.settings.smtp_password)
            smtp.send_message(message)


def get_notification_sender() -> NotificationSender:
    return NotificationSender()
