from dataclasses import dataclass
from datetime import datetime
from html import escape

import anyio.to_thread
from kombu.exceptions import OperationalError
from loguru import logger

from assetgate.core.config import Environment, settings
from assetgate.core.logger import mask_email
from assetgate.core.utils import build_app_url
from assetgate.services.task_queue.tasks.email_tasks import send_email_task

BRAND = "MoonUI"


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str

    def to_payload(self, sender: str) -> dict[str, str]:
        return {"from": sender, "to": self.to, "subject": self.subject, "html": self.html}


def _layout(title: str, *paragraphs: str) -> str:
    body = "".join(f"<p>{paragraph}</p>" for paragraph in paragraphs)

    return (
        '<div style="font-family:Arial,sans-serif;max-width:560px;margin:0 auto">'
        f"<h2>{escape(title)}</h2>{body}"
        f'<p style="color:#888;font-size:12px">{BRAND} Design</p>'
        "</div>"
    )


def _code_block(code: str) -> str:
    return f'<strong style="font-size:28px;letter-spacing:6px">{escape(code)}</strong>'


def _link(url: str, label: str) -> str:
    return f'<a href="{escape(url, quote=True)}">{escape(label)}</a>'


class EmailService:
    """
    Renders transactional emails and hands them to the ``send_email`` Celery task.

    In the local environment the rendered message is logged instead of queued.
    """

    def __init__(self, sender: str | None = None):
        self.sender = sender or settings.email_from

    def dispatch(self, message: EmailMessage) -> bool:
        if settings.current_environment == Environment.LOCAL:
            logger.info(f"Email preview to {message.to} | {message.subject}\n{message.html}")
            return True

        try:
            send_email_task.delay(message.to_payload(self.sender))
        except OperationalError:
            logger.exception(f"Could not queue email to {mask_email(message.to)}")
            return False

        return True

    async def send(self, message: EmailMessage) -> bool:
        """Queue ``message`` without blocking the event loop; failures are logged."""
        return await anyio.to_thread.run_sync(self.dispatch, message)

    @staticmethod
    def license_otp(email: str, code: str) -> EmailMessage:
        return EmailMessage(
            to=email,
            subject=f"Your {BRAND} license verification code",
            html=_layout(
                "Verify your license",
                "Use this code to confirm the license purchased with this email:",
                _code_block(code),
                f"The code expires in {settings.otp_ttl_seconds // 60} minutes.",
            ),
        )

    @staticmethod
    def password_reset_otp(email: str, code: str, token: str) -> EmailMessage:
        url = build_app_url("/forgot-password/otp", signature=token)

        return EmailMessage(
            to=email,
            subject=f"Reset your {BRAND} password",
            html=_layout(
                "Password reset",
                "Enter this code to reset your password:",
                _code_block(code),
                f"Or continue from {_link(url, 'this page')}.",
                "If you did not ask for a reset you can ignore this email.",
            ),
        )

    @staticmethod
    def email_verification_otp(email: str, code: str) -> EmailMessage:
        return EmailMessage(
            to=email,
            subject=f"Verify your {BRAND} email",
            html=_layout("Verify your email", "Your verification code:", _code_block(code)),
        )

    @staticmethod
    def invite_link(email: str, token: str, role: str) -> EmailMessage:
        url = build_app_url("/invite", signature=token)

        return EmailMessage(
            to=email,
            subject=f"You have been invited to {BRAND}",
            html=_layout(
                "You're invited",
                f"You have been invited to join {BRAND} as {escape(role)}.",
                _link(url, "Accept the invitation"),
                f"The link is valid for {settings.invite_ttl_seconds // 3600} hours.",
            ),
        )

    @staticmethod
    def invite_otp(email: str, code: str) -> EmailMessage:
        return EmailMessage(
            to=email,
            subject=f"Your {BRAND} invitation code",
            html=_layout(
                "Confirm your invitation",
                "Use this code to set up your account:",
                _code_block(code),
            ),
        )

    @staticmethod
    def expiration_notice(email: str, name: str, expires_at: datetime) -> EmailMessage:
        return EmailMessage(
            to=email,
            subject=f"Your {BRAND} subscription expires soon",
            html=_layout(
                "Subscription ending",
                f"Hi {escape(name or 'there')},",
                f"your subscription expires on {expires_at:%B %d, %Y}.",
                f"Renew it to keep access: {_link(build_app_url('/pricing'), 'see plans')}.",
            ),
        )


email_service = EmailService()
