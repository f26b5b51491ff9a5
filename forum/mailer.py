"""
Outgoing account mail (email confirmation, password reset).

Delivery is best-effort: services call these helpers after their
transaction has committed, SMTP runs in a worker thread, and failures are
logged and never propagated to the request.
"""
import asyncio
import logging
import smtplib
from email.message import EmailMessage
from urllib.parse import urlencode, urljoin

from forum.config import settings

logger = logging.getLogger(__name__)


def build_verify_url(token: str) -> str:
    return urljoin(settings.BASE_URL, "/api/auth/verify-email") + "?" + urlencode({"token": token})


def build_reset_url(token: str) -> str:
    return urljoin(settings.BASE_URL, "/api/auth/password-reset") + "?" + urlencode({"token": token})


def _send(message: EmailMessage) -> None:
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        if settings.SMTP_STARTTLS:
            smtp.starttls()
        if settings.SMTP_USER and settings.SMTP_PASSWORD:
            smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        smtp.send_message(message)


async def send_mail(to: str, subject: str, text: str) -> bool:
    if not settings.MAIL_ENABLED:
        logger.info("Mail disabled, not sending %r to %s", subject, to)
        return False

    message = EmailMessage()
    message["From"] = settings.MAIL_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content(text)

    try:
        await asyncio.to_thread(_send, message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("Sending %r to %s failed: %s", subject, to, exc)
        return False
    logger.info("Sent %r to %s", subject, to)
    return True


async def send_verification_email(to: str, token: str) -> bool:
    link = build_verify_url(token)
    return await send_mail(
        to,
        "Confirm your email address",
        f"To finish registering, open this link:\n\n{link}\n\n"
        "If you did not create an account, ignore this message.",
    )


async def send_reset_email(to: str, token: str) -> bool:
    link = build_reset_url(token)
    return await send_mail(
        to,
        "Password reset",
        f"To choose a new password, open this link:\n\n{link}\n\n"
        f"Reset token: {token}",
    )
