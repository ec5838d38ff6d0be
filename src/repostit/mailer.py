"""
Outgoing email.

The `log` backend only records the message, which is enough for development:
the reset link shows up in the server log. The `smtp` backend delivers through
the configured SMTP server.
"""

import asyncio
import smtplib
from email.message import EmailMessage

from .config import settings
from .logging import get_logger

logger = get_logger(__name__)


def build_message(to: str, subject: str, html: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = settings.email_sender
    message["To"] = to
    message["Subject"] = subject
    message.set_content("This message requires an HTML capable mail client.")
    message.add_alternative(html, subtype="html")
    return message


def _deliver_smtp(message: EmailMessage) -> None:
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
        if settings.smtp_use_tls:
            smtp.starttls()
        if settings.smtp_username:
            smtp.login(settings.smtp_username, settings.smtp_password or "")
        smtp.send_message(message)


async def send_email(to: str, html: str, subject: str = "Change password") -> None:
    """Send an HTML email using the configured backend."""
    if settings.email_backend == "log":
        logger.info("Email (log backend)", to=to, subject=subject, html=html)
        return

    if settings.email_backend != "smtp":
        raise ValueError(f"Unknown email backend: {settings.email_backend}")

    message = build_message(to, subject, html)
    try:
        await asyncio.to_thread(_deliver_smtp, message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Email delivery failed", to=to, error=str(e))
        raise
    logger.info("Email sent", to=to, subject=subject)
