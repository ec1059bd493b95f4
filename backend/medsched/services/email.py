from __future__ import annotations

from email.message import EmailMessage
import logging
import smtplib
import ssl
import time

from medsched.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(RuntimeError):
    pass


def email_configured(settings: Settings | None = None) -> bool:
    settings = settings or get_settings()
    return bool(settings.smtp_host and settings.smtp_from_email)


def _build_message(settings: Settings, *, to_email: str, subject: str, text_content: str) -> EmailMessage:
    message = EmailMessage()
    sender = settings.smtp_from_email
    message["From"] = f"{settings.smtp_from_name} <{sender}>" if settings.smtp_from_name else sender
    message["To"] = to_email
    message["Subject"] = subject
    message.set_content(text_content)
    return message


def _deliver(settings: Settings, message: EmailMessage) -> None:
    timeout = max(1, settings.smtp_timeout_seconds)
    if settings.smtp_use_ssl:
        with smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=timeout) as smtp:
            if settings.smtp_username:
                smtp.login(settings.smtp_username, settings.smtp_password or "")
            smtp.send_message(message)
        return

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=timeout) as smtp:
        if settings.smtp_use_tls:
            smtp.starttls(context=ssl.create_default_context())
        if settings.smtp_username:
            smtp.login(settings.smtp_username, settings.smtp_password or "")
        smtp.send_message(message)


def send_email(*, to_email: str, subject: str, text_content: str) -> None:
    """Send a plain-text email, retrying only when the connection itself fails."""
    settings = get_settings()
    if not email_configured(settings):
        raise EmailDeliveryError("SMTP is not configured")

    message = _build_message(settings, to_email=to_email, subject=subject, text_content=text_content)
    retry_attempts = max(1, settings.smtp_retry_attempts)
    backoff = max(0.0, settings.smtp_retry_backoff_seconds)

    last_error: Exception | None = None
    for attempt in range(1, retry_attempts + 1):
        try:
            _deliver(settings, message)
            return
        except smtplib.SMTPAuthenticationError as exc:
            raise EmailDeliveryError("SMTP authentication failed") from exc
        except (smtplib.SMTPRecipientsRefused, smtplib.SMTPSenderRefused, smtplib.SMTPDataError) as exc:
            raise EmailDeliveryError("SMTP rejected the message") from exc
        except (smtplib.SMTPConnectError, smtplib.SMTPServerDisconnected, OSError) as exc:
            last_error = exc
            logger.debug("SMTP connection attempt %d/%d failed", attempt, retry_attempts, exc_info=True)
            if attempt < retry_attempts and backoff > 0:
                time.sleep(backoff * attempt)

    raise EmailDeliveryError("SMTP connection failed") from last_error
