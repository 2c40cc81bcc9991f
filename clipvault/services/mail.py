"""Outbound mail delivery."""

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from functools import lru_cache
from typing import Protocol

from clipvault.config import Settings, get_settings
from clipvault.exceptions import DeliveryError

logger = logging.getLogger(__name__)


class MailSender(Protocol):
    """Anything that can deliver a plain-text message to one address."""

    def send(self, to_address: str, subject: str, body: str) -> None:
        """Deliver a message. Raises DeliveryError on failure."""
        ...


class SmtpMailSender:
    """Deliver mail through an SMTP relay. One blocking attempt, no retry."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _build_message(self, to_address: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self.settings.mail_from_name, self.settings.mail_from_address))
        message["To"] = to_address
        message["Subject"] = subject
        message.set_content(body)
        return message

    def send(self, to_address: str, subject: str, body: str) -> None:
        message = self._build_message(to_address, subject, body)
        try:
            with smtplib.SMTP(
                self.settings.smtp_host,
                self.settings.smtp_port,
                timeout=self.settings.smtp_timeout_seconds,
            ) as smtp:
                if self.settings.smtp_use_tls:
                    smtp.starttls()
                if self.settings.smtp_username and self.settings.smtp_password:
                    smtp.login(self.settings.smtp_username, self.settings.smtp_password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Mail delivery to {to_address} failed: {e}")
            raise DeliveryError() from e
        logger.info(f"Mail '{subject}' sent to {to_address}")


class LogMailSender:
    """Stand-in sender for development when no SMTP relay is configured.

    Only the recipient and subject are logged; bodies may contain secrets.
    """

    def send(self, to_address: str, subject: str, body: str) -> None:
        logger.warning(f"SMTP not configured, dropping mail '{subject}' to {to_address}")


class UnconfiguredMailSender:
    """Sender for non-development environments without an SMTP relay.

    Every send fails, so callers never report mail as sent when it was not.
    """

    def send(self, to_address: str, subject: str, body: str) -> None:
        logger.error(f"SMTP not configured, cannot send mail '{subject}' to {to_address}")
        raise DeliveryError()


@lru_cache
def get_mail_sender() -> MailSender:
    """Get the configured mail sender."""
    settings = get_settings()
    if settings.smtp_host:
        return SmtpMailSender(settings)
    if settings.is_development:
        logger.info("SMTP host not configured, outbound mail is only logged")
        return LogMailSender()
    logger.warning(f"SMTP host not configured in {settings.environment}, outbound mail will fail")
    return UnconfiguredMailSender()
