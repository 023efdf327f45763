"""Transports that deliver :class:`OutboundEmail` messages."""
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Dict

from .config import EmailConfig, SMTPSettings
from .messages import OutboundEmail

logger = logging.getLogger(__name__)


class EmailProvider:
    name = "base"

    def __init__(self, *, sender: str) -> None:
        self.sender = sender

    def send(self, email: OutboundEmail) -> None:
        raise NotImplementedError

    def describe(self) -> Dict[str, str]:
        return {"email_provider": self.name, "email_sender": self.sender}


class DevPrintProvider(EmailProvider):
    """Logs messages instead of delivering them."""

    name = "dev"

    def send(self, email: OutboundEmail) -> None:
        logger.info(
            "Dev email dispatch",
            extra={
                "email_recipient": email.to,
                "email_cc": ",".join(email.cc),
                "email_subject": email.subject,
                "email_sender": self.sender,
            },
        )


class SMTPProvider(EmailProvider):
    name = "smtp"

    def __init__(self, *, sender: str, settings: SMTPSettings) -> None:
        super().__init__(sender=sender)
        self.settings = settings

    def build_message(self, email: OutboundEmail) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = email.to
        if email.cc:
            message["Cc"] = ", ".join(email.cc)
        message["Subject"] = email.subject
        message.set_content(email.text_body)
        message.add_alternative(email.html_body, subtype="html")
        return message

    def send(self, email: OutboundEmail) -> None:
        message = self.build_message(email)
        settings = self.settings
        with smtplib.SMTP(settings.host, settings.port, timeout=30) as client:
            if settings.starttls:
                client.starttls()
            if settings.authenticated:
                client.login(settings.username, settings.password)
            client.send_message(message, from_addr=self.sender, to_addrs=list(email.recipients))


def create_email_provider(config: EmailConfig) -> EmailProvider:
    if config.provider_name == "smtp" and config.smtp is not None:
        return SMTPProvider(sender=config.sender, settings=config.smtp)
    if config.provider_name != "dev":
        logger.warning("Unknown email provider %r; falling back to dev", config.provider_name)
    return DevPrintProvider(sender=config.sender)


__all__ = [
    "EmailProvider",
    "DevPrintProvider",
    "SMTPProvider",
    "create_email_provider",
]
