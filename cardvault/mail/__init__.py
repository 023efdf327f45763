"""Outbound email: configuration, transports and message bodies."""

from .config import EmailConfig, SMTPSettings, load_email_config
from .messages import OutboundEmail, render_downgrade_email
from .providers import (
    DevPrintProvider,
    EmailProvider,
    SMTPProvider,
    create_email_provider,
)

__all__ = [
    "DevPrintProvider",
    "EmailConfig",
    "EmailProvider",
    "OutboundEmail",
    "SMTPProvider",
    "SMTPSettings",
    "create_email_provider",
    "load_email_config",
    "render_downgrade_email",
]
