"""Settings for billing notification mail."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple
import os

from ..config import _to_int

_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class SMTPSettings:
    host: str
    port: int
    username: Optional[str]
    password: Optional[str]
    starttls: bool

    @property
    def authenticated(self) -> bool:
        return bool(self.username and self.password)


@dataclass(frozen=True)
class EmailConfig:
    """Transport selection plus the links and copies used by downgrade notices.

    ``smtp`` is only populated when the SMTP transport is selected.
    """

    provider_name: str
    sender: str
    app_base_url: str
    downgrade_cc: Tuple[str, ...] = ()
    smtp: Optional[SMTPSettings] = None

    @property
    def pricing_url(self) -> str:
        return f"{self.app_base_url}/pricing"


def _split_addresses(raw: Optional[str]) -> Tuple[str, ...]:
    return tuple(part.strip() for part in (raw or "").split(",") if part.strip())


def _load_smtp_settings(env: Mapping[str, str]) -> SMTPSettings:
    return SMTPSettings(
        host=env.get("SMTP_HOST", "localhost"),
        port=_to_int(env.get("SMTP_PORT"), default=587, name="SMTP_PORT"),
        username=env.get("SMTP_USER") or None,
        password=env.get("SMTP_PASS") or None,
        starttls=(env.get("SMTP_USE_TLS") or "true").strip().lower() not in _FALSE_VALUES,
    )


def load_email_config(env: Optional[Mapping[str, str]] = None) -> EmailConfig:
    """Load :class:`EmailConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    provider_name = (env_mapping.get("EMAIL_PROVIDER") or "dev").strip().lower() or "dev"
    app_base_url = env_mapping.get("APP_BASE_URL") or env_mapping.get("FRONTEND_URL") or "http://localhost:5173"

    return EmailConfig(
        provider_name=provider_name,
        sender=env_mapping.get("FROM_EMAIL", "noreply@solevault.app"),
        app_base_url=app_base_url.rstrip("/"),
        downgrade_cc=_split_addresses(env_mapping.get("DOWNGRADE_CC_EMAIL")),
        smtp=_load_smtp_settings(env_mapping) if provider_name == "smtp" else None,
    )
