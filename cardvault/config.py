"""Runtime configuration for the database, auth, billing and transfer layers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
import math
import os


@dataclass(frozen=True)
class DatabaseConfig:
    host: str
    port: int
    dbname: str
    user: str
    password: str
    connect_timeout: int
    statement_timeout_ms: int

    def connect_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for :func:`psycopg2.connect`."""

        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.dbname,
            "user": self.user,
            "password": self.password,
            "connect_timeout": self.connect_timeout,
            "options": f"-c statement_timeout={self.statement_timeout_ms}",
        }


@dataclass(frozen=True)
class AuthConfig:
    jwt_secret_key: str
    jwt_algorithm: str
    jwt_exp_minutes: int
    session_cookie_name: str


@dataclass(frozen=True)
class BillingConfig:
    """Stripe credentials and redirect targets."""

    stripe_secret_key: str
    webhook_secret: str
    webhook_tolerance: int
    frontend_url: str


@dataclass(frozen=True)
class TransferConfig:
    code_ttl_hours: int
    code_length: int


def _to_int(value: Optional[str], *, default: int, name: str) -> int:
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def _parse_connect_timeout(raw_value: Optional[str]) -> int:
    if raw_value is None or raw_value.strip() == "":
        return 5
    try:
        timeout = float(raw_value)
    except ValueError as exc:
        raise ValueError("DB_CONNECT_TIMEOUT must be a number") from exc
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


def load_database_config(env: Optional[Mapping[str, str]] = None) -> DatabaseConfig:
    env_mapping = os.environ if env is None else env
    return DatabaseConfig(
        host=env_mapping.get("DB_HOST", "127.0.0.1"),
        port=_to_int(env_mapping.get("DB_PORT"), default=5432, name="DB_PORT"),
        dbname=env_mapping.get("DB_NAME", "cardvault"),
        user=env_mapping.get("DB_USER", "cardvault"),
        password=env_mapping.get("DB_PASSWORD", "cardvault"),
        connect_timeout=_parse_connect_timeout(env_mapping.get("DB_CONNECT_TIMEOUT")),
        statement_timeout_ms=max(
            0, _to_int(env_mapping.get("DB_STATEMENT_TIMEOUT_MS"), default=5000, name="DB_STATEMENT_TIMEOUT_MS")
        ),
    )


def load_auth_config(env: Optional[Mapping[str, str]] = None) -> AuthConfig:
    env_mapping = os.environ if env is None else env
    return AuthConfig(
        jwt_secret_key=env_mapping.get("JWT_SECRET_KEY", "dev-secret-change-me"),
        jwt_algorithm="HS256",
        jwt_exp_minutes=_to_int(env_mapping.get("JWT_EXP_MINUTES"), default=60 * 24 * 7, name="JWT_EXP_MINUTES"),
        session_cookie_name=env_mapping.get("SESSION_COOKIE_NAME", "session"),
    )


def load_billing_config(env: Optional[Mapping[str, str]] = None) -> BillingConfig:
    """Load :class:`BillingConfig` from environment variables."""

    env_mapping = os.environ if env is None else env
    frontend_url = env_mapping.get("FRONTEND_URL") or "http://localhost:5173"
    return BillingConfig(
        stripe_secret_key=env_mapping.get("STRIPE_SECRET_KEY", ""),
        webhook_secret=env_mapping.get("STRIPE_WEBHOOK_SECRET", ""),
        webhook_tolerance=max(
            0, _to_int(env_mapping.get("STRIPE_WEBHOOK_TOLERANCE"), default=300, name="STRIPE_WEBHOOK_TOLERANCE")
        ),
        frontend_url=frontend_url.rstrip("/"),
    )


def load_transfer_config(env: Optional[Mapping[str, str]] = None) -> TransferConfig:
    env_mapping = os.environ if env is None else env
    ttl_hours = _to_int(env_mapping.get("TRANSFER_CODE_TTL_HOURS"), default=48, name="TRANSFER_CODE_TTL_HOURS")
    code_length = _to_int(env_mapping.get("TRANSFER_CODE_LENGTH"), default=8, name="TRANSFER_CODE_LENGTH")
    return TransferConfig(code_ttl_hours=max(1, ttl_hours), code_length=max(6, code_length))


__all__ = [
    "AuthConfig",
    "BillingConfig",
    "DatabaseConfig",
    "TransferConfig",
    "load_auth_config",
    "load_billing_config",
    "load_database_config",
    "load_transfer_config",
]
