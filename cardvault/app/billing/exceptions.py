"""Billing failures mapped onto HTTP responses."""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import status

from ..errors import DomainError


@dataclass
class WebhookAuthenticationError(DomainError):
    """Inbound webhook could not be verified; the provider will redeliver."""

    code: str = "invalid_webhook"
    message: str = "Webhook signature verification failed"
    status_code: int = status.HTTP_400_BAD_REQUEST


@dataclass
class BillingProviderError(DomainError):
    """The billing provider rejected or failed an outbound request."""

    code: str = "billing_provider_error"
    message: str = "Billing provider request failed"
    status_code: int = status.HTTP_502_BAD_GATEWAY
