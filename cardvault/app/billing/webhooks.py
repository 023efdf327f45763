"""Verification of inbound Stripe webhook deliveries."""
from __future__ import annotations

import json
import logging
from typing import Optional

import stripe

from .exceptions import WebhookAuthenticationError
from .models import BillingEvent

logger = logging.getLogger("billing")


class StripeWebhookVerifier:
    """Checks a delivery's signature and turns the raw body into a :class:`BillingEvent`."""

    def __init__(self, secret: str, *, tolerance: int = 300) -> None:
        if not secret:
            raise ValueError("webhook secret must be provided")
        self._secret = secret
        self._tolerance = tolerance

    def verify(self, payload: bytes, signature: Optional[str]) -> BillingEvent:
        """Verify ``payload`` exactly as received; never re-serialize it first."""

        if not signature:
            raise WebhookAuthenticationError(message="Missing Stripe-Signature header")

        try:
            stripe.Webhook.construct_event(payload, signature, self._secret, tolerance=self._tolerance)
        except stripe.SignatureVerificationError as exc:
            logger.warning("Webhook signature verification failed: %s", exc)
            raise WebhookAuthenticationError() from exc
        except ValueError as exc:
            logger.warning("Webhook payload could not be parsed: %s", exc)
            raise WebhookAuthenticationError(message="Invalid webhook payload") from exc

        body = json.loads(payload)
        if not isinstance(body, dict) or not body.get("id") or not body.get("type"):
            raise WebhookAuthenticationError(message="Invalid webhook payload")

        data = body.get("data")
        data_object = data.get("object") if isinstance(data, dict) else None
        return BillingEvent(
            event_id=str(body["id"]),
            event_type=str(body["type"]),
            data=data_object if isinstance(data_object, dict) else {},
        )


__all__ = ["StripeWebhookVerifier"]
