"""Application wiring for the billing service and webhook reconciler."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Callable, Dict, Optional

import stripe

from ...config import BillingConfig, load_billing_config
from ...mail import EmailConfig, EmailProvider, load_email_config, render_downgrade_email
from ..billing import (
    BillingAuditEvent,
    BillingContact,
    BillingEventLogger,
    BillingProviderError,
    BillingService,
    CheckoutSession,
    DowngradeNotifier,
    PaymentProvider,
    PortalSession,
    StripeWebhookVerifier,
    WebhookReconciler,
)
from ..billing.repository import PostgresBillingRepository


logger = logging.getLogger("billing")


class StripePaymentProvider(PaymentProvider):
    """Payment provider backed by the Stripe API."""

    def __init__(self, *, api_key: str) -> None:
        stripe.api_key = api_key

    def create_checkout_session(
        self,
        *,
        customer_email: Optional[str],
        price_ref: str,
        client_reference_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> CheckoutSession:
        try:
            session = stripe.checkout.Session.create(
                mode="subscription",
                payment_method_types=["card"],
                customer_email=customer_email or None,
                client_reference_id=client_reference_id,
                line_items=[{"price": price_ref, "quantity": 1}],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
            )
        except stripe.StripeError as exc:
            logger.exception("Stripe checkout session creation failed")
            raise BillingProviderError(message=str(exc.user_message or exc)) from exc
        return CheckoutSession(session_id=session["id"], url=session["url"])

    def create_billing_portal_session(self, *, customer_ref: str, return_url: str) -> PortalSession:
        try:
            session = stripe.billing_portal.Session.create(customer=customer_ref, return_url=return_url)
        except stripe.StripeError as exc:
            logger.exception("Stripe portal session creation failed")
            raise BillingProviderError(message=str(exc.user_message or exc)) from exc
        return PortalSession(url=session["url"])

    def get_subscription_price_ref(self, subscription_ref: str) -> Optional[str]:
        try:
            subscription = stripe.Subscription.retrieve(subscription_ref)
        except stripe.StripeError as exc:
            logger.exception("Stripe subscription lookup failed for %s", subscription_ref)
            raise BillingProviderError(message=str(exc.user_message or exc)) from exc
        try:
            return subscription["items"]["data"][0]["price"]["id"]
        except (KeyError, IndexError, TypeError):
            logger.warning("Subscription %s has no priced items", subscription_ref)
            return None


class EmailDowngradeNotifier(DowngradeNotifier):
    """Emails the user (and an optional operator copy) after a forced downgrade."""

    def __init__(self, *, provider_factory: Callable[[], EmailProvider], config: EmailConfig) -> None:
        self._provider_factory = provider_factory
        self._config = config

    def notify_downgrade(self, contact: BillingContact, provider_status: str) -> None:
        if not contact.email:
            logger.info("User %s has no email; skipping downgrade notice", contact.user_id)
            return

        provider = self._provider_factory()
        log_context = {
            **provider.describe(),
            "email_recipient": contact.email,
            "email_type": "downgrade",
            "user_id": contact.user_id,
            "provider_status": provider_status,
        }
        email = render_downgrade_email(
            contact.email,
            provider_status,
            pricing_url=self._config.pricing_url,
            cc=self._config.downgrade_cc,
        )
        provider.send(email)
        logger.info("Downgrade email dispatched", extra={**log_context, "email_event": "downgrade.dispatch.success"})


class LoggingBillingEventLogger(BillingEventLogger):
    """Simple event logger forwarding billing audit events to logging."""

    def log(self, event: BillingAuditEvent) -> None:
        logger.info(
            "Billing event %s customer=%s actor=%s metadata=%s",
            event.event_type.value,
            event.customer_ref,
            event.actor_id,
            event.metadata,
        )


@lru_cache(maxsize=1)
def get_billing_config() -> BillingConfig:
    return load_billing_config()


@lru_cache(maxsize=1)
def get_payment_provider() -> PaymentProvider:
    return StripePaymentProvider(api_key=get_billing_config().stripe_secret_key)


def _resolve_email_provider() -> EmailProvider:  # pragma: no cover
    from ...main import get_email_provider

    return get_email_provider()


@lru_cache(maxsize=1)
def get_billing_service() -> BillingService:
    return BillingService(
        repository=PostgresBillingRepository(),
        provider=get_payment_provider(),
        event_logger=LoggingBillingEventLogger(),
        frontend_url=get_billing_config().frontend_url,
    )


@lru_cache(maxsize=1)
def get_webhook_reconciler() -> WebhookReconciler:
    return WebhookReconciler.with_default_handlers(
        repository=PostgresBillingRepository(),
        provider=get_payment_provider(),
        notifier=EmailDowngradeNotifier(provider_factory=_resolve_email_provider, config=load_email_config()),
        event_logger=LoggingBillingEventLogger(),
    )


@lru_cache(maxsize=1)
def get_webhook_verifier() -> StripeWebhookVerifier:
    config = get_billing_config()
    return StripeWebhookVerifier(config.webhook_secret, tolerance=config.webhook_tolerance)


__all__ = [
    "EmailDowngradeNotifier",
    "LoggingBillingEventLogger",
    "StripePaymentProvider",
    "get_billing_service",
    "get_webhook_reconciler",
    "get_webhook_verifier",
]
