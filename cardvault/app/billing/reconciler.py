"""Webhook reconciliation: named handlers applying billing events to users.

Each handler owns one event type and performs last-write-wins updates keyed by
the billing customer reference, so redelivered or reordered events converge.
Checkout activations additionally dedupe on the subscription reference.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Mapping, Optional, Protocol

from ..entitlements.models import SubscriptionStatus, Tier
from ..entitlements.service import EntitlementResolver
from .models import (
    BillingAuditEvent,
    BillingAuditEventType,
    BillingContact,
    BillingEvent,
    BillingEventType,
    SubscriptionActivation,
    TransitionOutcome,
    TransitionResult,
    UserStateUpdate,
)
from .service import BillingEventLogger, BillingRepository, DowngradeNotifier, PaymentProvider

logger = logging.getLogger("billing")

# Provider statuses that end paid access immediately.
DOWNGRADE_STATUSES = frozenset({"past_due", "unpaid", "canceled", "cancelled"})


class WebhookHandler(Protocol):
    """Applies one billing event type to local state."""

    event_type: str

    def apply(self, event: BillingEvent) -> TransitionResult:
        ...


def _reference(value: object) -> Optional[str]:
    if isinstance(value, Mapping):
        value = value.get("id")
    return str(value) if value else None


def first_price_ref(subscription: Mapping[str, object]) -> Optional[str]:
    """Price id of the first subscription item, if present."""

    items = subscription.get("items")
    if not isinstance(items, Mapping):
        return None
    data = items.get("data")
    if not isinstance(data, list) or not data:
        return None
    first = data[0]
    if not isinstance(first, Mapping):
        return None
    return _reference(first.get("price"))


class _StateHandler:
    """Shared plumbing for handlers that update a user by customer reference."""

    event_type = ""

    def __init__(self, repository: BillingRepository, event_logger: BillingEventLogger) -> None:
        self._repository = repository
        self._event_logger = event_logger

    def _skip(self, event: BillingEvent, reason: str) -> TransitionResult:
        logger.warning("Skipping %s event %s: %s", event.event_type, event.event_id, reason)
        return TransitionResult(event_type=event.event_type, outcome=TransitionOutcome.SKIPPED)

    def _apply_state(
        self,
        event: BillingEvent,
        update: UserStateUpdate,
        audit_type: BillingAuditEventType,
    ) -> tuple[TransitionResult, Optional[BillingContact]]:
        customer_ref = event.customer_ref
        if not customer_ref:
            return self._skip(event, "missing customer reference"), None

        contact = self._repository.apply_user_state(customer_ref, update)
        if contact is None:
            logger.warning(
                "No user matches customer %s for %s event %s",
                customer_ref,
                event.event_type,
                event.event_id,
            )
            result = TransitionResult(
                event_type=event.event_type,
                outcome=TransitionOutcome.NO_MATCH,
                customer_ref=customer_ref,
            )
            return result, None

        metadata: Dict[str, str] = {"event_id": event.event_id, "status": update.status.value}
        if update.tier is not None:
            metadata["tier"] = update.tier.value
        if update.provider_status:
            metadata["provider_status"] = update.provider_status
        self._event_logger.log(
            BillingAuditEvent(
                event_type=audit_type,
                customer_ref=customer_ref,
                actor_id=contact.user_id,
                metadata=metadata,
            )
        )
        result = TransitionResult(
            event_type=event.event_type,
            outcome=TransitionOutcome.APPLIED,
            customer_ref=customer_ref,
            user_id=contact.user_id,
            tier=update.tier,
            status=update.status,
        )
        return result, contact


class CheckoutCompletedHandler(_StateHandler):
    """Activates a paid tier once a hosted checkout completes."""

    event_type = BillingEventType.CHECKOUT_COMPLETED.value

    def __init__(
        self,
        repository: BillingRepository,
        event_logger: BillingEventLogger,
        *,
        provider: PaymentProvider,
        resolver: EntitlementResolver,
    ) -> None:
        super().__init__(repository, event_logger)
        self._provider = provider
        self._resolver = resolver

    def apply(self, event: BillingEvent) -> TransitionResult:
        user_id = _reference(event.data.get("client_reference_id"))
        subscription_ref = _reference(event.data.get("subscription"))
        customer_ref = event.customer_ref
        if not user_id or not subscription_ref:
            return self._skip(event, "missing user or subscription reference")

        price_ref = self._provider.get_subscription_price_ref(subscription_ref)
        tier = self._resolver.tier_for_price_ref(price_ref)
        activation = SubscriptionActivation(
            user_id=user_id,
            customer_ref=customer_ref,
            subscription_ref=subscription_ref,
            price_ref=price_ref,
            tier=tier,
        )

        try:
            created = self._repository.activate_subscription(activation)
        except LookupError:
            logger.warning("Checkout %s references unknown user %s", event.event_id, user_id)
            return TransitionResult(
                event_type=event.event_type,
                outcome=TransitionOutcome.NO_MATCH,
                customer_ref=customer_ref,
                user_id=user_id,
            )

        if not created:
            logger.info("Subscription %s already activated; ignoring redelivery", subscription_ref)
            return TransitionResult(
                event_type=event.event_type,
                outcome=TransitionOutcome.DUPLICATE,
                customer_ref=customer_ref,
                user_id=user_id,
            )

        self._event_logger.log(
            BillingAuditEvent(
                event_type=BillingAuditEventType.SUBSCRIPTION_ACTIVATED,
                customer_ref=customer_ref,
                actor_id=user_id,
                metadata={
                    "event_id": event.event_id,
                    "subscription": subscription_ref,
                    "price": price_ref or "",
                    "tier": tier.value,
                },
            )
        )
        logger.info("User %s upgraded to %s", user_id, tier.value)
        return TransitionResult(
            event_type=event.event_type,
            outcome=TransitionOutcome.APPLIED,
            customer_ref=customer_ref,
            user_id=user_id,
            tier=tier,
            status=SubscriptionStatus.ACTIVE,
        )


class SubscriptionUpdatedHandler(_StateHandler):
    """Follows plan changes and downgrades unhealthy subscriptions."""

    event_type = BillingEventType.SUBSCRIPTION_UPDATED.value

    def __init__(
        self,
        repository: BillingRepository,
        event_logger: BillingEventLogger,
        *,
        resolver: EntitlementResolver,
        notifier: DowngradeNotifier,
    ) -> None:
        super().__init__(repository, event_logger)
        self._resolver = resolver
        self._notifier = notifier

    def apply(self, event: BillingEvent) -> TransitionResult:
        provider_status = str(event.data.get("status") or "").lower()

        if provider_status in DOWNGRADE_STATUSES:
            update = UserStateUpdate(
                status=SubscriptionStatus.CANCELLED,
                tier=Tier.FREE,
                provider_status=provider_status,
                end_subscription=True,
            )
            result, contact = self._apply_state(event, update, BillingAuditEventType.SUBSCRIPTION_DOWNGRADED)
            if contact is not None:
                logger.info("Customer %s downgraded to free due to %s status", result.customer_ref, provider_status)
                self._notify(contact, provider_status)
            return result

        tier = self._resolver.tier_for_price_ref(first_price_ref(event.data))
        update = UserStateUpdate(
            status=SubscriptionStatus.ACTIVE,
            tier=tier,
            provider_status=provider_status or None,
        )
        result, _ = self._apply_state(event, update, BillingAuditEventType.SUBSCRIPTION_UPDATED)
        return result

    def _notify(self, contact: BillingContact, provider_status: str) -> None:
        try:
            self._notifier.notify_downgrade(contact, provider_status)
        except Exception:
            logger.exception(
                "Failed to send downgrade notification",
                extra={"user_id": contact.user_id, "provider_status": provider_status},
            )


class SubscriptionDeletedHandler(_StateHandler):
    event_type = BillingEventType.SUBSCRIPTION_DELETED.value

    def apply(self, event: BillingEvent) -> TransitionResult:
        update = UserStateUpdate(
            status=SubscriptionStatus.CANCELLED,
            tier=Tier.FREE,
            provider_status="canceled",
            end_subscription=True,
        )
        result, _ = self._apply_state(event, update, BillingAuditEventType.SUBSCRIPTION_CANCELED)
        return result


class InvoicePaymentSucceededHandler(_StateHandler):
    """Heals a stale past-due status after a successful retry."""

    event_type = BillingEventType.INVOICE_PAYMENT_SUCCEEDED.value

    def apply(self, event: BillingEvent) -> TransitionResult:
        update = UserStateUpdate(status=SubscriptionStatus.ACTIVE)
        result, _ = self._apply_state(event, update, BillingAuditEventType.PAYMENT_RECOVERED)
        return result


class InvoicePaymentFailedHandler(_StateHandler):
    """Marks the user past due; the provider decides when to cancel."""

    event_type = BillingEventType.INVOICE_PAYMENT_FAILED.value

    def apply(self, event: BillingEvent) -> TransitionResult:
        update = UserStateUpdate(status=SubscriptionStatus.PAST_DUE, provider_status="past_due")
        result, _ = self._apply_state(event, update, BillingAuditEventType.PAYMENT_FAILED)
        return result


class WebhookReconciler:
    """Dispatches verified events to the handler registered for their type."""

    def __init__(self, handlers: Iterable[WebhookHandler]) -> None:
        self._handlers: Dict[str, WebhookHandler] = {handler.event_type: handler for handler in handlers}

    @classmethod
    def with_default_handlers(
        cls,
        *,
        repository: BillingRepository,
        provider: PaymentProvider,
        notifier: DowngradeNotifier,
        event_logger: BillingEventLogger,
        resolver: Optional[EntitlementResolver] = None,
    ) -> "WebhookReconciler":
        resolver = resolver or EntitlementResolver()
        return cls(
            [
                CheckoutCompletedHandler(repository, event_logger, provider=provider, resolver=resolver),
                SubscriptionUpdatedHandler(repository, event_logger, resolver=resolver, notifier=notifier),
                SubscriptionDeletedHandler(repository, event_logger),
                InvoicePaymentSucceededHandler(repository, event_logger),
                InvoicePaymentFailedHandler(repository, event_logger),
            ]
        )

    @property
    def event_types(self) -> frozenset[str]:
        return frozenset(self._handlers)

    def reconcile(self, event: BillingEvent) -> TransitionResult:
        handler = self._handlers.get(event.event_type)
        if handler is None:
            logger.info("Unhandled billing event type %s (%s)", event.event_type, event.event_id)
            return TransitionResult(event_type=event.event_type, outcome=TransitionOutcome.IGNORED)

        logger.info("Processing billing event %s (%s)", event.event_type, event.event_id)
        return handler.apply(event)


__all__ = [
    "CheckoutCompletedHandler",
    "DOWNGRADE_STATUSES",
    "InvoicePaymentFailedHandler",
    "InvoicePaymentSucceededHandler",
    "SubscriptionDeletedHandler",
    "SubscriptionUpdatedHandler",
    "WebhookHandler",
    "WebhookReconciler",
    "first_price_ref",
]
