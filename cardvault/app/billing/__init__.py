"""Billing domain: subscription reconciliation and provider sessions."""

from .exceptions import BillingProviderError, WebhookAuthenticationError
from .models import (
    BillingAuditEvent,
    BillingAuditEventType,
    BillingContact,
    BillingEvent,
    BillingEventType,
    CheckoutSession,
    PortalSession,
    SubscriptionActivation,
    SubscriptionOverview,
    SubscriptionRecord,
    TransitionOutcome,
    TransitionResult,
    UserBillingProfile,
    UserStateUpdate,
)
from .reconciler import WebhookHandler, WebhookReconciler
from .service import (
    BillingEventLogger,
    BillingRepository,
    BillingService,
    DowngradeNotifier,
    PaymentProvider,
)
from .webhooks import StripeWebhookVerifier

__all__ = [
    "BillingAuditEvent",
    "BillingAuditEventType",
    "BillingContact",
    "BillingEvent",
    "BillingEventLogger",
    "BillingEventType",
    "BillingProviderError",
    "BillingRepository",
    "BillingService",
    "CheckoutSession",
    "DowngradeNotifier",
    "PaymentProvider",
    "PortalSession",
    "StripeWebhookVerifier",
    "SubscriptionActivation",
    "SubscriptionOverview",
    "SubscriptionRecord",
    "TransitionOutcome",
    "TransitionResult",
    "UserBillingProfile",
    "UserStateUpdate",
    "WebhookAuthenticationError",
    "WebhookHandler",
    "WebhookReconciler",
]
