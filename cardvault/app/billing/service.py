"""Core service coordinating billing flows with external providers."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

from ..entitlements.models import UsageSummary
from ..entitlements.service import EntitlementResolver
from .models import (
    BillingAuditEvent,
    BillingAuditEventType,
    BillingContact,
    CheckoutSession,
    PortalSession,
    SubscriptionActivation,
    SubscriptionOverview,
    SubscriptionRecord,
    UserBillingProfile,
    UserStateUpdate,
)

logger = logging.getLogger("billing")


class PaymentProvider(Protocol):
    """External payment processor integration."""

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
        """Create a hosted subscription checkout session."""

    def create_billing_portal_session(self, *, customer_ref: str, return_url: str) -> PortalSession:
        """Create a provider managed billing portal session."""

    def get_subscription_price_ref(self, subscription_ref: str) -> Optional[str]:
        """Return the price reference of the subscription's first item."""


class DowngradeNotifier(Protocol):
    """Tells users their plan was downgraded."""

    def notify_downgrade(self, contact: BillingContact, provider_status: str) -> None:
        ...


class BillingEventLogger(Protocol):
    """Captures structured billing audit events."""

    def log(self, event: BillingAuditEvent) -> None:
        ...


class BillingRepository(Protocol):
    """Persistence operations required by the billing subsystem.

    Every method is its own transaction.
    """

    def activate_subscription(self, activation: SubscriptionActivation) -> bool:
        """Apply a checkout activation; ``False`` when it was already recorded."""

    def apply_user_state(self, customer_ref: str, update: UserStateUpdate) -> Optional[BillingContact]:
        """Update the user owning ``customer_ref``; ``None`` when nobody matches."""

    def get_billing_profile(self, user_id: str) -> Optional[UserBillingProfile]:
        ...

    def get_latest_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        ...

    def reset_monthly_usage(self) -> int:
        ...


@dataclass
class BillingService:
    """Checkout, portal and read-side operations for subscriptions."""

    repository: BillingRepository
    provider: PaymentProvider
    event_logger: BillingEventLogger
    resolver: EntitlementResolver = field(default_factory=EntitlementResolver)
    frontend_url: str = "http://localhost:5173"

    def _require_profile(self, user_id: str) -> UserBillingProfile:
        profile = self.repository.get_billing_profile(user_id)
        if profile is None:
            raise LookupError("User not found")
        return profile

    def create_checkout_session(self, *, user_id: str, price_ref: str) -> CheckoutSession:
        plan = self.resolver.plan_for_price_ref(price_ref)
        if plan is None or plan.legacy:
            raise ValueError("Unknown or unavailable price")

        profile = self._require_profile(user_id)
        base_url = self.frontend_url.rstrip("/")
        session = self.provider.create_checkout_session(
            customer_email=profile.email,
            price_ref=price_ref,
            client_reference_id=str(user_id),
            success_url=f"{base_url}/dashboard?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{base_url}/pricing",
            metadata={"userId": str(user_id)},
        )
        logger.info("Checkout session %s created for user=%s plan=%s", session.session_id, user_id, plan.id)
        return session

    def create_portal_session(self, *, user_id: str) -> PortalSession:
        profile = self._require_profile(user_id)
        if not profile.customer_ref:
            raise LookupError("No subscription found")
        return self.provider.create_billing_portal_session(
            customer_ref=profile.customer_ref,
            return_url=f"{self.frontend_url.rstrip('/')}/dashboard",
        )

    def get_subscription_overview(self, user_id: str) -> SubscriptionOverview:
        profile = self.repository.get_billing_profile(user_id)
        subscription = self.repository.get_latest_subscription(user_id)
        if profile is None:
            return SubscriptionOverview(subscription=subscription)
        return SubscriptionOverview(subscription=subscription, tier=profile.tier, status=profile.status)

    def get_usage(self, user_id: str) -> UsageSummary:
        profile = self._require_profile(user_id)
        summary = self.resolver.usage_summary(
            profile.tier,
            scans_used=profile.scans_used,
            ebay_listings_used=profile.ebay_listings_used,
        )
        logger.debug(
            "Limits for user %s (%s): scans %s/%s, listings %s/%s",
            user_id,
            summary.tier.value,
            summary.scans_used,
            summary.scan_limit,
            summary.ebay_listings_used,
            summary.ebay_listings_limit,
        )
        return summary

    def reset_monthly_usage(self) -> int:
        """Zero every user's monthly counters; tiers are never touched."""

        reset = self.repository.reset_monthly_usage()
        self.event_logger.log(
            BillingAuditEvent(
                event_type=BillingAuditEventType.USAGE_RESET,
                metadata={"users": str(reset)},
            )
        )
        return reset


__all__ = [
    "BillingEventLogger",
    "BillingRepository",
    "BillingService",
    "DowngradeNotifier",
    "PaymentProvider",
]
