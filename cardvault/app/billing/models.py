"""Domain models for the billing system."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..entitlements.models import SubscriptionStatus, Tier


class BillingEventType(str, Enum):
    """Webhook event types that the application reacts to."""

    CHECKOUT_COMPLETED = "checkout.session.completed"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"


class TransitionOutcome(str, Enum):
    """What a webhook handler did with an event."""

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    NO_MATCH = "no_match"
    SKIPPED = "skipped"


class BillingEvent(BaseModel):
    """Verified webhook event; ``data`` is the event's ``data.object``."""

    event_id: str
    event_type: str
    data: Dict[str, object] = Field(default_factory=dict)
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def customer_ref(self) -> Optional[str]:
        value = self.data.get("customer")
        if isinstance(value, dict):
            value = value.get("id")
        return str(value) if value else None


class TransitionResult(BaseModel):
    """Result of applying a single webhook event."""

    event_type: str
    outcome: TransitionOutcome
    customer_ref: Optional[str] = None
    user_id: Optional[str] = None
    tier: Optional[Tier] = None
    status: Optional[SubscriptionStatus] = None

    model_config = ConfigDict(frozen=True)


class SubscriptionActivation(BaseModel):
    """Everything needed to record a completed checkout."""

    user_id: str
    customer_ref: Optional[str] = None
    subscription_ref: str
    price_ref: Optional[str] = None
    tier: Tier

    model_config = ConfigDict(frozen=True)


class UserStateUpdate(BaseModel):
    """Last-write-wins update applied to a user's subscription columns.

    ``tier`` and ``provider_status`` are left untouched when ``None``.
    """

    status: SubscriptionStatus
    tier: Optional[Tier] = None
    provider_status: Optional[str] = None
    end_subscription: bool = False

    model_config = ConfigDict(frozen=True)


class BillingContact(BaseModel):
    """Recipient details for billing notifications."""

    user_id: str
    email: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class UserBillingProfile(BaseModel):
    """Subscription columns and usage counters of a user record."""

    user_id: str
    email: Optional[str] = None
    tier: Tier = Tier.FREE
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    customer_ref: Optional[str] = None
    subscription_ref: Optional[str] = None
    provider_status: Optional[str] = None
    subscription_end_date: Optional[datetime] = None
    scans_used: int = 0
    ebay_listings_used: int = 0

    model_config = ConfigDict(frozen=True)


class SubscriptionRecord(BaseModel):
    """Row of the append-only subscription history."""

    id: Optional[int] = None
    user_id: str
    customer_ref: Optional[str] = None
    subscription_ref: str
    price_ref: Optional[str] = None
    plan_name: str
    status: str = SubscriptionStatus.ACTIVE.value
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)


class SubscriptionOverview(BaseModel):
    """Latest subscription record alongside the user's live state."""

    subscription: Optional[SubscriptionRecord] = None
    tier: Tier = Tier.FREE
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE

    model_config = ConfigDict(frozen=True)


class CheckoutSession(BaseModel):
    """Hosted checkout session created with the billing provider."""

    session_id: str
    url: str

    model_config = ConfigDict(frozen=True)


class PortalSession(BaseModel):
    """Hosted billing-management portal session."""

    url: str

    model_config = ConfigDict(frozen=True)


class BillingAuditEventType(str, Enum):
    """Audit event categories emitted by the billing subsystem."""

    SUBSCRIPTION_ACTIVATED = "subscription_activated"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    SUBSCRIPTION_DOWNGRADED = "subscription_downgraded"
    SUBSCRIPTION_CANCELED = "subscription_canceled"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_RECOVERED = "payment_recovered"
    USAGE_RESET = "usage_reset"


class BillingAuditEvent(BaseModel):
    """Structured audit event for analytics and notifications."""

    event_type: BillingAuditEventType
    customer_ref: Optional[str] = None
    actor_id: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)
