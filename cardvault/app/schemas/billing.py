"""API schemas for billing endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..billing import CheckoutSession, SubscriptionOverview, SubscriptionRecord
from ..entitlements.catalog import PlanDefinition
from ..entitlements.models import BillingInterval, SubscriptionStatus, Tier, UsageSummary
from ..feature_gates import QuotaEvaluation, QuotaResource


class PlanLimitsOut(BaseModel):
    scans: int
    ebay_listings: int = Field(alias="ebayListings")
    showcases: int
    bulk_scan: int = Field(alias="bulkScan")

    model_config = ConfigDict(populate_by_name=True)


class PlanOut(BaseModel):
    id: str
    name: str
    tier: Tier
    price: float
    interval: BillingInterval
    price_id: Optional[str] = Field(alias="priceId", default=None)
    features: List[str] = Field(default_factory=list)
    limits: PlanLimitsOut

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_plan(cls, plan: PlanDefinition) -> "PlanOut":
        return cls(
            id=plan.id,
            name=plan.name,
            tier=plan.tier,
            price=plan.price,
            interval=plan.interval,
            price_id=plan.price_ref,
            features=list(plan.features),
            limits=PlanLimitsOut(
                scans=plan.limits.scan_limit,
                ebay_listings=plan.limits.ebay_listings_limit,
                showcases=plan.limits.showcase_limit,
                bulk_scan=plan.limits.bulk_scan_limit,
            ),
        )


class PlanListResponse(BaseModel):
    plans: List[PlanOut]


class CheckoutSessionRequest(BaseModel):
    price_id: str = Field(alias="priceId", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class CheckoutSessionResponse(BaseModel):
    session_id: str = Field(alias="sessionId")
    url: str

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_checkout(cls, session: CheckoutSession) -> "CheckoutSessionResponse":
        return cls(session_id=session.session_id, url=session.url)


class PortalSessionResponse(BaseModel):
    url: str


class SubscriptionOut(BaseModel):
    id: Optional[int] = None
    stripe_customer_id: Optional[str] = Field(alias="stripeCustomerId", default=None)
    stripe_subscription_id: str = Field(alias="stripeSubscriptionId")
    stripe_price_id: Optional[str] = Field(alias="stripePriceId", default=None)
    plan_name: str = Field(alias="planName")
    status: str
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_record(cls, record: SubscriptionRecord) -> "SubscriptionOut":
        return cls(
            id=record.id,
            stripe_customer_id=record.customer_ref,
            stripe_subscription_id=record.subscription_ref,
            stripe_price_id=record.price_ref,
            plan_name=record.plan_name,
            status=record.status,
            created_at=record.created_at,
        )


class SubscriptionResponse(BaseModel):
    subscription: Optional[SubscriptionOut] = None
    plan: Tier
    status: SubscriptionStatus

    @classmethod
    def from_overview(cls, overview: SubscriptionOverview) -> "SubscriptionResponse":
        subscription = SubscriptionOut.from_record(overview.subscription) if overview.subscription else None
        return cls(subscription=subscription, plan=overview.tier, status=overview.status)


class UsageResponse(BaseModel):
    """Usage summary plus the flat limit/used/remaining trio older clients read."""

    tier: Tier
    scan_limit: int = Field(alias="scanLimit")
    scans_used: int = Field(alias="scansUsed")
    scans_remaining: int = Field(alias="scansRemaining")
    ebay_listings_limit: int = Field(alias="ebayListingsLimit")
    ebay_listings_used: int = Field(alias="ebayListingsUsed")
    ebay_listings_remaining: int = Field(alias="ebayListingsRemaining")
    showcase_limit: int = Field(alias="showcaseLimit")
    bulk_scan_limit: int = Field(alias="bulkScanLimit")
    can_scan: bool = Field(alias="canScan")
    can_list_on_ebay: bool = Field(alias="canListOnEbay")
    limit: int
    used: int
    remaining: int

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_summary(cls, summary: UsageSummary) -> "UsageResponse":
        return cls(
            tier=summary.tier,
            scan_limit=summary.scan_limit,
            scans_used=summary.scans_used,
            scans_remaining=summary.scans_remaining,
            ebay_listings_limit=summary.ebay_listings_limit,
            ebay_listings_used=summary.ebay_listings_used,
            ebay_listings_remaining=summary.ebay_listings_remaining,
            showcase_limit=summary.showcase_limit,
            bulk_scan_limit=summary.bulk_scan_limit,
            can_scan=summary.can_scan,
            can_list_on_ebay=summary.can_list_on_ebay,
            limit=summary.scan_limit,
            used=summary.scans_used,
            remaining=summary.scans_remaining,
        )


class UsageCheckRequest(BaseModel):
    resource: QuotaResource
    quantity: int = Field(default=1, ge=1)


class UsageCheckResponse(BaseModel):
    resource: QuotaResource
    limit: int
    used: int
    requested: int
    remaining: int
    allowed: bool

    @classmethod
    def from_evaluation(cls, evaluation: QuotaEvaluation) -> "UsageCheckResponse":
        return cls(
            resource=evaluation.resource,
            limit=evaluation.limit,
            used=evaluation.used,
            requested=evaluation.requested,
            remaining=evaluation.remaining,
            allowed=evaluation.allowed,
        )


class WebhookAck(BaseModel):
    received: bool = True
    outcome: str
