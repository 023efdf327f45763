"""Static catalog of subscription plans and their quota limits."""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .models import UNLIMITED, BillingInterval, QuotaLimits, Tier


@dataclass(frozen=True)
class PlanDefinition:
    """Describes a billable plan and the limits it grants."""

    id: str
    name: str
    tier: Tier
    price: float
    interval: BillingInterval
    limits: QuotaLimits
    price_ref: Optional[str] = None
    features: Tuple[str, ...] = ()
    legacy: bool = False


FREE_LIMITS = QuotaLimits(
    scan_limit=100,
    ebay_listings_limit=50,
    showcase_limit=1,
    bulk_scan_limit=10,
)

POWER_LIMITS = QuotaLimits(
    scan_limit=500,
    ebay_listings_limit=150,
    showcase_limit=3,
    bulk_scan_limit=25,
)

DEALER_LIMITS = QuotaLimits(
    scan_limit=1500,
    ebay_listings_limit=UNLIMITED,
    showcase_limit=UNLIMITED,
    bulk_scan_limit=100,
)

LEGACY_LIMITS = QuotaLimits(
    scan_limit=UNLIMITED,
    ebay_listings_limit=UNLIMITED,
    showcase_limit=UNLIMITED,
    bulk_scan_limit=100,
)

_POWER_FEATURES = (
    "500 AI scans/month",
    "150 eBay listings/month",
    "3 public showcases",
    "Bulk scan: up to 25 cards",
    "Priority support",
)

_DEALER_FEATURES = (
    "1,500 AI scans/month",
    "Unlimited eBay listings",
    "Unlimited public showcases",
    "Bulk scan: up to 100 cards",
    "Priority support",
)

_LEGACY_FEATURES = (
    "Legacy Plan - Unlimited Access",
    "Unlimited scans",
    "Unlimited eBay listings",
    "Unlimited showcases",
)


def _legacy_plan(
    plan_id: str,
    name: str,
    tier: Tier,
    price: float,
    interval: BillingInterval,
    price_ref: str,
) -> PlanDefinition:
    return PlanDefinition(
        id=plan_id,
        name=name,
        tier=tier,
        price=price,
        interval=interval,
        limits=LEGACY_LIMITS,
        price_ref=price_ref,
        features=_LEGACY_FEATURES,
        legacy=True,
    )


_PLANS: Tuple[PlanDefinition, ...] = (
    PlanDefinition(
        id="free",
        name="Free",
        tier=Tier.FREE,
        price=0,
        interval=BillingInterval.MONTHLY,
        limits=FREE_LIMITS,
        features=(
            "100 AI scans/month",
            "50 eBay listings/month",
            "1 public showcase",
            "Bulk scan: up to 10 cards",
            "All features included",
        ),
    ),
    PlanDefinition(
        id="power_monthly",
        name="Power",
        tier=Tier.POWER,
        price=9.99,
        interval=BillingInterval.MONTHLY,
        limits=POWER_LIMITS,
        price_ref="price_1SX6ULQ20P462xlWl3x3Aazm",
        features=_POWER_FEATURES,
    ),
    PlanDefinition(
        id="power_annual",
        name="Power",
        tier=Tier.POWER,
        price=99.99,
        interval=BillingInterval.ANNUAL,
        limits=POWER_LIMITS,
        price_ref="price_1SX6VfQ20P462xlWCNJ6k8yl",
        features=_POWER_FEATURES + ("Save 17%",),
    ),
    PlanDefinition(
        id="dealer_monthly",
        name="Dealer",
        tier=Tier.DEALER,
        price=19.99,
        interval=BillingInterval.MONTHLY,
        limits=DEALER_LIMITS,
        price_ref="price_1SX6XWQ20P462xlWr9kK6ViV",
        features=_DEALER_FEATURES,
    ),
    PlanDefinition(
        id="dealer_annual",
        name="Dealer",
        tier=Tier.DEALER,
        price=199.99,
        interval=BillingInterval.ANNUAL,
        limits=DEALER_LIMITS,
        price_ref="price_1SX6YDQ20P462xlWKmFVGZYG",
        features=_DEALER_FEATURES + ("Save 17%",),
    ),
    _legacy_plan("starter_monthly", "Starter", Tier.STARTER, 2.99, BillingInterval.MONTHLY, "price_1SSMC5Q20P462xlWoXIXpI46"),
    _legacy_plan("starter_annual", "Starter", Tier.STARTER, 29.99, BillingInterval.ANNUAL, "price_1SSMCwQ20P462xlWwbms6UBm"),
    _legacy_plan("pro_monthly", "Pro", Tier.PRO, 9.99, BillingInterval.MONTHLY, "price_1SSMDfQ20P462xlWHT8hRT8W"),
    _legacy_plan("pro_annual", "Pro", Tier.PRO, 99.99, BillingInterval.ANNUAL, "price_1SSMEKQ20P462xlWCVlEKZ5t"),
    _legacy_plan("premium_monthly", "Premium", Tier.PREMIUM, 19.99, BillingInterval.MONTHLY, "price_1SSMF7Q20P462xlW75jxiZUh"),
    _legacy_plan("premium_annual", "Premium", Tier.PREMIUM, 199.99, BillingInterval.ANNUAL, "price_1SSMFoQ20P462xlWsi4MYRYB"),
)

PLAN_CATALOG: Mapping[str, PlanDefinition] = MappingProxyType({plan.id: plan for plan in _PLANS})

# Bare tier names resolve to their canonical monthly plan.
TIER_PLAN_IDS: Mapping[Tier, str] = MappingProxyType(
    {
        Tier.FREE: "free",
        Tier.POWER: "power_monthly",
        Tier.DEALER: "dealer_monthly",
        Tier.STARTER: "starter_monthly",
        Tier.PRO: "pro_monthly",
        Tier.PREMIUM: "premium_monthly",
    }
)


def get_plan_definition(plan_id: str) -> PlanDefinition:
    """Return a plan definition, raising if unsupported."""

    try:
        return PLAN_CATALOG[plan_id]
    except KeyError as exc:
        raise KeyError(f"Unknown plan id: {plan_id}") from exc
