"""Entitlements domain: plan catalog, tiers and quota resolution."""

from .catalog import PLAN_CATALOG, TIER_PLAN_IDS, PlanDefinition, get_plan_definition
from .models import (
    UNLIMITED,
    BillingInterval,
    QuotaLimits,
    SubscriptionStatus,
    Tier,
    UsageSummary,
)
from .service import EntitlementResolver, tier_for_plan_id

__all__ = [
    "PLAN_CATALOG",
    "TIER_PLAN_IDS",
    "PlanDefinition",
    "get_plan_definition",
    "UNLIMITED",
    "BillingInterval",
    "QuotaLimits",
    "SubscriptionStatus",
    "Tier",
    "UsageSummary",
    "EntitlementResolver",
    "tier_for_plan_id",
]
