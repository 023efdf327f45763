"""Resolution of tiers, plans and quota limits against the plan catalog."""
from __future__ import annotations

from typing import List, Mapping, Optional, Tuple, Union

from .catalog import FREE_LIMITS, PLAN_CATALOG, TIER_PLAN_IDS, PlanDefinition
from .models import QuotaLimits, Tier, UsageSummary

# First substring match wins; legacy families map forward.
_PLAN_FAMILY_TIERS: Tuple[Tuple[str, Tier], ...] = (
    ("dealer", Tier.DEALER),
    ("power", Tier.POWER),
    ("premium", Tier.DEALER),
    ("pro", Tier.POWER),
    ("starter", Tier.STARTER),
)


def tier_for_plan_id(plan_id: str) -> Tier:
    """Map a plan id onto the tier stored for its subscribers."""

    for family, tier in _PLAN_FAMILY_TIERS:
        if family in plan_id:
            return tier
    return Tier.FREE


class EntitlementResolver:
    """Maps tiers to quota limits and billing price references to tiers."""

    def __init__(self, catalog: Mapping[str, PlanDefinition] = PLAN_CATALOG) -> None:
        self._catalog = catalog

    def plan_for(self, tier_or_plan_id: Union[Tier, str, None]) -> Optional[PlanDefinition]:
        if not tier_or_plan_id:
            return None
        # str() of a Tier member is "Tier.DEALER", not its value.
        key = tier_or_plan_id.value if isinstance(tier_or_plan_id, Tier) else str(tier_or_plan_id)
        plan = self._catalog.get(key)
        if plan is not None:
            return plan
        try:
            tier = Tier(key.strip().lower())
        except ValueError:
            return None
        plan_id = TIER_PLAN_IDS.get(tier)
        return self._catalog.get(plan_id) if plan_id else None

    def limits_for(self, tier_or_plan_id: Union[Tier, str, None]) -> QuotaLimits:
        """Return limits for a plan id or bare tier name, defaulting to free."""

        plan = self.plan_for(tier_or_plan_id)
        if plan is None:
            free_plan = self._catalog.get(TIER_PLAN_IDS[Tier.FREE])
            return free_plan.limits if free_plan else FREE_LIMITS
        return plan.limits

    def plan_for_price_ref(self, price_ref: Optional[str]) -> Optional[PlanDefinition]:
        if not price_ref:
            return None
        for plan in self._catalog.values():
            if plan.price_ref == price_ref:
                return plan
        return None

    def tier_for_price_ref(self, price_ref: Optional[str]) -> Tier:
        """Resolve a billing price reference to a tier; unknown prices are free."""

        plan = self.plan_for_price_ref(price_ref)
        if plan is None:
            return Tier.FREE
        return tier_for_plan_id(plan.id)

    def active_plans(self) -> List[PlanDefinition]:
        """Plans offered to new signups."""

        return [
            plan
            for plan_id, plan in self._catalog.items()
            if not plan.legacy and plan_id != TIER_PLAN_IDS[Tier.FREE]
        ]

    def usage_summary(
        self,
        tier: Union[Tier, str, None],
        *,
        scans_used: int = 0,
        ebay_listings_used: int = 0,
    ) -> UsageSummary:
        resolved_tier = Tier.parse(tier) if tier else Tier.FREE
        limits = self.limits_for(resolved_tier)
        scans_used = max(int(scans_used or 0), 0)
        ebay_listings_used = max(int(ebay_listings_used or 0), 0)
        return UsageSummary(
            tier=resolved_tier,
            scan_limit=limits.scan_limit,
            scans_used=scans_used,
            scans_remaining=max(0, limits.scan_limit - scans_used),
            ebay_listings_limit=limits.ebay_listings_limit,
            ebay_listings_used=ebay_listings_used,
            ebay_listings_remaining=max(0, limits.ebay_listings_limit - ebay_listings_used),
            showcase_limit=limits.showcase_limit,
            bulk_scan_limit=limits.bulk_scan_limit,
        )
