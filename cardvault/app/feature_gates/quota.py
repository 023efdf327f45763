"""Usage quota evaluation for scans, eBay listings and bulk scans."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from ..entitlements.models import UsageSummary
from .exceptions import FeatureGateError


class QuotaResource(str, Enum):
    """Metered resources gated by plan limits."""

    SCANS = "scans"
    EBAY_LISTINGS = "ebay_listings"
    BULK_SCAN = "bulk_scan"


_ERROR_CODES = {
    QuotaResource.SCANS: "scan_limit_reached",
    QuotaResource.EBAY_LISTINGS: "ebay_listing_limit_reached",
    QuotaResource.BULK_SCAN: "bulk_scan_limit_exceeded",
}


@dataclass(frozen=True)
class QuotaEvaluation:
    """Represents the outcome of a quota check."""

    resource: QuotaResource
    limit: int
    used: int
    requested: int
    remaining: int
    allowed: bool

    def to_dict(self) -> dict[str, str | int | bool]:
        """Serialize the evaluation for logging or API responses."""

        return {
            "resource": self.resource.value,
            "limit": self.limit,
            "used": self.used,
            "requested": self.requested,
            "remaining": self.remaining,
            "allowed": self.allowed,
        }


def evaluate_quota(
    *,
    resource: QuotaResource,
    limit: int,
    used: int = 0,
    requested: int = 1,
) -> QuotaEvaluation:
    """Determine whether ``requested`` units fit under ``limit``.

    Bulk scans are a per-batch cap, so ``used`` is ignored for them; the
    monthly resources compare ``used + requested`` against the limit.
    """

    requested = max(requested, 0)
    used = max(used, 0)
    if resource == QuotaResource.BULK_SCAN:
        used = 0
        allowed = requested <= limit
    else:
        allowed = used + requested <= limit

    return QuotaEvaluation(
        resource=resource,
        limit=limit,
        used=used,
        requested=requested,
        remaining=max(0, limit - used),
        allowed=allowed,
    )


def _limit_and_used(summary: UsageSummary, resource: QuotaResource) -> Tuple[int, int]:
    if resource == QuotaResource.SCANS:
        return summary.scan_limit, summary.scans_used
    if resource == QuotaResource.EBAY_LISTINGS:
        return summary.ebay_listings_limit, summary.ebay_listings_used
    return summary.bulk_scan_limit, 0


def evaluate_usage(
    summary: UsageSummary,
    resource: QuotaResource,
    *,
    requested: int = 1,
) -> QuotaEvaluation:
    limit, used = _limit_and_used(summary, resource)
    return evaluate_quota(resource=resource, limit=limit, used=used, requested=requested)


def assert_quota(
    summary: UsageSummary,
    resource: QuotaResource,
    *,
    requested: int = 1,
) -> QuotaEvaluation:
    """Raise when the requested usage exceeds the plan limit."""

    evaluation = evaluate_usage(summary, resource, requested=requested)
    if not evaluation.allowed:
        raise FeatureGateError(
            code=_ERROR_CODES[resource],
            message=(
                f"You've reached your {summary.tier.value} plan limit of "
                f"{evaluation.limit} for {resource.value.replace('_', ' ')}."
            ),
            detail={
                "tier": summary.tier.value,
                "limit": evaluation.limit,
                "used": evaluation.used,
                "requested": evaluation.requested,
            },
        )
    return evaluation
