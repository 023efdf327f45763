"""Domain models for subscription tiers and usage quotas."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

# Legacy plans advertise "unlimited" usage by carrying this sentinel.
UNLIMITED = 999999


class Tier(str, Enum):
    """Entitlement level stored on the user record."""

    FREE = "free"
    POWER = "power"
    DEALER = "dealer"
    # Grandfathered tiers kept for existing subscribers.
    STARTER = "starter"
    PRO = "pro"
    PREMIUM = "premium"

    @classmethod
    def parse(cls, value: object) -> "Tier":
        """Return the tier matching ``value`` or :attr:`FREE` when unknown."""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.FREE

    @property
    def is_legacy(self) -> bool:
        return self in {Tier.STARTER, Tier.PRO, Tier.PREMIUM}


class SubscriptionStatus(str, Enum):
    """Local lifecycle status for a user's subscription."""

    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: object) -> "SubscriptionStatus":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.ACTIVE


class BillingInterval(str, Enum):
    """Supported billing frequencies."""

    MONTHLY = "month"
    ANNUAL = "year"


@dataclass(frozen=True)
class QuotaLimits:
    """Usage limits granted by a plan."""

    scan_limit: int
    ebay_listings_limit: int
    showcase_limit: int
    bulk_scan_limit: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class UsageSummary(BaseModel):
    """Read-only projection of a user's tier, counters and remaining quota."""

    tier: Tier
    scan_limit: int = Field(alias="scanLimit")
    scans_used: int = Field(alias="scansUsed", ge=0)
    scans_remaining: int = Field(alias="scansRemaining", ge=0)
    ebay_listings_limit: int = Field(alias="ebayListingsLimit")
    ebay_listings_used: int = Field(alias="ebayListingsUsed", ge=0)
    ebay_listings_remaining: int = Field(alias="ebayListingsRemaining", ge=0)
    showcase_limit: int = Field(alias="showcaseLimit")
    bulk_scan_limit: int = Field(alias="bulkScanLimit")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def can_scan(self) -> bool:
        return self.scans_remaining > 0

    @property
    def can_list_on_ebay(self) -> bool:
        return self.ebay_listings_remaining > 0
