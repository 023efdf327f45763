"""Unit tests for checkout, portal and usage flows."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from cardvault.app.billing import (
    BillingAuditEvent,
    BillingAuditEventType,
    BillingContact,
    BillingEventLogger,
    BillingProviderError,
    BillingRepository,
    BillingService,
    CheckoutSession,
    PaymentProvider,
    PortalSession,
    SubscriptionActivation,
    SubscriptionRecord,
    UserBillingProfile,
    UserStateUpdate,
)
from cardvault.app.entitlements import SubscriptionStatus, Tier

POWER_ANNUAL = "price_1SX6VfQ20P462xlWCNJ6k8yl"
LEGACY_PRO = "price_1SSMDfQ20P462xlWHT8hRT8W"


class InMemoryBillingRepository(BillingRepository):
    def __init__(self) -> None:
        self.profiles: Dict[str, UserBillingProfile] = {}
        self.subscriptions: List[SubscriptionRecord] = []
        self.resets = 0

    def activate_subscription(self, activation: SubscriptionActivation) -> bool:
        raise AssertionError("not used by BillingService")

    def apply_user_state(self, customer_ref: str, update: UserStateUpdate) -> Optional[BillingContact]:
        raise AssertionError("not used by BillingService")

    def get_billing_profile(self, user_id: str) -> Optional[UserBillingProfile]:
        return self.profiles.get(user_id)

    def get_latest_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        records = [record for record in self.subscriptions if record.user_id == user_id]
        return max(records, key=lambda record: record.created_at) if records else None

    def reset_monthly_usage(self) -> int:
        self.resets += 1
        for user_id, profile in self.profiles.items():
            self.profiles[user_id] = profile.model_copy(update={"scans_used": 0, "ebay_listings_used": 0})
        return len(self.profiles)


class FakePaymentProvider(PaymentProvider):
    def __init__(self) -> None:
        self.checkout_calls: List[Dict[str, object]] = []
        self.portal_calls: List[Dict[str, object]] = []
        self.error: Optional[BillingProviderError] = None

    def create_checkout_session(self, **kwargs) -> CheckoutSession:
        if self.error:
            raise self.error
        self.checkout_calls.append(kwargs)
        session_id = f"cs_{len(self.checkout_calls)}"
        return CheckoutSession(session_id=session_id, url=f"https://checkout.test/{session_id}")

    def create_billing_portal_session(self, *, customer_ref: str, return_url: str) -> PortalSession:
        if self.error:
            raise self.error
        self.portal_calls.append({"customer_ref": customer_ref, "return_url": return_url})
        return PortalSession(url=f"https://portal.test/{customer_ref}")

    def get_subscription_price_ref(self, subscription_ref: str) -> Optional[str]:
        return None


class FakeEventLogger(BillingEventLogger):
    def __init__(self) -> None:
        self.events: List[BillingAuditEvent] = []

    def log(self, event: BillingAuditEvent) -> None:
        self.events.append(event)


@pytest.fixture
def repository() -> InMemoryBillingRepository:
    repo = InMemoryBillingRepository()
    repo.profiles["u1"] = UserBillingProfile(user_id="u1", email="collector@example.com")
    repo.profiles["u2"] = UserBillingProfile(
        user_id="u2",
        email="dealer@example.com",
        tier=Tier.DEALER,
        customer_ref="cus_2",
        scans_used=1200,
        ebay_listings_used=40,
    )
    return repo


@pytest.fixture
def provider() -> FakePaymentProvider:
    return FakePaymentProvider()


@pytest.fixture
def event_logger() -> FakeEventLogger:
    return FakeEventLogger()


@pytest.fixture
def service(repository, provider, event_logger) -> BillingService:
    return BillingService(
        repository=repository,
        provider=provider,
        event_logger=event_logger,
        frontend_url="https://app.test/",
    )


def test_checkout_session_uses_user_email_and_frontend_urls(service, provider):
    session = service.create_checkout_session(user_id="u1", price_ref=POWER_ANNUAL)

    assert session.session_id == "cs_1"
    call = provider.checkout_calls[0]
    assert call["customer_email"] == "collector@example.com"
    assert call["client_reference_id"] == "u1"
    assert call["price_ref"] == POWER_ANNUAL
    assert call["success_url"] == "https://app.test/dashboard?session_id={CHECKOUT_SESSION_ID}"
    assert call["cancel_url"] == "https://app.test/pricing"
    assert call["metadata"] == {"userId": "u1"}


@pytest.mark.parametrize("price_ref", ["price_unknown", LEGACY_PRO])
def test_checkout_rejects_unknown_or_legacy_prices(service, provider, price_ref):
    with pytest.raises(ValueError):
        service.create_checkout_session(user_id="u1", price_ref=price_ref)

    assert provider.checkout_calls == []


def test_checkout_for_unknown_user_raises_lookup_error(service):
    with pytest.raises(LookupError):
        service.create_checkout_session(user_id="ghost", price_ref=POWER_ANNUAL)


def test_provider_failure_surfaces_provider_message(service, provider):
    provider.error = BillingProviderError(message="Your card was declined.")

    with pytest.raises(BillingProviderError) as exc_info:
        service.create_checkout_session(user_id="u1", price_ref=POWER_ANNUAL)

    http_exc = exc_info.value.to_http_exception()
    assert http_exc.status_code == 502
    assert http_exc.detail["message"] == "Your card was declined."


def test_portal_session_requires_customer_reference(service, provider):
    with pytest.raises(LookupError, match="No subscription found"):
        service.create_portal_session(user_id="u1")

    session = service.create_portal_session(user_id="u2")

    assert session.url == "https://portal.test/cus_2"
    assert provider.portal_calls == [{"customer_ref": "cus_2", "return_url": "https://app.test/dashboard"}]


def test_subscription_overview_returns_latest_record(service, repository):
    older = SubscriptionRecord(
        id=1,
        user_id="u2",
        customer_ref="cus_2",
        subscription_ref="sub_old",
        plan_name="power",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    newer = older.model_copy(update={"id": 2, "subscription_ref": "sub_new", "plan_name": "dealer",
                                     "created_at": datetime(2024, 6, 1, tzinfo=timezone.utc)})
    repository.subscriptions.extend([older, newer])

    overview = service.get_subscription_overview("u2")

    assert overview.subscription.subscription_ref == "sub_new"
    assert overview.tier == Tier.DEALER
    assert overview.status == SubscriptionStatus.ACTIVE


def test_subscription_overview_defaults_to_free(service):
    overview = service.get_subscription_overview("ghost")

    assert overview.subscription is None
    assert overview.tier == Tier.FREE
    assert overview.status == SubscriptionStatus.ACTIVE


def test_usage_reflects_tier_limits(service):
    summary = service.get_usage("u2")

    assert summary.scan_limit == 1500
    assert summary.scans_remaining == 300
    assert summary.can_list_on_ebay is True


def test_usage_for_unknown_user_raises(service):
    with pytest.raises(LookupError):
        service.get_usage("ghost")


def test_monthly_reset_zeroes_counters_and_keeps_tier(service, repository, event_logger):
    reset = service.reset_monthly_usage()

    assert reset == 2
    assert repository.profiles["u2"].scans_used == 0
    assert repository.profiles["u2"].ebay_listings_used == 0
    assert repository.profiles["u2"].tier == Tier.DEALER
    assert event_logger.events[-1].event_type == BillingAuditEventType.USAGE_RESET
    assert event_logger.events[-1].metadata == {"users": "2"}
