from __future__ import annotations

import pytest

from cardvault.app.entitlements import EntitlementResolver
from cardvault.app.feature_gates import (
    FeatureGateError,
    QuotaResource,
    assert_quota,
    evaluate_quota,
    evaluate_usage,
)


@pytest.fixture
def resolver() -> EntitlementResolver:
    return EntitlementResolver()


def test_evaluate_quota_allows_within_limit():
    evaluation = evaluate_quota(resource=QuotaResource.SCANS, limit=100, used=40, requested=10)

    assert evaluation.allowed is True
    assert evaluation.remaining == 60
    assert evaluation.to_dict() == {
        "resource": "scans",
        "limit": 100,
        "used": 40,
        "requested": 10,
        "remaining": 60,
        "allowed": True,
    }


def test_evaluate_quota_allows_exactly_reaching_limit():
    evaluation = evaluate_quota(resource=QuotaResource.EBAY_LISTINGS, limit=50, used=49, requested=1)

    assert evaluation.allowed is True


def test_evaluate_quota_rejects_over_limit():
    evaluation = evaluate_quota(resource=QuotaResource.SCANS, limit=100, used=100)

    assert evaluation.allowed is False
    assert evaluation.remaining == 0


def test_bulk_scan_is_a_per_batch_cap():
    evaluation = evaluate_quota(resource=QuotaResource.BULK_SCAN, limit=25, used=999, requested=25)

    assert evaluation.allowed is True
    assert evaluation.used == 0


def test_evaluate_usage_reads_counters_from_summary(resolver):
    summary = resolver.usage_summary("power", scans_used=499)

    assert evaluate_usage(summary, QuotaResource.SCANS).allowed is True
    assert evaluate_usage(summary, QuotaResource.SCANS, requested=2).allowed is False


def test_assert_quota_raises_with_structured_payload(resolver):
    summary = resolver.usage_summary("free", scans_used=100)

    with pytest.raises(FeatureGateError) as exc_info:
        assert_quota(summary, QuotaResource.SCANS)

    error = exc_info.value
    assert error.status_code == 403
    assert error.payload["error"] == "scan_limit_reached"
    assert error.payload["tier"] == "free"
    assert error.payload["limit"] == 100
    http_exc = error.to_http_exception()
    assert http_exc.status_code == 403
    assert http_exc.detail["error"] == "scan_limit_reached"


def test_assert_quota_bulk_scan_error_code(resolver):
    summary = resolver.usage_summary("dealer")

    with pytest.raises(FeatureGateError) as exc_info:
        assert_quota(summary, QuotaResource.BULK_SCAN, requested=101)

    assert exc_info.value.code == "bulk_scan_limit_exceeded"


def test_assert_quota_returns_evaluation_when_allowed(resolver):
    summary = resolver.usage_summary("dealer", ebay_listings_used=5000)

    evaluation = assert_quota(summary, QuotaResource.EBAY_LISTINGS)

    assert evaluation.allowed is True
