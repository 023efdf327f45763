"""Feature gating utilities enforcing plan quotas."""
from .exceptions import FeatureGateError
from .quota import QuotaEvaluation, QuotaResource, assert_quota, evaluate_quota, evaluate_usage

__all__ = [
    "FeatureGateError",
    "QuotaEvaluation",
    "QuotaResource",
    "assert_quota",
    "evaluate_quota",
    "evaluate_usage",
]
