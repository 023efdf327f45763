"""Persistence layer for user subscription state and subscription history."""
from __future__ import annotations

from typing import Optional

from psycopg2.extensions import connection as PgConnection

from ..db import transaction
from ..entitlements.models import SubscriptionStatus, Tier
from .models import (
    BillingContact,
    SubscriptionActivation,
    SubscriptionRecord,
    UserBillingProfile,
    UserStateUpdate,
)


def _row_to_profile(row: dict) -> UserBillingProfile:
    return UserBillingProfile(
        user_id=str(row["id"]),
        email=row.get("email"),
        tier=Tier.parse(row.get("subscription_tier") or Tier.FREE.value),
        status=SubscriptionStatus.parse(row.get("subscription_status") or SubscriptionStatus.ACTIVE.value),
        customer_ref=row.get("stripe_customer_id"),
        subscription_ref=row.get("stripe_subscription_id"),
        provider_status=row.get("stripe_subscription_status"),
        subscription_end_date=row.get("subscription_end_date"),
        scans_used=int(row.get("scans_used") or 0),
        ebay_listings_used=int(row.get("ebay_listings_used") or 0),
    )


def _row_to_subscription(row: dict) -> SubscriptionRecord:
    return SubscriptionRecord(
        id=row.get("id"),
        user_id=str(row["user_id"]),
        customer_ref=row.get("stripe_customer_id"),
        subscription_ref=row["stripe_subscription_id"],
        price_ref=row.get("stripe_price_id"),
        plan_name=row["plan_name"],
        status=row.get("status") or SubscriptionStatus.ACTIVE.value,
        created_at=row["created_at"],
    )


class PostgresBillingRepository:
    """Concrete repository persisting billing state in PostgreSQL."""

    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    def activate_subscription(self, activation: SubscriptionActivation) -> bool:
        """Upgrade the user and append history, once per subscription reference."""

        with transaction(self._conn) as cursor:
            # Serializes concurrent deliveries of the same activation.
            cursor.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (activation.subscription_ref,))
            cursor.execute(
                "SELECT 1 FROM subscriptions WHERE stripe_subscription_id = %s LIMIT 1",
                (activation.subscription_ref,),
            )
            if cursor.fetchone():
                return False

            cursor.execute(
                """
                UPDATE users
                SET subscription_tier = %(tier)s,
                    subscription_status = %(status)s,
                    stripe_customer_id = COALESCE(%(customer_ref)s, stripe_customer_id),
                    stripe_subscription_id = %(subscription_ref)s
                WHERE id = %(user_id)s
                """,
                {
                    "tier": activation.tier.value,
                    "status": SubscriptionStatus.ACTIVE.value,
                    "customer_ref": activation.customer_ref,
                    "subscription_ref": activation.subscription_ref,
                    "user_id": activation.user_id,
                },
            )
            if cursor.rowcount == 0:
                raise LookupError(f"User {activation.user_id} not found for checkout activation")

            cursor.execute(
                """
                INSERT INTO subscriptions (
                    user_id,
                    stripe_customer_id,
                    stripe_subscription_id,
                    stripe_price_id,
                    plan_name,
                    status
                )
                VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (
                    activation.user_id,
                    activation.customer_ref,
                    activation.subscription_ref,
                    activation.price_ref,
                    activation.tier.value,
                    SubscriptionStatus.ACTIVE.value,
                ),
            )
            return True

    def apply_user_state(self, customer_ref: str, update: UserStateUpdate) -> Optional[BillingContact]:
        with transaction(self._conn) as cursor:
            cursor.execute(
                """
                UPDATE users
                SET subscription_status = %(status)s,
                    subscription_tier = COALESCE(%(tier)s, subscription_tier),
                    stripe_subscription_status = COALESCE(%(provider_status)s, stripe_subscription_status),
                    subscription_end_date = CASE
                        WHEN %(end_subscription)s THEN NOW()
                        ELSE subscription_end_date
                    END
                WHERE stripe_customer_id = %(customer_ref)s
                RETURNING id, email
                """,
                {
                    "status": update.status.value,
                    "tier": update.tier.value if update.tier is not None else None,
                    "provider_status": update.provider_status,
                    "end_subscription": update.end_subscription,
                    "customer_ref": customer_ref,
                },
            )
            row = cursor.fetchone()
            if not row:
                return None
            return BillingContact(user_id=str(row["id"]), email=row.get("email"))

    def get_billing_profile(self, user_id: str) -> Optional[UserBillingProfile]:
        with transaction(self._conn) as cursor:
            cursor.execute(
                """
                SELECT id,
                       email,
                       subscription_tier,
                       subscription_status,
                       stripe_customer_id,
                       stripe_subscription_id,
                       stripe_subscription_status,
                       subscription_end_date,
                       scans_used,
                       ebay_listings_used
                FROM users
                WHERE id = %s
                LIMIT 1
                """,
                (user_id,),
            )
            row = cursor.fetchone()
            return _row_to_profile(row) if row else None

    def get_latest_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        with transaction(self._conn) as cursor:
            cursor.execute(
                """
                SELECT *
                FROM subscriptions
                WHERE user_id = %s
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (user_id,),
            )
            row = cursor.fetchone()
            return _row_to_subscription(row) if row else None

    def reset_monthly_usage(self) -> int:
        with transaction(self._conn) as cursor:
            cursor.execute("UPDATE users SET scans_used = 0, ebay_listings_used = 0")
            return cursor.rowcount


__all__ = ["PostgresBillingRepository"]
