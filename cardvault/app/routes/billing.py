"""API routes exposing billing functionality."""
from __future__ import annotations

import logging
from typing import Any, Optional

import psycopg2
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from ... import app_context
from ...config import load_auth_config
from ..billing import BillingProviderError, WebhookAuthenticationError
from ..entitlements import EntitlementResolver
from ..feature_gates import FeatureGateError, assert_quota
from ..schemas.billing import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PlanListResponse,
    PlanOut,
    PortalSessionResponse,
    SubscriptionResponse,
    UsageCheckRequest,
    UsageCheckResponse,
    UsageResponse,
    WebhookAck,
)
from ..services import billing as billing_services

logger = logging.getLogger("billing")


def _get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Any:
    # Resolved per request, after .env has been loaded.
    session_token = request.cookies.get(load_auth_config().session_cookie_name)
    return app_context.get_current_user(session_token=session_token, authorization=authorization)


router = APIRouter(prefix="/api/billing", tags=["billing"])


@router.get("/plans", response_model=PlanListResponse)
def list_plans() -> PlanListResponse:
    plans = EntitlementResolver().active_plans()
    return PlanListResponse(plans=[PlanOut.from_plan(plan) for plan in plans])


@router.post("/checkout-session", response_model=CheckoutSessionResponse)
def create_checkout_session(
    payload: CheckoutSessionRequest,
    *,
    current_user=Depends(_get_current_user),
) -> CheckoutSessionResponse:
    service = billing_services.get_billing_service()
    try:
        session = service.create_checkout_session(user_id=str(current_user.id), price_ref=payload.price_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except BillingProviderError as exc:
        raise exc.to_http_exception() from exc
    return CheckoutSessionResponse.from_checkout(session)


@router.post("/portal-session", response_model=PortalSessionResponse)
def create_portal_session(*, current_user=Depends(_get_current_user)) -> PortalSessionResponse:
    service = billing_services.get_billing_service()
    try:
        session = service.create_portal_session(user_id=str(current_user.id))
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except BillingProviderError as exc:
        raise exc.to_http_exception() from exc
    return PortalSessionResponse(url=session.url)


@router.get("/subscription", response_model=SubscriptionResponse)
def read_subscription(*, current_user=Depends(_get_current_user)) -> SubscriptionResponse:
    service = billing_services.get_billing_service()
    overview = service.get_subscription_overview(str(current_user.id))
    return SubscriptionResponse.from_overview(overview)


@router.get("/usage", response_model=UsageResponse)
def read_usage(*, current_user=Depends(_get_current_user)) -> UsageResponse:
    service = billing_services.get_billing_service()
    try:
        summary = service.get_usage(str(current_user.id))
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return UsageResponse.from_summary(summary)


@router.post("/usage/check", response_model=UsageCheckResponse)
def check_usage(
    payload: UsageCheckRequest,
    *,
    current_user=Depends(_get_current_user),
) -> UsageCheckResponse:
    """Check whether the caller may consume ``quantity`` units of a metered resource."""

    service = billing_services.get_billing_service()
    try:
        summary = service.get_usage(str(current_user.id))
        evaluation = assert_quota(summary, payload.resource, requested=payload.quantity)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except FeatureGateError as exc:
        raise exc.to_http_exception() from exc
    return UsageCheckResponse.from_evaluation(evaluation)


@router.post("/webhook", response_model=WebhookAck)
async def receive_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
) -> WebhookAck:
    payload = await request.body()
    verifier = billing_services.get_webhook_verifier()
    try:
        event = verifier.verify(payload, stripe_signature)
    except WebhookAuthenticationError as exc:
        raise exc.to_http_exception() from exc

    reconciler = billing_services.get_webhook_reconciler()
    try:
        result = await run_in_threadpool(reconciler.reconcile, event)
    except BillingProviderError as exc:
        raise exc.to_http_exception() from exc
    except psycopg2.Error as exc:
        logger.exception("Failed to persist billing event %s (%s)", event.event_type, event.event_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed",
        ) from exc
    return WebhookAck(outcome=result.outcome.value)
