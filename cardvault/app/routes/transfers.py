"""API routes for card ownership transfers."""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, Request

from ... import app_context
from ...config import load_auth_config
from ..schemas.transfers import (
    OwnershipHistoryOut,
    OwnershipHistoryResponse,
    TransferClaimResponse,
    TransferCodeResponse,
    TransferValidationResponse,
)
from ..services import transfers as transfer_services
from ..transfers import CardNotFoundError, InvalidTransferCodeError, SelfClaimError


def _get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Any:
    # Resolved per request, after .env has been loaded.
    session_token = request.cookies.get(load_auth_config().session_cookie_name)
    return app_context.get_current_user(session_token=session_token, authorization=authorization)


router = APIRouter(prefix="/api/transfers", tags=["transfers"])


@router.get("/validate/{code}", response_model=TransferValidationResponse)
def validate_transfer_code(code: str) -> TransferValidationResponse:
    """Preview the card behind a transfer code; no authentication required."""

    service = transfer_services.get_transfer_service()
    try:
        offer = service.validate(code)
    except InvalidTransferCodeError as exc:
        raise exc.to_http_exception() from exc
    return TransferValidationResponse.from_offer(offer)


@router.post("/claim/{code}", response_model=TransferClaimResponse)
def claim_transfer_code(code: str, *, current_user=Depends(_get_current_user)) -> TransferClaimResponse:
    service = transfer_services.get_transfer_service()
    try:
        receipt = service.claim(code, str(current_user.id))
    except (InvalidTransferCodeError, SelfClaimError) as exc:
        raise exc.to_http_exception() from exc
    return TransferClaimResponse.from_receipt(receipt)


@router.post("/cards/{card_id}/code", response_model=TransferCodeResponse)
def issue_transfer_code(card_id: str, *, current_user=Depends(_get_current_user)) -> TransferCodeResponse:
    service = transfer_services.get_transfer_service()
    try:
        issued = service.issue(card_id, str(current_user.id))
    except CardNotFoundError as exc:
        raise exc.to_http_exception() from exc
    return TransferCodeResponse.from_issued(issued)


@router.get("/cards/{card_id}/history", response_model=OwnershipHistoryResponse)
def read_ownership_history(card_id: str, *, current_user=Depends(_get_current_user)) -> OwnershipHistoryResponse:
    service = transfer_services.get_transfer_service()
    entries = service.history(card_id)
    return OwnershipHistoryResponse(
        card_id=card_id,
        history=[OwnershipHistoryOut.from_entry(entry) for entry in entries],
    )
