"""Domain models for card ownership transfers."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

TRANSFER_METHOD_CODE = "transfer_code"
DEFAULT_SELLER_NAME = "SoleVault User"


class ClaimStatus(str, Enum):
    """Result of attempting to claim a transfer code."""

    CLAIMED = "claimed"
    INVALID_CODE = "invalid_code"
    SELF_CLAIM = "self_claim"


class TransferOffer(BaseModel):
    """Buyer-safe view of a card bound to a claimable transfer code."""

    card_id: str
    player: Optional[str] = None
    year: Optional[str] = None
    set_name: Optional[str] = None
    card_number: Optional[str] = None
    parallel: Optional[str] = None
    front_image_url: Optional[str] = None
    is_graded: bool = False
    grading_company: Optional[str] = None
    grade: Optional[str] = None
    seller: str = DEFAULT_SELLER_NAME

    model_config = ConfigDict(frozen=True)


class OwnershipHistoryEntry(BaseModel):
    """Immutable provenance ledger row."""

    id: Optional[int] = None
    card_id: str
    previous_owner_id: str
    new_owner_id: str
    sale_price: Optional[Decimal] = None
    transfer_method: str = TRANSFER_METHOD_CODE
    transfer_code: Optional[str] = None
    transferred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)


class ClaimResult(BaseModel):
    """Repository-level outcome of a claim transaction."""

    status: ClaimStatus
    entry: Optional[OwnershipHistoryEntry] = None
    player: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class TransferReceipt(BaseModel):
    """Confirmation returned to a buyer after a successful claim."""

    card_id: str
    player: Optional[str] = None
    previous_owner_id: str
    new_owner_id: str
    transferred_at: datetime

    model_config = ConfigDict(frozen=True)


class IssuedTransferCode(BaseModel):
    """A freshly issued code a seller hands to the buyer."""

    card_id: str
    code: str
    expires_at: datetime

    model_config = ConfigDict(frozen=True)
