"""API schemas for ownership transfer endpoints."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..transfers import IssuedTransferCode, OwnershipHistoryEntry, TransferOffer, TransferReceipt


class TransferCardOut(BaseModel):
    id: str
    player: Optional[str] = None
    year: Optional[str] = None
    set_name: Optional[str] = Field(alias="setName", default=None)
    card_number: Optional[str] = Field(alias="cardNumber", default=None)
    parallel: Optional[str] = None
    front_image_url: Optional[str] = Field(alias="frontImageUrl", default=None)
    is_graded: bool = Field(alias="isGraded", default=False)
    grading_company: Optional[str] = Field(alias="gradingCompany", default=None)
    grade: Optional[str] = None
    seller: str

    model_config = ConfigDict(populate_by_name=True)


class TransferValidationResponse(BaseModel):
    success: bool = True
    card: TransferCardOut

    @classmethod
    def from_offer(cls, offer: TransferOffer) -> "TransferValidationResponse":
        return cls(
            card=TransferCardOut(
                id=offer.card_id,
                player=offer.player,
                year=offer.year,
                set_name=offer.set_name,
                card_number=offer.card_number,
                parallel=offer.parallel,
                front_image_url=offer.front_image_url,
                is_graded=offer.is_graded,
                grading_company=offer.grading_company,
                grade=offer.grade,
                seller=offer.seller,
            )
        )


class ClaimedCardOut(BaseModel):
    id: str
    player: Optional[str] = None


class TransferClaimResponse(BaseModel):
    success: bool = True
    message: str = "Card claimed successfully!"
    card: ClaimedCardOut
    previous_owner_id: str = Field(alias="previousOwnerId")
    transferred_at: datetime = Field(alias="transferredAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_receipt(cls, receipt: TransferReceipt) -> "TransferClaimResponse":
        return cls(
            card=ClaimedCardOut(id=receipt.card_id, player=receipt.player),
            previous_owner_id=receipt.previous_owner_id,
            transferred_at=receipt.transferred_at,
        )


class TransferCodeResponse(BaseModel):
    card_id: str = Field(alias="cardId")
    code: str
    expires_at: datetime = Field(alias="expiresAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_issued(cls, issued: IssuedTransferCode) -> "TransferCodeResponse":
        return cls(card_id=issued.card_id, code=issued.code, expires_at=issued.expires_at)


class OwnershipHistoryOut(BaseModel):
    id: Optional[int] = None
    previous_owner_id: str = Field(alias="previousOwnerId")
    new_owner_id: str = Field(alias="newOwnerId")
    sale_price: Optional[Decimal] = Field(alias="salePrice", default=None)
    transfer_method: str = Field(alias="transferMethod")
    transferred_at: datetime = Field(alias="transferredAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_entry(cls, entry: OwnershipHistoryEntry) -> "OwnershipHistoryOut":
        return cls(
            id=entry.id,
            previous_owner_id=entry.previous_owner_id,
            new_owner_id=entry.new_owner_id,
            sale_price=entry.sale_price,
            transfer_method=entry.transfer_method,
            transferred_at=entry.transferred_at,
        )


class OwnershipHistoryResponse(BaseModel):
    card_id: str = Field(alias="cardId")
    history: List[OwnershipHistoryOut]

    model_config = ConfigDict(populate_by_name=True)
