"""Transfer failures surfaced to API callers."""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import status

from ..errors import DomainError


@dataclass
class InvalidTransferCodeError(DomainError):
    """Code is unknown, expired or already used; callers cannot tell which."""

    code: str = "invalid_transfer_code"
    message: str = "Invalid or expired transfer code"
    status_code: int = status.HTTP_404_NOT_FOUND


@dataclass
class SelfClaimError(DomainError):
    code: str = "self_claim"
    message: str = "You cannot claim your own card"
    status_code: int = status.HTTP_409_CONFLICT


@dataclass
class CardNotFoundError(DomainError):
    code: str = "card_not_found"
    message: str = "Card not found"
    status_code: int = status.HTTP_404_NOT_FOUND
