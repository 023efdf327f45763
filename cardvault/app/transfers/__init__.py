"""Card ownership transfer engine."""

from .exceptions import CardNotFoundError, InvalidTransferCodeError, SelfClaimError
from .models import (
    ClaimResult,
    ClaimStatus,
    IssuedTransferCode,
    OwnershipHistoryEntry,
    TransferOffer,
    TransferReceipt,
)
from .service import TransferRepository, TransferService, generate_transfer_code, normalize_code

__all__ = [
    "CardNotFoundError",
    "ClaimResult",
    "ClaimStatus",
    "InvalidTransferCodeError",
    "IssuedTransferCode",
    "OwnershipHistoryEntry",
    "SelfClaimError",
    "TransferOffer",
    "TransferReceipt",
    "TransferRepository",
    "TransferService",
    "generate_transfer_code",
    "normalize_code",
]
