"""Ownership transfer engine: issue, validate and claim transfer codes."""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Protocol

from .exceptions import CardNotFoundError, InvalidTransferCodeError, SelfClaimError
from .models import (
    ClaimResult,
    ClaimStatus,
    IssuedTransferCode,
    OwnershipHistoryEntry,
    TransferOffer,
    TransferReceipt,
)

logger = logging.getLogger(__name__)

# No 0/O or 1/I/L so codes survive being read aloud.
CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"


class TransferRepository(Protocol):
    """Persistence contract for transfer codes and provenance."""

    def find_offer(self, code: str, *, now: datetime) -> Optional[TransferOffer]:
        ...

    def claim(self, code: str, claimant_id: str, *, now: datetime) -> ClaimResult:
        ...

    def store_code(self, card_id: str, owner_id: str, code: str, *, expires_at: datetime) -> bool:
        ...

    def list_history(self, card_id: str) -> List[OwnershipHistoryEntry]:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_transfer_code(length: int = 8) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    """Trim surrounding whitespace; case is matched by the repository."""

    return (code or "").strip()


@dataclass
class TransferService:
    """Coordinates transfer code lifecycle against a repository."""

    repository: TransferRepository
    clock: Optional[Callable[[], datetime]] = None
    code_ttl: timedelta = timedelta(hours=48)
    code_length: int = 8

    def _now(self) -> datetime:
        return (self.clock or _utcnow)()

    def issue(self, card_id: str, owner_id: str) -> IssuedTransferCode:
        """Bind a fresh single-use code to a card the caller owns.

        Any earlier unused code on the card is replaced.
        """

        code = generate_transfer_code(self.code_length)
        expires_at = self._now() + self.code_ttl
        if not self.repository.store_code(card_id, owner_id, code, expires_at=expires_at):
            raise CardNotFoundError()
        logger.info(
            "Issued transfer code",
            extra={"card_id": card_id, "owner_id": owner_id, "expires_at": expires_at.isoformat()},
        )
        return IssuedTransferCode(card_id=card_id, code=code, expires_at=expires_at)

    def validate(self, code: str) -> TransferOffer:
        normalized = normalize_code(code)
        if not normalized:
            raise InvalidTransferCodeError()
        offer = self.repository.find_offer(normalized, now=self._now())
        if offer is None:
            raise InvalidTransferCodeError()
        return offer

    def claim(self, code: str, claimant_id: str) -> TransferReceipt:
        """Transfer the card bound to ``code`` to ``claimant_id``.

        Exactly one of any number of concurrent claimants succeeds; the rest
        see the code as invalid.
        """

        normalized = normalize_code(code)
        if not normalized:
            raise InvalidTransferCodeError()

        result = self.repository.claim(normalized, claimant_id, now=self._now())
        if result.status is ClaimStatus.SELF_CLAIM:
            raise SelfClaimError()
        if result.status is not ClaimStatus.CLAIMED or result.entry is None:
            raise InvalidTransferCodeError()

        entry = result.entry
        logger.info(
            "Card ownership transferred",
            extra={
                "card_id": entry.card_id,
                "previous_owner_id": entry.previous_owner_id,
                "new_owner_id": entry.new_owner_id,
            },
        )
        return TransferReceipt(
            card_id=entry.card_id,
            player=result.player,
            previous_owner_id=entry.previous_owner_id,
            new_owner_id=entry.new_owner_id,
            transferred_at=entry.transferred_at,
        )

    def history(self, card_id: str) -> List[OwnershipHistoryEntry]:
        return self.repository.list_history(card_id)


__all__ = [
    "CODE_ALPHABET",
    "TransferRepository",
    "TransferService",
    "generate_transfer_code",
    "normalize_code",
]
