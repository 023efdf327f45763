"""Persistence for transfer codes, card ownership and the provenance ledger."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from psycopg2.extensions import connection as PgConnection

from ..db import transaction
from .models import (
    DEFAULT_SELLER_NAME,
    TRANSFER_METHOD_CODE,
    ClaimResult,
    ClaimStatus,
    OwnershipHistoryEntry,
    TransferOffer,
)


def _text(value: object) -> Optional[str]:
    return None if value is None else str(value)


def _row_to_offer(row: dict) -> TransferOffer:
    return TransferOffer(
        card_id=str(row["id"]),
        player=_text(row.get("player")),
        year=_text(row.get("year")),
        set_name=_text(row.get("set_name")),
        card_number=_text(row.get("card_number")),
        parallel=_text(row.get("parallel")),
        front_image_url=row.get("front_image_url"),
        is_graded=bool(row.get("is_graded")),
        grading_company=_text(row.get("grading_company")),
        grade=_text(row.get("grade")),
        seller=row.get("seller_name") or DEFAULT_SELLER_NAME,
    )


def _row_to_history(row: dict) -> OwnershipHistoryEntry:
    return OwnershipHistoryEntry(
        id=row.get("id"),
        card_id=str(row["card_id"]),
        previous_owner_id=str(row["previous_owner_id"]),
        new_owner_id=str(row["new_owner_id"]),
        sale_price=row.get("sale_price"),
        transfer_method=row.get("transfer_method") or TRANSFER_METHOD_CODE,
        transfer_code=row.get("transfer_code"),
        transferred_at=row["transferred_at"],
    )


class PostgresTransferRepository:
    """Concrete repository executing transfers in PostgreSQL transactions."""

    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    def find_offer(self, code: str, *, now: datetime) -> Optional[TransferOffer]:
        with transaction(self._conn) as cursor:
            cursor.execute(
                """
                SELECT c.id,
                       c.player,
                       c.year,
                       c.set_name,
                       c.card_number,
                       c.parallel,
                       c.front_image_url,
                       c.is_graded,
                       c.grading_company,
                       c.grade,
                       u.full_name AS seller_name
                FROM cards c
                JOIN users u ON c.user_id = u.id
                WHERE upper(c.transfer_code) = upper(%s)
                  AND c.transfer_code_used = FALSE
                  AND c.transfer_code_expires_at > %s
                ORDER BY c.transfer_code_expires_at DESC
                LIMIT 1
                """,
                (code, now),
            )
            row = cursor.fetchone()
            return _row_to_offer(row) if row else None

    def claim(self, code: str, claimant_id: str, *, now: datetime) -> ClaimResult:
        """Move the card bound to ``code`` to ``claimant_id`` in one transaction.

        The row lock makes a concurrent claimant wait; once the winner commits
        the loser's re-checked predicate no longer matches the used code.
        """

        with transaction(self._conn) as cursor:
            cursor.execute(
                """
                SELECT id, user_id, player, sold_price, transfer_code
                FROM cards
                WHERE upper(transfer_code) = upper(%s)
                  AND transfer_code_used = FALSE
                  AND transfer_code_expires_at > %s
                ORDER BY transfer_code_expires_at DESC
                LIMIT 1
                FOR UPDATE
                """,
                (code, now),
            )
            card = cursor.fetchone()
            if not card:
                return ClaimResult(status=ClaimStatus.INVALID_CODE)

            previous_owner_id = str(card["user_id"])
            if previous_owner_id == str(claimant_id):
                return ClaimResult(status=ClaimStatus.SELF_CLAIM, player=card.get("player"))

            cursor.execute(
                """
                UPDATE cards
                SET user_id = %s,
                    transfer_code_used = TRUE,
                    listing_status = 'unlisted',
                    for_sale = FALSE
                WHERE id = %s
                  AND transfer_code_used = FALSE
                """,
                (claimant_id, card["id"]),
            )
            if cursor.rowcount != 1:
                return ClaimResult(status=ClaimStatus.INVALID_CODE)

            cursor.execute(
                """
                INSERT INTO card_ownership_history (
                    card_id,
                    previous_owner_id,
                    new_owner_id,
                    sale_price,
                    transfer_method,
                    transfer_code
                )
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING *
                """,
                (
                    card["id"],
                    card["user_id"],
                    claimant_id,
                    card.get("sold_price"),
                    TRANSFER_METHOD_CODE,
                    card["transfer_code"],
                ),
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to record ownership history")
            return ClaimResult(
                status=ClaimStatus.CLAIMED,
                entry=_row_to_history(row),
                player=card.get("player"),
            )

    def store_code(self, card_id: str, owner_id: str, code: str, *, expires_at: datetime) -> bool:
        with transaction(self._conn) as cursor:
            cursor.execute(
                """
                UPDATE cards
                SET transfer_code = %s,
                    transfer_code_used = FALSE,
                    transfer_code_expires_at = %s
                WHERE id = %s
                  AND user_id = %s
                """,
                (code, expires_at, card_id, owner_id),
            )
            return cursor.rowcount == 1

    def list_history(self, card_id: str) -> List[OwnershipHistoryEntry]:
        with transaction(self._conn) as cursor:
            cursor.execute(
                """
                SELECT *
                FROM card_ownership_history
                WHERE card_id = %s
                ORDER BY transferred_at ASC, id ASC
                """,
                (card_id,),
            )
            rows = cursor.fetchall() or []
            return [_row_to_history(row) for row in rows]


__all__ = ["PostgresTransferRepository"]
