"""Application wiring for the transfer engine."""
from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from ...config import load_transfer_config
from ..transfers import TransferService
from ..transfers.repository import PostgresTransferRepository


@lru_cache(maxsize=1)
def get_transfer_service() -> TransferService:
    config = load_transfer_config()
    return TransferService(
        repository=PostgresTransferRepository(),
        code_ttl=timedelta(hours=config.code_ttl_hours),
        code_length=config.code_length,
    )


__all__ = ["get_transfer_service"]
