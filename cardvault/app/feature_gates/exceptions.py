"""Exceptions raised when a quota gate denies an operation."""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import status

from ..errors import DomainError


@dataclass
class FeatureGateError(DomainError):
    """A plan limit blocks the requested operation."""

    status_code: int = status.HTTP_403_FORBIDDEN
