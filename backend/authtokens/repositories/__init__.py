"""Repository package exposing persistence-layer access for stored models."""

from __future__ import annotations

from authtokens.repositories.base import BaseRepository
from authtokens.repositories.refresh_token import RefreshTokenRepository

__all__ = [
    "BaseRepository",
    "RefreshTokenRepository",
]
