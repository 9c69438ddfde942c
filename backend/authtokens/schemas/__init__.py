"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import CreateTokensSchema, RefreshTokensSchema, TokenPairSchema

__all__ = [
    "CreateTokensSchema",
    "RefreshTokensSchema",
    "TokenPairSchema",
]
