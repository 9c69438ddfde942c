"""Service layer public API.

This package exposes the essential building blocks for the service layer so that
callers can import from :mod:`authtokens.services` without knowing internal
structure.

Re-exports
----------
- Base primitives (from ``authtokens.services._shared.base``)
    * :class:`BaseService`
    * :class:`ServiceContext`

- Token service (from ``authtokens.services.tokens``)
    * :class:`TokenService`
    * :class:`CredentialCodec`
    * DTOs: :class:`TokenPairOut`, :class:`TokenConfig`
"""

from __future__ import annotations

from ._shared.base import BaseService, ServiceContext
from .tokens.codec import CredentialCodec
from .tokens.dto import TokenConfig, TokenPairOut
from .tokens.service import TokenService

__all__ = [
    "BaseService",
    "ServiceContext",
    "CredentialCodec",
    "TokenConfig",
    "TokenPairOut",
    "TokenService",
]
