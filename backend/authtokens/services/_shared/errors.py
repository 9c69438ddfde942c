"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP directly. They serve as stable contracts between the token
stores, the credential codec, and the token service.

The translation to HTTP responses (RFC 7807) is handled by the API layer,
which deliberately collapses every refresh failure into a single
``401 Unauthorized`` so network callers cannot tell the kinds apart.
"""

from __future__ import annotations

from dataclasses import dataclass

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from stores, the codec or the service.
    """

    pass


class TokenError(ServiceError):
    """Base class for refresh-token rejections surfaced by the token service."""

    reason = "token_error"


# --------------------------------------------------------------------------- #
# Token lifecycle errors
# --------------------------------------------------------------------------- #


class InvalidTokenError(TokenError):
    """Malformed, unknown, or secret-mismatched refresh token."""

    reason = "invalid"

    def __init__(self, message: str = "Invalid refresh token") -> None:
        super().__init__(message)


class TokenExpiredError(TokenError):
    """The refresh token is past its expiry."""

    reason = "expired"

    def __init__(self, message: str = "Refresh token expired") -> None:
        super().__init__(message)


class TokenAlreadyUsedError(TokenError):
    """
    The refresh token was already consumed by a previous rotation.

    This is the reuse-detection signal: a caller that did not itself just use
    the token should treat it as a possible compromise.
    """

    reason = "reused"

    def __init__(self, message: str = "Refresh token already used") -> None:
        super().__init__(message)


class MalformedTokenError(ServiceError):
    """Raised by the codec when a refresh-token string cannot be decoded."""

    def __init__(self, message: str = "Malformed refresh token") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Infrastructure errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in a store.

    :param entity: Entity name (e.g., "RefreshToken").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str
    """

    entity: str
    key: str

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


class StorageError(ServiceError):
    """Constraint violation or connectivity failure in a token store."""


class StorageUnavailableError(StorageError):
    """The store backend is unreachable or timed out (transient)."""


class SigningError(ServiceError):
    """Cryptographic failure while minting an access token."""


class NotificationError(ServiceError):
    """
    Delivery failure of an IP-change warning.

    Always logged and swallowed by the token service; never changes the
    outcome of a rotation.
    """
