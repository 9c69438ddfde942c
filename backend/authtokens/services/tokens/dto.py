# authtokens/services/tokens/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Signed access JWT.
    :type access_token: str
    :param refresh_token: Opaque refresh token (identifier + secret).
    :type refresh_token: str
    """

    access_token: str
    refresh_token: str


@dataclass(frozen=True, slots=True)
class AccessTokenClaims:
    """
    Claims carried by an access token. Never persisted.

    :param user_id: Subject user id (``uid``).
    :param ip: Client IP at issuance (``ip``).
    :param jti: Unique claim identifier.
    :param issued_at: ``iat``.
    :param expires_at: ``exp``.
    :param not_before: ``nbf``.
    """

    user_id: UUID
    ip: str
    jti: str
    issued_at: datetime
    expires_at: datetime
    not_before: datetime

    def to_payload(self) -> dict[str, Any]:
        """Render the claims as a JWT payload."""
        return {
            "sub": str(self.user_id),
            "uid": str(self.user_id),
            "ip": self.ip,
            "jti": self.jti,
            "type": "access",
            "iat": self.issued_at,
            "exp": self.expires_at,
            "nbf": self.not_before,
        }


# ------------------------------ Config DTO -------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenConfig:
    """
    Token emission configuration, built once at process start.

    :param signing_key: Symmetric HS512 key for access tokens.
    :type signing_key: bytes
    :param access_ttl: Access token lifetime.
    :type access_ttl: timedelta
    :param refresh_ttl: Refresh token lifetime.
    :type refresh_ttl: timedelta
    :param hash_method: Werkzeug hash method (algorithm + cost) for secrets.
    :type hash_method: str
    :param notify_timeout: Upper bound on a single IP-change notification.
    :type notify_timeout: timedelta
    """

    signing_key: bytes = field(repr=False)
    access_ttl: timedelta
    refresh_ttl: timedelta
    hash_method: str = "pbkdf2:sha256:600000"
    notify_timeout: timedelta = timedelta(seconds=2)
