# authtokens/services/tokens/codec.py
"""Credential codec: access-token signing and refresh-token (de)serialization.

The codec has no persistence knowledge. It turns cryptographic material into
transportable strings and back:

* Access tokens are HS512-signed JWTs (PyJWT).
* Refresh tokens are ``base64url("<uuid>:<base64url(secret)>")``.
* Refresh secrets are stored only as adaptive one-way hashes produced by
  :func:`werkzeug.security.generate_password_hash`.
"""

from __future__ import annotations

import base64
import binascii
import secrets
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from authtokens.services._shared.errors import MalformedTokenError, SigningError
from authtokens.services.tokens.dto import AccessTokenClaims

ACCESS_TOKEN_ALGORITHM = "HS512"
REFRESH_SECRET_BYTES = 32
# Absent from both the UUID text form and the base64url alphabet.
REFRESH_DELIMITER = ":"


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii")


def _b64decode(value: str) -> bytes:
    """
    Strict base64url decoding.

    Rejects characters outside the alphabet and non-canonical encodings, so a
    mutated string can never decode to the same bytes as the original.
    """
    try:
        data = base64.b64decode(value.encode("ascii"), altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedTokenError() from exc
    if _b64encode(data) != value:
        raise MalformedTokenError()
    return data


class CredentialCodec:
    """
    Produce and verify refresh-token strings and signed access tokens.

    :param signing_key: Symmetric key for HS512 signatures.
    :param hash_method: Werkzeug hash method string, e.g. ``"pbkdf2:sha256:600000"``
        (the trailing number is the iteration cost).
    """

    def __init__(self, *, signing_key: bytes, hash_method: str) -> None:
        self._signing_key = signing_key
        self._hash_method = hash_method

    # ------------------------------------------------------------------ #
    # Access tokens
    # ------------------------------------------------------------------ #

    def mint_access_token(
        self,
        user_id: UUID,
        ip: str,
        ttl: timedelta,
        *,
        now: datetime | None = None,
    ) -> str:
        """
        Build fresh :class:`AccessTokenClaims` and sign them.

        :raises SigningError: If the key is unusable or signing fails.
        """
        issued_at = now or datetime.now(UTC)
        claims = AccessTokenClaims(
            user_id=user_id,
            ip=ip,
            jti=str(uuid4()),
            issued_at=issued_at,
            expires_at=issued_at + ttl,
            not_before=issued_at,
        )
        if not self._signing_key:
            raise SigningError("Access token signing key is empty")
        try:
            return jwt.encode(
                claims.to_payload(), self._signing_key, algorithm=ACCESS_TOKEN_ALGORITHM
            )
        except (jwt.PyJWTError, TypeError, ValueError) as exc:
            raise SigningError("Failed to sign access token") from exc

    # ------------------------------------------------------------------ #
    # Refresh secrets
    # ------------------------------------------------------------------ #

    @staticmethod
    def generate_refresh_secret() -> bytes:
        """Return 32 bytes from the operating system CSPRNG."""
        return secrets.token_bytes(REFRESH_SECRET_BYTES)

    def hash_secret(self, secret: bytes) -> str:
        """Hash ``secret`` for at-rest storage (salted, adaptive)."""
        return generate_password_hash(_b64encode(secret), method=self._hash_method)

    @staticmethod
    def verify_secret(secret: bytes, token_hash: str) -> bool:
        """
        Compare ``secret`` against ``token_hash``.

        :returns: ``False`` on mismatch or on an unreadable hash; never raises.
        """
        try:
            return bool(check_password_hash(token_hash, _b64encode(secret)))
        except ValueError:
            return False

    # ------------------------------------------------------------------ #
    # Refresh token strings
    # ------------------------------------------------------------------ #

    @staticmethod
    def encode_refresh_token(token_id: UUID, secret: bytes) -> str:
        """Join identifier and secret and base64url-encode the result."""
        raw = f"{token_id}{REFRESH_DELIMITER}{_b64encode(secret)}"
        return _b64encode(raw.encode("ascii"))

    @staticmethod
    def decode_refresh_token(token: str) -> tuple[UUID, bytes]:
        """
        Split a refresh-token string back into ``(identifier, secret)``.

        :raises MalformedTokenError: On bad base64, a missing delimiter, an
            invalid identifier, or an empty secret.
        """
        if not isinstance(token, str) or not token:
            raise MalformedTokenError()
        try:
            text = _b64decode(token).decode("ascii")
        except UnicodeDecodeError as exc:
            raise MalformedTokenError() from exc

        id_part, sep, secret_part = text.partition(REFRESH_DELIMITER)
        if not sep or not secret_part:
            raise MalformedTokenError()
        try:
            token_id = UUID(id_part)
        except ValueError as exc:
            raise MalformedTokenError() from exc
        if str(token_id) != id_part:
            raise MalformedTokenError()

        secret = _b64decode(secret_part)
        if not secret:
            raise MalformedTokenError()
        return token_id, secret
