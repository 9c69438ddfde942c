"""Token endpoint Marshmallow schemas."""

from __future__ import annotations

from marshmallow import RAISE, Schema, fields, validate


class CreateTokensSchema(Schema):
    """Input payload for issuing a fresh token pair."""

    class Meta:
        unknown = RAISE

    user_id = fields.UUID(required=True)


class RefreshTokensSchema(Schema):
    """Input payload for rotating a refresh token."""

    class Meta:
        unknown = RAISE

    refresh_token = fields.String(required=True, validate=validate.Length(min=1, max=4096))


class TokenPairSchema(Schema):
    """Response payload with the access and refresh tokens."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
