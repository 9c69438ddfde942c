"""Token issuance and rotation endpoints."""

from __future__ import annotations

from flask import Blueprint

from authtokens.api.deps import client_ip, json_body, json_response, timing, token_service
from authtokens.schemas import CreateTokensSchema, RefreshTokensSchema, TokenPairSchema
from authtokens.services._shared.errors import ServiceError

bp = Blueprint("auth", __name__)

create_schema = CreateTokensSchema()
refresh_schema = RefreshTokensSchema()
pair_schema = TokenPairSchema()


@bp.post("/tokens")
@timing
def create_tokens():
    """Issue an access/refresh pair for ``user_id`` bound to the caller's IP."""

    data = create_schema.load(json_body())
    service = token_service()
    try:
        pair = service.create_token_pair(data["user_id"], client_ip())
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return json_response(pair_schema.dump(pair))


@bp.post("/refresh")
@timing
def refresh_tokens():
    """Consume a refresh token and return a brand-new pair.

    Every rejection (invalid, expired, reused) answers with the same 401; the
    specific reason only goes to the log.
    """

    data = refresh_schema.load(json_body())
    service = token_service()
    try:
        pair = service.refresh_tokens(data["refresh_token"], client_ip())
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return json_response(pair_schema.dump(pair))
