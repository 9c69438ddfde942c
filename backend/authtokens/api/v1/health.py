"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app

from authtokens.api.deps import json_response, timing, token_service

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return liveness plus refresh token store reachability."""

    store_ok = token_service().store.ping()
    if not store_ok:
        current_app.logger.warning("healthcheck.store_unreachable")
    payload = {
        "status": "ok" if store_ok else "degraded",
        "store": "ok" if store_ok else "fail",
        "backend": current_app.config.get("TOKEN_STORE_BACKEND", "sqlalchemy"),
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload, status=200 if store_ok else 503)
