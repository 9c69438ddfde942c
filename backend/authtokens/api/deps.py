"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import ipaddress
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, jsonify, request

from authtokens.core.errors import APIError
from authtokens.core.extensions import get_token_service
from authtokens.services import TokenService

F = TypeVar("F", bound=Callable[..., Any])


def token_service() -> TokenService:
    """Return the token service wired at application start."""

    return get_token_service()


def client_ip() -> str:
    """Return the canonical peer address (``X-Forwarded-For`` aware behind ``ProxyFix``).

    Tokens are bound to this value, so a missing or non-IP address (a unix
    socket peer, a garbled forwarded header) is refused with ``400``.
    """

    try:
        return str(ipaddress.ip_address((request.remote_addr or "").strip()))
    except ValueError as exc:
        raise APIError(
            "Client address unavailable", status_code=400, code="bad_request"
        ) from exc


def json_body() -> Any:
    """Return the parsed JSON body, or ``{}`` when absent or unparsable."""

    body = request.get_json(silent=True)
    return {} if body is None else body


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
