# authtokens/services/_shared/base.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from authtokens.core import errors as api_errors
from authtokens.services._shared.errors import (
    MalformedTokenError,
    ServiceError,
    StorageUnavailableError,
    TokenError,
)


@dataclass(slots=True)
class ServiceContext:
    """
    Carry cross-cutting request-scoped data (request ids, etc.).

    :param request_id: Correlation id for logging/tracing.
    """

    request_id: str | None = None


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide a single UTC clock for expiry decisions.
    * Centralize error translation to API errors.
    * Keep services thin, orchestration-only, no web/ORM leakage.
    """

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        """
        Initialize the base service.

        :param ctx: Optional request-scoped context (tracing).
        :type ctx: ServiceContext | None
        """
        self.ctx = ctx or ServiceContext()

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(UTC)

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        Every refresh rejection collapses into the same ``401`` so the
        response never reveals which check failed.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if isinstance(exc, (TokenError, MalformedTokenError)):
            # → 401 Unauthorized (single generic message)
            return api_errors.Unauthorized("Invalid or expired refresh token")

        # Transient backend outage → 503 so callers may retry
        if isinstance(exc, StorageUnavailableError):
            return api_errors.APIError(
                message="Token store temporarily unavailable",
                status_code=503,
                code="service_unavailable",
            )

        # Storage / signing / anything else from the core → 500
        if isinstance(exc, ServiceError):
            return api_errors.APIError(
                message="Token operation failed",
                status_code=500,
                code="internal_server_error",
            )

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc
