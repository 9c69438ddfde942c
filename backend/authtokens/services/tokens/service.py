# authtokens/services/tokens/service.py
from __future__ import annotations

import ipaddress
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from uuid import UUID, uuid4

from authtokens.services._shared.base import BaseService, ServiceContext
from authtokens.services._shared.errors import (
    InvalidTokenError,
    MalformedTokenError,
    NotFoundError,
    TokenAlreadyUsedError,
    TokenError,
    TokenExpiredError,
)
from authtokens.services._shared.ports import (
    IPChangeNotifier,
    RefreshTokenRecord,
    RefreshTokenStore,
)
from authtokens.services.tokens.codec import CredentialCodec
from authtokens.services.tokens.dto import TokenConfig, TokenPairOut

log = logging.getLogger(__name__)


def normalize_ip(ip: str) -> str:
    """Return the canonical text form of ``ip`` (unchanged if unparsable)."""
    try:
        return str(ipaddress.ip_address(ip.strip()))
    except ValueError:
        return ip


class TokenService(BaseService):
    """
    Refresh-token lifecycle service (issue / rotate).

    This service mints access tokens and refresh tokens via the
    :class:`CredentialCodec`, persists refresh state through a
    :class:`RefreshTokenStore` (atomic ``mark_used`` + reuse detection), and
    warns users through an :class:`IPChangeNotifier` when a token is refreshed
    from a different IP than the one it was issued to.
    """

    def __init__(
        self,
        *,
        store: RefreshTokenStore,
        codec: CredentialCodec,
        notifier: IPChangeNotifier,
        token_cfg: TokenConfig,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param store: Stateful store for refresh-token records.
        :param codec: Signs access tokens, encodes/decodes refresh tokens.
        :param notifier: Fire-and-forget IP-change warning channel.
        :param token_cfg: TTLs and notification timeout.
        """
        super().__init__(ctx=ctx)
        self.store = store
        self.codec = codec
        self.notifier = notifier
        self.cfg = token_cfg
        self._notify_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="ip-notify")

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def create_token_pair(self, user_id: UUID, ip: str) -> TokenPairOut:
        """
        Issue a fresh access/refresh token pair bound to ``(user_id, ip)``.

        The refresh record is persisted before any token leaves this method,
        so a storage failure yields neither a pair nor a record.

        :raises SigningError: If the access token cannot be signed.
        :raises StorageError: If the refresh record cannot be persisted.
        """
        ip = normalize_ip(ip)
        now = self.now_utc()

        access = self.codec.mint_access_token(user_id, ip, self.cfg.access_ttl, now=now)

        secret = self.codec.generate_refresh_secret()
        record = RefreshTokenRecord(
            id=uuid4(),
            user_id=user_id,
            token_hash=self.codec.hash_secret(secret),
            issued_at=now,
            expires_at=now + self.cfg.refresh_ttl,
            issued_ip=ip,
        )
        self.store.save(record)

        refresh = self.codec.encode_refresh_token(record.id, secret)
        log.info(
            "token.issued",
            extra={"user_id": str(user_id), "token_id": str(record.id), "ip": ip},
        )
        return TokenPairOut(access_token=access, refresh_token=refresh)

    # ------------------------------------------------------------------ #
    # Rotation
    # ------------------------------------------------------------------ #

    def refresh_tokens(self, refresh_token: str, ip: str) -> TokenPairOut:
        """
        Consume a refresh token and emit a brand-new token pair.

        Checks run in a fixed order: decode, existence, expiry, reuse, secret.
        An expired token that was also used reports expiry.

        :raises InvalidTokenError: Malformed, unknown, or secret mismatch.
        :raises TokenExpiredError: Past ``expires_at``.
        :raises TokenAlreadyUsedError: Already consumed (reuse detection).
        """
        ip = normalize_ip(ip)

        # 1) Decode
        try:
            token_id, secret = self.codec.decode_refresh_token(refresh_token)
        except MalformedTokenError as exc:
            raise self._reject(InvalidTokenError(), ip=ip) from exc

        # 2) Existence (unknown id is indistinguishable from tampering)
        try:
            record = self.store.get(token_id)
        except NotFoundError as exc:
            raise self._reject(InvalidTokenError(), ip=ip, token_id=token_id) from exc

        # 3) Expiry precedes the reuse check
        if record.is_expired(self.now_utc()):
            raise self._reject(TokenExpiredError(), ip=ip, record=record)

        # 4) Reuse
        if record.used:
            raise self._reject(TokenAlreadyUsedError(), ip=ip, record=record)

        # 5) Secret
        if not self.codec.verify_secret(secret, record.token_hash):
            raise self._reject(InvalidTokenError(), ip=ip, record=record)

        # 6) Consume; losing a concurrent race surfaces as reuse
        try:
            consumed = self.store.mark_used(record.id)
        except NotFoundError as exc:
            raise self._reject(InvalidTokenError(), ip=ip, record=record) from exc
        if not consumed:
            raise self._reject(TokenAlreadyUsedError(), ip=ip, record=record)

        # 7) IP binding: only the caller that won the consume step warns
        if ip != record.issued_ip:
            self._notify_ip_change(record, ip)

        log.info(
            "token.rotated",
            extra={"user_id": str(record.user_id), "token_id": str(record.id), "ip": ip},
        )

        # 8) New identity every time
        return self.create_token_pair(record.user_id, ip)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _notify_ip_change(self, record: RefreshTokenRecord, ip: str) -> None:
        """Send the IP-change warning, bounded by ``notify_timeout``; never raises."""
        extra = {
            "user_id": str(record.user_id),
            "token_id": str(record.id),
            "old_ip": record.issued_ip,
            "new_ip": ip,
        }
        log.info("token.ip_changed", extra=extra)
        future = self._notify_pool.submit(
            self.notifier.send_ip_change_warning, record.user_id, record.issued_ip, ip
        )
        try:
            future.result(timeout=self.cfg.notify_timeout.total_seconds())
        except FutureTimeoutError:
            log.warning("notification.timeout", extra=extra)
        except Exception:
            log.warning("notification.failed", extra=extra, exc_info=True)

    @staticmethod
    def _reject(
        err: TokenError,
        *,
        ip: str,
        token_id: UUID | None = None,
        record: RefreshTokenRecord | None = None,
    ) -> TokenError:
        """Log a refresh rejection with its specific reason and return ``err``."""
        extra = {"reason": err.reason, "ip": ip}
        if record is not None:
            extra["user_id"] = str(record.user_id)
            extra["token_id"] = str(record.id)
        elif token_id is not None:
            extra["token_id"] = str(token_id)

        if isinstance(err, TokenAlreadyUsedError):
            log.warning("token.reuse_detected", extra=extra)
        else:
            log.info("token.refresh_rejected", extra=extra)
        return err
