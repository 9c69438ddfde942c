# comments in English; reST docstrings
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

import redis  # type: ignore[import-untyped]

from authtokens.services._shared.errors import (
    NotFoundError,
    StorageError,
    StorageUnavailableError,
)
from authtokens.services._shared.ports import RefreshTokenRecord, RefreshTokenStore


def _b(s: bytes | None, default: str = "") -> str:
    return s.decode() if s is not None else default


@dataclass(slots=True)
class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed refresh token store.

    Each record is a hash at ``rt:{id}``. Timestamps are kept as ISO-8601
    strings so sub-second expiry survives the round trip.

    :param r: A Redis client (already connected).
    :param retention: If set, the key expires ``retention`` after the token
        does. ``None`` keeps records until pruned externally.
    """

    r: redis.Redis
    retention: timedelta | None = None

    # -------------------- helpers --------------------

    @staticmethod
    def _k(token_id: UUID) -> str:
        return f"rt:{token_id}"

    @staticmethod
    def _to_mapping(record: RefreshTokenRecord, created_at: datetime) -> dict[str, str]:
        return {
            "user_id": str(record.user_id),
            "token_hash": record.token_hash,
            "issued_at": record.issued_at.isoformat(),
            "expires_at": record.expires_at.isoformat(),
            "issued_ip": record.issued_ip,
            "used": "1" if record.used else "0",
            "created_at": created_at.isoformat(),
        }

    # -------------------- API ------------------------

    def save(self, record: RefreshTokenRecord) -> None:
        """
        Insert ``record``; an existing key with the same id is an error.

        Uses WATCH/MULTI/EXEC so the existence check and the write are atomic.
        """
        key = self._k(record.id)
        mapping = self._to_mapping(record, record.created_at or record.issued_at)
        try:
            while True:
                try:
                    with self.r.pipeline() as p:
                        p.watch(key)
                        if p.exists(key):
                            p.unwatch()
                            raise StorageError(f"Duplicate refresh token id: {record.id}")
                        p.multi()
                        p.hset(key, mapping=mapping)
                        if self.retention is not None:
                            p.expireat(key, record.expires_at + self.retention)
                        p.execute()
                        return
                except redis.WatchError:
                    # Concurrent write on the same key; retry
                    continue
        except (redis.ConnectionError, redis.TimeoutError) as exc:
            raise StorageUnavailableError("Refresh token store unavailable") from exc
        except redis.RedisError as exc:
            raise StorageError("Failed to save refresh token") from exc

    def get(self, token_id: UUID) -> RefreshTokenRecord:
        try:
            h = self.r.hgetall(self._k(token_id))
        except (redis.ConnectionError, redis.TimeoutError) as exc:
            raise StorageUnavailableError("Refresh token store unavailable") from exc
        except redis.RedisError as exc:
            raise StorageError("Failed to load refresh token") from exc
        if not h:
            raise NotFoundError("RefreshToken", str(token_id))

        created = _b(h.get(b"created_at"))
        return RefreshTokenRecord(
            id=token_id,
            user_id=UUID(_b(h.get(b"user_id"))),
            token_hash=_b(h.get(b"token_hash")),
            issued_at=datetime.fromisoformat(_b(h.get(b"issued_at"))),
            expires_at=datetime.fromisoformat(_b(h.get(b"expires_at"))),
            issued_ip=_b(h.get(b"issued_ip")),
            used=_b(h.get(b"used"), "0") == "1",
            created_at=datetime.fromisoformat(created) if created else None,
        )

    def mark_used(self, token_id: UUID) -> bool:
        """
        Flip ``used`` from ``"0"`` to ``"1"`` under optimistic locking.

        :returns: ``True`` for the single caller that performed the flip.
        :raises NotFoundError: If no record exists for ``token_id``.
        """
        key = self._k(token_id)
        try:
            while True:
                try:
                    with self.r.pipeline() as p:
                        p.watch(key)
                        used = p.hget(key, "used")
                        if used is None:
                            p.unwatch()
                            raise NotFoundError("RefreshToken", str(token_id))
                        if _b(used) == "1":
                            p.unwatch()
                            return False
                        p.multi()
                        p.hset(key, "used", "1")
                        p.execute()
                        return True
                except redis.WatchError:
                    # Someone touched the key between WATCH and EXEC; re-read
                    continue
        except (redis.ConnectionError, redis.TimeoutError) as exc:
            raise StorageUnavailableError("Refresh token store unavailable") from exc
        except redis.RedisError as exc:
            raise StorageError("Failed to mark refresh token as used") from exc

    def ping(self) -> bool:
        try:
            return bool(self.r.ping())
        except redis.RedisError:
            return False
