from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from authtokens.services._shared.errors import NotFoundError, StorageError


@dataclass(frozen=True, slots=True)
class RefreshTokenRecord:
    """
    Persisted state of one issued refresh token.

    :ivar id: Token identifier (unique, immutable).
    :ivar user_id: Owner user id.
    :ivar token_hash: One-way hash of the token secret.
    :ivar issued_at: Issuance instant (UTC).
    :ivar expires_at: Absolute expiration (UTC).
    :ivar issued_ip: Client IP observed at issuance.
    :ivar used: Whether the token has been consumed by a rotation.
    :ivar created_at: Store-assigned creation timestamp.
    """

    id: UUID
    user_id: UUID
    token_hash: str
    issued_at: datetime
    expires_at: datetime
    issued_ip: str
    used: bool = False
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.expires_at < self.issued_at:
            raise ValueError("expires_at must not precede issued_at")

    def is_expired(self, now: datetime) -> bool:
        """Return ``True`` once ``now`` is strictly past ``expires_at``."""
        return now > self.expires_at


class RefreshTokenStore(Protocol):
    """
    Durable record of issued refresh tokens.

    ``mark_used`` MUST be an atomic check-and-set: when two callers race on the
    same identifier, exactly one of them observes the false→true transition.
    """

    def save(self, record: RefreshTokenRecord) -> None:
        """
        Insert a brand-new record.

        :raises StorageError: On duplicate identifier or connectivity failure.
        """

    def get(self, token_id: UUID) -> RefreshTokenRecord:
        """
        Fetch a record by identifier.

        :raises NotFoundError: If no record with that identifier exists.
        """

    def mark_used(self, token_id: UUID) -> bool:
        """
        Set the used flag (idempotent).

        :returns: ``True`` if this call flipped the flag, ``False`` if it was
            already set.
        :raises NotFoundError: If the identifier does not exist.
        """

    def ping(self) -> bool:
        """Return ``True`` when the backend is reachable."""


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    In-memory refresh token store.

    .. note::
       Uses a threading lock so ``mark_used`` is atomic across request threads.
    """

    def __init__(self) -> None:
        self._by_id: dict[UUID, RefreshTokenRecord] = {}
        self._lock = threading.Lock()

    def save(self, record: RefreshTokenRecord) -> None:
        with self._lock:
            if record.id in self._by_id:
                raise StorageError(f"Duplicate refresh token id: {record.id}")
            self._by_id[record.id] = replace(
                record, created_at=record.created_at or datetime.now(UTC)
            )

    def get(self, token_id: UUID) -> RefreshTokenRecord:
        with self._lock:
            record = self._by_id.get(token_id)
        if record is None:
            raise NotFoundError("RefreshToken", str(token_id))
        return record

    def mark_used(self, token_id: UUID) -> bool:
        with self._lock:
            record = self._by_id.get(token_id)
            if record is None:
                raise NotFoundError("RefreshToken", str(token_id))
            if record.used:
                return False
            self._by_id[token_id] = replace(record, used=True)
            return True

    def ping(self) -> bool:
        return True
