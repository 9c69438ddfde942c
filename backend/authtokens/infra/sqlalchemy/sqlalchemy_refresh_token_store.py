# comments in English; reST docstrings
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from authtokens.models.refresh_token import RefreshToken
from authtokens.services._shared.errors import (
    NotFoundError,
    StorageError,
    StorageUnavailableError,
)
from authtokens.services._shared.ports import RefreshTokenRecord, RefreshTokenStore
from authtokens.uow import SQLAlchemyUnitOfWork

# Connectivity, lock and pool timeouts; everything else is a hard failure
_UNAVAILABLE = (OperationalError, PoolTimeoutError)


def _aware(dt: datetime) -> datetime:
    # SQLite drops tzinfo; values are always written as UTC
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


def _to_record(row: RefreshToken) -> RefreshTokenRecord:
    return RefreshTokenRecord(
        id=row.id,
        user_id=row.user_id,
        token_hash=row.token_hash,
        issued_at=_aware(row.issued_at),
        expires_at=_aware(row.expires_at),
        issued_ip=str(row.issued_ip),
        used=bool(row.is_used),
        created_at=_aware(row.created_at) if row.created_at is not None else None,
    )


@dataclass(slots=True)
class SQLAlchemyRefreshTokenStore(RefreshTokenStore):
    """
    Relational refresh token store.

    Every operation runs in its own Unit of Work so a committed ``save`` is
    durable before the token string is handed out.

    :param uow_factory: Builds a fresh Unit of Work per operation.
    """

    uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork

    def save(self, record: RefreshTokenRecord) -> None:
        row = RefreshToken(
            id=record.id,
            user_id=record.user_id,
            token_hash=record.token_hash,
            issued_at=record.issued_at,
            expires_at=record.expires_at,
            issued_ip=record.issued_ip,
            is_used=record.used,
        )
        try:
            with self.uow_factory() as uow:
                uow.refresh_tokens.add(row)
        except IntegrityError as exc:
            raise StorageError(f"Duplicate refresh token id: {record.id}") from exc
        except _UNAVAILABLE as exc:
            raise StorageUnavailableError("Refresh token store unavailable") from exc
        except SQLAlchemyError as exc:
            raise StorageError("Failed to save refresh token") from exc

    def get(self, token_id: UUID) -> RefreshTokenRecord:
        try:
            with self.uow_factory() as uow:
                row = uow.refresh_tokens.get(token_id)
                if row is None:
                    raise NotFoundError("RefreshToken", str(token_id))
                return _to_record(row)
        except _UNAVAILABLE as exc:
            raise StorageUnavailableError("Refresh token store unavailable") from exc
        except SQLAlchemyError as exc:
            raise StorageError("Failed to load refresh token") from exc

    def mark_used(self, token_id: UUID) -> bool:
        """
        Compare-and-set ``is_used`` via a conditional ``UPDATE``.

        A zero row count means either "already used" or "never existed";
        a follow-up existence check tells the two apart.
        """
        try:
            with self.uow_factory() as uow:
                if uow.refresh_tokens.mark_used_if_unused(token_id):
                    return True
                if not uow.refresh_tokens.exists(token_id):
                    raise NotFoundError("RefreshToken", str(token_id))
                return False
        except _UNAVAILABLE as exc:
            raise StorageUnavailableError("Refresh token store unavailable") from exc
        except SQLAlchemyError as exc:
            raise StorageError("Failed to mark refresh token as used") from exc

    def ping(self) -> bool:
        try:
            with self.uow_factory() as uow:
                uow.session.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True
