"""Persistence-only access to the ``refresh_tokens`` table."""

from __future__ import annotations

from typing import cast
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.engine import CursorResult

from authtokens.models.refresh_token import RefreshToken
from authtokens.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Repository for :class:`RefreshToken` rows."""

    model = RefreshToken

    def mark_used_if_unused(self, token_id: UUID) -> bool:
        """
        Conditionally flip ``is_used`` in a single statement.

        The ``WHERE is_used = false`` predicate makes the update a
        compare-and-set: under concurrent callers the database lets exactly
        one of them match the row.

        :returns: ``True`` if this statement changed the row.
        """
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.id == token_id, RefreshToken.is_used.is_(False))
            .values(is_used=True)
            .execution_options(synchronize_session=False)
        )
        result = cast(CursorResult, self.session.execute(stmt))
        return result.rowcount == 1
