"""
SQLAlchemy implementation of UnitOfWork for Flask.
"""

from __future__ import annotations

from typing import cast

from sqlalchemy.orm import Session

from authtokens.core.extensions import db
from authtokens.repositories import RefreshTokenRepository
from authtokens.uow.base import UnitOfWork


class SQLAlchemyUnitOfWork(UnitOfWork):
    """
    SQLAlchemy-backed UoW, by default on the Flask-scoped session.

    The same session is shared across all repositories for a consistent
    transaction. Commits on a clean exit, rolls back otherwise.
    """

    def __init__(self, session: Session | None = None) -> None:
        self.session = session if session is not None else cast(Session, db.session)
        self.refresh_tokens = RefreshTokenRepository(session=self.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # No-op: the session is lazily started on the first statement.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        else:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
