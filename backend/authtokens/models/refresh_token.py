"""Refresh token persistence model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Index, String, Text, Uuid, false
from sqlalchemy.dialects.postgresql import INET
from sqlalchemy.orm import Mapped, mapped_column

from authtokens.core.extensions import db

from .base import CreatedAtMixin, ReprMixin

# INET on PostgreSQL, plain text (long enough for IPv6) elsewhere.
IPAddress = String(45).with_variant(INET(), "postgresql")


class RefreshToken(ReprMixin, CreatedAtMixin, db.Model):
    """
    One issued refresh token.

    Only a one-way hash of the secret is stored; the usable token string is
    handed to the client once and never persisted.

    Fields
    ------
    id : UUID
        Token identifier embedded in the refresh-token string.
    user_id : UUID
        Owning user.
    token_hash : str
        Salted adaptive hash of the secret.
    issued_at, expires_at : datetime
        Validity window (timezone-aware).
    issued_ip : str
        Client IP observed at issuance.
    is_used : bool
        Set exactly once when the token is rotated.
    created_at : datetime
        Store-assigned creation timestamp (from mixin).
    """

    __tablename__ = "refresh_tokens"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    token_hash: Mapped[str] = mapped_column(Text, nullable=False)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    issued_ip: Mapped[str] = mapped_column(IPAddress, nullable=False)
    is_used: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    __table_args__ = (Index("ix_refresh_tokens_user_id", "user_id"),)
