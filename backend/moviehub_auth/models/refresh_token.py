"""Persisted refresh tokens (hashed) grouped into rotation families."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, false, func
from sqlalchemy.orm import Mapped, mapped_column

from moviehub_auth.core.extensions import db


class RefreshToken(db.Model):
    """
    One issued refresh token.

    Fields
    ------
    token_hash : str
        SHA-256 hex digest of the opaque token. The plaintext is never stored.
    account_id : str
        Owner. ``ON DELETE CASCADE``.
    family_id : str
        Rotation chain; every token descending from one login shares it.
    expires_at : datetime
        Absolute expiry.
    revoked : bool
        Flips ``False -> True`` once and never back.
    rotated_at : datetime | None
        Set when a rotation consumed this token.
    """

    __tablename__ = "refresh_tokens"

    token_hash: Mapped[str] = mapped_column(String(64), primary_key=True)
    account_id: Mapped[str] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    family_id: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    rotated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_refresh_tokens_account_id", "account_id"),
        Index("ix_refresh_tokens_family_id", "family_id"),
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<RefreshToken family={self.family_id} revoked={self.revoked}>"
