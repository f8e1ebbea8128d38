"""Refresh token repository: conditional updates backing atomic rotation."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, update

from moviehub_auth.models.refresh_token import RefreshToken
from moviehub_auth.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken`.

    Bulk statements bypass the identity map (``synchronize_session=False``)
    and report affected row counts so callers can implement compare-and-set.
    """

    model = RefreshToken

    def _pk_attr(self):
        return RefreshToken.token_hash

    def _filterable_fields(self):
        return {
            "account_id": RefreshToken.account_id,
            "family_id": RefreshToken.family_id,
            "revoked": RefreshToken.revoked,
        }

    def _execute_count(self, stmt) -> int:
        stmt = stmt.execution_options(synchronize_session=False)
        return int(self.session.execute(stmt).rowcount or 0)

    def mark_rotated(self, token_hash: str, now: datetime) -> int:
        """
        Revoke ``token_hash`` only if it is still active.

        :returns: ``1`` when this caller won the race, ``0`` otherwise.
        """
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.token_hash == token_hash, RefreshToken.revoked.is_(False))
            .values(revoked=True, rotated_at=now)
        )
        return self._execute_count(stmt)

    def revoke(self, token_hash: str) -> int:
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.token_hash == token_hash, RefreshToken.revoked.is_(False))
            .values(revoked=True)
        )
        return self._execute_count(stmt)

    def revoke_family(self, family_id: str) -> int:
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.family_id == family_id, RefreshToken.revoked.is_(False))
            .values(revoked=True)
        )
        return self._execute_count(stmt)

    def revoke_for_account(self, account_id: str) -> int:
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.account_id == account_id, RefreshToken.revoked.is_(False))
            .values(revoked=True)
        )
        return self._execute_count(stmt)

    def delete_expired(self, now: datetime) -> int:
        return self._execute_count(delete(RefreshToken).where(RefreshToken.expires_at <= now))
