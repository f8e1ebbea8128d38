# comments in English; reST docstrings
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from sqlalchemy.exc import OperationalError

from moviehub_auth.models.account import as_utc
from moviehub_auth.models.refresh_token import RefreshToken
from moviehub_auth.security.tokens import IssuedRefreshToken, hash_refresh_token
from moviehub_auth.services._shared.errors import StoreUnavailableError
from moviehub_auth.services._shared.ports import (
    RefreshSessionView,
    RefreshTokenStore,
    RotationOutcome,
    RotationResult,
    chain_revocation_due,
)
from moviehub_auth.services._shared.ports.refresh_token_store import DEFAULT_REUSE_GRACE
from moviehub_auth.uow import SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)


def _to_view(row: RefreshToken) -> RefreshSessionView:
    return RefreshSessionView(
        token_hash=row.token_hash,
        account_id=row.account_id,
        family_id=row.family_id,
        created_at=as_utc(row.created_at),
        expires_at=as_utc(row.expires_at),
        revoked=bool(row.revoked),
        rotated_at=as_utc(row.rotated_at),
    )


class SQLAlchemyRefreshTokenStore(RefreshTokenStore):
    """
    Relational refresh token store.

    Every public call runs in its own unit of work. Rotation relies on a
    conditional ``UPDATE ... WHERE revoked = false`` so two processes
    redeeming the same token cannot both win, without any in-process lock.

    :param uow_factory: Callable returning a fresh unit of work.
    :param reuse_grace: Window in which redeeming a just-rotated token is
        treated as a duplicate submission rather than theft.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork,
        reuse_grace: timedelta = DEFAULT_REUSE_GRACE,
    ) -> None:
        self._uow_factory = uow_factory
        self.reuse_grace = reuse_grace

    @contextmanager
    def _uow(self) -> Iterator[SQLAlchemyUnitOfWork]:
        try:
            with self._uow_factory() as uow:
                yield uow
        except OperationalError as exc:
            log.error("refresh_store.unavailable backend=sqlalchemy", exc_info=True)
            raise StoreUnavailableError("sqlalchemy") from exc

    # -------------------- API ------------------------

    def create(
        self,
        *,
        account_id: str,
        issued: IssuedRefreshToken,
        family_id: str | None = None,
    ) -> RefreshSessionView:
        row = RefreshToken(
            token_hash=hash_refresh_token(issued.token),
            account_id=str(account_id),
            family_id=family_id or uuid4().hex,
            created_at=datetime.now(UTC),
            expires_at=issued.expires_at,
            revoked=False,
        )
        with self._uow() as uow:
            uow.refresh_tokens.add(row)
            view = _to_view(row)
        return view

    def find_active(self, token: str) -> RefreshSessionView | None:
        view = self.get(token)
        if view is None or not view.is_active(datetime.now(UTC)):
            return None
        return view

    def get(self, token: str) -> RefreshSessionView | None:
        with self._uow() as uow:
            row = uow.refresh_tokens.get(hash_refresh_token(token))
            return _to_view(row) if row is not None else None

    def rotate(
        self,
        *,
        old_token: str,
        successor: IssuedRefreshToken,
        now: datetime,
    ) -> RotationOutcome:
        key = hash_refresh_token(old_token)
        with self._uow() as uow:
            row = uow.refresh_tokens.get(key)
            if row is None:
                return RotationOutcome(RotationResult.NOT_FOUND)
            current = _to_view(row)

            if current.expires_at <= now:
                return RotationOutcome(RotationResult.EXPIRED, current)

            if current.revoked:
                chain = chain_revocation_due(current, now, self.reuse_grace)
                if chain:
                    uow.refresh_tokens.revoke_family(current.family_id)
                return RotationOutcome(RotationResult.REUSED, current, chain_revoked=chain)

            if uow.refresh_tokens.mark_rotated(key, now) == 0:
                # another request rotated it between our read and write
                return RotationOutcome(RotationResult.REUSED, current)

            new = RefreshToken(
                token_hash=hash_refresh_token(successor.token),
                account_id=current.account_id,
                family_id=current.family_id,
                created_at=now,
                expires_at=successor.expires_at,
                revoked=False,
            )
            uow.refresh_tokens.add(new)
            view = _to_view(new)
        return RotationOutcome(RotationResult.OK, view)

    def revoke(self, token: str) -> bool:
        key = hash_refresh_token(token)
        with self._uow() as uow:
            if uow.refresh_tokens.get(key) is None:
                return False
            uow.refresh_tokens.revoke(key)
        return True

    def revoke_family(self, family_id: str) -> int:
        with self._uow() as uow:
            return uow.refresh_tokens.revoke_family(family_id)

    def revoke_all_for_account(self, account_id: str) -> int:
        with self._uow() as uow:
            return uow.refresh_tokens.revoke_for_account(str(account_id))

    def purge_expired(self, now: datetime) -> int:
        with self._uow() as uow:
            return uow.refresh_tokens.delete_expired(now)
