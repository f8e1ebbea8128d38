"""SQLAlchemy-specific behaviour of the refresh token store."""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from moviehub_auth.infra.sqlalchemy.refresh_token_store import SQLAlchemyRefreshTokenStore
from moviehub_auth.models import RefreshToken
from moviehub_auth.repositories import RefreshTokenRepository
from moviehub_auth.security import IssuedRefreshToken
from moviehub_auth.services._shared.errors import StoreUnavailableError
from moviehub_auth.services._shared.ports import RotationResult
from tests.factories.account import AccountFactory, RefreshTokenFactory


def _issued(now: datetime, lifetime: timedelta = timedelta(days=7)) -> IssuedRefreshToken:
    return IssuedRefreshToken(token=secrets.token_urlsafe(32), expires_at=now + lifetime)


def _count(session) -> int:
    return session.execute(select(func.count()).select_from(RefreshToken)).scalar_one()


class _DownUnitOfWork:
    def __enter__(self):
        raise OperationalError("SELECT 1", {}, Exception("database is down"))

    def __exit__(self, *exc):
        return False


def test_lost_compare_and_set_reports_reuse(session, monkeypatch):
    store = SQLAlchemyRefreshTokenStore()
    now = datetime.now(UTC)
    account = AccountFactory()
    first = _issued(now)
    store.create(account_id=account.id, issued=first)
    before = _count(session)

    # another process flipped the row between our read and our UPDATE
    monkeypatch.setattr(RefreshTokenRepository, "mark_rotated", lambda self, h, n: 0)
    outcome = store.rotate(old_token=first.token, successor=_issued(now), now=now)

    assert outcome.result is RotationResult.REUSED
    assert outcome.chain_revoked is False
    assert _count(session) == before


def test_purge_expired_deletes_only_expired_rows(session):
    store = SQLAlchemyRefreshTokenStore()
    now = datetime.now(UTC)
    account = AccountFactory()
    RefreshTokenFactory(account=account, expires_at=now - timedelta(minutes=1))
    RefreshTokenFactory(account=account, expires_at=now - timedelta(days=1), revoked=True)
    keep = RefreshTokenFactory(account=account, expires_at=now + timedelta(days=1))

    assert store.purge_expired(now) == 2
    remaining = session.execute(select(RefreshToken.token_hash)).scalars().all()
    assert remaining == [keep.token_hash]


def test_views_are_timezone_aware(session):
    store = SQLAlchemyRefreshTokenStore()
    now = datetime.now(UTC)
    issued = _issued(now)
    store.create(account_id=AccountFactory().id, issued=issued)

    view = store.get(issued.token)
    assert view.expires_at.tzinfo is not None
    assert view.created_at.tzinfo is not None


def test_operational_error_is_unavailable():
    store = SQLAlchemyRefreshTokenStore(uow_factory=_DownUnitOfWork)
    now = datetime.now(UTC)

    with pytest.raises(StoreUnavailableError) as excinfo:
        store.rotate(old_token="whatever", successor=_issued(now), now=now)
    assert excinfo.value.backend == "sqlalchemy"
