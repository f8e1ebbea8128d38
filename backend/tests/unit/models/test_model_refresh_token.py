"""Tests for the RefreshToken row."""

from __future__ import annotations

from moviehub_auth.models import RefreshToken
from tests.factories.account import RefreshTokenFactory


def test_defaults_and_repr(session):
    row = RefreshTokenFactory()
    session.refresh(row)

    assert row.revoked is False
    assert row.rotated_at is None
    assert len(row.token_hash) == 64
    assert row.family_id in repr(row)
    assert row.token_hash not in repr(row)


def test_rows_follow_account_id(session):
    row = RefreshTokenFactory()
    fetched = session.get(RefreshToken, row.token_hash)
    assert fetched.account_id == row.account_id
