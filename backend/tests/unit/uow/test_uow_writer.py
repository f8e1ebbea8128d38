"""
Unit tests for SQLAlchemyUnitOfWork (writer), using factories.
"""

from __future__ import annotations

import pytest

from moviehub_auth.models import Account
from moviehub_auth.uow import SQLAlchemyUnitOfWork
from tests.factories.account import AccountFactory


class TestSQLAlchemyUnitOfWorkWriter:
    def test_writer_uow_commits_on_success(self, app, db, session):
        """
        GIVEN a writer UoW
        WHEN we create an account via repo inside the context and leave without exception
        THEN the transaction is committed and the row is visible afterwards.
        """
        initial = db.session.query(Account).count()

        with SQLAlchemyUnitOfWork() as uow:
            uow.accounts.add(AccountFactory.build())

        after = db.session.query(Account).count()
        assert after == initial + 1

    def test_writer_uow_rolls_back_on_exception(self, app, db, session):
        """
        GIVEN a writer UoW
        WHEN an exception is raised inside the context
        THEN the transaction is rolled back and no rows are persisted.
        """
        initial = db.session.query(Account).count()

        with pytest.raises(RuntimeError), SQLAlchemyUnitOfWork() as uow:
            uow.accounts.add(AccountFactory.build())
            raise RuntimeError("boom")

        after = db.session.query(Account).count()
        assert after == initial

    def test_repositories_share_the_session(self, session):
        uow = SQLAlchemyUnitOfWork(session=session)
        assert uow.accounts.session is session
        assert uow.refresh_tokens.session is session
