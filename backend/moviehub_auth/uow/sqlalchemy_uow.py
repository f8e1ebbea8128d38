"""
SQLAlchemy implementation of UnitOfWork for Flask.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from moviehub_auth.core.extensions import db
from moviehub_auth.repositories import AccountRepository, RefreshTokenRepository
from moviehub_auth.uow.base import UnitOfWork


class SQLAlchemyUnitOfWork(UnitOfWork):
    """
    UoW over the Flask-scoped SQLAlchemy session.

    The session starts lazily on the first statement, so entering the block
    costs nothing until a repository is used.
    """

    def __init__(self, session: Session | None = None) -> None:
        """
        :param session: Explicit session; defaults to the Flask-scoped one so
            every repository shares the request's transaction.
        """
        self.session = session if session is not None else db.session
        self.accounts = AccountRepository(session=self.session)
        self.refresh_tokens = RefreshTokenRepository(session=self.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        return self

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
