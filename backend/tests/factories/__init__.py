"""Factory Boy base wired to the transactional test session."""

from __future__ import annotations

import factory


class SQLAlchemySession:
    """Holds the session the ``session`` fixture installs for each test."""

    _session = None

    @classmethod
    def set(cls, session):
        cls._session = session

    @classmethod
    def get(cls):
        """Return the current test session.

        Raises
        ------
        RuntimeError
            When a factory runs outside a test that requested ``session``.
        """
        if cls._session is None:
            raise RuntimeError("No test session registered; request the 'session' fixture.")
        return cls._session

    @classmethod
    def clear(cls):
        cls._session = None


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Persist built rows with a flush so they join the test's SAVEPOINT."""

    class Meta:
        abstract = True
        sqlalchemy_session_factory = SQLAlchemySession.get
        sqlalchemy_session_persistence = "flush"
