"""Generic repository base for SQLAlchemy 2.x.

Persistence-only concerns shared by all repositories:

- Equality filters restricted to a per-repository whitelist.
- Update helpers with an explicit updatable-field whitelist (no mass-assignment).
- A soft-delete hook.
- No business logic, no commit/rollback; the Unit of Work owns transactions.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Select, and_, func, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from moviehub_auth.core.extensions import db

E = TypeVar("E")  # SQLAlchemy mapped entity type


class BaseRepository(Generic[E]):
    """Persistence-only repository for a single aggregate.

    Subclasses MUST define ``model`` and MAY override ``_filterable_fields``,
    ``_updatable_fields`` and ``_soft_delete``.
    """

    #: SQLAlchemy mapped model (must be set by subclasses)
    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        """
        :param session: Session shared across the Unit of Work scope. Falls
            back to the Flask-scoped session when omitted.
        :type session: :class:`sqlalchemy.orm.Session` | None
        """
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    # ------------------------------ Extensibility ----------------------------

    def _soft_delete(self, instance: E) -> bool:
        """Hook for soft deletion. Return ``True`` if deletion was handled."""
        return False

    def _pk_attr(self) -> InstrumentedAttribute[Any] | None:
        return getattr(self.model, "id", None)

    def _filterable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]]:
        """Whitelist of public keys usable in equality filters."""
        return {}

    def _updatable_fields(self) -> set[str]:
        """Whitelist of public keys that can be assigned on update."""
        return set()

    # ------------------------------ Internals --------------------------------

    def _apply_equality_filters(
        self,
        stmt: Select[Any],
        filters: Mapping[str, Any] | None,
    ) -> Select[Any]:
        """Apply whitelisted equality filters; unknown keys raise ``ValueError``."""
        if not filters:
            return stmt
        allowed = self._filterable_fields()
        unknown = [k for k in filters if k not in allowed]
        if unknown:
            raise ValueError(f"Unknown or non-filterable fields: {unknown}")
        clauses = [allowed[k] == v for k, v in filters.items()]
        return stmt.where(and_(*clauses))

    # --------------------------------- CRUD ----------------------------------

    def add(self, instance: E) -> E:
        """Stage a new entity and flush so constraint violations surface here."""
        self.session.add(instance)
        self.flush()
        return instance

    def get(self, entity_id: Any) -> E | None:
        pk_attr = self._pk_attr()
        if pk_attr is None:
            raise RuntimeError("BaseRepository.get requires a detectable PK attribute.")
        stmt = select(self.model).where(pk_attr == entity_id)
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def get_for_update(self, entity_id: Any) -> E | None:
        """Retrieve an entity by PK with a ``FOR UPDATE`` lock (when supported)."""
        pk_attr = self._pk_attr()
        if pk_attr is None:
            raise RuntimeError("BaseRepository.get_for_update requires a detectable PK.")
        stmt = select(self.model).where(pk_attr == entity_id).with_for_update()
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def find_one(self, **filters: Any) -> E | None:
        stmt = self._apply_equality_filters(select(self.model), filters)
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def exists(self, **filters: Any) -> bool:
        stmt = self._apply_equality_filters(select(func.count()).select_from(self.model), filters)
        return bool(self.session.execute(stmt).scalar())

    def delete(self, instance: E) -> None:
        """Delete an entity (soft or hard) and flush changes."""
        if not self._soft_delete(instance):
            self.session.delete(instance)
        self.flush()

    def flush(self) -> None:
        self.session.flush()

    # ----------------------------- Safe updates -------------------------------

    def update(self, instance: E, **fields: Any) -> E:
        """
        Assign whitelisted keys to ``instance`` and flush.

        Uses ``setattr`` so ``@validates`` hooks on the model run.

        :raises ValueError: If a key is not in :meth:`_updatable_fields`.
        """
        allowed = self._updatable_fields()
        unknown = [k for k in fields if k not in allowed]
        if unknown:
            raise ValueError(f"Unknown or non-updatable fields: {unknown}")
        for k, v in fields.items():
            setattr(instance, k, v)
        self.flush()
        return instance
