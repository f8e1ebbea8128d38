"""Account repository: lookups by normalized email, soft deletion."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import cast

from sqlalchemy import select

from moviehub_auth.models.account import Account, normalize_email
from moviehub_auth.repositories.base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """Persistence-only repository for :class:`Account`.

    Lookups ignore soft-deleted rows unless ``include_deleted`` is passed.
    It never hashes passwords or issues tokens.
    """

    model = Account

    def _filterable_fields(self):
        return {
            "email": Account.email,
            "role": Account.role,
            "status": Account.status,
        }

    def _updatable_fields(self):
        """Profile fields only; credentials and status change through the model."""
        return {"first_name", "last_name"}

    def _soft_delete(self, instance: Account) -> bool:
        instance.soft_delete(datetime.now(UTC))
        return True

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str, *, include_deleted: bool = False) -> Account | None:
        """Fetch an account by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: Account instance or ``None`` when not found.
        :rtype: Account | None
        """
        stmt = select(Account).where(Account.email == normalize_email(email))
        if not include_deleted:
            stmt = stmt.where(Account.deleted_at.is_(None))
        return cast(Account | None, self.session.execute(stmt).scalars().first())

    def exists_by_email(self, email: str) -> bool:
        """Return ``True`` when a live account uses ``email``."""
        stmt = select(Account.id).where(
            Account.email == normalize_email(email),
            Account.deleted_at.is_(None),
        )
        return self.session.execute(stmt).first() is not None

    def purge(self, instance: Account) -> None:
        """Remove the row outright, bypassing soft deletion."""
        self.session.delete(instance)
        self.flush()

    def get_active(self, account_id: str) -> Account | None:
        """Return the account unless it is missing or soft-deleted."""
        account = self.get(account_id)
        if account is None or account.is_deleted:
            return None
        return account
