"""
Abstract Unit of Work contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from moviehub_auth.repositories import AccountRepository, RefreshTokenRepository


class UnitOfWork(ABC):
    """
    Transactional boundary for one use-case.

    Repositories exposed on the instance share a single transaction, so an
    account update and the refresh token rows it touches commit together.
    Leaving the ``with`` block normally commits; an exception rolls back and
    propagates.
    """

    accounts: AccountRepository
    refresh_tokens: RefreshTokenRepository

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()
            return
        try:
            self.commit()
        except Exception:
            self.rollback()
            raise

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...
