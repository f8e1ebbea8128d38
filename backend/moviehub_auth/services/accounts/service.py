# moviehub_auth/services/accounts/service.py
from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError

from moviehub_auth.models.account import Account, AccountRole, normalize_email
from moviehub_auth.security.passwords import PasswordHasher
from moviehub_auth.services._shared.base import BaseService, ServiceContext
from moviehub_auth.services._shared.errors import (
    EmailAlreadyExistsError,
    NotFoundError,
    violates,
)
from moviehub_auth.services._shared.events import publish_events
from moviehub_auth.services._shared.ports import RefreshTokenStore
from moviehub_auth.services.auth.dto import AccountPublicOut, RegisterIn

EMAIL_UNIQUE_MARKERS = ("uq_accounts_email_active", "accounts.email")


class AccountAdminService(BaseService):
    """
    Operator-facing account management used by the ``flask auth`` commands.

    Unlike :class:`~moviehub_auth.services.auth.service.AuthenticationService`
    these operations never issue tokens.
    """

    def __init__(
        self,
        *,
        hasher: PasswordHasher,
        refresh_store: RefreshTokenStore,
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.hasher = hasher
        self.refresh_store = refresh_store

    def create_account(
        self, dto: RegisterIn, *, role: AccountRole = AccountRole.USER
    ) -> AccountPublicOut:
        """
        Create an account with the given role.

        :raises EmailAlreadyExistsError: If a live account already uses the email.
        """
        email = normalize_email(dto.email)
        with self.rw_uow() as uow:
            if uow.accounts.exists_by_email(email):
                raise EmailAlreadyExistsError()

        digest = self.hasher.hash(dto.password)
        try:
            with self.rw_uow() as uow:
                account = Account.register(
                    email=email,
                    password_hash=digest,
                    first_name=dto.first_name,
                    last_name=dto.last_name,
                    role=role,
                )
                uow.accounts.add(account)
                public = AccountPublicOut.from_model(account)
                events = account.pull_events()
        except IntegrityError as exc:
            if any(violates(exc, marker) for marker in EMAIL_UNIQUE_MARKERS):
                raise EmailAlreadyExistsError() from exc
            raise

        publish_events(events)
        return public

    def discard_account(self, account_id: str) -> None:
        """Hard-delete an account that never received a session."""
        with self.rw_uow() as uow:
            account = uow.accounts.get(account_id)
            if account is not None:
                uow.accounts.purge(account)

    def disable_account(self, email: str) -> int:
        """
        Disable an account and revoke all of its refresh sessions.

        :returns: Number of sessions revoked.
        :raises NotFoundError: If no live account uses ``email``.
        """
        with self.rw_uow() as uow:
            account = uow.accounts.get_by_email(email)
            if account is None:
                raise NotFoundError("Account", normalize_email(email))
            account.disable()
            account_id = account.id
            events = account.pull_events()

        publish_events(events)
        return self.refresh_store.revoke_all_for_account(account_id)

    def delete_account(self, email: str) -> int:
        """
        Soft-delete an account and revoke its sessions; the email becomes free.

        :returns: Number of sessions revoked.
        :raises NotFoundError: If no live account uses ``email``.
        """
        with self.rw_uow() as uow:
            account = uow.accounts.get_by_email(email)
            if account is None:
                raise NotFoundError("Account", normalize_email(email))
            uow.accounts.delete(account)
            account_id = account.id
            events = account.pull_events()

        publish_events(events)
        return self.refresh_store.revoke_all_for_account(account_id)

    def purge_expired_tokens(self) -> int:
        """Garbage-collect expired refresh token rows."""
        return self.refresh_store.purge_expired(datetime.now(UTC))
