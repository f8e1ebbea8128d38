# moviehub_auth/services/auth/service.py
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from moviehub_auth.models.account import AccountEvent, AccountStatus, normalize_email
from moviehub_auth.security.passwords import PasswordHasher
from moviehub_auth.security.tokens import IssuedRefreshToken
from moviehub_auth.services._shared.base import BaseService, ServiceContext
from moviehub_auth.services._shared.errors import (
    InvalidCredentialsError,
    RefreshTokenExpiredError,
    RefreshTokenNotFoundError,
    ReuseDetectedError,
    StoreUnavailableError,
)
from moviehub_auth.services._shared.events import mask_email, publish_events
from moviehub_auth.services._shared.ports import (
    RefreshTokenStore,
    RotationOutcome,
    RotationResult,
    TokenIssuer,
)
from moviehub_auth.services.accounts.service import AccountAdminService
from moviehub_auth.services.auth.dto import (
    AccountPublicOut,
    AuthResult,
    LoginIn,
    LoginPolicy,
    LogoutIn,
    RefreshIn,
    RegisterIn,
)

security_log = logging.getLogger("moviehub_auth.security")


class AuthenticationService(BaseService):
    """
    Authentication lifecycle service (register / login / refresh / logout).

    Accounts are persisted through the unit of work; passwords go through a
    :class:`PasswordHasher`; access tokens come from a :class:`TokenIssuer`;
    refresh sessions live in a :class:`RefreshTokenStore` that rotates them
    atomically and detects reuse.

    Every authentication failure surfaces as a subclass of
    :class:`~moviehub_auth.services._shared.errors.AuthenticationFailedError`
    carrying the same message; the subclass only matters for logs and tests.
    """

    def __init__(
        self,
        *,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        refresh_store: RefreshTokenStore,
        policy: LoginPolicy | None = None,
        ctx: ServiceContext | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        :param hasher: Password hasher (bounded worker pool).
        :param issuer: Access/refresh token issuer.
        :param refresh_store: Stateful store for refresh sessions.
        :param policy: Lockout thresholds.
        :param ctx: Request-scoped context used in security logs.
        :param clock: Returns "now" in UTC; injectable for tests.
        """
        super().__init__(ctx=ctx)
        self.hasher = hasher
        self.issuer = issuer
        self.refresh_store = refresh_store
        self.policy = policy or LoginPolicy()
        self.accounts = AccountAdminService(hasher=hasher, refresh_store=refresh_store, ctx=ctx)
        self._clock = clock or (lambda: datetime.now(UTC))

    def now_utc(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------ #
    # Register
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> AuthResult:
        """
        Create an account and sign it in.

        If the refresh store cannot record the first session the new account
        is removed again, so the client may retry the same registration.

        :raises EmailAlreadyExistsError: If a live account already uses the email.
        :raises StoreUnavailableError: The refresh store is unreachable.
        """
        public = self.accounts.create_account(dto)
        try:
            return self._sign_in(public)
        except StoreUnavailableError:
            self.accounts.discard_account(public.id)
            security_log.warning(
                "registration rolled back",
                extra={"event": "auth.register_rolled_back", "account_id": public.id},
            )
            raise

    # ------------------------------------------------------------------ #
    # Current account
    # ------------------------------------------------------------------ #

    def current_account(self, account_id: str) -> AccountPublicOut:
        """
        Load the live account behind a verified access token.

        :raises InvalidCredentialsError: Account deleted or disabled since issuance.
        """
        with self.rw_uow() as uow:
            account = uow.accounts.get_active(account_id)
            if account is None or account.status != AccountStatus.ACTIVE:
                raise InvalidCredentialsError()
            return AccountPublicOut.from_model(account)

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> AuthResult:
        """
        Authenticate credentials and issue a fresh token pair.

        Unknown email, wrong password, disabled and locked accounts all raise
        the same :class:`InvalidCredentialsError`, and each branch performs
        exactly one password verification.

        :raises InvalidCredentialsError: On any authentication failure.
        """
        email = normalize_email(dto.email)
        with self.rw_uow() as uow:
            account = uow.accounts.get_by_email(email)
            snapshot = (account.id, account.password_hash) if account is not None else None

        if snapshot is None:
            self.hasher.dummy_verify(dto.password)
            self._log_login_failure(None, email, "unknown_account")
            raise InvalidCredentialsError()

        account_id, digest = snapshot
        password_ok = self.hasher.verify(dto.password, digest)
        now = self.now_utc()

        reason: str | None = None
        public: AccountPublicOut | None = None
        events: list[AccountEvent] = []
        with self.rw_uow() as uow:
            account = uow.accounts.get_for_update(account_id)
            if account is None or account.is_deleted:
                reason = "unknown_account"
            elif account.status != AccountStatus.ACTIVE:
                reason = "account_disabled"
            elif account.is_locked(now):
                reason = "account_locked"
            elif not password_ok:
                reason = "bad_password"
                account.record_failed_login(
                    now,
                    max_attempts=self.policy.max_failed_attempts,
                    lockout=self.policy.lockout,
                )
            else:
                account.record_successful_login(now)
                public = AccountPublicOut.from_model(account)
            if account is not None:
                events = account.pull_events()

        # Events are published only once the counters are committed.
        publish_events(events)
        if public is None:
            self._log_login_failure(account_id, email, reason or "unknown")
            raise InvalidCredentialsError()
        return self._sign_in(public)

    # ------------------------------------------------------------------ #
    # Refresh with atomic rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> AuthResult:
        """
        Rotate a refresh token and emit a new token pair.

        Security
        --------
        - Rotation is atomic in the store: concurrent redemptions of one
          token produce at most one winner.
        - Redeeming a revoked token is logged as reuse; outside the grace
          window the store revokes the whole rotation chain.
        - A session whose account is disabled or deleted is revoked.

        :raises ReuseDetectedError: Token already rotated or revoked.
        :raises RefreshTokenNotFoundError: Unknown token.
        :raises RefreshTokenExpiredError: Token past its lifetime.
        :raises InvalidCredentialsError: Owner can no longer authenticate.
        """
        successor = self.issuer.issue_refresh_token()
        outcome = self.refresh_store.rotate(
            old_token=dto.refresh_token,
            successor=successor,
            now=self.now_utc(),
        )
        self._raise_for_rotation(outcome)

        session = outcome.session
        with self.rw_uow() as uow:
            account = uow.accounts.get_active(session.account_id)
            if account is not None and account.status == AccountStatus.ACTIVE:
                public = AccountPublicOut.from_model(account)
            else:
                public = None

        if public is None:
            self.refresh_store.revoke_family(session.family_id)
            security_log.warning(
                "refresh denied for inactive account",
                extra={"event": "auth.refresh_denied", "account_id": session.account_id},
            )
            raise InvalidCredentialsError()

        return self._issue_pair(public, successor)

    def _raise_for_rotation(self, outcome: RotationOutcome) -> None:
        if outcome.result is RotationResult.OK:
            return

        if outcome.result is RotationResult.REUSED:
            session = outcome.session
            security_log.warning(
                "refresh token reuse detected",
                extra={
                    "event": "auth.refresh_reuse_detected",
                    "account_id": session.account_id if session else None,
                    "family_id": session.family_id if session else None,
                },
            )
            if outcome.chain_revoked:
                security_log.warning(
                    "rotation chain revoked",
                    extra={
                        "event": "auth.chain_revoked",
                        "account_id": session.account_id if session else None,
                        "family_id": session.family_id if session else None,
                    },
                )
            raise ReuseDetectedError()

        if outcome.result is RotationResult.EXPIRED:
            raise RefreshTokenExpiredError()

        raise RefreshTokenNotFoundError()

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> None:
        """
        Revoke the given refresh token; optionally every session of its owner.

        Idempotent: unknown or already-revoked tokens are acknowledged.
        Access tokens already issued stay valid until their own expiry.
        """
        session = self.refresh_store.get(dto.refresh_token)
        if session is None:
            return

        self.refresh_store.revoke(dto.refresh_token)
        revoked_all = 0
        if dto.all_sessions:
            revoked_all = self.refresh_store.revoke_all_for_account(session.account_id)

        security_log.info(
            "logout",
            extra={
                "event": "auth.logout",
                "account_id": session.account_id,
                "all_sessions": dto.all_sessions,
                "revoked": revoked_all,
            },
        )

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _sign_in(self, account: AccountPublicOut) -> AuthResult:
        """Start a new rotation family for ``account``."""
        issued = self.issuer.issue_refresh_token()
        # Persist server state before the token ever leaves the process.
        self.refresh_store.create(account_id=account.id, issued=issued)
        return self._issue_pair(account, issued)

    def _issue_pair(self, account: AccountPublicOut, refresh: IssuedRefreshToken) -> AuthResult:
        access = self.issuer.issue_access_token(account.id, account.email, account.role)
        return AuthResult(
            account=account,
            access_token=access.token,
            refresh_token=refresh.token,
            expires_at=access.expires_at,
            refresh_expires_at=refresh.expires_at,
        )

    def _log_login_failure(self, account_id: str | None, email: str, reason: str) -> None:
        security_log.warning(
            "login failed for %s",
            mask_email(email),
            extra={
                "event": "auth.login_failed",
                "account_id": account_id,
                "reason": reason,
                "remote_addr": self.ctx.remote_addr,
            },
        )
