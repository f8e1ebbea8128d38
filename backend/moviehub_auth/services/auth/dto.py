# moviehub_auth/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from moviehub_auth.models.account import Account, as_utc

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for self-service registration.

    :param email: Account email (normalized by the model).
    :type email: str
    :param password: Raw password (hashed before persistence).
    :type password: str
    :param first_name: Profile first name.
    :type first_name: str
    :param last_name: Profile last name.
    :type last_name: str
    """

    email: str
    password: str
    first_name: str
    last_name: str


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: Account email.
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Opaque refresh token issued at login or last refresh.
    :type refresh_token: str
    """

    refresh_token: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param refresh_token: Opaque refresh token of the session to end.
    :type refresh_token: str
    :param all_sessions: If True, revoke every session of the owner.
    :type all_sessions: bool
    """

    refresh_token: str
    all_sessions: bool = False


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class AccountPublicOut:
    """Account fields safe to return to the account owner."""

    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    status: str
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, account: Account) -> AccountPublicOut:
        return cls(
            id=account.id,
            email=account.email,
            first_name=account.first_name,
            last_name=account.last_name,
            role=account.role.value,
            status=account.status.value,
            created_at=as_utc(account.created_at),
        )


@dataclass(frozen=True, slots=True)
class AuthResult:
    """
    Output DTO of register/login/refresh.

    :param account: Public view of the authenticated account.
    :param access_token: Signed JWT.
    :param refresh_token: Opaque refresh token (shown once).
    :param expires_at: Access token expiry (UTC).
    :param refresh_expires_at: Refresh token expiry (UTC).
    """

    account: AccountPublicOut
    access_token: str
    refresh_token: str
    expires_at: datetime
    refresh_expires_at: datetime
    token_type: str = "Bearer"


# ------------------------------ Policy DTO -------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginPolicy:
    """
    Brute-force protection settings.

    :param max_failed_attempts: Consecutive failures that trigger a lockout.
    :type max_failed_attempts: int
    :param lockout: Lockout duration.
    :type lockout: timedelta
    """

    max_failed_attempts: int = 5
    lockout: timedelta = timedelta(minutes=15)
