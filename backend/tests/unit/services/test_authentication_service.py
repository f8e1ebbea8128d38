"""Unit tests for AuthenticationService against the SQL refresh store."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import pytest

from moviehub_auth.models import AccountStatus
from moviehub_auth.repositories import AccountRepository
from moviehub_auth.services import (
    AuthenticationService,
    AuthResult,
    LoginIn,
    LoginPolicy,
    LogoutIn,
    RefreshIn,
    RegisterIn,
)
from moviehub_auth.services._shared.errors import (
    AUTHENTICATION_FAILED,
    AuthenticationFailedError,
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    RefreshTokenExpiredError,
    RefreshTokenNotFoundError,
    ReuseDetectedError,
    StoreUnavailableError,
)
from moviehub_auth.services._shared.ports import InMemoryRefreshTokenStore
from tests.factories.account import DEFAULT_PASSWORD, AccountFactory, RefreshTokenFactory


def _register(service, email="alice@example.com", password="secret1") -> AuthResult:
    return service.register(
        RegisterIn(email=email, password=password, first_name="Alice", last_name="Liddell")
    )


def _security_events(caplog) -> list[str]:
    return [
        getattr(r, "event", None) for r in caplog.records if r.name == "moviehub_auth.security"
    ]


# -------------------------------- Register -------------------------------- #
def test_register_creates_account_and_signs_in(auth_service, components):
    result = _register(auth_service, email="  Alice@Example.COM ")

    assert isinstance(result, AuthResult)
    assert result.account.email == "alice@example.com"
    assert result.account.role == "user"
    assert result.account.status == "active"
    assert result.token_type == "Bearer"

    claims = components.validator.validate(result.access_token)
    assert claims.subject == result.account.id
    assert claims.email == "alice@example.com"

    session = auth_service.refresh_store.find_active(result.refresh_token)
    assert session is not None
    assert session.account_id == result.account.id


def test_register_duplicate_email_case_insensitive(auth_service):
    _register(auth_service)
    with pytest.raises(EmailAlreadyExistsError):
        _register(auth_service, email="ALICE@example.com")


class _UnavailableStore(InMemoryRefreshTokenStore):
    def create(self, **kwargs):
        raise StoreUnavailableError("redis")


def test_register_rolls_back_account_when_store_is_down(auth_service, components, caplog):
    down = AuthenticationService(
        hasher=components.hasher,
        issuer=components.issuer,
        refresh_store=_UnavailableStore(),
    )

    with caplog.at_level(logging.WARNING, logger="moviehub_auth.security"):
        with pytest.raises(StoreUnavailableError):
            _register(down, email="retry@example.com")

    assert AccountRepository().get_by_email("retry@example.com") is None
    assert "auth.register_rolled_back" in _security_events(caplog)
    # The retry is a fresh registration, not a conflict.
    assert _register(auth_service, email="retry@example.com").account.email == "retry@example.com"


# ---------------------------- Current account ----------------------------- #
def test_current_account_loads_live_account(auth_service):
    result = _register(auth_service)
    current = auth_service.current_account(result.account.id)
    assert current.id == result.account.id
    assert current.email == "alice@example.com"
    assert current.status == "active"


@pytest.mark.parametrize("status", [AccountStatus.DISABLED, None])
def test_current_account_rejects_disabled_or_deleted(auth_service, status):
    account = AccountFactory(status=status or AccountStatus.ACTIVE)
    if status is None:
        account.soft_delete(datetime.now(UTC))

    with pytest.raises(InvalidCredentialsError):
        auth_service.current_account(account.id)


def test_current_account_unknown_id(auth_service):
    with pytest.raises(InvalidCredentialsError):
        auth_service.current_account("missing")


# --------------------------------- Login ---------------------------------- #
def test_login_success_resets_failures(auth_service, session):
    account = AccountFactory(email="bob@example.com", failed_login_attempts=2)

    result = auth_service.login(LoginIn(email="BOB@example.com", password=DEFAULT_PASSWORD))

    assert result.account.id == account.id
    session.expire_all()
    assert account.failed_login_attempts == 0
    assert account.last_login_at is not None


def test_wrong_password_and_unknown_email_are_indistinguishable(auth_service):
    AccountFactory(email="bob@example.com")

    with pytest.raises(InvalidCredentialsError) as wrong:
        auth_service.login(LoginIn(email="bob@example.com", password="nope"))
    with pytest.raises(InvalidCredentialsError) as unknown:
        auth_service.login(LoginIn(email="ghost@example.com", password="nope"))

    assert str(wrong.value) == str(unknown.value) == AUTHENTICATION_FAILED


def test_unknown_email_spends_one_dummy_verification(auth_service, monkeypatch):
    calls: list[str] = []
    monkeypatch.setattr(auth_service.hasher, "dummy_verify", lambda pw: calls.append(pw))

    with pytest.raises(InvalidCredentialsError):
        auth_service.login(LoginIn(email="ghost@example.com", password="whatever"))

    assert calls == ["whatever"]


def test_lockout_after_repeated_failures(auth_service, session, caplog):
    account = AccountFactory(email="carol@example.com")

    with caplog.at_level(logging.INFO, logger="moviehub_auth.security"):
        for _ in range(3):
            with pytest.raises(InvalidCredentialsError):
                auth_service.login(LoginIn(email="carol@example.com", password="wrong"))

        # Correct password is still refused while locked, with the same error.
        with pytest.raises(InvalidCredentialsError):
            auth_service.login(LoginIn(email="carol@example.com", password=DEFAULT_PASSWORD))

    session.expire_all()
    assert account.locked_until is not None
    events = _security_events(caplog)
    assert "auth.account_locked" in events
    reasons = [getattr(r, "reason", None) for r in caplog.records]
    assert reasons.count("bad_password") == 3
    assert "account_locked" in reasons


def test_lock_expires(components, refresh_store):
    AccountFactory(email="dave@example.com")
    later = datetime.now(UTC) + timedelta(hours=1)
    service = AuthenticationService(
        hasher=components.hasher,
        issuer=components.issuer,
        refresh_store=refresh_store,
        policy=LoginPolicy(max_failed_attempts=1, lockout=timedelta(minutes=15)),
    )
    with pytest.raises(InvalidCredentialsError):
        service.login(LoginIn(email="dave@example.com", password="wrong"))

    service_later = AuthenticationService(
        hasher=components.hasher,
        issuer=components.issuer,
        refresh_store=refresh_store,
        policy=LoginPolicy(max_failed_attempts=1),
        clock=lambda: later,
    )
    result = service_later.login(LoginIn(email="dave@example.com", password=DEFAULT_PASSWORD))
    assert result.account.email == "dave@example.com"


def test_disabled_account_cannot_login(auth_service):
    AccountFactory(email="erin@example.com", status=AccountStatus.DISABLED)
    with pytest.raises(InvalidCredentialsError):
        auth_service.login(LoginIn(email="erin@example.com", password=DEFAULT_PASSWORD))


# -------------------------------- Refresh --------------------------------- #
def test_refresh_rotates_pair(auth_service, components):
    first = _register(auth_service)
    second = auth_service.refresh(RefreshIn(refresh_token=first.refresh_token))

    assert second.refresh_token != first.refresh_token
    assert second.account.id == first.account.id
    assert components.validator.validate(second.access_token).subject == first.account.id

    old = auth_service.refresh_store.get(first.refresh_token)
    new = auth_service.refresh_store.get(second.refresh_token)
    assert old.revoked and old.rotated_at is not None
    assert not new.revoked
    assert new.family_id == old.family_id


def test_duplicate_within_grace_keeps_successor(auth_service, caplog):
    first = _register(auth_service)
    second = auth_service.refresh(RefreshIn(refresh_token=first.refresh_token))

    with caplog.at_level(logging.INFO, logger="moviehub_auth.security"):
        with pytest.raises(ReuseDetectedError):
            auth_service.refresh(RefreshIn(refresh_token=first.refresh_token))

    assert "auth.refresh_reuse_detected" in _security_events(caplog)
    assert "auth.chain_revoked" not in _security_events(caplog)
    assert auth_service.refresh_store.find_active(second.refresh_token) is not None


def test_reuse_after_grace_revokes_chain(auth_service, components, refresh_store, caplog):
    first = _register(auth_service)
    second = auth_service.refresh(RefreshIn(refresh_token=first.refresh_token))

    attacker = AuthenticationService(
        hasher=components.hasher,
        issuer=components.issuer,
        refresh_store=refresh_store,
        clock=lambda: datetime.now(UTC) + timedelta(minutes=1),
    )
    with caplog.at_level(logging.INFO, logger="moviehub_auth.security"):
        with pytest.raises(ReuseDetectedError):
            attacker.refresh(RefreshIn(refresh_token=first.refresh_token))

    assert "auth.chain_revoked" in _security_events(caplog)
    with pytest.raises(AuthenticationFailedError):
        auth_service.refresh(RefreshIn(refresh_token=second.refresh_token))


def test_refresh_unknown_token(auth_service):
    with pytest.raises(RefreshTokenNotFoundError) as exc:
        auth_service.refresh(RefreshIn(refresh_token="not-a-real-token"))
    assert str(exc.value) == AUTHENTICATION_FAILED


def test_refresh_expired_token(auth_service):
    RefreshTokenFactory(
        token="stale-token", expires_at=datetime.now(UTC) - timedelta(seconds=1)
    )
    with pytest.raises(RefreshTokenExpiredError):
        auth_service.refresh(RefreshIn(refresh_token="stale-token"))


def test_refresh_for_disabled_account_revokes_family(auth_service, session):
    first = _register(auth_service)
    account = AccountRepository(session=session).get(first.account.id)
    account.disable()
    session.flush()

    with pytest.raises(InvalidCredentialsError):
        auth_service.refresh(RefreshIn(refresh_token=first.refresh_token))

    view = auth_service.refresh_store.get(first.refresh_token)
    assert view.revoked
    assert auth_service.refresh_store.revoke_family(view.family_id) == 0


# --------------------------------- Logout --------------------------------- #
def test_logout_is_idempotent(auth_service):
    first = _register(auth_service)

    auth_service.logout(LogoutIn(refresh_token=first.refresh_token))
    auth_service.logout(LogoutIn(refresh_token=first.refresh_token))
    auth_service.logout(LogoutIn(refresh_token="never-issued"))

    with pytest.raises(ReuseDetectedError):
        auth_service.refresh(RefreshIn(refresh_token=first.refresh_token))


def test_logout_all_sessions(auth_service, caplog):
    a = _register(auth_service)
    b = auth_service.login(LoginIn(email="alice@example.com", password="secret1"))

    with caplog.at_level(logging.INFO, logger="moviehub_auth.security"):
        auth_service.logout(LogoutIn(refresh_token=a.refresh_token, all_sessions=True))

    assert auth_service.refresh_store.find_active(b.refresh_token) is None
    record = next(r for r in caplog.records if getattr(r, "event", None) == "auth.logout")
    assert record.all_sessions is True
    assert record.revoked == 1
