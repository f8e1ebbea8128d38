"""Tests for the Account aggregate."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from moviehub_auth.models import (
    Account,
    AccountDeleted,
    AccountDisabled,
    AccountLocked,
    AccountRegistered,
    AccountRole,
    AccountStatus,
)
from tests.factories.account import AccountFactory

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _register(**overrides) -> Account:
    params = {
        "email": "  Alice@Example.COM ",
        "password_hash": "pbkdf2:sha256:1000$salt$digest",
        "first_name": " Alice ",
        "last_name": "Liddell",
    }
    params.update(overrides)
    return Account.register(**params)


class TestAccountRegistration:
    def test_register_normalizes_and_records_event(self):
        account = _register()

        assert account.id
        assert account.email == "alice@example.com"
        assert account.first_name == "Alice"
        assert account.role is AccountRole.USER
        assert account.status is AccountStatus.ACTIVE
        (event,) = account.pending_events
        assert isinstance(event, AccountRegistered)
        assert event.account_id == account.id
        assert event.name == "AccountRegistered"

    def test_pull_events_drains_list(self):
        account = _register()
        assert len(account.pull_events()) == 1
        assert account.pending_events == ()
        assert account.pull_events() == []

    @pytest.mark.parametrize("email", ["", "no-at-sign", "user@nodot"])
    def test_invalid_email_rejected(self, email):
        with pytest.raises(ValueError):
            _register(email=email)

    def test_blank_name_rejected(self):
        with pytest.raises(ValueError):
            _register(last_name="   ")

    def test_persisted_defaults(self, session):
        account = _register()
        session.add(account)
        session.flush()
        session.refresh(account)

        assert account.failed_login_attempts == 0
        assert account.created_at is not None
        assert account.deleted_at is None


class TestEmailUniqueness:
    def test_live_duplicate_rejected(self, session):
        AccountFactory(email="dup@example.com")
        session.add(_register(email="DUP@example.com"))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_deleted_email_can_be_reused(self, session):
        old = AccountFactory(email="reuse@example.com")
        old.soft_delete(NOW)
        session.flush()

        session.add(_register(email="reuse@example.com"))
        session.flush()


class TestLoginBookkeeping:
    def test_failures_lock_on_threshold(self):
        account = AccountFactory.build()
        lockout = timedelta(minutes=15)

        assert account.record_failed_login(NOW, max_attempts=3, lockout=lockout) is False
        assert account.record_failed_login(NOW, max_attempts=3, lockout=lockout) is False
        assert account.record_failed_login(NOW, max_attempts=3, lockout=lockout) is True

        assert account.locked_until == NOW + lockout
        assert account.failed_login_attempts == 0
        assert account.is_locked(NOW + timedelta(minutes=14))
        assert not account.is_locked(NOW + lockout)
        (event,) = account.pull_events()
        assert isinstance(event, AccountLocked)
        assert event.locked_until == NOW + lockout

    def test_success_resets_counters(self):
        account = AccountFactory.build(failed_login_attempts=2, locked_until=NOW)
        account.record_successful_login(NOW)
        assert account.failed_login_attempts == 0
        assert account.locked_until is None
        assert account.last_login_at == NOW

    def test_naive_lock_deadline_is_read_as_utc(self):
        naive = (NOW + timedelta(minutes=5)).replace(tzinfo=None)
        account = AccountFactory.build(locked_until=naive)
        assert account.is_locked(NOW)


class TestLifecycle:
    def test_disable_once(self):
        account = AccountFactory.build()
        account.disable()
        account.disable()
        assert account.status is AccountStatus.DISABLED
        assert [type(e) for e in account.pull_events()] == [AccountDisabled]

    def test_soft_delete_once(self):
        account = AccountFactory.build()
        account.soft_delete(NOW)
        account.soft_delete(NOW + timedelta(days=1))
        assert account.deleted_at == NOW
        assert account.is_deleted
        assert [type(e) for e in account.pull_events()] == [AccountDeleted]

    def test_repr_hides_password_hash(self):
        account = AccountFactory.build()
        assert account.password_hash not in repr(account)
