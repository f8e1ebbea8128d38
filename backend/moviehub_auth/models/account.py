"""Account aggregate: the credential record behind every login."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum

from sqlalchemy import DateTime, Index, Integer, String, text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, validates

from moviehub_auth.core.extensions import db

from .base import ReprMixin, SoftDeleteMixin, TimestampMixin, UUIDPKMixin, new_uuid


class AccountRole(str, Enum):
    """Coarse authorization role carried in access tokens."""

    USER = "user"
    ADMIN = "admin"


class AccountStatus(str, Enum):
    """Whether the account may authenticate."""

    ACTIVE = "active"
    DISABLED = "disabled"


def normalize_email(value: str) -> str:
    """Trim and case-fold an email address."""
    return value.strip().lower()


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


# -------------------- Domain events --------------------


@dataclass(frozen=True, slots=True)
class AccountEvent:
    account_id: str
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, slots=True)
class AccountRegistered(AccountEvent):
    role: str = AccountRole.USER.value


@dataclass(frozen=True, slots=True)
class AccountLocked(AccountEvent):
    locked_until: datetime | None = None


@dataclass(frozen=True, slots=True)
class AccountDisabled(AccountEvent):
    pass


@dataclass(frozen=True, slots=True)
class AccountDeleted(AccountEvent):
    pass


class Account(UUIDPKMixin, ReprMixin, TimestampMixin, SoftDeleteMixin, db.Model):
    """
    Login identity and credential holder.

    Fields
    ------
    email : str
        Login email. Stored normalized (lowercase, trimmed); unique among
        accounts that are not soft-deleted.
    password_hash : str
        Output of :class:`moviehub_auth.security.PasswordHasher`. Never plaintext.
    role : AccountRole
        ``user`` or ``admin``.
    status : AccountStatus
        ``active`` or ``disabled``.
    first_name, last_name : str
        Profile fields captured at registration.
    failed_login_attempts : int
        Consecutive failures since the last success or lockout.
    locked_until : datetime | None
        Login is refused until this instant.
    last_login_at : datetime | None
        Last successful authentication.

    State changes that other parts of the system care about are appended to
    an in-memory event list; see :meth:`pull_events`.
    """

    __tablename__ = "accounts"

    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[AccountRole] = mapped_column(
        SAEnum(
            AccountRole,
            name="enum_account_role",
            values_callable=lambda e: [m.value for m in e],
            create_constraint=True,
        ),
        nullable=False,
        default=AccountRole.USER,
    )
    status: Mapped[AccountStatus] = mapped_column(
        SAEnum(
            AccountStatus,
            name="enum_account_status",
            values_callable=lambda e: [m.value for m in e],
            create_constraint=True,
        ),
        nullable=False,
        default=AccountStatus.ACTIVE,
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    failed_login_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    locked_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        # Email is unique among live accounts only, so a deleted address can re-register.
        Index(
            "uq_accounts_email_active",
            "email",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    # -------------------- Factories --------------------
    @classmethod
    def register(
        cls,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: AccountRole = AccountRole.USER,
    ) -> Account:
        """
        Build a new active account and record :class:`AccountRegistered`.

        :param password_hash: Digest produced by the password hasher.
        :returns: Transient instance; the caller adds it to a session.
        """
        account = cls(
            id=new_uuid(),
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            status=AccountStatus.ACTIVE,
            failed_login_attempts=0,
        )
        account._record(AccountRegistered(account_id=account.id, role=AccountRole(role).value))
        return account

    # -------------------- Queries --------------------
    def is_locked(self, now: datetime) -> bool:
        locked_until = as_utc(self.locked_until)
        return locked_until is not None and locked_until > now

    # -------------------- State transitions --------------------
    def record_failed_login(
        self, now: datetime, *, max_attempts: int, lockout: timedelta
    ) -> bool:
        """
        Count one failed password check; lock the account on the threshold.

        :returns: ``True`` if this failure locked the account.
        """
        self.failed_login_attempts = (self.failed_login_attempts or 0) + 1
        if self.failed_login_attempts < max_attempts:
            return False
        self.failed_login_attempts = 0
        self.locked_until = now + lockout
        self._record(AccountLocked(account_id=self.id, locked_until=self.locked_until))
        return True

    def record_successful_login(self, now: datetime) -> None:
        self.failed_login_attempts = 0
        self.locked_until = None
        self.last_login_at = now

    def disable(self) -> None:
        if self.status != AccountStatus.DISABLED:
            self.status = AccountStatus.DISABLED
            self._record(AccountDisabled(account_id=self.id))

    def soft_delete(self, now: datetime) -> None:
        if self.deleted_at is None:
            self.deleted_at = now
            self._record(AccountDeleted(account_id=self.id))

    # -------------------- Events --------------------
    @property
    def pending_events(self) -> tuple[AccountEvent, ...]:
        return tuple(self.__dict__.get("_pending_events", ()))

    def _record(self, event: AccountEvent) -> None:
        self.__dict__.setdefault("_pending_events", []).append(event)

    def pull_events(self) -> list[AccountEvent]:
        """Return and clear the recorded events."""
        return self.__dict__.pop("_pending_events", [])

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = normalize_email(value)
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("first_name", "last_name")
    def _normalize_name(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"{key} is required.")
        return value.strip()
