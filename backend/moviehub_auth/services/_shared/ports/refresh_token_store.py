from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from enum import Enum, auto
from typing import Protocol
from uuid import uuid4

from moviehub_auth.security.tokens import IssuedRefreshToken, hash_refresh_token

DEFAULT_REUSE_GRACE = timedelta(seconds=5)


class RotationResult(Enum):
    """Outcome of an atomic refresh rotation attempt."""

    OK = auto()
    NOT_FOUND = auto()
    EXPIRED = auto()
    REUSED = auto()


@dataclass(frozen=True, slots=True)
class RefreshSessionView:
    """
    Read-model for one refresh token row.

    :ivar token_hash: SHA-256 digest of the opaque token (storage key).
    :ivar account_id: Owner account id.
    :ivar family_id: Rotation chain shared by all descendants of one login.
    :ivar created_at: Issuance time (UTC).
    :ivar expires_at: Absolute expiration (UTC).
    :ivar revoked: Monotonic revocation flag.
    :ivar rotated_at: When the token was consumed by a rotation, if it was.
    """

    token_hash: str
    account_id: str
    family_id: str
    created_at: datetime
    expires_at: datetime
    revoked: bool = False
    rotated_at: datetime | None = None

    def is_active(self, now: datetime) -> bool:
        return not self.revoked and self.expires_at > now


@dataclass(frozen=True, slots=True)
class RotationOutcome:
    """
    Result of :meth:`RefreshTokenStore.rotate`.

    :ivar result: Status of the attempt.
    :ivar session: The successor row on ``OK``; the redeemed row otherwise
        (``None`` when it was not found).
    :ivar chain_revoked: ``True`` when reuse revoked the whole family.
    """

    result: RotationResult
    session: RefreshSessionView | None = None
    chain_revoked: bool = False

    @property
    def ok(self) -> bool:
        return self.result is RotationResult.OK


def chain_revocation_due(view: RefreshSessionView, now: datetime, grace: timedelta) -> bool:
    """
    Decide whether redeeming the already-revoked ``view`` compromises its family.

    A token rotated less than ``grace`` ago is treated as a concurrent duplicate
    submission, which must not kill the winner's successor. Anything older, or
    a token revoked by logout, revokes the chain.
    """
    if view.rotated_at is None:
        return True
    return now - view.rotated_at > grace


class RefreshTokenStore(Protocol):
    """
    Stateful store for refresh tokens.

    Tokens are addressed by their plaintext value at the API and persisted
    under :func:`~moviehub_auth.security.tokens.hash_refresh_token`. Rotation
    MUST be atomic across processes; writes MUST be idempotent. Transient
    backend failures raise
    :class:`~moviehub_auth.services._shared.errors.StoreUnavailableError`.
    """

    def create(
        self,
        *,
        account_id: str,
        issued: IssuedRefreshToken,
        family_id: str | None = None,
    ) -> RefreshSessionView:
        """Persist a new active token, starting a new family unless ``family_id`` is given."""

    def find_active(self, token: str) -> RefreshSessionView | None:
        """Return the row only if it exists, is not revoked and has not expired."""

    def get(self, token: str) -> RefreshSessionView | None:
        """Return the row regardless of its state."""

    def rotate(
        self,
        *,
        old_token: str,
        successor: IssuedRefreshToken,
        now: datetime,
    ) -> RotationOutcome:
        """Atomically revoke ``old_token`` and persist ``successor`` in its family."""

    def revoke(self, token: str) -> bool:
        """Revoke one token. :returns: ``True`` if a row existed."""

    def revoke_family(self, family_id: str) -> int:
        """Revoke every token of a rotation chain. :returns: Rows newly revoked."""

    def revoke_all_for_account(self, account_id: str) -> int:
        """Revoke every token of an account. :returns: Rows newly revoked."""

    def purge_expired(self, now: datetime) -> int:
        """Delete rows whose expiry has passed. :returns: Rows deleted."""


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    In-memory refresh token store with atomic rotation behavior.

    .. note::
       Uses a threading lock to emulate the backend's compare-and-set.
       Suitable for unit tests and single-process development only.
    """

    def __init__(self, *, reuse_grace: timedelta = DEFAULT_REUSE_GRACE) -> None:
        self.reuse_grace = reuse_grace
        self._rows: dict[str, RefreshSessionView] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _now() -> datetime:
        return datetime.now(UTC)

    def create(
        self,
        *,
        account_id: str,
        issued: IssuedRefreshToken,
        family_id: str | None = None,
    ) -> RefreshSessionView:
        view = RefreshSessionView(
            token_hash=hash_refresh_token(issued.token),
            account_id=str(account_id),
            family_id=family_id or uuid4().hex,
            created_at=self._now(),
            expires_at=issued.expires_at,
        )
        with self._lock:
            self._rows[view.token_hash] = view
        return view

    def find_active(self, token: str) -> RefreshSessionView | None:
        view = self.get(token)
        if view is None or not view.is_active(self._now()):
            return None
        return view

    def get(self, token: str) -> RefreshSessionView | None:
        return self._rows.get(hash_refresh_token(token))

    def rotate(
        self,
        *,
        old_token: str,
        successor: IssuedRefreshToken,
        now: datetime,
    ) -> RotationOutcome:
        key = hash_refresh_token(old_token)
        with self._lock:
            row = self._rows.get(key)
            if row is None:
                return RotationOutcome(RotationResult.NOT_FOUND)
            if row.expires_at <= now:
                return RotationOutcome(RotationResult.EXPIRED, row)
            if row.revoked:
                chain = chain_revocation_due(row, now, self.reuse_grace)
                if chain:
                    self._revoke_where(lambda v: v.family_id == row.family_id)
                return RotationOutcome(RotationResult.REUSED, row, chain_revoked=chain)

            self._rows[key] = replace(row, revoked=True, rotated_at=now)
            new = RefreshSessionView(
                token_hash=hash_refresh_token(successor.token),
                account_id=row.account_id,
                family_id=row.family_id,
                created_at=now,
                expires_at=successor.expires_at,
            )
            self._rows[new.token_hash] = new
            return RotationOutcome(RotationResult.OK, new)

    def revoke(self, token: str) -> bool:
        key = hash_refresh_token(token)
        with self._lock:
            row = self._rows.get(key)
            if row is None:
                return False
            if not row.revoked:
                self._rows[key] = replace(row, revoked=True)
            return True

    def revoke_family(self, family_id: str) -> int:
        with self._lock:
            return self._revoke_where(lambda v: v.family_id == family_id)

    def revoke_all_for_account(self, account_id: str) -> int:
        with self._lock:
            return self._revoke_where(lambda v: v.account_id == str(account_id))

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            stale = [k for k, v in self._rows.items() if v.expires_at <= now]
            for k in stale:
                del self._rows[k]
            return len(stale)

    def _revoke_where(self, predicate) -> int:
        # caller holds the lock
        count = 0
        for key, view in list(self._rows.items()):
            if predicate(view) and not view.revoked:
                self._rows[key] = replace(view, revoked=True)
                count += 1
        return count
