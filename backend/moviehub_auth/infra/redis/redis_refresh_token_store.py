# comments in English; reST docstrings
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import redis  # type: ignore[import-untyped]

from moviehub_auth.security.tokens import IssuedRefreshToken, hash_refresh_token
from moviehub_auth.services._shared.errors import StoreUnavailableError
from moviehub_auth.services._shared.ports import (
    RefreshSessionView,
    RefreshTokenStore,
    RotationOutcome,
    RotationResult,
    chain_revocation_due,
)
from moviehub_auth.services._shared.ports.refresh_token_store import DEFAULT_REUSE_GRACE

log = logging.getLogger(__name__)


def _b(s: bytes | None, default: str = "") -> str:
    return s.decode() if s is not None else default


def _ts(dt: datetime) -> str:
    return f"{dt.timestamp():.6f}"


def _dt(raw: bytes | None) -> datetime | None:
    if not raw:
        return None
    return datetime.fromtimestamp(float(raw.decode()), tz=UTC)


@dataclass(slots=True)
class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed refresh token store with atomic rotation.

    Layout (``<p>`` is :attr:`prefix`):

    - ``<p>:<token_hash>``: hash with the row fields; its TTL is the token's
      remaining lifetime, so Redis expires dead rows natively.
    - ``<p>:f:<family_id>`` and ``<p>:a:<account_id>``: sets of token hashes
      used for chain and account-wide revocation.

    :param r: A Redis client (already connected).
    :param reuse_grace: Window in which redeeming a just-rotated token is
        treated as a duplicate submission rather than theft.
    :param prefix: Key namespace.
    """

    r: redis.Redis
    reuse_grace: timedelta = DEFAULT_REUSE_GRACE
    prefix: str = "rt"

    # -------------------- helpers --------------------

    def _k(self, token_hash: str) -> str:
        return f"{self.prefix}:{token_hash}"

    def _kf(self, family_id: str) -> str:
        return f"{self.prefix}:f:{family_id}"

    def _ka(self, account_id: str) -> str:
        return f"{self.prefix}:a:{account_id}"

    @staticmethod
    def _ttl(expires_at: datetime, now: datetime) -> int:
        return max(1, int((expires_at - now).total_seconds()) + 1)

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except (redis.ConnectionError, redis.TimeoutError) as exc:
            log.error("refresh_store.unavailable backend=redis", exc_info=True)
            raise StoreUnavailableError("redis") from exc

    def _view(self, token_hash: str, h: dict[bytes, bytes]) -> RefreshSessionView:
        return RefreshSessionView(
            token_hash=token_hash,
            account_id=_b(h.get(b"account_id")),
            family_id=_b(h.get(b"family_id")),
            created_at=_dt(h.get(b"created_at")),
            expires_at=_dt(h.get(b"expires_at")),
            revoked=_b(h.get(b"revoked"), "0") == "1",
            rotated_at=_dt(h.get(b"rotated_at")),
        )

    @staticmethod
    def _row(
        account_id: str, family_id: str, created_at: datetime, expires_at: datetime
    ) -> dict[str, str]:
        return {
            "account_id": account_id,
            "family_id": family_id,
            "created_at": _ts(created_at),
            "expires_at": _ts(expires_at),
            "revoked": "0",
        }

    def _revoke_hashes(self, hashes: Iterable[str]) -> int:
        """Flag every still-existing, unrevoked row; never recreate expired keys."""
        keys = [self._k(h) for h in hashes]
        if not keys:
            return 0
        with self.r.pipeline(transaction=False) as p:
            for k in keys:
                p.hmget(k, "revoked", "expires_at")
            states = p.execute()

        live = [
            (k, float(exp))
            for k, (revoked, exp) in zip(keys, states, strict=True)
            if exp is not None and revoked != b"1"
        ]
        if not live:
            return 0
        with self.r.pipeline(transaction=True) as p:
            for k, exp in live:
                p.hset(k, "revoked", "1")
                # re-pin the deadline in case the key vanished in between
                p.expireat(k, int(exp) + 1)
            p.execute()
        return len(live)

    def _members(self, set_key: str) -> list[str]:
        return sorted(
            m.decode() if isinstance(m, bytes | bytearray) else str(m)
            for m in self.r.smembers(set_key)
        )

    # -------------------- API ------------------------

    def create(
        self,
        *,
        account_id: str,
        issued: IssuedRefreshToken,
        family_id: str | None = None,
    ) -> RefreshSessionView:
        """
        Insert the refresh row *before* the token is handed to the client.

        There is no window where a token exists without a server-side record.
        """
        now = datetime.now(UTC)
        token_hash = hash_refresh_token(issued.token)
        family_id = family_id or uuid4().hex
        account_id = str(account_id)
        ttl = self._ttl(issued.expires_at, now)

        with self._guard(), self.r.pipeline(transaction=True) as p:
            p.hset(
                self._k(token_hash),
                mapping=self._row(account_id, family_id, now, issued.expires_at),
            )
            p.expire(self._k(token_hash), ttl)
            p.sadd(self._kf(family_id), token_hash)
            p.expire(self._kf(family_id), ttl)
            p.sadd(self._ka(account_id), token_hash)
            p.execute()

        return RefreshSessionView(
            token_hash=token_hash,
            account_id=account_id,
            family_id=family_id,
            created_at=now,
            expires_at=issued.expires_at,
        )

    def find_active(self, token: str) -> RefreshSessionView | None:
        view = self.get(token)
        if view is None or not view.is_active(datetime.now(UTC)):
            return None
        return view

    def get(self, token: str) -> RefreshSessionView | None:
        token_hash = hash_refresh_token(token)
        with self._guard():
            h = self.r.hgetall(self._k(token_hash))
        if not h:
            return None
        return self._view(token_hash, h)

    def rotate(
        self,
        *,
        old_token: str,
        successor: IssuedRefreshToken,
        now: datetime,
    ) -> RotationOutcome:
        """
        Atomically consume ``old_token`` and create ``successor``.

        Uses Redis WATCH/MULTI/EXEC (optimistic locking):

        - Read the state of the old row while watching its key.
        - Reject if missing, expired or revoked (revoking the family when due).
        - Mark the old row rotated and create the successor in one EXEC.

        A concurrent writer aborts the EXEC; the retry then observes the
        winner's write and reports ``REUSED``.
        """
        old_hash = hash_refresh_token(old_token)
        new_hash = hash_refresh_token(successor.token)
        k_old = self._k(old_hash)
        k_new = self._k(new_hash)
        ttl = self._ttl(successor.expires_at, now)

        with self._guard():
            while True:
                try:
                    with self.r.pipeline() as p:
                        p.watch(k_old)
                        h = p.hgetall(k_old)
                        if not h:
                            p.unwatch()
                            return RotationOutcome(RotationResult.NOT_FOUND)

                        current = self._view(old_hash, h)
                        if current.expires_at <= now:
                            p.unwatch()
                            return RotationOutcome(RotationResult.EXPIRED, current)

                        if current.revoked:
                            p.unwatch()
                            chain = chain_revocation_due(current, now, self.reuse_grace)
                            if chain:
                                self._revoke_hashes(self._members(self._kf(current.family_id)))
                            return RotationOutcome(
                                RotationResult.REUSED, current, chain_revoked=chain
                            )

                        k_fam = self._kf(current.family_id)
                        p.multi()
                        p.hset(k_old, mapping={"revoked": "1", "rotated_at": _ts(now)})
                        p.hset(
                            k_new,
                            mapping=self._row(
                                current.account_id, current.family_id, now, successor.expires_at
                            ),
                        )
                        p.expire(k_new, ttl)
                        p.sadd(k_fam, new_hash)
                        p.expire(k_fam, ttl)
                        p.sadd(self._ka(current.account_id), new_hash)
                        p.execute()

                    return RotationOutcome(
                        RotationResult.OK,
                        RefreshSessionView(
                            token_hash=new_hash,
                            account_id=current.account_id,
                            family_id=current.family_id,
                            created_at=now,
                            expires_at=successor.expires_at,
                        ),
                    )

                except redis.WatchError:
                    # Concurrent modification detected; re-read and decide again
                    continue

    def revoke(self, token: str) -> bool:
        token_hash = hash_refresh_token(token)
        with self._guard():
            if not self.r.exists(self._k(token_hash)):
                return False
            self._revoke_hashes([token_hash])
        return True

    def revoke_family(self, family_id: str) -> int:
        with self._guard():
            return self._revoke_hashes(self._members(self._kf(family_id)))

    def revoke_all_for_account(self, account_id: str) -> int:
        with self._guard():
            return self._revoke_hashes(self._members(self._ka(str(account_id))))

    def purge_expired(self, now: datetime) -> int:
        """
        Drop index entries whose row is gone or past its deadline.

        Row hashes expire through their TTL; this only cleans the sets.

        :returns: Number of index entries removed.
        """
        removed = 0
        with self._guard():
            for pattern in (f"{self.prefix}:a:*", f"{self.prefix}:f:*"):
                for set_key in self.r.scan_iter(match=pattern):
                    members = self._members(set_key)
                    if not members:
                        continue
                    with self.r.pipeline(transaction=False) as p:
                        for m in members:
                            p.hget(self._k(m), "expires_at")
                        deadlines = p.execute()
                    stale = [
                        m
                        for m, exp in zip(members, deadlines, strict=True)
                        if exp is None or _dt(exp) <= now
                    ]
                    if stale:
                        self.r.srem(set_key, *stale)
                        removed += len(stale)
        return removed
