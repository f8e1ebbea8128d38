"""Salted password hashing on a bounded worker pool."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from werkzeug.security import check_password_hash, generate_password_hash

log = logging.getLogger(__name__)

DEFAULT_METHOD = "scrypt"


class PasswordHasher:
    """
    One-way password hashing backed by :mod:`werkzeug.security`.

    Hashing is deliberately expensive, so it runs on a dedicated thread pool
    whose size bounds how many hashes are computed at once; request threads
    only wait on the result.

    :param method: Werkzeug method string carrying the cost parameters,
        e.g. ``"scrypt:32768:8:1"`` or ``"pbkdf2:sha256:600000"``.
    :type method: str
    :param max_workers: Size of the hashing pool.
    :type max_workers: int
    """

    def __init__(self, *, method: str = DEFAULT_METHOD, max_workers: int = 4) -> None:
        self.method = method
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, int(max_workers)), thread_name_prefix="pwhash"
        )
        # fixed digest so unknown-account logins cost one real verification
        self._dummy_digest = generate_password_hash("moviehub-timing-equaliser", method=method)

    def hash(self, plaintext: str) -> str:
        """
        Return a salted digest for ``plaintext``.

        :raises ValueError: If ``plaintext`` is empty.
        """
        if not isinstance(plaintext, str) or not plaintext:
            raise ValueError("Password must be a non-empty string.")
        return self._executor.submit(generate_password_hash, plaintext, method=self.method).result()

    def verify(self, plaintext: str, digest: str | None) -> bool:
        """Check ``plaintext`` against ``digest``; malformed digests yield ``False``."""
        if not plaintext or not digest or not isinstance(digest, str):
            return False
        return self._executor.submit(_safe_check, digest, plaintext).result()

    def dummy_verify(self, plaintext: str) -> None:
        """Spend one verification on a fixed digest and discard the outcome."""
        self.verify(plaintext or "-", self._dummy_digest)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)


def _safe_check(digest: str, plaintext: str) -> bool:
    try:
        return bool(check_password_hash(digest, plaintext))
    except (ValueError, TypeError, LookupError) as exc:
        log.warning("password.verify_malformed_digest: %s", type(exc).__name__)
        return False
