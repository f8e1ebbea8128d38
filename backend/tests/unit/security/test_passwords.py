"""Tests for the salted password hasher."""

from __future__ import annotations

import pytest

from moviehub_auth.security import PasswordHasher

METHOD = "pbkdf2:sha256:1000"


@pytest.fixture(scope="module")
def hasher():
    h = PasswordHasher(method=METHOD, max_workers=2)
    yield h
    h.shutdown()


@pytest.mark.parametrize("plaintext", ["secret1", "Passw0rd!", "ünïcødé-🔑", "x" * 128])
def test_verify_accepts_own_hash(hasher, plaintext):
    assert hasher.verify(plaintext, hasher.hash(plaintext)) is True


def test_verify_rejects_other_password(hasher):
    digest = hasher.hash("secret1")
    assert hasher.verify("secret2", digest) is False


def test_hash_is_salted(hasher):
    assert hasher.hash("secret1") != hasher.hash("secret1")


def test_hash_never_contains_plaintext(hasher):
    assert "secret1" not in hasher.hash("secret1")


def test_hash_rejects_empty_password(hasher):
    with pytest.raises(ValueError):
        hasher.hash("")


@pytest.mark.parametrize("digest", [None, "", "not-a-hash", "unknown$salt$deadbeef"])
def test_verify_returns_false_on_malformed_digest(hasher, digest):
    assert hasher.verify("secret1", digest) is False


def test_verify_returns_false_on_empty_plaintext(hasher):
    assert hasher.verify("", hasher.hash("secret1")) is False


def test_dummy_verify_returns_none(hasher):
    assert hasher.dummy_verify("anything") is None
