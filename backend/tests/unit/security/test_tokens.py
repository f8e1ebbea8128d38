"""Tests for access-token issuance/validation and refresh token minting."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest
from freezegun import freeze_time

from moviehub_auth.security import (
    InvalidSignatureError,
    InvalidTokenError,
    JWTTokenIssuer,
    JWTTokenValidator,
    MalformedTokenError,
    SigningKey,
    SigningKeyRing,
    TokenExpiredError,
    hash_refresh_token,
)

SECRET_A = "key-a-secret-with-at-least-32-bytes!!"
SECRET_B = "key-b-secret-with-at-least-32-bytes!!"
ISS = "moviehub-auth"
AUD = "moviehub"


def _ring(current: str = "a", previous: tuple[str, ...] = ()) -> SigningKeyRing:
    secrets_by_kid = {"a": SECRET_A, "b": SECRET_B}
    return SigningKeyRing(
        current=SigningKey(kid=current, secret=secrets_by_kid[current]),
        previous=tuple(SigningKey(kid=k, secret=secrets_by_kid[k]) for k in previous),
    )


def _issuer(ring: SigningKeyRing, **kwargs) -> JWTTokenIssuer:
    return JWTTokenIssuer(key_ring=ring, issuer=ISS, audience=AUD, **kwargs)


def _validator(ring: SigningKeyRing, **kwargs) -> JWTTokenValidator:
    params = {"issuer": ISS, "audience": AUD, **kwargs}
    return JWTTokenValidator(key_ring=ring, **params)


class TestAccessTokenRoundTrip:
    def test_validate_returns_issued_claims(self):
        ring = _ring()
        issued = _issuer(ring).issue_access_token("acc-1", "alice@example.com", "user")

        claims = _validator(ring).validate(issued.token)

        assert claims.subject == "acc-1"
        assert claims.email == "alice@example.com"
        assert claims.role == "user"
        assert claims.expires_at == issued.expires_at
        assert claims.jti

    def test_header_names_signing_key(self):
        issued = _issuer(_ring()).issue_access_token("acc-1", "a@example.com", "user")
        assert jwt.get_unverified_header(issued.token)["kid"] == "a"

    def test_expiry_boundary_has_zero_leeway(self):
        ring = _ring()
        with freeze_time("2026-01-01 12:00:00"):
            issued = _issuer(ring).issue_access_token("acc-1", "a@example.com", "user")

        with freeze_time("2026-01-01 12:14:59"):
            assert _validator(ring).validate(issued.token).subject == "acc-1"

        with freeze_time("2026-01-01 12:15:00"), pytest.raises(TokenExpiredError):
            _validator(ring).validate(issued.token)

    def test_jti_is_unique_per_token(self):
        issuer = _issuer(_ring())
        t1 = issuer.issue_access_token("acc-1", "a@example.com", "user")
        t2 = issuer.issue_access_token("acc-1", "a@example.com", "user")
        v = _validator(_ring())
        assert v.validate(t1.token).jti != v.validate(t2.token).jti


class TestKeyRollover:
    def test_previous_key_still_verifies(self):
        old_token = _issuer(_ring("a")).issue_access_token("acc", "a@example.com", "user").token
        rolled = _ring("b", previous=("a",))
        assert _validator(rolled).validate(old_token).subject == "acc"

    def test_dropped_key_is_rejected(self):
        old_token = _issuer(_ring("a")).issue_access_token("acc", "a@example.com", "user").token
        with pytest.raises(InvalidSignatureError):
            _validator(_ring("b")).validate(old_token)

    def test_token_without_kid_tries_every_key(self):
        token = jwt.encode(
            {
                "sub": "acc",
                "email": "a@example.com",
                "role": "user",
                "iss": ISS,
                "aud": AUD,
                "iat": int(datetime.now(UTC).timestamp()),
                "exp": int((datetime.now(UTC) + timedelta(minutes=5)).timestamp()),
            },
            SECRET_A,
            algorithm="HS256",
        )
        assert _validator(_ring("b", previous=("a",))).validate(token).subject == "acc"


class TestRejections:
    def test_wrong_audience(self):
        ring = _ring()
        token = _issuer(ring).issue_access_token("acc", "a@example.com", "user").token
        with pytest.raises(InvalidSignatureError):
            _validator(ring, audience="someone-else").validate(token)

    def test_wrong_issuer(self):
        ring = _ring()
        token = _issuer(ring).issue_access_token("acc", "a@example.com", "user").token
        with pytest.raises(InvalidSignatureError):
            _validator(ring, issuer="evil").validate(token)

    def test_forged_signature_with_known_kid(self):
        token = jwt.encode(
            {
                "sub": "acc",
                "email": "a@example.com",
                "role": "user",
                "iss": ISS,
                "aud": AUD,
                "iat": 1,
                "exp": 9999999999,
            },
            SECRET_B,
            algorithm="HS256",
            headers={"kid": "a"},
        )
        with pytest.raises(InvalidSignatureError):
            _validator(_ring()).validate(token)

    @pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
    def test_malformed(self, token):
        with pytest.raises(MalformedTokenError):
            _validator(_ring()).validate(token)

    def test_missing_required_claim(self):
        token = jwt.encode(
            {"sub": "acc", "iss": ISS, "aud": AUD},
            SECRET_A,
            algorithm="HS256",
            headers={"kid": "a"},
        )
        with pytest.raises(MalformedTokenError):
            _validator(_ring()).validate(token)

    def test_alg_none_rejected(self):
        token = jwt.encode(
            {"sub": "acc", "iss": ISS, "aud": AUD, "exp": 9999999999, "iat": 1},
            None,
            algorithm="none",
            headers={"kid": "a"},
        )
        with pytest.raises(InvalidTokenError):
            _validator(_ring()).validate(token)


class TestRefreshTokens:
    def test_refresh_token_is_opaque_and_random(self):
        issuer = _issuer(_ring())
        a, b = issuer.issue_refresh_token(), issuer.issue_refresh_token()
        assert a.token != b.token
        assert a.token.count(".") == 0
        assert len(a.token) >= 43  # 32 bytes, urlsafe base64

    def test_refresh_lifetime_in_days(self):
        with freeze_time("2026-01-01 00:00:00"):
            issued = _issuer(_ring(), refresh_ttl=timedelta(days=7)).issue_refresh_token()
        assert issued.expires_at == datetime(2026, 1, 8, tzinfo=UTC)

    def test_hash_is_stable_sha256_hex(self):
        assert hash_refresh_token("abc") == hash_refresh_token("abc")
        assert len(hash_refresh_token("abc")) == 64

    def test_refresh_must_outlive_access(self):
        with pytest.raises(ValueError):
            _issuer(_ring(), access_ttl=timedelta(days=2), refresh_ttl=timedelta(days=1))
