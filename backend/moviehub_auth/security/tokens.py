"""
JWT access tokens and opaque refresh tokens.

This module is the single shared implementation of token issuance and
validation for every MovieHub service. Validation is pure: it only needs the
:class:`~moviehub_auth.security.keys.SigningKeyRing`, never the database or the
issuing service.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import jwt

from moviehub_auth.security.errors import (
    InvalidSignatureError,
    MalformedTokenError,
    TokenExpiredError,
)
from moviehub_auth.security.keys import SigningKey, SigningKeyRing

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_BYTES = 32  # 256 bits of entropy
REQUIRED_CLAIMS = ["sub", "exp", "iat", "iss", "aud"]


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """
    Verified identity carried by an access token.

    :param subject: Account id (``sub``).
    :param email: Account email at issuance.
    :param role: Account role at issuance.
    :param issued_at: ``iat`` as aware UTC datetime.
    :param expires_at: ``exp`` as aware UTC datetime.
    :param jti: Unique token id.
    """

    subject: str
    email: str
    role: str
    issued_at: datetime
    expires_at: datetime
    jti: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "sub": self.subject,
            "email": self.email,
            "role": self.role,
            "iat": self.issued_at,
            "exp": self.expires_at,
            "jti": self.jti,
        }


@dataclass(frozen=True, slots=True)
class IssuedAccessToken:
    """Compact signed JWT plus its absolute expiry."""

    token: str
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class IssuedRefreshToken:
    """Opaque refresh token value plus its absolute expiry."""

    token: str
    expires_at: datetime


def hash_refresh_token(token: str) -> str:
    """Return the SHA-256 hex digest under which a refresh token is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _utcnow() -> datetime:
    # JWT timestamps have second resolution
    return datetime.now(UTC).replace(microsecond=0)


class JWTTokenIssuer:
    """
    Mint access and refresh tokens.

    :param key_ring: Keys; the current key signs.
    :param issuer: ``iss`` claim value.
    :param audience: ``aud`` claim value.
    :param access_ttl: Access token lifetime (minutes scale).
    :param refresh_ttl: Refresh token lifetime (days scale).
    """

    def __init__(
        self,
        *,
        key_ring: SigningKeyRing,
        issuer: str,
        audience: str,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
    ) -> None:
        if access_ttl <= timedelta(0) or refresh_ttl <= access_ttl:
            raise ValueError("Refresh lifetime must be positive and longer than access lifetime.")
        self.key_ring = key_ring
        self.issuer = issuer
        self.audience = audience
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def issue_access_token(self, account_id: str, email: str, role: str) -> IssuedAccessToken:
        """
        Sign a short-lived access token for the given identity.

        :returns: The compact JWS and its expiry.
        """
        key = self.key_ring.current
        issued_at = _utcnow()
        expires_at = issued_at + self.access_ttl
        payload = {
            "sub": str(account_id),
            "email": email,
            "role": role,
            "type": ACCESS_TOKEN_TYPE,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": uuid4().hex,
        }
        token = jwt.encode(payload, key.secret, algorithm=key.algorithm, headers={"kid": key.kid})
        return IssuedAccessToken(token=token, expires_at=expires_at)

    def issue_refresh_token(self) -> IssuedRefreshToken:
        """Generate a random, claim-free refresh token."""
        return IssuedRefreshToken(
            token=secrets.token_urlsafe(REFRESH_TOKEN_BYTES),
            expires_at=_utcnow() + self.refresh_ttl,
        )


class JWTTokenValidator:
    """
    Stateless access-token verification against a key ring.

    Expiry is enforced with zero leeway: a token is live strictly before its
    ``exp`` and dead from that second on.
    """

    def __init__(self, *, key_ring: SigningKeyRing, issuer: str, audience: str) -> None:
        self.key_ring = key_ring
        self.issuer = issuer
        self.audience = audience

    def validate(self, token: str) -> AccessClaims:
        """
        Verify ``token`` and return its claims.

        :raises InvalidSignatureError: Untrusted signature, key, issuer or audience.
        :raises TokenExpiredError: ``exp`` has passed.
        :raises MalformedTokenError: Not a JWT, or required claims are missing.
        """
        if not isinstance(token, str) or not token:
            raise MalformedTokenError("Token is empty.")
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as exc:
            raise MalformedTokenError("Token is not a valid JWT.") from exc

        kid = header.get("kid")
        if kid is not None:
            key = self.key_ring.get(kid)
            if key is None:
                raise InvalidSignatureError(f"Unknown signing key id {kid!r}.")
            payload = self._decode(token, key)
        else:
            payload = self._decode_any(token)
        return self._to_claims(payload)

    # ------------------------------------------------------------------ #

    def _decode_any(self, token: str) -> dict[str, Any]:
        last_error: InvalidSignatureError | None = None
        for key in self.key_ring:
            try:
                return self._decode(token, key)
            except InvalidSignatureError as exc:
                last_error = exc
        raise last_error or InvalidSignatureError("No key verified the token.")

    def _decode(self, token: str, key: SigningKey) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                key.verification_key,
                algorithms=[key.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                leeway=0,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError("Token has expired.") from exc
        except (
            jwt.InvalidSignatureError,
            jwt.InvalidAlgorithmError,
            jwt.InvalidAudienceError,
            jwt.InvalidIssuerError,
        ) as exc:
            raise InvalidSignatureError(str(exc)) from exc
        except jwt.InvalidTokenError as exc:
            raise MalformedTokenError(str(exc)) from exc

    @staticmethod
    def _to_claims(payload: dict[str, Any]) -> AccessClaims:
        if payload.get("type", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
            raise MalformedTokenError("Not an access token.")
        try:
            return AccessClaims(
                subject=str(payload["sub"]),
                email=str(payload["email"]),
                role=str(payload["role"]),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=UTC),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
                jti=str(payload.get("jti", "")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedTokenError("Access token claims are incomplete.") from exc
