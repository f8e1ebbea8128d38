"""
Shared authentication primitives.

Import this package from any MovieHub service that needs to trust bearer
tokens; it has no dependency on Flask, SQLAlchemy or Redis.
"""

from __future__ import annotations

from .errors import (
    InvalidSignatureError,
    InvalidTokenError,
    MalformedTokenError,
    TokenExpiredError,
)
from .keys import SigningKey, SigningKeyRing
from .passwords import PasswordHasher
from .tokens import (
    AccessClaims,
    IssuedAccessToken,
    IssuedRefreshToken,
    JWTTokenIssuer,
    JWTTokenValidator,
    hash_refresh_token,
)

__all__ = [
    "AccessClaims",
    "InvalidSignatureError",
    "InvalidTokenError",
    "IssuedAccessToken",
    "IssuedRefreshToken",
    "JWTTokenIssuer",
    "JWTTokenValidator",
    "MalformedTokenError",
    "PasswordHasher",
    "SigningKey",
    "SigningKeyRing",
    "TokenExpiredError",
    "hash_refresh_token",
]
