from __future__ import annotations

from typing import Protocol

from moviehub_auth.security.tokens import AccessClaims, IssuedAccessToken, IssuedRefreshToken


class TokenIssuer(Protocol):
    """Port for minting access and refresh tokens."""

    def issue_access_token(self, account_id: str, email: str, role: str) -> IssuedAccessToken: ...

    def issue_refresh_token(self) -> IssuedRefreshToken: ...


class TokenValidator(Protocol):
    """
    Port for stateless access-token verification.

    Implementations raise subclasses of
    :class:`moviehub_auth.security.errors.InvalidTokenError` on failure.
    """

    def validate(self, token: str) -> AccessClaims: ...
