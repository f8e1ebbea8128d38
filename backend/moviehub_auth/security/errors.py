"""
Exceptions raised by the token library.

These are independent from the service layer so that downstream services can
import :mod:`moviehub_auth.security` without pulling Flask or SQLAlchemy.
"""

from __future__ import annotations


class InvalidTokenError(Exception):
    """Base class for every access-token validation failure."""


class InvalidSignatureError(InvalidTokenError):
    """Signature, key id, issuer or audience could not be trusted."""


class TokenExpiredError(InvalidTokenError):
    """The token's ``exp`` claim is not in the future."""


class MalformedTokenError(InvalidTokenError):
    """The token is not a parseable JWT or lacks required claims."""
