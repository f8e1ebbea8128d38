"""
moviehub_auth.services._shared.ports
====================================

Collection of *ports* (hexagonal interfaces) that define the contracts for
token management infrastructure.

These ports decouple the service layer from concrete implementations of token
issuing, validation, and refresh storage mechanisms.

Modules
-------
- :mod:`token_provider`:
    Defines :class:`~.TokenIssuer` and :class:`~.TokenValidator`.

- :mod:`refresh_token_store`:
    Defines :class:`~.RefreshTokenStore`, :class:`~.RotationResult`,
    :class:`~.RotationOutcome` and :class:`~.RefreshSessionView`.

Concrete adapters live under ``moviehub_auth.infra`` (SQLAlchemy, Redis) and
``moviehub_auth.security`` (JWT).
"""

from __future__ import annotations

from .refresh_token_store import (
    InMemoryRefreshTokenStore,
    RefreshSessionView,
    RefreshTokenStore,
    RotationOutcome,
    RotationResult,
    chain_revocation_due,
)
from .token_provider import TokenIssuer, TokenValidator

__all__ = [
    "TokenIssuer",
    "TokenValidator",
    "RefreshTokenStore",
    "RotationResult",
    "RotationOutcome",
    "RefreshSessionView",
    "InMemoryRefreshTokenStore",
    "chain_revocation_due",
]
