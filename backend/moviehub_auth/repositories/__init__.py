"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from moviehub_auth.repositories.account import AccountRepository
from moviehub_auth.repositories.base import BaseRepository
from moviehub_auth.repositories.refresh_token import RefreshTokenRepository

__all__ = [
    "BaseRepository",
    "AccountRepository",
    "RefreshTokenRepository",
]
