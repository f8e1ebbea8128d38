"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    AccountSchema,
    AuthResultSchema,
    ClaimsSchema,
    LoginSchema,
    LogoutSchema,
    RefreshSchema,
    RegisterSchema,
)

__all__ = [
    "AccountSchema",
    "AuthResultSchema",
    "ClaimsSchema",
    "LoginSchema",
    "LogoutSchema",
    "RefreshSchema",
    "RegisterSchema",
]
