"""Service layer public API.

This package exposes the essential building blocks for the service layer so that
callers can import from :mod:`moviehub_auth.services` without knowing internal
structure.

Re-exports
----------
- Base primitives (from ``moviehub_auth.services._shared.base``)
    * :class:`BaseService`
    * :class:`ServiceContext`

- Authentication service (from ``moviehub_auth.services.auth``)
    * :class:`AuthenticationService`
    * DTOs: :class:`RegisterIn`, :class:`LoginIn`, :class:`RefreshIn`,
      :class:`LogoutIn`, :class:`AuthResult`, :class:`AccountPublicOut`,
      :class:`LoginPolicy`

- Account administration (from ``moviehub_auth.services.accounts``)
    * :class:`AccountAdminService`
"""

from __future__ import annotations

from ._shared.base import BaseService, ServiceContext
from .accounts.service import AccountAdminService
from .auth.dto import (
    AccountPublicOut,
    AuthResult,
    LoginIn,
    LoginPolicy,
    LogoutIn,
    RefreshIn,
    RegisterIn,
)
from .auth.service import AuthenticationService

__all__ = [
    "BaseService",
    "ServiceContext",
    "AuthenticationService",
    "AccountAdminService",
    "RegisterIn",
    "LoginIn",
    "RefreshIn",
    "LogoutIn",
    "AuthResult",
    "AccountPublicOut",
    "LoginPolicy",
]
