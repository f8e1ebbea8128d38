"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP. They serve as stable contracts between repositories,
refresh token stores, domain models, and application services.

The translation to HTTP responses (RFC 7807) is handled by
``moviehub_auth/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

#: Single client-visible message for every authentication failure.
AUTHENTICATION_FAILED = "Authentication failed"


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Supports PostgreSQL (constraint name in the message) and SQLite (column
    list in the message) by plain substring matching.

    :param exc: The exception raised by SQLAlchemy during flush/commit.
    :param constraint_name: Constraint or column fragment to match
        (e.g., ``'uq_accounts_email_active'`` or ``'accounts.email'``).
    :returns: True if the IntegrityError matches.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    return constraint_name.lower() in message


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories, stores or domain logic.
    - The API layer or BaseService will later translate them to APIError.
    """


# --------------------------------------------------------------------------- #
# Authentication failures (all rendered identically to clients)
# --------------------------------------------------------------------------- #


class AuthenticationFailedError(ServiceError):
    """
    Generic authentication failure.

    Subclasses exist for logging and tests; ``str()`` is always the same
    generic message so callers cannot tell the cases apart.
    """

    def __init__(self, message: str = AUTHENTICATION_FAILED) -> None:
        super().__init__(message)


class InvalidCredentialsError(AuthenticationFailedError):
    """Unknown email, wrong password, disabled or locked account."""


class ReuseDetectedError(AuthenticationFailedError):
    """An already-rotated or revoked refresh token was redeemed."""


class RefreshTokenNotFoundError(AuthenticationFailedError):
    """No refresh token row matches the presented value."""


class RefreshTokenExpiredError(AuthenticationFailedError):
    """The refresh token exists but its lifetime has passed."""


# --------------------------------------------------------------------------- #
# Other domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "Account").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "Account").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:  # pragma: no cover
        return f"Conflict on {self.entity}: {self.detail}"


class EmailAlreadyExistsError(ConflictError):
    """Registration attempted with an email that already has an account."""

    def __init__(self) -> None:
        super().__init__(entity="Account", detail="email already registered")


class StoreUnavailableError(ServiceError):
    """
    Transient failure of a backing store (database or Redis).

    Callers should retry with backoff; never treat this as "not found".

    :param backend: Short backend name (``"sqlalchemy"``, ``"redis"``).
    :param retry_after: Suggested retry delay in seconds.
    """

    def __init__(self, backend: str, *, retry_after: int = 1) -> None:
        super().__init__(f"{backend} store unavailable")
        self.backend = backend
        self.retry_after = retry_after
