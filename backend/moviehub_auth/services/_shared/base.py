# moviehub_auth/services/_shared/base.py
from __future__ import annotations

from dataclasses import dataclass

from moviehub_auth.core import errors as api_errors
from moviehub_auth.services._shared.errors import (
    AuthenticationFailedError,
    ConflictError,
    EmailAlreadyExistsError,
    NotFoundError,
    ServiceError,
    StoreUnavailableError,
)
from moviehub_auth.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


@dataclass(slots=True)
class ServiceContext:
    """
    Carry cross-cutting request-scoped data (request ids, client address).

    :param request_id: Correlation id for logging/tracing.
    :param remote_addr: Client address, used only in security logs.
    """

    request_id: str | None = None
    remote_addr: str | None = None


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide a helper to open a read-write unit of work.
    * Centralize error translation.
    * Keep services thin, orchestration-only, no web/ORM leakage.

    Notes
    -----
    - Services must never touch the global session; always use a Unit of Work.
    - Account state transitions live on the model.
    """

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        """
        Initialize the base service.

        :param ctx: Optional request-scoped context (tracing).
        :type ctx: ServiceContext | None
        """
        self.ctx = ctx or ServiceContext()

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if isinstance(exc, AuthenticationFailedError):
            # → 401, one message for every cause
            return api_errors.Unauthorized(str(exc), code="authentication_failed")

        if isinstance(exc, EmailAlreadyExistsError):
            return api_errors.Conflict("Email already registered", code="email_exists")

        if isinstance(exc, ConflictError):
            return api_errors.Conflict(str(exc))

        if isinstance(exc, NotFoundError):
            return api_errors.NotFound(str(exc))

        if isinstance(exc, StoreUnavailableError):
            # → 503 with Retry-After
            return api_errors.ServiceUnavailable(retry_after=exc.retry_after)

        # Any other ServiceError subclass → 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(
                message=str(exc),
                status_code=400,
                code="bad_request",
            )

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc
