"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request

from moviehub_auth.core.errors import Unauthorized
from moviehub_auth.core.extensions import get_auth_components
from moviehub_auth.core.logger import ensure_request_id
from moviehub_auth.security import AccessClaims
from moviehub_auth.security.errors import InvalidTokenError, TokenExpiredError
from moviehub_auth.services import AuthenticationService, ServiceContext

F = TypeVar("F", bound=Callable[..., Any])

log = logging.getLogger(__name__)


def service_context() -> ServiceContext:
    """Build the request-scoped context handed to services."""

    return ServiceContext(request_id=ensure_request_id(), remote_addr=request.remote_addr)


def get_auth_service() -> AuthenticationService:
    """Return an :class:`AuthenticationService` wired to the app's components."""

    components = get_auth_components()
    return AuthenticationService(
        hasher=components.hasher,
        issuer=components.issuer,
        refresh_store=components.refresh_store,
        policy=components.policy,
        ctx=service_context(),
    )


def bearer_token() -> str:
    """Return the token from ``Authorization: Bearer <token>``.

    :raises Unauthorized: When the header is absent or uses another scheme.
    """

    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise Unauthorized("Missing bearer token")
    return token


def verify_bearer() -> AccessClaims:
    """Validate the bearer token with the app's shared :class:`JWTTokenValidator`."""

    token = bearer_token()
    try:
        return get_auth_components().validator.validate(token)
    except TokenExpiredError as exc:
        raise Unauthorized("Token has expired", code="token_expired") from exc
    except InvalidTokenError as exc:
        log.info("invalid bearer token: %s", exc)
        raise Unauthorized("Invalid token", code="invalid_token") from exc


def current_claims() -> AccessClaims:
    """Return the claims verified by :func:`require_auth` for this request."""

    return g.access_claims  # type: ignore[no-any-return]


def require_auth(func: F) -> F:
    """Ensure the request carries a valid JWT access token."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        g.access_claims = verify_bearer()
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def json_body() -> dict[str, Any]:
    """Return the JSON request body, or an empty mapping when absent/invalid."""

    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def no_content() -> Response:
    """Return an empty ``204 No Content`` response."""

    return Response(status=204)


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
