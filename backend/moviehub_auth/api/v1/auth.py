"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, current_app

from moviehub_auth.api.deps import (
    current_claims,
    get_auth_service,
    json_body,
    json_response,
    no_content,
    require_auth,
    timing,
)
from moviehub_auth.core.extensions import limiter
from moviehub_auth.schemas import (
    AccountSchema,
    AuthResultSchema,
    ClaimsSchema,
    LoginSchema,
    LogoutSchema,
    RefreshSchema,
    RegisterSchema,
)
from moviehub_auth.services import LoginIn, LogoutIn, RefreshIn, RegisterIn
from moviehub_auth.services._shared.errors import ServiceError

bp = Blueprint("auth", __name__, url_prefix="/auth")

login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
auth_result_schema = AuthResultSchema()
claims_schema = ClaimsSchema()
account_schema = AccountSchema()


def _login_rate_limit() -> str:
    return str(current_app.config.get("AUTH_LOGIN_RATE_LIMIT", "5 per minute"))


def _register_schema() -> RegisterSchema:
    return RegisterSchema(min_password_length=int(current_app.config["PASSWORD_MIN_LENGTH"]))


@bp.post("/register")
@limiter.limit(_login_rate_limit)
@timing
def register():
    """Create an account and return its first token pair."""

    data = _register_schema().load(json_body())
    service = get_auth_service()
    try:
        result = service.register(RegisterIn(**data))
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return json_response({"data": auth_result_schema.dump(result)}, status=201)


@bp.post("/login")
@limiter.limit(_login_rate_limit)
@timing
def login():
    """Authenticate credentials and issue a token pair."""

    data = login_schema.load(json_body())
    service = get_auth_service()
    try:
        result = service.login(LoginIn(**data))
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return json_response({"data": auth_result_schema.dump(result)})


@bp.post("/refresh")
@timing
def refresh():
    """Redeem a refresh token for a rotated token pair."""

    data = refresh_schema.load(json_body())
    service = get_auth_service()
    try:
        result = service.refresh(RefreshIn(**data))
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return json_response({"data": auth_result_schema.dump(result)})


@bp.post("/logout")
@timing
def logout():
    """Revoke a refresh token (optionally every session of its owner)."""

    data = logout_schema.load(json_body())
    service = get_auth_service()
    try:
        service.logout(LogoutIn(**data))
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return no_content()


@bp.get("/validate")
@require_auth
@timing
def validate_token():
    """Return the verified claims of the bearer access token."""

    return json_response({"data": claims_schema.dump(current_claims())})


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the account behind the bearer token; 401 once it is gone or disabled."""

    service = get_auth_service()
    try:
        account = service.current_account(current_claims().subject)
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return json_response({"data": account_schema.dump(account)})
