"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate, validates

PASSWORD_MAX_LENGTH = 128
NAME_MAX_LENGTH = 100


class RegisterSchema(Schema):
    """Input payload for account registration.

    The minimum password length comes from ``PASSWORD_MIN_LENGTH`` and is
    passed in by the view, mirroring how pagination limits are configured.
    """

    class Meta:
        unknown = EXCLUDE

    def __init__(self, *, min_password_length: int = 6, **kwargs: Any) -> None:
        self._min_password_length = min_password_length
        super().__init__(**kwargs)

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(max=PASSWORD_MAX_LENGTH))
    first_name = fields.String(
        required=True, validate=validate.Length(min=1, max=NAME_MAX_LENGTH)
    )
    last_name = fields.String(
        required=True, validate=validate.Length(min=1, max=NAME_MAX_LENGTH)
    )

    @validates("password")
    def check_password_length(self, value: str, **_: Any) -> None:
        if len(value) < self._min_password_length:
            raise ValidationError(
                f"Password must be at least {self._min_password_length} characters."
            )

    @validates("first_name")
    def check_first_name(self, value: str, **_: Any) -> None:
        if not value.strip():
            raise ValidationError("First name must not be blank.")

    @validates("last_name")
    def check_last_name(self, value: str, **_: Any) -> None:
        if not value.strip():
            raise ValidationError("Last name must not be blank.")


class LoginSchema(Schema):
    """Input payload for authenticating an account.

    No length rules on the password: a login must fail with the generic
    authentication error rather than reveal the password policy.
    """

    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(
        required=True, validate=validate.Length(min=1, max=PASSWORD_MAX_LENGTH)
    )


class RefreshSchema(Schema):
    """Input payload carrying an opaque refresh token."""

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(required=True, validate=validate.Length(min=1, max=512))


class LogoutSchema(RefreshSchema):
    """Input payload for logout; ``all_sessions`` ends every session of the owner."""

    all_sessions = fields.Boolean(load_default=False)


class AccountSchema(Schema):
    """Public representation of an account."""

    id = fields.String(required=True)
    email = fields.Email(required=True)
    first_name = fields.String(required=True)
    last_name = fields.String(required=True)
    role = fields.String(required=True)
    status = fields.String(required=True)
    created_at = fields.DateTime(allow_none=True)


class AuthResultSchema(Schema):
    """Response payload of register, login and refresh."""

    account = fields.Nested(AccountSchema, required=True)
    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(required=True)
    expires_at = fields.DateTime(required=True)
    refresh_expires_at = fields.DateTime(required=True)


class ClaimsSchema(Schema):
    """Verified access-token claims returned by ``/auth/validate``.

    Dumps an :class:`~moviehub_auth.security.AccessClaims`; timestamps are epoch seconds.
    """

    sub = fields.String(attribute="subject", required=True)
    email = fields.String(required=True)
    role = fields.String(required=True)
    iat = fields.Function(lambda claims: int(claims.issued_at.timestamp()))
    exp = fields.Function(lambda claims: int(claims.expires_at.timestamp()))
    jti = fields.String(allow_none=True)
