"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
limiter = Limiter(key_func=get_remote_address)
redis_client: redis.Redis | None = None

AUTH_EXTENSION_KEY = "moviehub_auth"


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, migrations, rate limiting and auth components.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. This call imports the
        :mod:`moviehub_auth.models` package to ensure SQLAlchemy metadata is
        ready for migrations.
    """
    db.init_app(app)

    # Ensure models are imported so Alembic sees metadata
    from moviehub_auth import models as _models  # noqa: F401

    migrate.init_app(app, db)
    limiter.init_app(app)

    global redis_client
    redis_url = app.config.get("REDIS_URL")
    if redis_url:
        redis_client = redis.Redis.from_url(
            redis_url,
            socket_timeout=app.config.get("REDIS_SOCKET_TIMEOUT"),
            socket_connect_timeout=app.config.get("REDIS_SOCKET_TIMEOUT"),
        )
        try:
            redis_client.ping()
        except RedisError as exc:
            raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
        app.extensions["redis_client"] = redis_client
    else:
        redis_client = None
        app.extensions.pop("redis_client", None)

    components = build_auth_components(app.config, redis_client=redis_client)
    app.extensions[AUTH_EXTENSION_KEY] = components


class AuthComponents:
    """
    Process-wide authentication collaborators built once per app.

    :ivar key_ring: Immutable signing key ring.
    :ivar issuer: Access/refresh token issuer.
    :ivar validator: Stateless access-token validator.
    :ivar hasher: Password hasher with its worker pool.
    :ivar refresh_store: Refresh token store selected by configuration.
    """

    def __init__(self, *, key_ring, issuer, validator, hasher, refresh_store, policy) -> None:
        self.key_ring = key_ring
        self.issuer = issuer
        self.validator = validator
        self.hasher = hasher
        self.refresh_store = refresh_store
        self.policy = policy


def build_auth_components(
    config: Any, *, redis_client: redis.Redis | None = None
) -> AuthComponents:
    """Assemble the key ring, token services, hasher and refresh store from config."""
    from moviehub_auth.infra.redis.redis_refresh_token_store import RedisRefreshTokenStore
    from moviehub_auth.infra.sqlalchemy.refresh_token_store import SQLAlchemyRefreshTokenStore
    from moviehub_auth.security import (
        JWTTokenIssuer,
        JWTTokenValidator,
        PasswordHasher,
        SigningKeyRing,
    )
    from moviehub_auth.services.auth.dto import LoginPolicy

    key_ring = SigningKeyRing.from_config(config)
    issuer = JWTTokenIssuer(
        key_ring=key_ring,
        issuer=config["JWT_ISSUER"],
        audience=config["JWT_AUDIENCE"],
        access_ttl=timedelta(minutes=int(config["JWT_ACCESS_TOKEN_MINUTES"])),
        refresh_ttl=timedelta(days=int(config["REFRESH_TOKEN_DAYS"])),
    )
    validator = JWTTokenValidator(
        key_ring=key_ring, issuer=config["JWT_ISSUER"], audience=config["JWT_AUDIENCE"]
    )
    hasher = PasswordHasher(
        method=config["PASSWORD_HASH_METHOD"],
        max_workers=int(config["PASSWORD_HASH_WORKERS"]),
    )
    grace = timedelta(seconds=float(config["REFRESH_TOKEN_REUSE_GRACE_SECONDS"]))
    if config.get("REFRESH_TOKEN_BACKEND", "sqlalchemy") == "redis":
        if redis_client is None:
            raise RuntimeError("REFRESH_TOKEN_BACKEND=redis requires REDIS_URL.")
        refresh_store = RedisRefreshTokenStore(redis_client, reuse_grace=grace)
    else:
        refresh_store = SQLAlchemyRefreshTokenStore(reuse_grace=grace)

    policy = LoginPolicy(
        max_failed_attempts=int(config["LOGIN_MAX_FAILED_ATTEMPTS"]),
        lockout=timedelta(minutes=int(config["LOGIN_LOCKOUT_MINUTES"])),
    )
    return AuthComponents(
        key_ring=key_ring,
        issuer=issuer,
        validator=validator,
        hasher=hasher,
        refresh_store=refresh_store,
        policy=policy,
    )


def get_auth_components(app: Flask | None = None) -> AuthComponents:
    """Return the components registered on ``app`` (default: current app)."""
    target = app or current_app
    components = target.extensions.get(AUTH_EXTENSION_KEY)
    if components is None:
        raise RuntimeError("Auth components are not initialized. Call init_app() first.")
    return components


def get_redis() -> redis.Redis:
    """Return the initialized Redis client."""
    if redis_client is None:
        raise RuntimeError("Redis client is not initialized. Call init_app() first.")
    return redis_client
