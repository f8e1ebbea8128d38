"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

PLACEHOLDER_SECRETS: Final[frozenset[str]] = frozenset({"", "CHANGE_ME", "CHANGE_ME_JWT"})

# Loads .env during development (no-op when the file is absent)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer environment variable, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


def env_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return float(val)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret. Defaults to a development placeholder.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    SQLALCHEMY_ENGINE_OPTIONS: dict
        Pool settings; ``pool_timeout`` bounds how long a request waits for
        a connection before the store reports itself unavailable.
    REDIS_URL: str | None
        Redis connection string; required when ``REFRESH_TOKEN_BACKEND`` is
        ``"redis"``.
    REFRESH_TOKEN_BACKEND: str
        ``"sqlalchemy"`` (default) or ``"redis"``.
    JWT_SECRET_KEY / JWT_KEY_ID / JWT_PREVIOUS_KEYS / JWT_ALGORITHM / JWT_PUBLIC_KEY:
        Signing key ring. ``JWT_PREVIOUS_KEYS`` is ``"kid:secret,kid:secret"``
        and lists keys still accepted for verification during a rollover. With
        an RS/ES algorithm the secret is the private key PEM, ``JWT_PUBLIC_KEY``
        verifies it, and previous entries are ``kid:public_pem``.
    JWT_ISSUER / JWT_AUDIENCE: str
        Required ``iss``/``aud`` values, enforced on every validation.
    JWT_ACCESS_TOKEN_MINUTES / REFRESH_TOKEN_DAYS: int
        Token lifetimes.
    REFRESH_TOKEN_REUSE_GRACE_SECONDS: float
        Window in which a duplicate redemption of a just-rotated refresh
        token fails without revoking its chain.
    PASSWORD_HASH_METHOD / PASSWORD_HASH_WORKERS:
        Werkzeug hashing method (cost) and hashing pool size.
    LOGIN_MAX_FAILED_ATTEMPTS / LOGIN_LOCKOUT_MINUTES: int
        Brute-force lockout policy.
    AUTH_LOGIN_RATE_LIMIT: str
        Flask-Limiter expression applied to ``login`` and ``register``.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.
    PROXY_FIX_HOPS: int
        Number of reverse proxies whose ``X-Forwarded-*`` headers are trusted.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"
    APP_VERSION = os.getenv("APP_VERSION", "dev")

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    SQLALCHEMY_ENGINE_OPTIONS: dict[str, Any] = {"pool_pre_ping": True}

    # Redis
    REDIS_URL = os.getenv("REDIS_URL") or None
    REDIS_SOCKET_TIMEOUT = env_float("REDIS_SOCKET_TIMEOUT", 2.0)
    REFRESH_TOKEN_BACKEND = os.getenv("REFRESH_TOKEN_BACKEND", "sqlalchemy").strip().lower()

    # Signing keys and token policy
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT")
    JWT_KEY_ID = os.getenv("JWT_KEY_ID", "primary")
    JWT_PREVIOUS_KEYS = os.getenv("JWT_PREVIOUS_KEYS", "")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_PUBLIC_KEY = os.getenv("JWT_PUBLIC_KEY") or None
    JWT_ISSUER = os.getenv("JWT_ISSUER", "moviehub-auth")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "moviehub")
    JWT_ACCESS_TOKEN_MINUTES = env_int("JWT_ACCESS_TOKEN_MINUTES", 15)
    REFRESH_TOKEN_DAYS = env_int("REFRESH_TOKEN_DAYS", 7)
    REFRESH_TOKEN_REUSE_GRACE_SECONDS = env_float("REFRESH_TOKEN_REUSE_GRACE_SECONDS", 5.0)

    # Passwords and lockout
    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "scrypt")
    PASSWORD_HASH_WORKERS = env_int("PASSWORD_HASH_WORKERS", 4)
    PASSWORD_MIN_LENGTH = env_int("PASSWORD_MIN_LENGTH", 6)
    LOGIN_MAX_FAILED_ATTEMPTS = env_int("LOGIN_MAX_FAILED_ATTEMPTS", 5)
    LOGIN_LOCKOUT_MINUTES = env_int("LOGIN_LOCKOUT_MINUTES", 15)

    # Rate limiting (Flask-Limiter)
    RATELIMIT_ENABLED = env_bool("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_HEADERS_ENABLED = True
    AUTH_LOGIN_RATE_LIMIT = os.getenv("AUTH_LOGIN_RATE_LIMIT", "5 per minute")

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    CORS_MAX_AGE = env_int("CORS_MAX_AGE", 600)

    # Reverse proxies trusted for X-Forwarded-* (0 disables ProxyFix)
    PROXY_FIX_HOPS = env_int("PROXY_FIX_HOPS", 1)

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and honors ``SQLALCHEMY_ECHO`` for verbose
    SQL logging when requested.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables rate limiting.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Uses a cheap hashing method so the suite stays fast.
    - Propagates exceptions so pytest can surface tracebacks directly.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS: dict[str, Any] = {}
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    REDIS_URL = None
    REFRESH_TOKEN_BACKEND = "sqlalchemy"
    SECRET_KEY = "testing-secret-key"
    JWT_SECRET_KEY = "testing-jwt-secret-key-with-32-bytes!"
    JWT_PREVIOUS_KEYS = ""
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
    PASSWORD_HASH_WORKERS = 2
    RATELIMIT_ENABLED = False
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled while relying on WSGI-level log
    configuration for noise control. :func:`validate_config` refuses to boot
    with placeholder secrets.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False
    SQLALCHEMY_ENGINE_OPTIONS: dict[str, Any] = {
        "pool_pre_ping": True,
        "pool_timeout": env_int("SQLALCHEMY_POOL_TIMEOUT", 5),
    }


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


def validate_config(config: Mapping[str, Any]) -> None:
    """
    Reject unsafe or inconsistent settings before the app starts serving.

    :raises RuntimeError: On placeholder secrets outside debug/testing, an
        unknown refresh backend, or the Redis backend without ``REDIS_URL``.
    """
    relaxed = config.get("DEBUG") or config.get("TESTING")
    if not relaxed:
        for key in ("SECRET_KEY", "JWT_SECRET_KEY"):
            if str(config.get(key) or "") in PLACEHOLDER_SECRETS:
                raise RuntimeError(f"{key} must be set to a real secret in production.")

    backend = config.get("REFRESH_TOKEN_BACKEND", "sqlalchemy")
    if backend not in {"sqlalchemy", "redis"}:
        raise RuntimeError(f"Unknown REFRESH_TOKEN_BACKEND {backend!r}.")
    if backend == "redis" and not config.get("REDIS_URL"):
        raise RuntimeError("REFRESH_TOKEN_BACKEND=redis requires REDIS_URL.")
