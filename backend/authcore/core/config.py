"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

PLACEHOLDER_SECRETS: Final[frozenset[str]] = frozenset({"CHANGE_ME", "CHANGE_ME_JWT"})
MIN_PRODUCTION_KEY_LENGTH: Final[int] = 32
REFRESH_TOKEN_BACKENDS: Final[frozenset[str]] = frozenset({"database", "redis", "memory"})

# Loads .env during development (no-op when the file is missing)
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
    """Parse an integer from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: int
        Value returned when the variable is unset or blank.

    Returns
    -------
    int
        Parsed integer value.

    Raises
    ------
    ValueError
        If the variable is set but is not a base-10 integer.
    """
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val.strip())
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer, got {val!r}") from exc


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret used for session signing. Defaults to a development-safe
        placeholder and should be overridden in production.
    JWT_SECRET_KEY: str
        Symmetric key used to sign access tokens. Handed to the token issuer
        at construction; never read from a global afterwards.
    JWT_ALGORITHM: str
        HMAC algorithm used for signing (``HS256`` by default).
    JWT_ISSUER: str
        Value written to and required in the ``iss`` claim.
    JWT_AUDIENCE: str
        Value written to and required in the ``aud`` claim.
    ACCESS_TOKEN_EXPIRES: timedelta
        Lifetime of access tokens.
    REFRESH_TOKEN_EXPIRES: timedelta
        Lifetime of refresh tokens. Must exceed ``ACCESS_TOKEN_EXPIRES``.
    REFRESH_TOKEN_BYTES: int
        Entropy of generated refresh tokens, in bytes (minimum 16).
    REFRESH_TOKEN_BACKEND: str
        Storage for refresh tokens: ``database``, ``redis`` or ``memory``.
    REDIS_URL: str | None
        Connection URL for the Redis backend; Redis is not contacted when unset.
    PASSWORD_HASH_METHOD: str
        Method string understood by :func:`werkzeug.security.generate_password_hash`.
    PASSWORD_SALT_LENGTH: int
        Salt length handed to the password hasher.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    SQLALCHEMY_TRACK_MODIFICATIONS: bool
        Disabled to avoid extra overhead from the event system.
    SQLALCHEMY_ECHO: bool
        When ``True`` SQLAlchemy logs SQL statements for debugging.
    JSON_SORT_KEYS: bool
        Keeps JSON output order stable when ``False``.
    PROPAGATE_EXCEPTIONS: bool
        Controls Flask error propagation.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.
    DEBUG: bool
        Toggles Flask debug mode.
    TESTING: bool
        Enables Flask testing mode when ``True``.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"
    APP_ENV = "development"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "authcore")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authcore-clients")

    # Token lifetimes
    ACCESS_TOKEN_EXPIRES = timedelta(minutes=env_int("ACCESS_TOKEN_EXPIRES_MINUTES", 15))
    REFRESH_TOKEN_EXPIRES = timedelta(days=env_int("REFRESH_TOKEN_EXPIRES_DAYS", 7))
    REFRESH_TOKEN_BYTES = env_int("REFRESH_TOKEN_BYTES", 32)
    REFRESH_TOKEN_BACKEND = os.getenv("REFRESH_TOKEN_BACKEND", "database").strip().lower()
    REDIS_URL = os.getenv("REDIS_URL") or None

    # Password hashing
    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "scrypt")
    PASSWORD_SALT_LENGTH = env_int("PASSWORD_SALT_LENGTH", 16)

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

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
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Propagates exceptions so pytest can surface tracebacks directly.
    - Keeps refresh tokens in the database and never contacts Redis.
    """

    APP_ENV = "testing"
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    PROPAGATE_EXCEPTIONS = True
    REFRESH_TOKEN_BACKEND = "database"
    REDIS_URL = None


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled while relying on WSGI-level log
    configuration for noise control. :func:`validate_settings` refuses to
    boot with placeholder or short signing keys.
    """

    APP_ENV = "production"
    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


def validate_settings(config: Mapping[str, Any]) -> None:
    """Reject inconsistent or unsafe token settings before the app serves.

    Parameters
    ----------
    config: Mapping[str, Any]
        Loaded Flask configuration (``app.config``).

    Raises
    ------
    RuntimeError
        If the signing key is missing, if the refresh window is not longer
        than the access window, if the backend name is unknown, or if a
        production deployment uses a placeholder or short signing key.
    """
    key = config.get("JWT_SECRET_KEY") or ""
    if not key:
        raise RuntimeError("JWT_SECRET_KEY must be set.")

    access = config.get("ACCESS_TOKEN_EXPIRES")
    refresh = config.get("REFRESH_TOKEN_EXPIRES")
    if not isinstance(access, timedelta) or not isinstance(refresh, timedelta):
        raise RuntimeError("ACCESS_TOKEN_EXPIRES and REFRESH_TOKEN_EXPIRES must be timedeltas.")
    if access <= timedelta(0):
        raise RuntimeError("ACCESS_TOKEN_EXPIRES must be positive.")
    if refresh <= access:
        raise RuntimeError("REFRESH_TOKEN_EXPIRES must be longer than ACCESS_TOKEN_EXPIRES.")

    backend = str(config.get("REFRESH_TOKEN_BACKEND", "database")).lower()
    if backend not in REFRESH_TOKEN_BACKENDS:
        raise RuntimeError(f"Unknown REFRESH_TOKEN_BACKEND {backend!r}.")
    if backend == "redis" and not config.get("REDIS_URL"):
        raise RuntimeError("REFRESH_TOKEN_BACKEND 'redis' requires REDIS_URL.")

    if str(config.get("APP_ENV", "")).lower() == "production":
        if key in PLACEHOLDER_SECRETS or len(key) < MIN_PRODUCTION_KEY_LENGTH:
            raise RuntimeError(
                f"JWT_SECRET_KEY must be a non-placeholder secret of at least "
                f"{MIN_PRODUCTION_KEY_LENGTH} characters in production."
            )
        if config.get("SECRET_KEY") in PLACEHOLDER_SECRETS:
            raise RuntimeError("SECRET_KEY must be overridden in production.")
