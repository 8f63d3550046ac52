"""Composition root wiring the auth service from application config."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from flask import Flask, current_app

from authcore.core.config import validate_settings
from authcore.infra.db.sql_refresh_token_store import SQLRefreshTokenStore
from authcore.infra.jwt.pyjwt_token_issuer import PyJWTTokenIssuer
from authcore.infra.redis.redis_refresh_token_store import RedisRefreshTokenStore
from authcore.infra.security.werkzeug_password_hasher import WerkzeugPasswordHasher
from authcore.services._shared.ports import (
    InMemoryRefreshTokenStore,
    RefreshTokenPolicy,
    RefreshTokenStore,
)
from authcore.services.auth.service import AuthService

EXTENSION_KEY = "auth_service"

log = logging.getLogger(__name__)


def build_refresh_store(config: Mapping[str, Any], policy: RefreshTokenPolicy) -> RefreshTokenStore:
    """Select the refresh-token backend named by ``REFRESH_TOKEN_BACKEND``."""
    backend = str(config.get("REFRESH_TOKEN_BACKEND", "database")).lower()
    if backend == "redis":
        from authcore.core.extensions import get_redis

        return RedisRefreshTokenStore(get_redis(), policy)
    if backend == "memory":
        return InMemoryRefreshTokenStore(policy)
    return SQLRefreshTokenStore(policy)


def build_auth_service(config: Mapping[str, Any]) -> AuthService:
    """
    Assemble an :class:`AuthService` from a configuration mapping.

    The signing key is read here once and handed to the issuer; nothing else
    holds on to it.

    :param config: Flask config or any mapping with the token settings.
    :raises RuntimeError: If the settings fail :func:`validate_settings`.
    """
    validate_settings(config)
    hasher = WerkzeugPasswordHasher(
        method=str(config.get("PASSWORD_HASH_METHOD", "scrypt")),
        salt_length=int(config.get("PASSWORD_SALT_LENGTH", 16)),
    )
    tokens = PyJWTTokenIssuer(
        signing_key=str(config["JWT_SECRET_KEY"]),
        issuer=str(config["JWT_ISSUER"]),
        audience=str(config["JWT_AUDIENCE"]),
        access_expires=config["ACCESS_TOKEN_EXPIRES"],
        algorithm=str(config.get("JWT_ALGORITHM", "HS256")),
    )
    policy = RefreshTokenPolicy(
        expires=config["REFRESH_TOKEN_EXPIRES"],
        token_bytes=int(config.get("REFRESH_TOKEN_BYTES", 32)),
    )
    return AuthService(hasher=hasher, tokens=tokens, refresh_store=build_refresh_store(config, policy))


def init_app(app: Flask) -> None:
    """Build the auth service and store it on ``app.extensions``."""
    service = build_auth_service(app.config)
    app.extensions[EXTENSION_KEY] = service
    log.debug(
        "auth.service.ready",
        extra={"event": "auth.service.ready", "reason": type(service.refresh_store).__name__},
    )


def get_auth_service() -> AuthService:
    """Return the auth service of the current application."""
    try:
        return current_app.extensions[EXTENSION_KEY]
    except KeyError as exc:
        raise RuntimeError("Auth service is not initialized. Call init_app() first.") from exc
