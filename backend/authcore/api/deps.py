"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request

from authcore.core.auth import get_auth_service
from authcore.core.errors import Forbidden, Unauthorized
from authcore.services._shared.errors import INVALID_ACCESS_TOKEN
from authcore.services._shared.ports import AccessClaims
from authcore.services.auth.gate import AuthorizationGate

F = TypeVar("F", bound=Callable[..., Any])

BEARER_PREFIX = "bearer "


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


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


def bearer_token() -> str:
    """Extract the token from ``Authorization: Bearer <token>``.

    :raises Unauthorized: If the header is missing or not a Bearer credential.
    """
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(BEARER_PREFIX):
        raise Unauthorized("Missing bearer token.")
    token = header[len(BEARER_PREFIX) :].strip()
    if not token:
        raise Unauthorized("Missing bearer token.")
    return token


def current_claims() -> AccessClaims:
    """Return the claims validated by :func:`require_access` for this request."""
    claims = g.get("access_claims")
    if claims is None:
        raise Unauthorized(INVALID_ACCESS_TOKEN, code="invalid_token")
    return claims


def require_access(gate: AuthorizationGate) -> Callable[[F], F]:
    """Validate the bearer token, then evaluate ``gate`` on its claims.

    Invalid tokens produce 401 (``InvalidTokenError`` is translated by the
    error handlers); a valid token the gate rejects produces 403.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            claims = get_auth_service().validate_access_token(bearer_token())
            if not gate.admits(claims):
                raise Forbidden("Insufficient role.")
            g.access_claims = claims
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
