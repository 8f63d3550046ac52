from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import jwt

from authcore.models.user import Role
from authcore.services._shared.clock import Clock, utc_now
from authcore.services._shared.errors import InvalidTokenError
from authcore.services._shared.ports import AccessClaims, TokenIssuer

log = logging.getLogger(__name__)

REQUIRED_CLAIMS = ("sub", "name", "role", "iss", "aud", "iat", "exp", "jti")
SUPPORTED_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})


class PyJWTTokenIssuer(TokenIssuer):
    """
    HMAC-signed JWT access tokens built with PyJWT.

    The signing key and every validation parameter are constructor arguments,
    so two issuers with different keys can coexist in one process.

    A token is accepted while ``iat <= now < exp`` according to the injected
    clock. PyJWT's own ``exp``/``iat`` checks read the system clock and are
    therefore disabled in favour of that comparison.

    :param signing_key: Symmetric secret; must be non-empty.
    :param issuer: Value of the ``iss`` claim.
    :param audience: Value of the ``aud`` claim.
    :param access_expires: Token lifetime; fixed for the issuer's lifetime.
    :param algorithm: One of ``HS256``, ``HS384``, ``HS512``.
    :param clock: Source of "now"; defaults to the UTC wall clock.
    """

    def __init__(
        self,
        *,
        signing_key: str,
        issuer: str,
        audience: str,
        access_expires: timedelta,
        algorithm: str = "HS256",
        clock: Clock = utc_now,
    ) -> None:
        if not signing_key:
            raise ValueError("A signing key is required.")
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"Unsupported signing algorithm {algorithm!r}.")
        if access_expires <= timedelta(0):
            raise ValueError("Access token lifetime must be positive.")
        self._key = signing_key
        self._issuer = issuer
        self._audience = audience
        self._expires = access_expires
        self._algorithm = algorithm
        self._clock = clock

    def __repr__(self) -> str:
        # Never render the key.
        return f"<PyJWTTokenIssuer iss={self._issuer!r} aud={self._audience!r} alg={self._algorithm}>"

    @property
    def access_expires_seconds(self) -> int:
        return int(self._expires.total_seconds())

    def issue_access_token(self, *, user_id: int, username: str, role: Role) -> str:
        now = int(self._clock().timestamp())
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "name": username,
            "role": Role(role).value,
            "iss": self._issuer,
            "aud": self._audience,
            "iat": now,
            "exp": now + self.access_expires_seconds,
            "jti": uuid4().hex,
        }
        return jwt.encode(payload, self._key, algorithm=self._algorithm)

    def validate(self, token: str) -> AccessClaims:
        try:
            payload = jwt.decode(
                token,
                self._key,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                options={
                    "require": list(REQUIRED_CLAIMS),
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
            issued_at = int(payload["iat"])
            expires_at = int(payload["exp"])
            now = int(self._clock().timestamp())
            if not issued_at <= now < expires_at:
                raise InvalidTokenError()
            claims = AccessClaims(
                user_id=int(payload["sub"]),
                username=str(payload["name"]),
                role=Role(payload["role"]),
                issued_at=datetime.fromtimestamp(issued_at, tz=UTC),
                expires_at=datetime.fromtimestamp(expires_at, tz=UTC),
                jti=str(payload["jti"]),
            )
        except InvalidTokenError:
            log.debug("token.rejected", extra={"reason": "window"})
            raise
        except (jwt.PyJWTError, ValueError, TypeError, KeyError) as exc:
            log.debug("token.rejected", extra={"reason": type(exc).__name__})
            raise InvalidTokenError() from None
        return claims
