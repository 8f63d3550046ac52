"""
authcore.services._shared.ports
===============================

Collection of *ports* (hexagonal interfaces) for credential and token
infrastructure.

Modules
-------
- :mod:`password_hasher`:
    Defines :class:`~.PasswordHasher`: salted one-way hashing + verification.

- :mod:`token_issuer`:
    Defines :class:`~.TokenIssuer` and :class:`~.AccessClaims`: signed access
    token creation and validation.

- :mod:`refresh_token_store`:
    Defines :class:`~.RefreshTokenStore`, :class:`~.RefreshTokenPolicy` and the
    process-local :class:`~.InMemoryRefreshTokenStore`.

Concrete adapters (werkzeug, PyJWT, SQLAlchemy, Redis) live under
``authcore.infra``.
"""

from __future__ import annotations

from .password_hasher import PasswordHasher
from .refresh_token_store import (
    MIN_TOKEN_BYTES,
    InMemoryRefreshTokenStore,
    RefreshTokenPolicy,
    RefreshTokenStore,
    digest_token,
    token_matches,
)
from .token_issuer import AccessClaims, TokenIssuer

__all__ = [
    "AccessClaims",
    "InMemoryRefreshTokenStore",
    "MIN_TOKEN_BYTES",
    "PasswordHasher",
    "RefreshTokenPolicy",
    "RefreshTokenStore",
    "TokenIssuer",
    "digest_token",
    "token_matches",
]
