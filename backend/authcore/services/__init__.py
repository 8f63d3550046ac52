"""Service layer public API.

Re-exports
----------
- :class:`BaseService` (from ``authcore.services._shared.base``)
- :class:`AuthService` and its DTOs (from ``authcore.services.auth``)
- Authorization gates: :class:`Authenticated`, :class:`RequireRole`,
  :class:`RequireAnyRole`
"""

from __future__ import annotations

from ._shared.base import BaseService
from .auth.dto import LoginIn, RefreshIn, RegisterIn, TokenPairOut, UserPublicOut
from .auth.gate import Authenticated, AuthorizationGate, RequireAnyRole, RequireRole
from .auth.service import AuthService

__all__ = [
    "BaseService",
    "AuthService",
    "RegisterIn",
    "LoginIn",
    "RefreshIn",
    "TokenPairOut",
    "UserPublicOut",
    "AuthorizationGate",
    "Authenticated",
    "RequireRole",
    "RequireAnyRole",
]
