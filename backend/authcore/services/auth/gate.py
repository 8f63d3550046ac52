"""Role predicates evaluated against validated access-token claims."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from authcore.models.user import Role
from authcore.services._shared.ports import AccessClaims


class AuthorizationGate(Protocol):
    def admits(self, claims: AccessClaims) -> bool: ...


def _require_role(value: object) -> Role:
    if not isinstance(value, Role):
        raise TypeError(f"Expected a Role member, got {value!r}.")
    return value


@dataclass(frozen=True, slots=True)
class Authenticated:
    """Admit any caller holding a valid access token."""

    def admits(self, claims: AccessClaims) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class RequireRole:
    """Admit callers whose role claim equals ``role`` exactly."""

    role: Role

    def __post_init__(self) -> None:
        _require_role(self.role)

    def admits(self, claims: AccessClaims) -> bool:
        return claims.role is self.role


@dataclass(frozen=True, slots=True)
class RequireAnyRole:
    """Admit callers whose role claim is one of ``roles``."""

    roles: frozenset[Role]

    def __init__(self, roles: Iterable[Role]) -> None:
        members = frozenset(_require_role(r) for r in roles)
        if not members:
            raise ValueError("RequireAnyRole needs at least one role.")
        object.__setattr__(self, "roles", members)

    def admits(self, claims: AccessClaims) -> bool:
        return claims.role in self.roles
