"""Unit tests for the role gates."""

from __future__ import annotations

import pytest

from authcore.models.user import Role
from authcore.services._shared.ports import AccessClaims
from authcore.services.auth.gate import Authenticated, RequireAnyRole, RequireRole
from tests.helpers.utils import EPOCH


def _claims(role: Role) -> AccessClaims:
    return AccessClaims(
        user_id=1, username="u", role=role, issued_at=EPOCH, expires_at=EPOCH, jti="j"
    )


@pytest.mark.parametrize("role", list(Role))
def test_authenticated_admits_every_role(role):
    assert Authenticated().admits(_claims(role))


@pytest.mark.parametrize(
    "role, admitted",
    [(Role.USER, False), (Role.ADMIN, True), (Role.SUPER_ADMIN, False)],
)
def test_require_role_is_exact(role, admitted):
    # Roles are not hierarchical: SuperAdmin does not imply Admin.
    assert RequireRole(Role.ADMIN).admits(_claims(role)) is admitted


@pytest.mark.parametrize(
    "role, admitted",
    [(Role.USER, True), (Role.ADMIN, True), (Role.SUPER_ADMIN, False)],
)
def test_require_any_role(role, admitted):
    assert RequireAnyRole([Role.USER, Role.ADMIN]).admits(_claims(role)) is admitted


def test_require_any_role_needs_members():
    with pytest.raises(ValueError):
        RequireAnyRole([])


@pytest.mark.parametrize("bad", ["Admin", None, 1])
def test_gates_only_accept_role_members(bad):
    with pytest.raises(TypeError):
        RequireRole(bad)
    with pytest.raises(TypeError):
        RequireAnyRole([Role.USER, bad])


def test_gates_are_immutable():
    gate = RequireRole(Role.ADMIN)
    with pytest.raises(AttributeError):
        gate.role = Role.USER
