"""Tests for the ``flask users`` command group."""

from __future__ import annotations

import pytest

from authcore.core.auth import get_auth_service
from authcore.models.user import Role
from authcore.services._shared.errors import PersistenceError
from authcore.services.auth.dto import LoginIn
from authcore.services.auth.service import AuthService
from tests.factories.user import DEFAULT_PASSWORD, UserFactory


@pytest.fixture()
def runner(app, session):
    return app.test_cli_runner()


def test_set_role(runner, session):
    user = UserFactory(username="promote-me")
    session.commit()

    result = runner.invoke(args=["users", "set-role", "promote-me", "Admin"])

    assert result.exit_code == 0, result.output
    assert "promote-me is now Admin." in result.output
    pair = get_auth_service().login(LoginIn(username=user.username, password=DEFAULT_PASSWORD))
    assert get_auth_service().validate_access_token(pair.access_token).role is Role.ADMIN


def test_set_role_unknown_user(runner, session):
    result = runner.invoke(args=["users", "set-role", "ghost", "Admin"])
    assert result.exit_code != 0
    assert "not found" in result.output


def test_set_role_rejects_unknown_role(runner, session):
    result = runner.invoke(args=["users", "set-role", "anyone", "Root"])
    assert result.exit_code == 2


def test_create_with_role(runner, session):
    result = runner.invoke(
        args=["users", "create", "ops", "--password", "pw", "--role", "SuperAdmin"]
    )

    assert result.exit_code == 0, result.output
    assert "role=SuperAdmin" in result.output
    pair = get_auth_service().login(LoginIn(username="ops", password="pw"))
    assert get_auth_service().validate_access_token(pair.access_token).role is Role.SUPER_ADMIN


def test_create_reports_partial_success_when_role_grant_fails(runner, session, monkeypatch):
    def _down(self, username, role):
        raise PersistenceError("Storage failure during assign_role.")

    monkeypatch.setattr(AuthService, "assign_role", _down)

    result = runner.invoke(
        args=["users", "create", "ops2", "--password", "pw", "--role", "Admin"]
    )

    assert result.exit_code != 0
    assert "with role User" in result.output
    assert "set-role ops2 Admin" in result.output
    pair = get_auth_service().login(LoginIn(username="ops2", password="pw"))
    assert get_auth_service().validate_access_token(pair.access_token).role is Role.USER


def test_create_duplicate_fails(runner, session):
    UserFactory(username="taken")
    session.commit()

    result = runner.invoke(args=["users", "create", "taken", "--password", "pw"])
    assert result.exit_code != 0
    assert "Conflict" in result.output


def test_init_db_refused_in_production(app, runner, monkeypatch):
    monkeypatch.setitem(app.config, "APP_ENV", "production")

    result = runner.invoke(args=["users", "init-db"])
    assert result.exit_code == 2
    assert "non-production" in result.output
