"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, request

from authcore.api.deps import current_claims, json_response, require_access, timing
from authcore.core.auth import get_auth_service
from authcore.models.user import Role
from authcore.schemas import (
    LoginSchema,
    RefreshTokenSchema,
    RegisterSchema,
    TokenPairSchema,
    UserSchema,
)
from authcore.services.auth.dto import LoginIn, RefreshIn, RegisterIn
from authcore.services.auth.gate import Authenticated, RequireAnyRole, RequireRole

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshTokenSchema()
user_schema = UserSchema()
token_schema = TokenPairSchema()

ANY_USER = Authenticated()
ADMIN_ONLY = RequireRole(Role.ADMIN)
SUPER_ADMIN_ONLY = RequireRole(Role.SUPER_ADMIN)
USER_OR_ADMIN = RequireAnyRole([Role.USER, Role.ADMIN])


@bp.post("/register")
@timing
def register():
    """Register a new account with the default role."""

    payload = register_schema.load(request.get_json(silent=True) or {})
    user = get_auth_service().register(RegisterIn(**payload))
    return json_response({"data": user_schema.dump(user)}, status=201)


@bp.post("/login")
@timing
def login():
    """Exchange credentials for an access/refresh token pair."""

    payload = login_schema.load(request.get_json(silent=True) or {})
    pair = get_auth_service().login(LoginIn(**payload))
    return json_response({"data": token_schema.dump(pair)})


@bp.post("/refresh-token")
@timing
def refresh_token():
    """Rotate the refresh token and issue a new pair."""

    payload = refresh_schema.load(request.get_json(silent=True) or {})
    pair = get_auth_service().refresh(RefreshIn(**payload))
    return json_response({"data": token_schema.dump(pair)})


@bp.post("/logout")
@require_access(ANY_USER)
@timing
def logout():
    """Invalidate the caller's refresh token."""

    get_auth_service().logout(current_claims().user_id)
    return "", 204


@bp.get("/me")
@require_access(ANY_USER)
@timing
def me():
    """Return the authenticated user profile."""

    user = get_auth_service().get_user(current_claims().user_id)
    return json_response({"data": user_schema.dump(user)})


@bp.get("")
@require_access(ANY_USER)
def authenticated_only():
    """Reachable by any authenticated caller."""

    return json_response({"data": {"message": f"Hello {current_claims().username}."}})


@bp.get("/admin-role")
@require_access(ADMIN_ONLY)
def admin_only():
    """Reachable with the Admin role only."""

    return json_response({"data": {"message": "Admin access granted."}})


@bp.get("/superadmin-role")
@require_access(SUPER_ADMIN_ONLY)
def super_admin_only():
    """Reachable with the SuperAdmin role only."""

    return json_response({"data": {"message": "SuperAdmin access granted."}})


@bp.get("/user-and-admin-role")
@require_access(USER_OR_ADMIN)
def user_or_admin():
    """Reachable with the User or Admin role."""

    return json_response({"data": {"message": "User or Admin access granted."}})
