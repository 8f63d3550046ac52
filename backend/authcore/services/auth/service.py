from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from functools import cached_property

from sqlalchemy.exc import IntegrityError

from authcore.models.user import Role, User
from authcore.repositories.user import UserRepository
from authcore.services._shared.base import BaseService
from authcore.services._shared.errors import (
    INVALID_REFRESH_TOKEN,
    ConflictError,
    NotFoundError,
    ServiceError,
    UnauthorizedError,
    persistence_faults,
    violates,
)
from authcore.services._shared.ports import (
    AccessClaims,
    PasswordHasher,
    RefreshTokenStore,
    TokenIssuer,
)
from authcore.services.auth.dto import (
    LoginIn,
    RefreshIn,
    RegisterIn,
    TokenPairOut,
    UserPublicOut,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _Principal:
    """Detached copy of the fields needed after the read transaction closes."""

    id: int
    username: str
    role: Role
    password_hash: str


def _to_public(user: User) -> UserPublicOut:
    return UserPublicOut(
        id=user.id,
        username=user.username,
        role=user.role,
        created_at=user.created_at,
    )


class AuthService(BaseService):
    """
    Credential and token lifecycle: register, login, refresh, logout.

    Collaborators are injected; the service holds no key material itself.
    Password hashing and verification always run outside database
    transactions.

    :param hasher: Password hashing port.
    :param tokens: Access token issuer.
    :param refresh_store: Single-token-per-user refresh store.
    """

    def __init__(
        self,
        *,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        refresh_store: RefreshTokenStore,
    ) -> None:
        self.hasher = hasher
        self.tokens = tokens
        self.refresh_store = refresh_store

    @cached_property
    def _dummy_hash(self) -> str:
        # Verified against for unknown usernames so both failure paths cost one hash.
        return self.hasher.hash(secrets.token_urlsafe(16))

    # ------------------------------------------------------------------ #
    # Register
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> UserPublicOut:
        """
        Create an account with the default ``User`` role.

        :raises ServiceError: If username or password is empty.
        :raises ConflictError: If the username is already taken.
        :raises PersistenceError: On database failure.
        """
        username = (dto.username or "").strip()
        if not username:
            raise ServiceError("Username is required.")
        try:
            password_hash = self.hasher.hash(dto.password)
        except ValueError as exc:
            raise ServiceError(str(exc)) from exc

        with persistence_faults("register"), self.rw_uow() as uow:
            repo: UserRepository = uow.users
            if repo.exists_by_username(username):
                log.info("auth.register.conflict", extra={"event": "auth.register.conflict"})
                raise ConflictError("User", "username already in use")
            try:
                user = repo.add(User(username=username, password_hash=password_hash))
            except IntegrityError as exc:
                if violates(exc, "uq_users_username"):
                    raise ConflictError("User", "username already in use") from exc
                raise
            except ValueError as exc:
                raise ServiceError(str(exc)) from exc
            out = _to_public(user)

        log.info("auth.register", extra={"event": "auth.register", "user_id": out.id})
        return out

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> TokenPairOut:
        """
        Verify credentials and issue a fresh token pair.

        Unknown usernames and wrong passwords raise the same
        :class:`UnauthorizedError`.

        :raises UnauthorizedError: On any credential failure.
        :raises PersistenceError: On storage failure.
        """
        principal = self._find_principal(dto.username or "")
        if principal is None:
            self.hasher.verify(dto.password or "", self._dummy_hash)
            log.info("auth.login.failed", extra={"event": "auth.login.failed"})
            raise UnauthorizedError()
        if not self.hasher.verify(dto.password or "", principal.password_hash):
            log.info(
                "auth.login.failed",
                extra={"event": "auth.login.failed", "user_id": principal.id},
            )
            raise UnauthorizedError()

        refresh_token = self.refresh_store.issue(principal.id)
        pair = self._pair(principal.id, principal.username, principal.role, refresh_token)
        log.info("auth.login", extra={"event": "auth.login", "user_id": principal.id})
        return pair

    # ------------------------------------------------------------------ #
    # Refresh with atomic rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> TokenPairOut:
        """
        Rotate the refresh token and issue a new pair.

        The owner is loaded before rotating, so a storage failure on that read
        leaves the presented token usable. Rotation itself is the store's
        compare-and-swap: the presented token fails on every later attempt,
        including concurrent retries.

        :raises UnauthorizedError: If the token is absent, mismatched,
            expired, already rotated, or its owner no longer exists.
        :raises PersistenceError: On storage failure.
        """
        with persistence_faults("refresh.load_user"), self.ro_uow() as uow:
            user = uow.users.get(dto.user_id)
            owner = (user.username, user.role) if user is not None else None

        new_refresh = (
            self.refresh_store.rotate(dto.user_id, dto.refresh_token or "") if owner else None
        )
        if new_refresh is None:
            log.info(
                "auth.refresh.rejected",
                extra={"event": "auth.refresh.rejected", "user_id": dto.user_id},
            )
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)
        username, role = owner

        log.info("auth.refresh", extra={"event": "auth.refresh", "user_id": dto.user_id})
        return self._pair(dto.user_id, username, role, new_refresh)

    # ------------------------------------------------------------------ #
    # Logout / lookups / provisioning
    # ------------------------------------------------------------------ #

    def logout(self, user_id: int) -> None:
        """Invalidate the user's refresh token. Access tokens expire on their own."""
        revoked = self.refresh_store.revoke(user_id)
        log.info(
            "auth.logout",
            extra={"event": "auth.logout", "user_id": user_id, "reason": "revoked" if revoked else "none"},
        )

    def validate_access_token(self, token: str) -> AccessClaims:
        """
        :raises InvalidTokenError: For any invalid token.
        """
        return self.tokens.validate(token)

    def get_user(self, user_id: int) -> UserPublicOut:
        """
        :raises NotFoundError: If the user does not exist.
        """
        with persistence_faults("get_user"), self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return _to_public(user)

    def assign_role(self, username: str, role: Role) -> UserPublicOut:
        """
        Administrative role assignment. Self-registration never sets roles.

        :raises NotFoundError: If no user has that username.
        """
        role = Role(role)
        with persistence_faults("assign_role"), self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get_by_username(username)
            if user is None:
                raise NotFoundError("User", username)
            repo.update(user, role=role)
            out = _to_public(user)
        log.info(
            "auth.role.assigned",
            extra={"event": "auth.role.assigned", "user_id": out.id, "reason": role.value},
        )
        return out

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _find_principal(self, username: str) -> _Principal | None:
        if not username.strip():
            return None
        with persistence_faults("login"), self.ro_uow() as uow:
            user = uow.users.get_by_username(username)
            if user is None:
                return None
            return _Principal(
                id=user.id,
                username=user.username,
                role=user.role,
                password_hash=user.password_hash,
            )

    def _pair(self, user_id: int, username: str, role: Role, refresh_token: str) -> TokenPairOut:
        access = self.tokens.issue_access_token(user_id=user_id, username=username, role=role)
        return TokenPairOut(
            access_token=access,
            refresh_token=refresh_token,
            user_id=user_id,
            expires_in=self.tokens.access_expires_seconds,
        )
