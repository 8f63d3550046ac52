from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from authcore.models.user import Role

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for account registration.

    :param username: Desired username (case-sensitive, trimmed).
    :type username: str
    :param password: Raw password; hashed before any write.
    :type password: str
    """

    username: str
    password: str

    def __repr__(self) -> str:
        return f"RegisterIn(username={self.username!r}, password='***')"


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param username: Username as registered.
    :type username: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    username: str
    password: str

    def __repr__(self) -> str:
        return f"LoginIn(username={self.username!r}, password='***')"


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param user_id: Owner the client claims the refresh token belongs to.
    :type user_id: int
    :param refresh_token: Opaque refresh token issued at login or last refresh.
    :type refresh_token: str
    """

    user_id: int
    refresh_token: str

    def __repr__(self) -> str:
        return f"RefreshIn(user_id={self.user_id!r}, refresh_token='***')"


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class UserPublicOut:
    """
    Output DTO representing public-safe user data. Never carries the hash.

    :param id: User identifier.
    :type id: int
    :param username: Username.
    :type username: str
    :param role: Assigned role.
    :type role: Role
    :param created_at: Creation timestamp.
    :type created_at: datetime | None
    """

    id: int
    username: str
    role: Role
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Signed access JWT.
    :type access_token: str
    :param refresh_token: Opaque refresh token.
    :type refresh_token: str
    :param user_id: Owner of both tokens (needed to call refresh).
    :type user_id: int
    :param expires_in: Access token lifetime in seconds.
    :type expires_in: int
    :param token_type: Always ``"Bearer"``.
    :type token_type: str
    """

    access_token: str
    refresh_token: str
    user_id: int
    expires_in: int
    token_type: str = "Bearer"

    def __repr__(self) -> str:
        return f"TokenPairOut(user_id={self.user_id!r}, expires_in={self.expires_in!r}, tokens='***')"
