from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from authcore.models.user import Role


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """
    Validated content of an access token.

    :ivar user_id: Subject (``sub``) as the integer user id.
    :ivar username: ``name`` claim.
    :ivar role: ``role`` claim, always a member of :class:`Role`.
    :ivar issued_at: ``iat`` as an aware UTC datetime.
    :ivar expires_at: ``exp`` as an aware UTC datetime.
    :ivar jti: Unique token identifier.
    """

    user_id: int
    username: str
    role: Role
    issued_at: datetime
    expires_at: datetime
    jti: str


class TokenIssuer(Protocol):
    """
    Port for creating and validating signed access tokens.

    Implementations receive their signing key, issuer, audience and lifetime
    at construction; nothing is read from process-wide state.
    """

    @property
    def access_expires_seconds(self) -> int: ...

    def issue_access_token(self, *, user_id: int, username: str, role: Role) -> str: ...

    def validate(self, token: str) -> AccessClaims:
        """
        Return the claims of a valid token.

        :raises InvalidTokenError: For every kind of failure, uniformly.
        """
        ...
