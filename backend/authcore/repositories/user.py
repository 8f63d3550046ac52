"""User repository: account lookups and refresh-token columns."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import cast

from sqlalchemy import select, update

from authcore.models.user import User
from authcore.repositories.base import BaseRepository


@dataclass(frozen=True, slots=True)
class RefreshState:
    """
    Snapshot of the refresh-token columns for one user.

    :param digest: Stored SHA-256 digest, or ``None`` when no token is live.
    :param expires_at: Expiry of the stored token, or ``None``.
    """

    digest: str | None
    expires_at: datetime | None


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    Refresh-token writes are single ``UPDATE`` statements so a rotation can
    be expressed as a compare-and-swap on the stored digest.
    """

    model = User

    def _filterable_fields(self):
        return {"username": User.username, "role": User.role}

    def _updatable_fields(self):
        # Credentials and refresh-token state have dedicated methods.
        return {"role"}

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_username(self, username: str) -> User | None:
        """Fetch a user by exact (case-sensitive) username.

        :param username: Username to search; surrounding whitespace is ignored.
        :type username: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.username == username.strip())
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_username(self, username: str) -> bool:
        """Return ``True`` when a user with the provided username exists."""
        stmt = select(User.id).where(User.username == username.strip())
        return self.session.execute(stmt).first() is not None

    # ---------------------------- Refresh tokens ----------------------------

    def get_refresh_state(self, user_id: int) -> RefreshState | None:
        """Read the refresh-token columns straight from the database.

        A column select bypasses the identity map, so a concurrent rotation
        committed by another session is always observed.

        :returns: :class:`RefreshState` or ``None`` when the user does not exist.
        """
        stmt = select(User.refresh_token_digest, User.refresh_token_expires_at).where(
            User.id == user_id
        )
        row = self.session.execute(stmt).first()
        if row is None:
            return None
        return RefreshState(digest=row[0], expires_at=row[1])

    def set_refresh_token(self, user_id: int, digest: str, expires_at: datetime) -> bool:
        """Unconditionally replace the stored refresh token.

        :returns: ``True`` when the user row exists and was updated.
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(refresh_token_digest=digest, refresh_token_expires_at=expires_at)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    def swap_refresh_token(
        self,
        user_id: int,
        *,
        expected_digest: str,
        new_digest: str,
        expires_at: datetime,
    ) -> bool:
        """Replace the refresh token only if the stored digest still matches.

        :param expected_digest: Digest observed before the swap.
        :param new_digest: Digest of the replacement token.
        :param expires_at: Expiry of the replacement token.
        :returns: ``True`` for the single winner, ``False`` if another writer
            changed the row first.
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.refresh_token_digest == expected_digest)
            .values(refresh_token_digest=new_digest, refresh_token_expires_at=expires_at)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    def clear_refresh_token(self, user_id: int) -> bool:
        """Drop the stored refresh token.

        :returns: ``True`` if a live token was cleared.
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.refresh_token_digest.is_not(None))
            .values(refresh_token_digest=None, refresh_token_expires_at=None)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1
