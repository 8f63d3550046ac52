from __future__ import annotations

import logging
from collections.abc import Callable

from authcore.services._shared.clock import Clock, as_utc, utc_now
from authcore.services._shared.errors import NotFoundError, persistence_faults
from authcore.services._shared.ports import (
    RefreshTokenPolicy,
    RefreshTokenStore,
    digest_token,
    token_matches,
)
from authcore.uow import SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)


class SQLRefreshTokenStore(RefreshTokenStore):
    """
    Refresh tokens kept on the ``users`` row (digest + expiry columns).

    Every operation runs in its own read-write Unit of Work. Rotation reads
    the stored digest, checks it in constant time, then issues
    ``UPDATE ... WHERE id = :id AND refresh_token_digest = :expected``; only
    the writer whose update touches a row wins.

    :param policy: Token lifetime and entropy.
    :param clock: Source of "now".
    :param uow_factory: Factory for the write Unit of Work (overridable in tests).
    """

    def __init__(
        self,
        policy: RefreshTokenPolicy,
        *,
        clock: Clock = utc_now,
        uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork,
    ) -> None:
        self.policy = policy
        self._clock = clock
        self._uow_factory = uow_factory

    def issue(self, user_id: int) -> str:
        """
        :raises NotFoundError: If the user row does not exist.
        :raises PersistenceError: On database failure.
        """
        token = self.policy.new_token()
        expires_at = self.policy.expiry_from(self._clock())
        with persistence_faults("refresh.issue"), self._uow_factory() as uow:
            if not uow.users.set_refresh_token(user_id, digest_token(token), expires_at):
                raise NotFoundError("User", user_id)
        return token

    def validate(self, user_id: int, presented: str) -> bool:
        with persistence_faults("refresh.validate"), self._uow_factory() as uow:
            state = uow.users.get_refresh_state(user_id)
        if state is None or state.expires_at is None:
            return False
        return token_matches(state.digest, presented) and self._clock() < as_utc(
            state.expires_at
        )

    def rotate(self, user_id: int, presented: str) -> str | None:
        token = self.policy.new_token()
        now = self._clock()
        with persistence_faults("refresh.rotate"), self._uow_factory() as uow:
            state = uow.users.get_refresh_state(user_id)
            if state is None or state.digest is None or state.expires_at is None:
                return None
            if not token_matches(state.digest, presented):
                return None
            if now >= as_utc(state.expires_at):
                return None
            swapped = uow.users.swap_refresh_token(
                user_id,
                expected_digest=state.digest,
                new_digest=digest_token(token),
                expires_at=self.policy.expiry_from(now),
            )
            if not swapped:
                log.info("refresh.rotate.lost_race", extra={"user_id": user_id})
                return None
        return token

    def revoke(self, user_id: int) -> bool:
        with persistence_faults("refresh.revoke"), self._uow_factory() as uow:
            return uow.users.clear_refresh_token(user_id)
