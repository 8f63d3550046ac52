from __future__ import annotations

import logging
from datetime import UTC, datetime

import redis  # type: ignore[import-untyped]

from authcore.services._shared.clock import Clock, utc_now
from authcore.services._shared.errors import persistence_faults
from authcore.services._shared.ports import (
    RefreshTokenPolicy,
    RefreshTokenStore,
    digest_token,
    token_matches,
)

log = logging.getLogger(__name__)


class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed refresh token store with atomic rotation.

    One hash per user at ``rt:u:<user_id>`` holding ``digest`` and
    ``expires_at`` (epoch seconds). The key also carries a relative Redis TTL
    (Redis expires keys by its own clock) so stale entries disappear on their
    own; the ``expires_at`` field is what decides validity, against the
    injected clock.

    :param r: A Redis client (already connected).
    :param policy: Token lifetime and entropy.
    :param clock: Source of "now".
    """

    def __init__(
        self, r: redis.Redis, policy: RefreshTokenPolicy, *, clock: Clock = utc_now
    ) -> None:
        self.r = r
        self.policy = policy
        self._clock = clock

    # -------------------- helpers --------------------

    @staticmethod
    def _ku(user_id: int) -> str:
        return f"rt:u:{user_id}"

    @staticmethod
    def _to_ts(dt: datetime) -> int:
        return int(dt.astimezone(UTC).timestamp())

    @staticmethod
    def _decode(raw: dict[bytes, bytes]) -> tuple[str | None, int]:
        digest = raw.get(b"digest")
        expires = raw.get(b"expires_at")
        return (
            digest.decode() if digest is not None else None,
            int(expires.decode()) if expires is not None else 0,
        )

    def _is_live(self, raw: dict[bytes, bytes], presented: str) -> bool:
        digest, expires_ts = self._decode(raw)
        return token_matches(digest, presented) and self._to_ts(self._clock()) < expires_ts

    def _write(self, pipe, key: str, token: str) -> None:
        expires_at = self.policy.expiry_from(self._clock())
        pipe.delete(key)
        pipe.hset(key, mapping={"digest": digest_token(token), "expires_at": self._to_ts(expires_at)})
        pipe.expire(key, self.policy.expires)

    # -------------------- API ------------------------

    def issue(self, user_id: int) -> str:
        token = self.policy.new_token()
        with persistence_faults("refresh.issue"), self.r.pipeline(transaction=True) as pipe:
            self._write(pipe, self._ku(user_id), token)
            pipe.execute()
        return token

    def validate(self, user_id: int, presented: str) -> bool:
        with persistence_faults("refresh.validate"):
            raw = self.r.hgetall(self._ku(user_id))
        return bool(raw) and self._is_live(raw, presented)

    def rotate(self, user_id: int, presented: str) -> str | None:
        """
        Replace the stored token under ``WATCH``/``MULTI``/``EXEC``.

        If another client touches the key between the read and ``EXEC`` the
        transaction aborts with ``WatchError`` and the check is re-run against
        the new state; a token already rotated away no longer matches, so the
        loser returns ``None``.
        """
        key = self._ku(user_id)
        with persistence_faults("refresh.rotate"):
            while True:
                try:
                    with self.r.pipeline() as p:
                        p.watch(key)
                        raw = p.hgetall(key)
                        if not raw or not self._is_live(raw, presented):
                            p.unwatch()
                            return None
                        token = self.policy.new_token()
                        p.multi()
                        self._write(p, key, token)
                        p.execute()
                    return token
                except redis.WatchError:
                    log.info("refresh.rotate.retry", extra={"user_id": user_id})
                    continue

    def revoke(self, user_id: int) -> bool:
        with persistence_faults("refresh.revoke"):
            return bool(self.r.delete(self._ku(user_id)))
