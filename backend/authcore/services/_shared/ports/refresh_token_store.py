from __future__ import annotations

import hashlib
import hmac
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Final, Protocol

from authcore.services._shared.clock import Clock, utc_now

MIN_TOKEN_BYTES: Final[int] = 16  # 128 bits


def digest_token(token: str) -> str:
    """Return the SHA-256 hex digest stored in place of a refresh token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_matches(stored_digest: str | None, presented: str) -> bool:
    """Constant-time check of a presented token against a stored digest."""
    if not stored_digest or not presented:
        return False
    return hmac.compare_digest(stored_digest, digest_token(presented))


@dataclass(frozen=True, slots=True)
class RefreshTokenPolicy:
    """
    Lifetime and entropy of refresh tokens.

    :param expires: Lifetime of an issued token.
    :param token_bytes: Random bytes per token; at least :data:`MIN_TOKEN_BYTES`.
    :raises ValueError: On a non-positive lifetime or too little entropy.
    """

    expires: timedelta
    token_bytes: int = 32

    def __post_init__(self) -> None:
        if self.expires <= timedelta(0):
            raise ValueError("Refresh token lifetime must be positive.")
        if self.token_bytes < MIN_TOKEN_BYTES:
            raise ValueError(f"Refresh tokens need at least {MIN_TOKEN_BYTES} random bytes.")

    def new_token(self) -> str:
        """Generate an opaque URL-safe token from the OS CSPRNG."""
        return secrets.token_urlsafe(self.token_bytes)

    def expiry_from(self, now: datetime) -> datetime:
        return now + self.expires


class RefreshTokenStore(Protocol):
    """
    Stateful store holding at most one live refresh token per user.

    Only digests are persisted. ``rotate`` MUST be atomic: for a given
    presented token at most one caller receives a replacement.
    """

    def issue(self, user_id: int) -> str:
        """Create a token, replacing (and invalidating) any previous one."""
        ...

    def validate(self, user_id: int, presented: str) -> bool:
        """``True`` iff ``presented`` is the stored, unexpired token. No mutation."""
        ...

    def rotate(self, user_id: int, presented: str) -> str | None:
        """
        Compare-and-swap the stored token.

        :returns: The replacement token, or ``None`` when ``presented`` is
            absent, mismatched, expired or was already rotated away.
        """
        ...

    def revoke(self, user_id: int) -> bool:
        """Clear the stored token. :returns: True if one was live."""
        ...


@dataclass(frozen=True, slots=True)
class _Entry:
    digest: str
    expires_at: datetime


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    Process-local refresh token store.

    Each user has its own lock, so rotations for different users never
    contend. Suitable for tests and single-process development servers.
    """

    def __init__(self, policy: RefreshTokenPolicy, *, clock: Clock = utc_now) -> None:
        self.policy = policy
        self._clock = clock
        self._entries: dict[int, _Entry] = {}
        self._locks: dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, user_id: int, *, create: bool = False) -> threading.Lock | None:
        # Only ``issue`` creates locks; ids that were never issued cost nothing.
        with self._locks_guard:
            if create:
                return self._locks.setdefault(user_id, threading.Lock())
            return self._locks.get(user_id)

    def _is_live(self, entry: _Entry | None, presented: str) -> bool:
        if entry is None:
            return False
        return token_matches(entry.digest, presented) and self._clock() < entry.expires_at

    def issue(self, user_id: int) -> str:
        token = self.policy.new_token()
        entry = _Entry(digest_token(token), self.policy.expiry_from(self._clock()))
        lock = self._lock_for(user_id, create=True)
        with lock, self._locks_guard:
            # A concurrent revoke may have pruned the lock; keep entry and lock paired.
            self._locks[user_id] = lock
            self._entries[user_id] = entry
        return token

    def validate(self, user_id: int, presented: str) -> bool:
        with self._locks_guard:
            entry = self._entries.get(user_id)
        return self._is_live(entry, presented)

    def rotate(self, user_id: int, presented: str) -> str | None:
        lock = self._lock_for(user_id)
        if lock is None:
            return None
        with lock:
            if not self._is_live(self._entries.get(user_id), presented):
                return None
            token = self.policy.new_token()
            self._entries[user_id] = _Entry(
                digest_token(token), self.policy.expiry_from(self._clock())
            )
            return token

    def revoke(self, user_id: int) -> bool:
        lock = self._lock_for(user_id)
        if lock is None:
            return False
        with lock, self._locks_guard:
            self._locks.pop(user_id, None)
            return self._entries.pop(user_id, None) is not None
