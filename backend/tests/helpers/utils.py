"""Tiny helpers shared across test modules."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

EPOCH = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


class MutableClock:
    """Injectable clock that only moves when told to.

    Parameters
    ----------
    start: datetime
        Initial aware UTC instant. Defaults to :data:`EPOCH`.
    """

    def __init__(self, start: datetime = EPOCH) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        """Move forward by ``timedelta(**delta)`` and return the new instant."""
        self.now = self.now + timedelta(**delta)
        return self.now


def bearer(token: str) -> dict[str, str]:
    """Return an ``Authorization`` header carrying ``token``."""
    return {"Authorization": f"Bearer {token}"}
