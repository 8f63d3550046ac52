"""Injectable wall clock shared by token issuers and refresh stores."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Label naive datetimes as UTC and convert aware ones to UTC.

    SQLite returns ``DateTime(timezone=True)`` columns as naive values; they
    were written in UTC, so labelling them is lossless.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
