"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never depend on Flask or
HTTP. They serve as stable contracts between repositories, token stores and
application services.

The translation to HTTP responses (RFC 7807) is handled by
``authcore/core/errors.py``.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

# Single message for every credential failure so callers cannot tell
# an unknown username from a wrong password.
INVALID_CREDENTIALS = "Invalid username or password."
INVALID_REFRESH_TOKEN = "Invalid refresh token."
INVALID_ACCESS_TOKEN = "Invalid access token."


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g., 'uq_users_username').

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.

    Notes
    -----
    PostgreSQL reports the constraint name in the message. SQLite only reports
    the offending columns (``UNIQUE constraint failed: users.username``), so
    the ``<table>.<column>`` form derived from the naming convention is
    checked as well.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    name = constraint_name.lower()
    if name in message:
        return True
    parts = name.split("_", 2)  # uq_<table>_<column>
    if len(parts) == 3 and parts[0] == "uq":
        return f"{parts[1]}.{parts[2]}" in message
    return False


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories, token stores or services.
    - The API layer translates them to ``APIError`` responses.
    """

    pass


class PersistenceError(Exception):
    """
    Raised when a storage backend (database or Redis) fails.

    Not a :class:`ServiceError`; it maps to 503, never to 401.
    """

    pass


@contextmanager
def persistence_faults(operation: str) -> Iterator[None]:
    """
    Re-raise SQLAlchemy and Redis driver errors as :class:`PersistenceError`.

    :param operation: Short label used in the error message (e.g. ``"rotate"``).
    :type operation: str
    :raises PersistenceError: When the wrapped block raises a backend error.
    """
    try:
        yield
    except (SQLAlchemyError, RedisError) as exc:
        raise PersistenceError(f"Storage failure during {operation}.") from exc


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"


class UnauthorizedError(ServiceError):
    """
    Raised when presented credentials or refresh tokens are rejected.

    The message is fixed per failure family and never says *which* check
    failed.
    """

    def __init__(self, message: str = INVALID_CREDENTIALS) -> None:
        super().__init__(message)


class InvalidTokenError(ServiceError):
    """
    Raised when an access token fails validation for any reason.

    Signature, issuer, audience, expiry and malformed claims all collapse into
    this single error carrying the same message.
    """

    def __init__(self) -> None:
        super().__init__(INVALID_ACCESS_TOKEN)
