"""User model and the closed role enumeration."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, validates

from authcore.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin


class Role(str, Enum):
    """Closed set of roles carried in the ``role`` claim."""

    USER = "User"
    ADMIN = "Admin"
    SUPER_ADMIN = "SuperAdmin"


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Account identity with its credential and refresh-token state.

    Fields
    ------
    username : str
        Login name. Unique and case-sensitive; surrounding whitespace is
        stripped on assignment.
    password_hash : str
        Opaque hash string produced by the password hasher (method, params
        and salt embedded). Never serialized.
    role : Role
        One of :class:`Role`; defaults to ``Role.USER``.
    refresh_token_digest : str | None
        SHA-256 hex digest of the single live refresh token, or ``None``.
    refresh_token_expires_at : datetime | None
        Expiry of the live refresh token, or ``None``.
    created_at : datetime
        Creation timestamp (from mixin).
    updated_at : datetime
        Update timestamp (from mixin).
    """

    __tablename__ = "users"
    __repr_fields__ = ("id", "username", "role")

    # Columns
    username: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(
        SAEnum(
            Role,
            name="user_role",
            native_enum=False,
            validate_strings=True,
            values_callable=lambda enum: [member.value for member in enum],
            length=20,
        ),
        nullable=False,
        default=Role.USER,
    )
    refresh_token_digest: Mapped[str | None] = mapped_column(String(64), nullable=True)
    refresh_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Constraints & indexes
    __table_args__ = (UniqueConstraint("username", name="uq_users_username"),)

    # -------------------- Validators --------------------
    @validates("username")
    def _normalize_username(self, key: str, value: str) -> str:
        """
        Validate and trim the username.

        :param key: Field name (``username``).
        :type key: str
        :param value: Username to normalize.
        :type value: str
        :returns: Trimmed username (case preserved).
        :rtype: str
        :raises ValueError: If username is missing, only whitespace or too long.
        """
        if not isinstance(value, str):
            raise ValueError("Username is required.")
        v = value.strip()
        if not v:
            raise ValueError("Username is required.")
        if len(v) > 50:
            raise ValueError("Username must be at most 50 characters.")
        return v

    @validates("password_hash")
    def _require_hash(self, key: str, value: str) -> str:
        """
        Refuse empty hashes so an account can never be created without one.

        :raises ValueError: If the value is empty.
        """
        if not isinstance(value, str) or not value:
            raise ValueError("Password hash is required.")
        return value

    @validates("role")
    def _coerce_role(self, key: str, value: Role | str) -> Role:
        """
        Accept a :class:`Role` or its string value.

        :raises ValueError: If the value is not a known role.
        """
        return value if isinstance(value, Role) else Role(value)
