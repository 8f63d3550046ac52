"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import LoginSchema, RefreshTokenSchema, RegisterSchema, TokenPairSchema, UserSchema

__all__ = [
    "LoginSchema",
    "RefreshTokenSchema",
    "RegisterSchema",
    "TokenPairSchema",
    "UserSchema",
]
