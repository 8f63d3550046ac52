from __future__ import annotations

from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash

from authcore.services._shared.ports import PasswordHasher


@dataclass(frozen=True, slots=True)
class WerkzeugPasswordHasher(PasswordHasher):
    """
    Adapter over :mod:`werkzeug.security`.

    Produces ``method$salt$hash`` strings; verification delegates to
    :func:`werkzeug.security.check_password_hash`, which compares with
    :func:`hmac.compare_digest`.

    :param method: Werkzeug method string, e.g. ``"scrypt"`` or
        ``"pbkdf2:sha256:600000"``.
    :param salt_length: Salt length in characters.
    """

    method: str = "scrypt"
    salt_length: int = 16

    def hash(self, plaintext: str) -> str:
        """
        Hash ``plaintext`` with a fresh salt.

        :raises ValueError: If ``plaintext`` is empty or not a string.
        """
        if not isinstance(plaintext, str) or not plaintext:
            raise ValueError("Password must be a non-empty string.")
        return generate_password_hash(plaintext, method=self.method, salt_length=self.salt_length)

    def verify(self, plaintext: str, hashed: str) -> bool:
        if not hashed or not isinstance(plaintext, str):
            return False
        try:
            return bool(check_password_hash(hashed, plaintext))
        except ValueError:
            # Unknown method or malformed parameters in a stored hash.
            return False
