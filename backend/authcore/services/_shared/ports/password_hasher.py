from __future__ import annotations

from typing import Protocol


class PasswordHasher(Protocol):
    """
    Port for one-way password hashing.

    ``hash`` draws a fresh random salt per call and embeds method, parameters
    and salt in the returned string. ``verify`` recomputes with the embedded
    parameters and compares in constant time; it returns ``False`` (never
    raises) for malformed or empty hashes.
    """

    def hash(self, plaintext: str) -> str: ...

    def verify(self, plaintext: str, hashed: str) -> bool: ...
