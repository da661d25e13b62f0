"""Security helpers (hashing of shared-account credentials)."""

from __future__ import annotations

from argon2 import PasswordHasher

_ph = PasswordHasher()
_PREFIX = "argon2$"


def hash_password(password: str) -> str:
    """Create an Argon2 hash with a prefix for detection."""
    hashed = _ph.hash(password)
    return f"{_PREFIX}{hashed}"
