"""Utilities for password hashing and verification."""

from __future__ import annotations

import secrets
from functools import lru_cache

import bcrypt

from ..config import get_settings
from ..domain.errors import CorruptHashError, InvalidInputError

# bcrypt only considers the first 72 bytes of a secret.
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a plain text password using bcrypt with a random per-call salt."""
    if not isinstance(password, str) or not password:
        raise InvalidInputError("password must be a non-empty string")
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise InvalidInputError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=get_settings().password_hash_rounds)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain text password against a stored bcrypt hash.

    Returns ``False`` on any mismatch. Raises :class:`CorruptHashError` only when
    the stored hash itself is unusable.
    """
    if not isinstance(hashed_password, str) or not hashed_password:
        raise CorruptHashError("stored password hash is empty")
    if not isinstance(plain_password, str) or not plain_password:
        return False
    encoded = plain_password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed_password.encode("utf-8"))
    except ValueError as exc:
        raise CorruptHashError("stored password hash is not a valid bcrypt hash") from exc


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """Hash of a throwaway secret, compared against when an email is unknown."""
    return hash_password(secrets.token_urlsafe(16))


__all__ = ["dummy_password_hash", "hash_password", "verify_password"]
