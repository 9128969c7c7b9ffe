"""Centralized password hashing configuration.

Credentials are stored as a random salt plus a raw Argon2id digest so the
salt can be rotated independently on password change. Cost parameters come
from settings; all modules hashing passwords MUST go through here so the
parameters stay consistent across the application.
"""

from __future__ import annotations

import hmac
import secrets

from argon2.low_level import Type, hash_secret_raw

from messenger.settings import settings


def new_salt() -> bytes:
    """Return a fresh cryptographically random salt."""
    return secrets.token_bytes(settings.password_salt_len)


def derive_hash(password: str, salt: bytes) -> bytes:
    """Derive the Argon2id digest for ``password`` under ``salt``."""
    return hash_secret_raw(
        secret=password.encode("utf-8"),
        salt=salt,
        time_cost=settings.password_time_cost,      # Number of iterations
        memory_cost=settings.password_memory_cost,  # KiB
        parallelism=settings.password_parallelism,
        hash_len=settings.password_hash_len,
        type=Type.ID,
    )


def hashes_match(expected: bytes, candidate: bytes) -> bool:
    """Constant-time digest comparison."""
    return hmac.compare_digest(expected, candidate)
