"""
Password hashing for user accounts.

Hashes with Argon2id.
"""
from __future__ import annotations

from argon2 import PasswordHasher
from argon2.low_level import Type

_hasher = PasswordHasher(time_cost=2, memory_cost=102400, parallelism=8, hash_len=32, type=Type.ID)

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return _hasher.hash(password)

