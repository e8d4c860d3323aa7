"""Salted password hashing for stored account credentials."""

from __future__ import annotations

import hashlib
import hmac

ITERATIONS = 260_000


def hash_password(password: str, salt: str) -> str:
    """Return the hex PBKDF2-HMAC-SHA256 digest of ``password`` under ``salt``."""
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), ITERATIONS
    )
    return digest.hex()


def check_password(password: str, salt: str, hashed: str) -> bool:
    """Return ``True`` when ``password`` hashes to ``hashed`` under ``salt``."""
    if not hashed:
        return False
    return hmac.compare_digest(hash_password(password, salt), hashed)
