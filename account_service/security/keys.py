"""Random token generation for account secrets and API keys."""

from __future__ import annotations

import secrets
import string
from typing import Final

ALPHABET: Final[str] = string.digits + string.ascii_lowercase + string.ascii_uppercase
SECRET_KEY_LENGTH: Final[int] = 25
API_KEY_LENGTH: Final[int] = 50
SALT_LENGTH: Final[int] = 32


def generate_secret(length: int = SECRET_KEY_LENGTH) -> str:
    """Return ``length`` characters drawn uniformly from ``[0-9a-zA-Z]``.

    Uses the OS CSPRNG via :mod:`secrets`, which is safe to call from
    concurrent requests. Distinctness between calls is probabilistic only;
    callers that need uniqueness must check the store.
    """
    if length < 0:
        raise ValueError("length must be non-negative")
    return "".join(secrets.choice(ALPHABET) for _ in range(length))
