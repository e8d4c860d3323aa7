"""Username canonicalisation and uniqueness resolution."""

from __future__ import annotations

import logging
from typing import Final

from .contracts import AccountFilter, AccountStore
from .errors import UsernameExhausted

logger = logging.getLogger(__name__)

USERNAME_MAX_LENGTH: Final[int] = 64

_TRANSLITERATE: Final[dict[int, str]] = str.maketrans(
    {
        **dict.fromkeys("àáâãäåæ", "a"),
        "ç": "c",
        **dict.fromkeys("èéêë", "e"),
        **dict.fromkeys("ìíîï", "i"),
        "ð": "d",
        "ñ": "n",
        **dict.fromkeys("òóôõöø", "o"),
        **dict.fromkeys("ùúûü", "u"),
        **dict.fromkeys("ýÿþ", "y"),
        "ß": "s",
        "ŕ": "r",
    }
)


def normalize_username(raw: str) -> str:
    """Lowercase ``raw``, drop whitespace and strip Latin diacritics.

    Characters outside the transliteration table are kept as-is, so the
    result is not guaranteed to be ASCII.
    """
    lowered = "".join(raw.lower().split())
    return lowered.translate(_TRANSLITERATE)


class UsernameResolver:
    """Find the first free username for a display name.

    The lookup is not atomic with the eventual save; the store's uniqueness
    constraint decides concurrent registrations.
    """

    def __init__(self, store: AccountStore, *, max_suffix: int = 1000) -> None:
        self._store = store
        self._max_suffix = max_suffix

    def resolve(self, first_name: str, last_name: str) -> str:
        """Return the first free username for ``first_name + last_name``.

        The base is cut so that the name, suffix included, fits in
        ``USERNAME_MAX_LENGTH`` characters.
        """
        base = normalize_username(first_name + last_name)
        candidate = base[:USERNAME_MAX_LENGTH]
        suffix = 0
        while self._taken(candidate):
            suffix += 1
            if suffix > self._max_suffix:
                logger.warning("username suffixes exhausted for %s", base)
                raise UsernameExhausted(f"no free username for {base!r}")
            candidate = f"{base[: USERNAME_MAX_LENGTH - len(str(suffix))]}{suffix}"
        return candidate

    def _taken(self, username: str) -> bool:
        return self._store.find_one_by(AccountFilter(username=username)) is not None
