from __future__ import annotations

import pytest

from account_service.domain.errors import StoreError, UsernameExhausted
from account_service.domain.usernames import USERNAME_MAX_LENGTH, UsernameResolver, normalize_username


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Ángel Núñez", "angelnunez"),
        ("JohnSmith", "johnsmith"),
        ("François", "francois"),
        ("Þór", "yor"),
        ("Straße", "strase"),
        ("Ŕóbert", "robert"),
        ("Ýves Ðuric", "yvesduric"),
        ("Zoë Müller", "zoemuller"),
    ],
)
def test_normalize_username(raw, expected):
    assert normalize_username(raw) == expected


def test_normalize_keeps_unmapped_characters():
    assert normalize_username("Łukasz O'Brien-Żak") == "łukaszo'brien-żak"


def test_normalize_is_deterministic():
    assert normalize_username("Ángel") == normalize_username("Ángel")


def test_resolve_returns_candidate_when_free(store):
    resolver = UsernameResolver(store)
    assert resolver.resolve("Ángel", "Núñez") == normalize_username("ÁngelNúñez")


def test_resolve_appends_first_free_suffix(store, make_account):
    resolver = UsernameResolver(store)
    store.put(make_account(username="johnsmith"))
    assert resolver.resolve("John", "Smith") == "johnsmith1"

    store.put(make_account(username="johnsmith1"))
    assert resolver.resolve("John", "Smith") == "johnsmith2"


def test_resolve_does_not_skip_gaps(store, make_account):
    resolver = UsernameResolver(store)
    store.put(make_account(username="johnsmith"))
    store.put(make_account(username="johnsmith2"))
    assert resolver.resolve("John", "Smith") == "johnsmith1"


def test_resolve_is_bounded(store, make_account):
    resolver = UsernameResolver(store, max_suffix=2)
    for name in ("johnsmith", "johnsmith1", "johnsmith2"):
        store.put(make_account(username=name))

    with pytest.raises(UsernameExhausted) as excinfo:
        resolver.resolve("John", "Smith")
    assert isinstance(excinfo.value, StoreError)


def test_resolve_keeps_long_names_within_the_length_cap(store, make_account):
    resolver = UsernameResolver(store)
    base = "a" * 40 + "b" * 40

    first = resolver.resolve("A" * 40, "B" * 40)
    assert first == base[:USERNAME_MAX_LENGTH]

    store.put(make_account(username=first))
    second = resolver.resolve("A" * 40, "B" * 40)
    assert second == base[: USERNAME_MAX_LENGTH - 1] + "1"
    assert len(second) == USERNAME_MAX_LENGTH


def test_resolve_leaves_names_at_the_cap_untouched(store):
    resolver = UsernameResolver(store)
    assert resolver.resolve("x" * 32, "y" * 32) == "x" * 32 + "y" * 32
