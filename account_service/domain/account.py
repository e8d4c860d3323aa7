from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..security.keys import API_KEY_LENGTH, SALT_LENGTH, SECRET_KEY_LENGTH, generate_secret

DEFAULT_ROLE = "ROLE_USER"


@dataclass(slots=True)
class Account:
    """Aggregate root for a user identity with credentials, roles and status flags."""

    username: str = ""
    email: str = ""
    password_hash: str = ""
    salt: str = ""
    secret_key: str = ""
    api_key: str = ""
    roles: set[str] = field(default_factory=lambda: {DEFAULT_ROLE})
    locked: bool = False
    enabled: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    first_name: str = ""
    last_name: str = ""
    timezone: str = "UTC"
    account_id: str | None = None


def new_account() -> Account:
    """Build an unsaved account with fresh secrets and secure defaults.

    The caller sets the username, email and password hash before saving.
    """
    return Account(
        salt=generate_secret(SALT_LENGTH),
        roles={DEFAULT_ROLE},
        locked=False,
        enabled=True,
        created_at=datetime.now(timezone.utc),
        secret_key=generate_secret(SECRET_KEY_LENGTH),
        api_key=generate_secret(API_KEY_LENGTH),
    )
