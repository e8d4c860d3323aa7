"""Error taxonomy raised by account workflows."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .contracts import ValidationIssue


class AccountError(Exception):
    """Base class for account service failures."""

    status_code: int = 500


class ValidationError(AccountError):
    """An account failed field or business validation; correctable by the client."""

    status_code = 406

    def __init__(self, message: str, issues: Sequence["ValidationIssue"] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.issues = list(issues)


class NotFoundError(AccountError):
    """The targeted account does not exist."""

    status_code = 404


class StoreError(AccountError):
    """The persistence backend failed."""

    status_code = 503


class UsernameTaken(StoreError):
    """A save collided with the store's username uniqueness constraint."""

    status_code = 409


class UsernameExhausted(StoreError):
    """No free username suffix was found within the configured bound."""

    status_code = 409


class AuthenticationError(AccountError):
    """Credentials were rejected or the account may not sign in."""

    status_code = 401


class DeliveryError(AccountError):
    """The mail transport failed to send a message."""

    status_code = 502
