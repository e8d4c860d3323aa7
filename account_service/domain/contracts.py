"""Domain-level contracts shared by the service and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Literal, Protocol, Sequence

from .account import Account
from .errors import DeliveryError

OrderField = Literal["username", "email", "created_at", "last_name"]


@dataclass(slots=True, frozen=True)
class AccountFilter:
    """Typed attribute predicate; unset fields do not constrain the match."""

    account_id: str | None = None
    username: str | None = None
    email: str | None = None
    api_key: str | None = None
    enabled: bool | None = None
    locked: bool | None = None
    role: str | None = None

    def constraints(self) -> dict[str, Any]:
        """Return the populated fields keyed by attribute name."""
        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if getattr(self, item.name) is not None
        }

    def matches(self, account: Account) -> bool:
        for name, expected in self.constraints().items():
            if name == "role":
                if expected not in account.roles:
                    return False
            elif getattr(account, name) != expected:
                return False
        return True


@dataclass(slots=True, frozen=True)
class Ordering:
    """Sort key for multi-account queries."""

    field: OrderField = "username"
    descending: bool = False


@dataclass(slots=True, frozen=True)
class ValidationIssue:
    """A single failed validation rule."""

    field: str
    message: str


@dataclass(slots=True)
class MailMessage:
    """An outbound HTML message handed to a mail transport."""

    subject: str
    sender_email: str
    sender_name: str
    recipients: list[str]
    html_body: str


@dataclass(slots=True)
class DeliveryResult:
    """Outcome reported by a mail transport."""

    delivered: bool
    accepted: int = 0
    error: str | None = None
    rejected: list[str] = field(default_factory=list)

    def raise_for_error(self) -> None:
        """Raise :class:`DeliveryError` when the delivery failed."""
        if not self.delivered:
            raise DeliveryError(self.error or "delivery failed")


class AccountStore(Protocol):
    """Persistence contract required by the account workflows."""

    def find_by_id(self, account_id: str) -> Account | None: ...

    def find_one_by(self, criteria: AccountFilter) -> Account | None: ...

    def find_many_by(
        self,
        criteria: AccountFilter,
        ordering: Sequence[Ordering] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Account]: ...

    def save(self, account: Account) -> Account: ...

    def remove(self, account: Account) -> None: ...


class CredentialValidator(Protocol):
    def validate(self, account: Account) -> list[ValidationIssue]: ...


class TemplateRenderer(Protocol):
    def render(self, template_name: str, context: dict[str, Any]) -> str: ...


class MailTransport(Protocol):
    def send(self, message: MailMessage) -> DeliveryResult: ...
