from __future__ import annotations

import threading
import uuid
from typing import Callable, Sequence

import pytest

from account_service.config import TEMPLATE_DIR
from account_service.domain.account import Account, new_account
from account_service.domain.contracts import AccountFilter, DeliveryResult, MailMessage, Ordering
from account_service.domain.errors import NotFoundError, UsernameTaken
from account_service.domain.service import AccountService
from account_service.domain.sessions import IdentityContext, SessionManager
from account_service.domain.validation import AccountValidator
from account_service.notifications.recovery import RecoveryNotifier
from account_service.notifications.templating import JinjaTemplateRenderer
from account_service.security.passwords import hash_password


class FakeAccountStore:
    """In-memory store enforcing username uniqueness like the Postgres constraint."""

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._lock = threading.Lock()
        self.save_calls = 0
        self.before_save: Callable[[Account], None] | None = None

    def find_by_id(self, account_id: str) -> Account | None:
        return self._accounts.get(account_id)

    def find_one_by(self, criteria: AccountFilter) -> Account | None:
        found = self.find_many_by(criteria, limit=1)
        return found[0] if found else None

    def find_many_by(
        self,
        criteria: AccountFilter,
        ordering: Sequence[Ordering] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Account]:
        results = [account for account in self._accounts.values() if criteria.matches(account)]
        for order in reversed(list(ordering or ())):
            results.sort(key=lambda account: getattr(account, order.field), reverse=order.descending)
        start = offset or 0
        end = start + limit if limit is not None else None
        return results[start:end]

    def save(self, account: Account) -> Account:
        self.save_calls += 1
        hook, self.before_save = self.before_save, None
        if hook is not None:
            hook(account)
        with self._lock:
            for other in self._accounts.values():
                if other.username == account.username and other.account_id != account.account_id:
                    raise UsernameTaken(f"username {account.username!r} is taken")
            if account.account_id is None:
                account.account_id = str(uuid.uuid4())
            elif account.account_id not in self._accounts:
                raise NotFoundError("account not found")
            self._accounts[account.account_id] = account
        return account

    def remove(self, account: Account) -> None:
        with self._lock:
            if account.account_id not in self._accounts:
                raise NotFoundError("account not found")
            del self._accounts[account.account_id]

    def put(self, account: Account) -> Account:
        """Store ``account`` directly, bypassing validation."""
        account.account_id = account.account_id or str(uuid.uuid4())
        self._accounts[account.account_id] = account
        return account


class RecordingTransport:
    """Mail transport capturing messages and answering with a preset result."""

    def __init__(self, result: DeliveryResult | None = None) -> None:
        self.messages: list[MailMessage] = []
        self.result = result or DeliveryResult(delivered=True, accepted=1)

    def send(self, message: MailMessage) -> DeliveryResult:
        self.messages.append(message)
        return self.result


@pytest.fixture
def store() -> FakeAccountStore:
    return FakeAccountStore()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def notifier(transport: RecordingTransport) -> RecoveryNotifier:
    return RecoveryNotifier(
        JinjaTemplateRenderer(TEMPLATE_DIR),
        transport,
        sender_email="noreply@example.com",
        sender_name="Example Accounts",
        site_name="Example",
    )


@pytest.fixture
def service(store: FakeAccountStore, notifier: RecoveryNotifier) -> AccountService:
    return AccountService(store, AccountValidator(), notifier, SessionManager(IdentityContext()))


@pytest.fixture
def make_account() -> Callable[..., Account]:
    """Build a valid, unsaved account."""

    def _make(
        username: str = "johnsmith",
        email: str = "john@example.com",
        password: str = "correct horse",
        **overrides,
    ) -> Account:
        account = new_account()
        account.username = username
        account.email = email
        account.password_hash = hash_password(password, account.salt)
        for name, value in overrides.items():
            setattr(account, name, value)
        return account

    return _make
