"""Account service orchestrating creation, persistence, sessions and recovery."""

from __future__ import annotations

import logging
from typing import Sequence

from .account import Account, new_account
from .contracts import (
    AccountFilter,
    AccountStore,
    CredentialValidator,
    DeliveryResult,
    Ordering,
)
from .errors import AuthenticationError, NotFoundError, UsernameTaken, ValidationError
from .sessions import Session, SessionManager
from .usernames import UsernameResolver
from ..metrics import ACCOUNTS_REMOVED, ACCOUNTS_SAVED, LOGINS, RECOVERY_EMAILS
from ..notifications.recovery import RecoveryNotifier
from ..security.passwords import check_password, hash_password

logger = logging.getLogger(__name__)


class AccountService:
    """Account lifecycle workflows over an injected store, validator and notifier.

    Session state lives in the :class:`SessionManager` handed in by the caller,
    so one service instance serves a single request context.
    """

    def __init__(
        self,
        repository: AccountStore,
        validator: CredentialValidator,
        notifier: RecoveryNotifier,
        sessions: SessionManager | None = None,
        *,
        max_username_suffix: int = 1000,
        register_max_attempts: int = 3,
    ) -> None:
        self._repository = repository
        self._validator = validator
        self._notifier = notifier
        self._sessions = sessions if sessions is not None else SessionManager()
        self._usernames = UsernameResolver(repository, max_suffix=max_username_suffix)
        self._register_max_attempts = max(1, register_max_attempts)

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    def new_account(self) -> Account:
        return new_account()

    def unique_username(self, first_name: str, last_name: str) -> str:
        return self._usernames.resolve(first_name, last_name)

    def save_account(self, account: Account) -> None:
        """Validate and persist ``account``; the first save assigns its identifier.

        Raises
        ------
        ValidationError
            When the validator reports any issue. The store is not called.
        StoreError
            Propagated from the store, including :class:`UsernameTaken`.
        """
        issues = self._validator.validate(account)
        if issues:
            raise ValidationError(issues[0].message, issues)

        self._repository.save(account)
        ACCOUNTS_SAVED.inc()
        logger.info("saved account %s", account.account_id)

    def remove_account(self, account: Account | None) -> None:
        if account is None or account.account_id is None:
            raise NotFoundError("account not found")
        self._repository.remove(account)
        ACCOUNTS_REMOVED.inc()
        logger.info("removed account %s", account.account_id)

    def find_account(self, account_id: str) -> Account | None:
        return self._repository.find_by_id(account_id)

    def find_account_by(self, criteria: AccountFilter) -> Account | None:
        return self._repository.find_one_by(criteria)

    def find_accounts_by(
        self,
        criteria: AccountFilter,
        ordering: Sequence[Ordering] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Account]:
        return self._repository.find_many_by(criteria, ordering, limit, offset)

    def login(self, account: Account) -> Session:
        session = self._sessions.establish(account)
        LOGINS.labels(outcome="success").inc()
        logger.info("account %s logged in", account.account_id)
        return session

    def logout(self) -> None:
        self._sessions.clear()

    def active_user(self) -> Account | None:
        return self._sessions.current_user()

    def send_recovery_email(self, account: Account) -> DeliveryResult:
        result = self._notifier.send_recovery(account)
        RECOVERY_EMAILS.labels(outcome="delivered" if result.delivered else "failed").inc()
        return result

    def register(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        timezone: str = "UTC",
    ) -> Account:
        """Create and persist an account under the first free username.

        A concurrent registration can claim the resolved username between the
        lookup and the save; the username is then re-resolved, up to
        ``register_max_attempts`` times, before :class:`UsernameTaken` is raised.
        """
        account = self.new_account()
        account.first_name = first_name
        account.last_name = last_name
        account.email = email
        account.timezone = timezone
        account.password_hash = hash_password(password, account.salt)

        attempt = 0
        while True:
            attempt += 1
            account.username = self.unique_username(first_name, last_name)
            try:
                self.save_account(account)
                return account
            except UsernameTaken:
                if attempt >= self._register_max_attempts:
                    raise
                logger.info(
                    "username %s claimed concurrently (attempt %d)", account.username, attempt
                )

    def authenticate(self, login: str, password: str) -> Session:
        """Check a username or email and password pair and log the account in."""
        account = self._repository.find_one_by(AccountFilter(username=login))
        if account is None:
            account = self._repository.find_one_by(AccountFilter(email=login))
        if account is None or not check_password(password, account.salt, account.password_hash):
            LOGINS.labels(outcome="rejected").inc()
            raise AuthenticationError("invalid credentials")
        return self._login_checked(account)

    def authenticate_api_key(self, api_key: str) -> Session:
        """Establish the identity behind ``api_key`` for this request.

        Key-authenticated requests are not logins and leave the login
        metrics untouched.
        """
        account = self._repository.find_one_by(AccountFilter(api_key=api_key)) if api_key else None
        if account is None:
            logger.debug("request with unknown api key")
            raise AuthenticationError("invalid api key")
        return self._sessions.establish(account)

    def request_password_reset(self, email: str) -> DeliveryResult | None:
        """Send recovery mail to ``email`` when an account uses it; ``None`` otherwise."""
        account = self._repository.find_one_by(AccountFilter(email=email))
        if account is None:
            logger.info("password reset requested for unknown address")
            return None
        return self.send_recovery_email(account)

    def _login_checked(self, account: Account) -> Session:
        try:
            return self.login(account)
        except AuthenticationError:
            LOGINS.labels(outcome="refused").inc()
            raise
