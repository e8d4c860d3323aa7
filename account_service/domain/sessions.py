"""Request-scoped authenticated identity."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .account import Account
from .errors import AuthenticationError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Session:
    """An authenticated account bound to the current request."""

    account: Account
    established_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class IdentityContext:
    """Holder for the identity of one request; created per request, never shared."""

    __slots__ = ("session",)

    def __init__(self) -> None:
        self.session: Session | None = None


class SessionManager:
    """Moves an :class:`IdentityContext` between anonymous and authenticated."""

    def __init__(self, context: IdentityContext | None = None) -> None:
        self._context = context if context is not None else IdentityContext()

    def establish(self, account: Account) -> Session:
        """Bind ``account`` as the current identity, replacing any previous one."""
        if not account.enabled:
            raise AuthenticationError("account disabled")
        if account.locked:
            raise AuthenticationError("account locked")
        session = Session(account=account)
        self._context.session = session
        return session

    def clear(self) -> None:
        self._context.session = None

    def current_user(self) -> Account | None:
        session = self._context.session
        return session.account if session is not None else None
