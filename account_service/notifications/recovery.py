"""Password recovery notifications."""

from __future__ import annotations

import logging

from ..domain.account import Account
from ..domain.contracts import DeliveryResult, MailMessage, MailTransport, TemplateRenderer

logger = logging.getLogger(__name__)

RECOVERY_TEMPLATE = "forgot_password_email.html"


class RecoveryNotifier:
    """Compose the password-reset email for an account and hand it to the transport."""

    def __init__(
        self,
        renderer: TemplateRenderer,
        transport: MailTransport,
        *,
        sender_email: str,
        sender_name: str,
        site_name: str,
    ) -> None:
        self._renderer = renderer
        self._transport = transport
        self._sender_email = sender_email
        self._sender_name = sender_name
        self._site_name = site_name

    def compose(self, account: Account) -> MailMessage:
        body = self._renderer.render(
            RECOVERY_TEMPLATE, {"account": account, "site_name": self._site_name}
        )
        return MailMessage(
            subject=f"Change password on {self._site_name}",
            sender_email=self._sender_email,
            sender_name=self._sender_name,
            recipients=[account.email],
            html_body=body,
        )

    def send_recovery(self, account: Account) -> DeliveryResult:
        """Send the recovery message and return the transport's result unchanged."""
        result = self._transport.send(self.compose(account))
        if not result.delivered:
            logger.warning(
                "recovery email for account %s not delivered: %s", account.account_id, result.error
            )
        return result
