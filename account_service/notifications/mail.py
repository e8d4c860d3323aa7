"""SMTP mail transport."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from ..domain.contracts import DeliveryResult, MailMessage

logger = logging.getLogger(__name__)


class SmtpMailTransport:
    """Send :class:`MailMessage` instances through an SMTP relay.

    A new connection is opened per message. SMTP and socket failures are
    reported through the returned :class:`DeliveryResult`, never raised.
    """

    def __init__(self, host: str, port: int = 25, *, timeout: float = 10.0) -> None:
        self._host = host
        self._port = port
        self._timeout = timeout

    def send(self, message: MailMessage) -> DeliveryResult:
        email = self._build(message)
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as conn:
                refused = conn.send_message(email)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("smtp delivery to %s failed: %s", message.recipients, exc)
            return DeliveryResult(delivered=False, error=str(exc), rejected=list(message.recipients))

        rejected = sorted(refused)
        accepted = len(message.recipients) - len(rejected)
        return DeliveryResult(delivered=accepted > 0, accepted=accepted, rejected=rejected)

    def _build(self, message: MailMessage) -> EmailMessage:
        email = EmailMessage()
        email["Subject"] = message.subject
        email["From"] = formataddr((message.sender_name, message.sender_email))
        email["To"] = ", ".join(message.recipients)
        email.set_content(message.html_body, subtype="html")
        return email
