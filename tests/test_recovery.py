"""Tests for recovery email composition and SMTP delivery."""

from __future__ import annotations

import smtplib

import pytest

from account_service.domain.contracts import DeliveryResult, MailMessage
from account_service.domain.errors import DeliveryError
from account_service.notifications.mail import SmtpMailTransport


class FakeSMTP:
    sent: list = []
    refused: dict = {}
    fail_with: Exception | None = None

    def __init__(self, host: str, port: int, timeout: float) -> None:
        if FakeSMTP.fail_with is not None:
            raise FakeSMTP.fail_with
        self.host = host
        self.port = port

    def __enter__(self) -> "FakeSMTP":
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def send_message(self, message):
        FakeSMTP.sent.append(message)
        return dict(FakeSMTP.refused)


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.sent = []
    FakeSMTP.refused = {}
    FakeSMTP.fail_with = None
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


@pytest.fixture
def message() -> MailMessage:
    return MailMessage(
        subject="Change password on Example",
        sender_email="noreply@example.com",
        sender_name="Example Accounts",
        recipients=["john@example.com"],
        html_body="<p>hello</p>",
    )


def test_compose_recovery_message(notifier, make_account):
    account = make_account()

    message = notifier.compose(account)

    assert message.subject == "Change password on Example"
    assert message.sender_email == "noreply@example.com"
    assert message.sender_name == "Example Accounts"
    assert message.recipients == ["john@example.com"]
    assert "johnsmith" in message.html_body
    assert account.secret_key not in message.html_body
    assert account.api_key not in message.html_body


def test_compose_escapes_account_fields(notifier, make_account):
    message = notifier.compose(make_account(first_name="<script>"))
    assert "<script>" not in message.html_body
    assert "&lt;script&gt;" in message.html_body


def test_smtp_transport_sends_html_message(fake_smtp, message):
    result = SmtpMailTransport("mail.local", 2525).send(message)

    assert result == DeliveryResult(delivered=True, accepted=1)
    sent = fake_smtp.sent[0]
    assert sent["To"] == "john@example.com"
    assert sent["From"] == "Example Accounts <noreply@example.com>"
    assert sent["Subject"] == "Change password on Example"
    assert sent.get_content_subtype() == "html"


def test_smtp_transport_reports_refused_recipients(fake_smtp, message):
    fake_smtp.refused = {"john@example.com": (550, b"no such user")}

    result = SmtpMailTransport("mail.local").send(message)

    assert result.delivered is False
    assert result.rejected == ["john@example.com"]


def test_smtp_transport_returns_failure_on_connection_error(fake_smtp, message):
    fake_smtp.fail_with = smtplib.SMTPConnectError(421, "unavailable")

    result = SmtpMailTransport("mail.local").send(message)

    assert result.delivered is False
    assert "unavailable" in result.error
    with pytest.raises(DeliveryError):
        result.raise_for_error()


def test_raise_for_error_is_silent_on_success():
    DeliveryResult(delivered=True, accepted=1).raise_for_error()
