from __future__ import annotations

import smtplib
from datetime import datetime, timezone
from pathlib import Path

import pytest

from mail_composer.errors import EmailDeliveryError
from mail_composer.models import Address, MimeMessage
from mail_composer.storage.log import StructuredLogger, read_events
from mail_composer.transport.session import create_session
from mail_composer.transport.smtp_transport import SmtpTransport


def _logger(tmp_path: Path) -> StructuredLogger:
    return StructuredLogger(path=tmp_path / "mail.jsonl", session_id="test-session")


def _message() -> MimeMessage:
    return MimeMessage(
        sender=Address(address="from@example.com"),
        to=(Address(address="to@example.com"),),
        bcc=(Address(address="hidden@example.com"),),
        subject="Digest",
        content="plain",
        sent_date=datetime(2026, 2, 8, tzinfo=timezone.utc),
        bounce_address=Address(address="bounce@example.com"),
    )


def _fake_smtp(state: dict, *, fail_on_send: bool = False):
    class FakeSMTP:
        def __init__(self, host, port, timeout, context=None):
            state["connect"] = (host, port, timeout)

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

        def ehlo(self):
            return None

        def starttls(self, context=None):
            state["starttls"] = True

        def login(self, username, password):
            state["login"] = (username, password)

        def send_message(self, message, from_addr=None, to_addrs=None):
            if fail_on_send:
                raise smtplib.SMTPRecipientsRefused({})
            state["sent"] = (message, from_addr, to_addrs)

    return FakeSMTP


def test_smtp_transport_sends_with_envelope(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    state: dict = {}
    monkeypatch.setattr("mail_composer.transport.smtp_transport.smtplib.SMTP", _fake_smtp(state))

    session = create_session(
        "smtp.example.com",
        port=587,
        connection_timeout_ms=3000,
        username="user",
        password="pass",
        start_tls=True,
    )
    SmtpTransport(logger=_logger(tmp_path)).send_message(message=_message(), session=session)

    assert state["connect"] == ("smtp.example.com", 587, 3.0)
    assert state["starttls"] is True
    assert state["login"] == ("user", "pass")
    email_message, from_addr, to_addrs = state["sent"]
    assert from_addr == "bounce@example.com"
    assert to_addrs == ["to@example.com", "hidden@example.com"]
    assert email_message["Bcc"] is None

    events = read_events(tmp_path / "mail.jsonl")
    assert events[-1]["event"] == "email_sent"
    assert events[-1]["recipients"] == 2


def test_smtp_transport_uses_ssl_when_requested(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    state: dict = {}
    monkeypatch.setattr("mail_composer.transport.smtp_transport.smtplib.SMTP_SSL", _fake_smtp(state))

    session = create_session("smtp.example.com", port=465, ssl_on_connect=True)
    SmtpTransport().send_message(message=_message(), session=session)

    assert state["connect"][1] == 465
    assert "login" not in state
    assert "sent" in state


def test_smtp_transport_raises_typed_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    state: dict = {}
    monkeypatch.setattr(
        "mail_composer.transport.smtp_transport.smtplib.SMTP",
        _fake_smtp(state, fail_on_send=True),
    )

    session = create_session("smtp.example.com")
    with pytest.raises(EmailDeliveryError) as excinfo:
        SmtpTransport(logger=_logger(tmp_path)).send_message(message=_message(), session=session)

    assert excinfo.value.url == "smtp://smtp.example.com:25"
    assert isinstance(excinfo.value.__cause__, smtplib.SMTPException)
    assert read_events(tmp_path / "mail.jsonl")[-1]["event"] == "email_send_failed"


def test_smtp_transport_wraps_connection_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    class RefusingSMTP:
        def __init__(self, host, port, timeout):
            raise ConnectionRefusedError("refused")

    monkeypatch.setattr("mail_composer.transport.smtp_transport.smtplib.SMTP", RefusingSMTP)

    with pytest.raises(EmailDeliveryError, match="refused"):
        SmtpTransport().send_message(message=_message(), session=create_session("smtp.example.com"))
