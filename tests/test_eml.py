from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from mail_composer.builder import Email
from mail_composer.render.eml import to_email_message, write_eml_file


def _built():
    email = Email()
    email.set_from("Sender <from@example.com>")
    email.add_to("to@example.com")
    email.add_cc("cc@example.com")
    email.add_bcc("bcc@example.com")
    email.add_reply_to("reply@example.com")
    email.set_subject("Digest")
    email.set_msg("hello body")
    email.add_header("X-Mailer", "mail_composer")
    email.set_sent_date(datetime(2023, 1, 1, tzinfo=timezone.utc))
    return email.build()


def test_to_email_message_maps_fields() -> None:
    msg = to_email_message(_built())

    assert msg["From"] == "Sender <from@example.com>"
    assert msg["To"] == "to@example.com"
    assert msg["Cc"] == "cc@example.com"
    assert msg["Bcc"] is None
    assert msg["Reply-To"] == "reply@example.com"
    assert msg["Subject"] == "Digest"
    assert msg["X-Mailer"] == "mail_composer"
    assert msg["Date"] == "Sun, 01 Jan 2023 00:00:00 +0000"
    assert msg.get_content_type() == "text/plain"
    assert msg.get_content().strip() == "hello body"


def test_empty_body_renders() -> None:
    email = Email()
    email.set_from("from@example.com")
    email.add_to("to@example.com")

    msg = to_email_message(email.build())

    assert msg.get_content().strip() == ""
    assert msg["Subject"] is None


def test_write_eml_file(tmp_path: Path) -> None:
    out_path = tmp_path / "out" / "message.eml"

    write_eml_file(message=_built(), out_path=out_path)

    payload = out_path.read_text(encoding="utf-8")
    assert "Subject: Digest" in payload
    assert "Content-Type: text/plain" in payload
    assert "bcc@example.com" not in payload
