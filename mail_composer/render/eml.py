from __future__ import annotations

from email.message import EmailMessage
from email.policy import SMTP
from email.utils import format_datetime, make_msgid
from pathlib import Path

from mail_composer.models import Address, MimeMessage


def to_email_message(message: MimeMessage) -> EmailMessage:
    """Render a built message as a stdlib ``EmailMessage``.

    Bcc recipients are envelope-only and never written as a header.
    """
    msg = EmailMessage()
    msg["From"] = message.sender.formatted
    if message.to:
        msg["To"] = _join(message.to)
    if message.cc:
        msg["Cc"] = _join(message.cc)
    if message.reply_to:
        msg["Reply-To"] = _join(message.reply_to)
    if message.subject is not None:
        msg["Subject"] = message.subject
    msg["Date"] = format_datetime(message.sent_date)
    msg["Message-ID"] = make_msgid(domain=message.sender.address.split("@", 1)[1])

    maintype, _, subtype = message.content_type.partition("/")
    if maintype == "text":
        msg.set_content(message.content, subtype=subtype or "plain", charset=message.charset)
    else:
        msg.set_content(message.content.encode(message.charset), maintype=maintype, subtype=subtype)

    for name, value in message.headers:
        if name in msg:
            del msg[name]
        msg[name] = value
    return msg


def envelope_sender(message: MimeMessage) -> str:
    return (message.bounce_address or message.sender).address


def envelope_recipients(message: MimeMessage) -> list[str]:
    return [a.address for a in message.all_recipients()]


def write_eml_file(*, message: MimeMessage, out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("wb") as f:
        f.write(to_email_message(message).as_bytes(policy=SMTP))


def _join(addresses: tuple[Address, ...]) -> str:
    return ", ".join(a.formatted for a in addresses)
