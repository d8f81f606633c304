from __future__ import annotations

"""Value objects produced by the composer.

Hierarchy:
- Address: one validated mailbox plus an optional display name
- RecipientType: the three recipient categories (To/Cc/Bcc)
- MimeMessage: the immutable result of ``Email.build()``

All models use Pydantic and are frozen once constructed.
"""

import re
from datetime import datetime, timezone
from email.utils import formataddr, getaddresses
from enum import Enum
from typing import Callable

from pydantic import BaseModel, ConfigDict, field_validator

from mail_composer.errors import InvalidAddressError

Clock = Callable[[], datetime]

DEFAULT_CONTENT_TYPE = "text/plain"
DEFAULT_CHARSET = "utf-8"

_LOCAL_PART = re.compile(r"^[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+(\.[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+)*$")
_DOMAIN_LABEL = re.compile(r"^[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")


class RecipientType(str, Enum):
    """Recipient category.

    Str subclass so the value doubles as the header name.
    """
    TO = "To"
    CC = "Cc"
    BCC = "Bcc"


def is_valid_mailbox(value: str) -> bool:
    if not value or value.count("@") != 1:
        return False
    local, domain = value.split("@")
    if len(local) > 64 or len(domain) > 255:
        return False
    if not _LOCAL_PART.match(local):
        return False
    return all(_DOMAIN_LABEL.match(label) for label in domain.split("."))


class Address(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    name: str | None = None

    @field_validator("address")
    @classmethod
    def _mailbox(cls, value: str) -> str:
        v = value.strip()
        if not is_valid_mailbox(v):
            raise ValueError(f"invalid email address: {value!r}")
        return v

    @property
    def formatted(self) -> str:
        return formataddr((self.name or "", self.address))

    def __str__(self) -> str:
        return self.formatted


def parse_address(value: str | None, name: str | None = None) -> Address:
    """Parse ``user@host`` or ``Name <user@host>`` into an :class:`Address`.

    An explicit ``name`` wins over a display name embedded in ``value``.
    Raises :class:`InvalidAddressError` for anything that is not a mailbox.
    """
    if value is None or not str(value).strip():
        raise InvalidAddressError("Address can not be null or empty", address=value)
    raw = str(value).strip()
    pairs = getaddresses([raw])
    if len(pairs) != 1:
        raise InvalidAddressError(f"Expected a single address: {value}", address=value)
    display, mailbox = pairs[0]
    # text around the mailbox that the parser skipped (e.g. "<a@x.com> junk")
    if raw != mailbox and not raw.endswith(f"<{mailbox}>"):
        raise InvalidAddressError(f"Invalid address: {value}", address=value)
    if not is_valid_mailbox(mailbox):
        raise InvalidAddressError(f"Invalid address: {value}", address=value)
    return Address(address=mailbox, name=name or display or None)


class MimeMessage(BaseModel):
    """Finalized message, ready for rendering or delivery.

    Produced once per builder. Recipient tuples keep the order they were
    added in; headers keep insertion order.
    """
    model_config = ConfigDict(frozen=True)

    sender: Address
    to: tuple[Address, ...] = ()
    cc: tuple[Address, ...] = ()
    bcc: tuple[Address, ...] = ()
    reply_to: tuple[Address, ...] = ()
    subject: str | None = None
    content: str = ""
    content_type: str = DEFAULT_CONTENT_TYPE
    charset: str = DEFAULT_CHARSET
    headers: tuple[tuple[str, str], ...] = ()
    sent_date: datetime
    bounce_address: Address | None = None

    def get_recipients(self, kind: RecipientType) -> tuple[Address, ...]:
        if kind is RecipientType.TO:
            return self.to
        if kind is RecipientType.CC:
            return self.cc
        return self.bcc

    def all_recipients(self) -> list[Address]:
        return [*self.to, *self.cc, *self.bcc]

    def get_header(self, name: str) -> str | None:
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    def get_content(self) -> str:
        return self.content

    def get_content_type(self) -> str:
        return f"{self.content_type}; charset={self.charset}"

    def get_sent_date(self) -> datetime:
        return self.sent_date


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
