from __future__ import annotations

"""Message composition.

``Email`` accumulates sender, recipients, subject, body and headers, then
finalizes them into a frozen ``MimeMessage`` with ``build()``. The builder has
two states:

- open: every setter is allowed; ``build()`` validates and may fail without
  touching any field
- built: terminal; setters and a second ``build()`` raise ``AlreadyBuiltError``

Session settings (host, port, timeouts, auth) are not part of the
composition and stay adjustable after a build so a built message can still be
delivered.
"""

import codecs
import re
from collections.abc import Iterable, Mapping
from datetime import datetime

from mail_composer.config import MailConfig
from mail_composer.errors import (
    AlreadyBuiltError,
    EmptyMessageError,
    InvalidAddressError,
    InvalidCharsetError,
    InvalidHeaderError,
    MailComposerError,
    MissingRecipientError,
    MissingSenderError,
)
from mail_composer.models import (
    DEFAULT_CHARSET,
    DEFAULT_CONTENT_TYPE,
    Address,
    Clock,
    MimeMessage,
    parse_address,
    utc_now,
)
from mail_composer.storage.log import StructuredLogger
from mail_composer.transport.base import MailSender, SessionFactory
from mail_composer.transport.session import MailSession, create_session
from mail_composer.transport.smtp_transport import SmtpTransport

AddressLike = str | Address

# RFC 5322 field name: printable ASCII except colon
_HEADER_NAME = re.compile(r"^[\x21-\x39\x3b-\x7e]+$")


class Email:
    """Builder for a single plain-text message.

    Setters validate eagerly; ``build()`` checks the cross-field rules and
    freezes the composition. Session settings are kept alongside so that
    ``send()`` can deliver the built message.
    """

    def __init__(
        self,
        *,
        clock: Clock = utc_now,
        session_factory: SessionFactory = create_session,
        transport: MailSender | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.clock = clock
        self.session_factory = session_factory
        self.transport = transport
        self.logger = logger

        self.from_address: Address | None = None
        self.to_addresses: list[Address] = []
        self.cc_addresses: list[Address] = []
        self.bcc_addresses: list[Address] = []
        self.reply_to_addresses: list[Address] = []
        self.bounce_address: Address | None = None
        self.subject: str | None = None
        self.content: str | None = None
        self.content_type: str | None = None
        self.charset: str = DEFAULT_CHARSET
        self.headers: dict[str, str] = {}
        self.sent_date: datetime | None = None

        self.host_name: str | None = None
        self.smtp_port: int = 25
        self.socket_connection_timeout: int = 60_000
        self.socket_timeout: int = 60_000
        self.username: str | None = None
        self.password: str | None = None
        self.start_tls_enabled = False
        self.ssl_on_connect = False

        self._message: MimeMessage | None = None

    @classmethod
    def from_config(cls, config: MailConfig, **kwargs) -> Email:
        """Return a builder with host, port, timeouts and auth taken from ``config``."""
        email = cls(**kwargs)
        email.set_host_name(config.smtp_host)
        email.set_ssl_on_connect(config.ssl_on_connect)
        email.set_start_tls_enabled(config.start_tls)
        email.set_smtp_port(config.smtp_ssl_port if config.ssl_on_connect else config.smtp_port)
        email.set_socket_connection_timeout(config.socket_connection_timeout_ms)
        email.set_socket_timeout(config.socket_timeout_ms)
        email.set_charset(config.charset)
        if config.auth_enabled:
            email.set_authentication(str(config.smtp_username), str(config.smtp_password))
        if config.from_email:
            email.set_from(config.from_email)
        return email

    # -- composition ---------------------------------------------------

    def set_from(self, address: AddressLike, name: str | None = None) -> Email:
        self._ensure_open()
        self.from_address = _to_address(address, name)
        return self

    def add_to(self, *addresses: AddressLike | Iterable[AddressLike]) -> Email:
        self._ensure_open()
        self.to_addresses.extend(_to_addresses(addresses))
        return self

    def add_cc(self, *addresses: AddressLike | Iterable[AddressLike]) -> Email:
        self._ensure_open()
        self.cc_addresses.extend(_to_addresses(addresses))
        return self

    def add_bcc(self, *addresses: AddressLike | Iterable[AddressLike]) -> Email:
        self._ensure_open()
        self.bcc_addresses.extend(_to_addresses(addresses))
        return self

    def add_reply_to(self, address: AddressLike, name: str | None = None) -> Email:
        self._ensure_open()
        self.reply_to_addresses.append(_to_address(address, name))
        return self

    def set_to(self, addresses: Iterable[AddressLike]) -> Email:
        self._ensure_open()
        self.to_addresses = _replacement_list(addresses)
        return self

    def set_cc(self, addresses: Iterable[AddressLike]) -> Email:
        self._ensure_open()
        self.cc_addresses = _replacement_list(addresses)
        return self

    def set_bcc(self, addresses: Iterable[AddressLike]) -> Email:
        self._ensure_open()
        self.bcc_addresses = _replacement_list(addresses)
        return self

    def set_reply_to(self, addresses: Iterable[AddressLike]) -> Email:
        self._ensure_open()
        self.reply_to_addresses = _replacement_list(addresses)
        return self

    def set_bounce_address(self, address: AddressLike) -> Email:
        self._ensure_open()
        self.bounce_address = _to_address(address)
        return self

    def set_subject(self, subject: str | None) -> Email:
        self._ensure_open()
        if subject is not None and _has_line_break(subject):
            raise InvalidHeaderError("subject can not contain CR or LF")
        self.subject = subject
        return self

    def set_msg(self, msg: str | None) -> Email:
        self._ensure_open()
        if msg is None or not msg.strip():
            raise EmptyMessageError("Message content cannot be null or empty.")
        self.content = msg
        self.content_type = DEFAULT_CONTENT_TYPE
        return self

    def set_content(self, content: str, content_type: str) -> Email:
        self._ensure_open()
        self.content = content
        self.content_type = content_type
        return self

    def set_charset(self, charset: str) -> Email:
        self._ensure_open()
        try:
            self.charset = codecs.lookup(charset).name
        except (LookupError, TypeError) as exc:
            raise InvalidCharsetError(f"Unknown charset: {charset}") from exc
        return self

    def add_header(self, name: str | None, value: str | None) -> Email:
        self._ensure_open()
        _check_header(name, value)
        self.headers[name] = value
        return self

    def set_headers(self, headers: Mapping[str, str]) -> Email:
        self._ensure_open()
        for name, value in headers.items():
            _check_header(name, value)
        self.headers = dict(headers)
        return self

    def set_sent_date(self, date: datetime) -> Email:
        self._ensure_open()
        self.sent_date = date
        return self

    # -- composition accessors ---------------------------------------

    def get_from_address(self) -> Address | None:
        return self.from_address

    def get_to_addresses(self) -> list[Address]:
        return list(self.to_addresses)

    def get_cc_addresses(self) -> list[Address]:
        return list(self.cc_addresses)

    def get_bcc_addresses(self) -> list[Address]:
        return list(self.bcc_addresses)

    def get_reply_to_addresses(self) -> list[Address]:
        return list(self.reply_to_addresses)

    def get_headers(self) -> dict[str, str]:
        return dict(self.headers)

    def get_subject(self) -> str | None:
        return self.subject

    def get_content(self) -> str | None:
        return self.content

    def get_content_type(self) -> str | None:
        return self.content_type

    def get_sent_date(self) -> datetime:
        if self.sent_date is None:
            return self.clock()
        return self.sent_date

    # -- session settings ----------------------------------------------

    def set_host_name(self, host_name: str | None) -> Email:
        self.host_name = host_name
        return self

    def get_host_name(self) -> str | None:
        return self.host_name

    def set_smtp_port(self, port: int) -> Email:
        if port < 1 or port > 65535:
            raise ValueError(f"Cannot connect to a port number that is out of range: {port}")
        self.smtp_port = port
        return self

    def get_smtp_port(self) -> int:
        return self.smtp_port

    def set_socket_connection_timeout(self, timeout_ms: int) -> Email:
        self.socket_connection_timeout = timeout_ms
        return self

    def get_socket_connection_timeout(self) -> int:
        return self.socket_connection_timeout

    def set_socket_timeout(self, timeout_ms: int) -> Email:
        self.socket_timeout = timeout_ms
        return self

    def get_socket_timeout(self) -> int:
        return self.socket_timeout

    def set_authentication(self, username: str, password: str) -> Email:
        self.username = username
        self.password = password
        return self

    def set_start_tls_enabled(self, enabled: bool) -> Email:
        self.start_tls_enabled = enabled
        return self

    def set_ssl_on_connect(self, enabled: bool) -> Email:
        self.ssl_on_connect = enabled
        return self

    def get_mail_session(self) -> MailSession:
        return self.session_factory(
            self.host_name,
            port=self.smtp_port,
            connection_timeout_ms=self.socket_connection_timeout,
            timeout_ms=self.socket_timeout,
            username=self.username,
            password=self.password,
            start_tls=self.start_tls_enabled,
            ssl_on_connect=self.ssl_on_connect,
        )

    # -- build / send --------------------------------------------------

    def is_built(self) -> bool:
        return self._message is not None

    def get_mime_message(self) -> MimeMessage | None:
        return self._message

    def build(self) -> MimeMessage:
        try:
            self._ensure_open()
            if self.from_address is None:
                raise MissingSenderError("From address required")
            if not (self.to_addresses or self.cc_addresses or self.bcc_addresses):
                raise MissingRecipientError("At least one receiver address required")
            if self.content:
                try:
                    self.content.encode(self.charset)
                except UnicodeEncodeError as exc:
                    raise InvalidCharsetError(f"Message content can not be encoded as {self.charset}") from exc
        except MailComposerError as exc:
            if self.logger:
                self.logger.warning(
                    "email_build_rejected",
                    stage="compose",
                    status="rejected",
                    error_type=exc.__class__.__name__,
                    error_message=str(exc),
                )
            raise

        message = MimeMessage(
            sender=self.from_address,
            to=tuple(self.to_addresses),
            cc=tuple(self.cc_addresses),
            bcc=tuple(self.bcc_addresses),
            reply_to=tuple(self.reply_to_addresses),
            subject=self.subject,
            content=self.content if self.content is not None else "",
            content_type=self.content_type or DEFAULT_CONTENT_TYPE,
            charset=self.charset,
            headers=tuple(self.headers.items()),
            sent_date=self.get_sent_date(),
            bounce_address=self.bounce_address,
        )
        self._message = message

        if self.logger:
            self.logger.info(
                "email_message_built",
                stage="compose",
                status="ok",
                from_email=message.sender.address,
                recipients=len(message.all_recipients()),
                headers=len(message.headers),
            )
        return message

    def send(self) -> MimeMessage:
        """Build (unless already built) and deliver through the transport.

        One attempt only; delivery failures surface as ``EmailDeliveryError``.
        """
        session = self.get_mail_session()
        message = self._message if self._message is not None else self.build()
        transport = self.transport or SmtpTransport(logger=self.logger)
        transport.send_message(message=message, session=session)
        return message

    def _ensure_open(self) -> None:
        if self._message is not None:
            raise AlreadyBuiltError("The MimeMessage is already built.")


def _to_address(value: AddressLike, name: str | None = None) -> Address:
    if isinstance(value, Address):
        return value if name is None else Address(address=value.address, name=name)
    return parse_address(value, name)


def _to_addresses(values: tuple) -> list[Address]:
    # add_to("a@x", "b@x") and add_to(["a@x", "b@x"]) are equivalent
    if len(values) == 1 and isinstance(values[0], Iterable) and not isinstance(values[0], (str, Address)):
        values = tuple(values[0])
    return [_to_address(v) for v in values]


def _replacement_list(values: Iterable[AddressLike]) -> list[Address]:
    addresses = [_to_address(v) for v in values]
    if not addresses:
        raise InvalidAddressError("Address List provided was invalid")
    return addresses


def _check_header(name: str | None, value: str | None) -> None:
    if not name:
        raise InvalidHeaderError("name can not be null or empty")
    if not _HEADER_NAME.match(name):
        raise InvalidHeaderError(f"name contains invalid characters: {name!r}")
    if not value:
        raise InvalidHeaderError("value can not be null or empty")
    if _has_line_break(value):
        raise InvalidHeaderError("value can not contain CR or LF")


def _has_line_break(text: str) -> bool:
    return "\r" in text or "\n" in text
