from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from mail_composer.models import MimeMessage
    from mail_composer.transport.session import MailSession


class SessionFactory(Protocol):
    def __call__(
        self,
        host_name: str | None,
        *,
        port: int,
        connection_timeout_ms: int,
        timeout_ms: int,
        username: str | None = None,
        password: str | None = None,
        start_tls: bool = False,
        ssl_on_connect: bool = False,
    ) -> MailSession:
        """Produce a session handle or fail with MissingHostNameError."""


class MailSender(Protocol):
    def send_message(self, *, message: MimeMessage, session: MailSession) -> None:
        """Deliver an already built message."""
