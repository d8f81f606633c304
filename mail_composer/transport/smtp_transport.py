from __future__ import annotations

import smtplib
import ssl
from email.message import EmailMessage

from mail_composer.errors import EmailDeliveryError
from mail_composer.models import MimeMessage
from mail_composer.render.eml import envelope_recipients, envelope_sender, to_email_message
from mail_composer.storage.log import StructuredLogger
from mail_composer.transport.session import MailSession


class SmtpTransport:
    """Single-attempt SMTP delivery driven by a ``MailSession``."""

    def __init__(self, *, logger: StructuredLogger | None = None) -> None:
        self.logger = logger

    def send_message(self, *, message: MimeMessage, session: MailSession) -> None:
        email_message = to_email_message(message)
        timeout = session.connection_timeout_seconds

        try:
            if session.ssl_on_connect:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(session.host, session.port, timeout=timeout, context=context) as server:
                    self._deliver(server, session, email_message, message)
            else:
                with smtplib.SMTP(session.host, session.port, timeout=timeout) as server:
                    if session.start_tls:
                        server.ehlo()
                        server.starttls(context=ssl.create_default_context())
                        server.ehlo()
                    self._deliver(server, session, email_message, message)
        except (smtplib.SMTPException, OSError) as exc:
            if self.logger:
                self.logger.error(
                    "email_send_failed",
                    stage="email",
                    error_type=exc.__class__.__name__,
                    error_message=str(exc),
                    url=session.url,
                )
            raise EmailDeliveryError(f"SMTP send failed: {exc}", url=session.url) from exc

        if self.logger:
            self.logger.info(
                "email_sent",
                stage="email",
                status="ok",
                url=session.url,
                recipients=len(message.all_recipients()),
            )

    @staticmethod
    def _deliver(
        server: smtplib.SMTP,
        session: MailSession,
        email_message: EmailMessage,
        message: MimeMessage,
    ) -> None:
        if session.username and session.password:
            server.login(session.username, session.password)
        server.send_message(
            email_message,
            from_addr=envelope_sender(message),
            to_addrs=envelope_recipients(message),
        )
