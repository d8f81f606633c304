"""Session derivation and SMTP delivery for built messages."""

from mail_composer.transport.session import MailSession, create_session
from mail_composer.transport.smtp_transport import SmtpTransport

__all__ = ["MailSession", "SmtpTransport", "create_session"]
