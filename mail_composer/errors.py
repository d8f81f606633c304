from __future__ import annotations


class MailComposerError(Exception):
    """Base error type for application-specific exceptions."""

    def __init__(self, message: str, *, stage: str = "compose"):
        super().__init__(message)
        self.stage = stage


class InvalidAddressError(MailComposerError, ValueError):
    """Address is not a valid ``local@domain`` mailbox."""

    def __init__(self, message: str, *, address: str | None = None, stage: str = "compose"):
        super().__init__(message, stage=stage)
        self.address = address


class EmptyMessageError(MailComposerError, ValueError):
    """Body text is missing or blank."""


class InvalidHeaderError(MailComposerError, ValueError):
    """Header name or value is missing."""


class InvalidCharsetError(MailComposerError, ValueError):
    """Charset is not known to the codec registry."""


class MissingSenderError(MailComposerError):
    """Build attempted without a From address."""


class MissingRecipientError(MailComposerError):
    """Build attempted without any To/Cc/Bcc recipient."""


class AlreadyBuiltError(MailComposerError):
    """Message was already built; the composition is frozen."""


class MissingHostNameError(MailComposerError):
    """Session requested without a configured SMTP host."""

    def __init__(self, message: str, *, stage: str = "session"):
        super().__init__(message, stage=stage)


class EmailDeliveryError(MailComposerError):
    """Email delivery failed."""

    def __init__(self, message: str, *, stage: str = "email", url: str | None = None):
        super().__init__(message, stage=stage)
        self.url = url
