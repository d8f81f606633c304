"""Conversion of built messages into RFC 5322 form."""

from mail_composer.render.eml import to_email_message, write_eml_file

__all__ = ["to_email_message", "write_eml_file"]
