from __future__ import annotations

"""Composer configuration (loaded from environment variables + .env).

Design:
- Nothing is required; a builder without a host can still build messages.
- SMTP delivery is only attempted when a host is configured.
- Environment variables always override .env file values.
"""

from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

from mail_composer.models import DEFAULT_CHARSET


class MailConfig(BaseModel):
    # SMTP session settings
    smtp_host: str | None = None
    smtp_port: int = 25
    smtp_ssl_port: int = 465
    smtp_username: str | None = None
    smtp_password: str | None = None
    start_tls: bool = False
    ssl_on_connect: bool = False

    # Socket timeouts, milliseconds (same unit as the builder accessors)
    socket_connection_timeout_ms: int = 60_000
    socket_timeout_ms: int = 60_000

    charset: str = DEFAULT_CHARSET
    from_email: str | None = None
    log_path: Path = Path(".logs/mail_composer.jsonl")

    @field_validator("socket_connection_timeout_ms", "socket_timeout_ms")
    @classmethod
    def _positive_int(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be positive")
        return value

    @field_validator("smtp_port", "smtp_ssl_port")
    @classmethod
    def _valid_port(cls, value: int) -> int:
        if value < 1 or value > 65535:
            raise ValueError("port must be in 1..65535")
        return value

    @property
    def smtp_ready(self) -> bool:
        return bool(self.smtp_host)

    @property
    def auth_enabled(self) -> bool:
        return bool(self.smtp_username and self.smtp_password)


def load_config(env_file: str | None = ".env") -> MailConfig:
    if env_file:
        # Shell environment wins over .env values
        load_dotenv(env_file, override=False)
    return MailConfig(
        smtp_host=_getenv_opt("SMTP_HOST"),
        smtp_port=int(_getenv_str("SMTP_PORT", "25")),
        smtp_ssl_port=int(_getenv_str("SMTP_SSL_PORT", "465")),
        smtp_username=_getenv_opt("SMTP_USERNAME"),
        smtp_password=_getenv_opt("SMTP_PASSWORD"),
        start_tls=_getenv_bool("SMTP_STARTTLS", False),
        ssl_on_connect=_getenv_bool("SMTP_SSL_ON_CONNECT", False),
        socket_connection_timeout_ms=int(_getenv_str("MAIL_SOCKET_CONNECTION_TIMEOUT_MS", "60000")),
        socket_timeout_ms=int(_getenv_str("MAIL_SOCKET_TIMEOUT_MS", "60000")),
        charset=_getenv_str("MAIL_CHARSET", DEFAULT_CHARSET),
        from_email=_getenv_opt("FROM_EMAIL"),
        log_path=Path(_getenv_str("MAIL_LOG_PATH", ".logs/mail_composer.jsonl")),
    )


def _getenv_opt(name: str) -> str | None:
    import os

    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value


def _getenv_str(name: str, default: str) -> str:
    value = _getenv_opt(name)
    return value if value is not None else default


def _getenv_bool(name: str, default: bool) -> bool:
    value = _getenv_opt(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}
