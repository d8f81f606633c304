from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from mail_composer.errors import MissingHostNameError

MAIL_HOST = "mail.smtp.host"
MAIL_PORT = "mail.smtp.port"
MAIL_TRANSPORT_PROTOCOL = "mail.transport.protocol"
MAIL_SMTP_AUTH = "mail.smtp.auth"
MAIL_SMTP_CONNECTIONTIMEOUT = "mail.smtp.connectiontimeout"
MAIL_SMTP_TIMEOUT = "mail.smtp.timeout"
MAIL_TRANSPORT_STARTTLS_ENABLE = "mail.smtp.starttls.enable"
MAIL_SMTP_SSL_ENABLE = "mail.smtp.ssl.enable"


class MailSession(BaseModel):
    """SMTP connection settings handed to a transport.

    ``properties`` mirrors the ``mail.smtp.*`` keys; credentials are kept
    out of it so the mapping can be logged as-is.
    """
    model_config = ConfigDict(frozen=True)

    host: str
    port: int
    connection_timeout_ms: int
    timeout_ms: int
    username: str | None = Field(default=None, repr=False)
    password: str | None = Field(default=None, repr=False)
    start_tls: bool = False
    ssl_on_connect: bool = False
    properties: dict[str, str] = Field(default_factory=dict)

    def get_property(self, name: str) -> str | None:
        return self.properties.get(name)

    @property
    def url(self) -> str:
        scheme = "smtps" if self.ssl_on_connect else "smtp"
        return f"{scheme}://{self.host}:{self.port}"

    @property
    def connection_timeout_seconds(self) -> float:
        return self.connection_timeout_ms / 1000


def create_session(
    host_name: str | None,
    *,
    port: int = 25,
    connection_timeout_ms: int = 60_000,
    timeout_ms: int = 60_000,
    username: str | None = None,
    password: str | None = None,
    start_tls: bool = False,
    ssl_on_connect: bool = False,
) -> MailSession:
    if not host_name or not host_name.strip():
        raise MissingHostNameError("Cannot find valid hostname for mail session")

    properties = {
        MAIL_TRANSPORT_PROTOCOL: "smtp",
        MAIL_HOST: host_name,
        MAIL_PORT: str(port),
        MAIL_SMTP_CONNECTIONTIMEOUT: str(connection_timeout_ms),
        MAIL_SMTP_TIMEOUT: str(timeout_ms),
    }
    if username and password:
        properties[MAIL_SMTP_AUTH] = "true"
    if start_tls:
        properties[MAIL_TRANSPORT_STARTTLS_ENABLE] = "true"
    if ssl_on_connect:
        properties[MAIL_SMTP_SSL_ENABLE] = "true"

    return MailSession(
        host=host_name,
        port=port,
        connection_timeout_ms=connection_timeout_ms,
        timeout_ms=timeout_ms,
        username=username,
        password=password,
        start_tls=start_tls,
        ssl_on_connect=ssl_on_connect,
        properties=properties,
    )
