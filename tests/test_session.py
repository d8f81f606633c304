from __future__ import annotations

import pytest

from mail_composer.errors import MissingHostNameError
from mail_composer.transport.session import (
    MAIL_HOST,
    MAIL_PORT,
    MAIL_SMTP_AUTH,
    MAIL_SMTP_SSL_ENABLE,
    MAIL_SMTP_TIMEOUT,
    create_session,
)


def test_create_session_sets_core_properties() -> None:
    session = create_session("smtp.example.com", port=587, timeout_ms=2500)

    assert session.get_property(MAIL_HOST) == "smtp.example.com"
    assert session.get_property(MAIL_PORT) == "587"
    assert session.get_property(MAIL_SMTP_TIMEOUT) == "2500"
    assert session.get_property(MAIL_SMTP_AUTH) is None
    assert session.url == "smtp://smtp.example.com:587"


def test_create_session_auth_and_ssl_flags() -> None:
    session = create_session(
        "smtp.example.com",
        port=465,
        username="user",
        password="secret",
        ssl_on_connect=True,
    )

    assert session.get_property(MAIL_SMTP_AUTH) == "true"
    assert session.get_property(MAIL_SMTP_SSL_ENABLE) == "true"
    assert session.url == "smtps://smtp.example.com:465"
    assert "secret" not in repr(session)


@pytest.mark.parametrize("host", [None, "", "   "])
def test_create_session_requires_host(host) -> None:
    with pytest.raises(MissingHostNameError, match="Cannot find valid hostname"):
        create_session(host)


def test_connection_timeout_seconds() -> None:
    session = create_session("smtp.example.com", connection_timeout_ms=4000)

    assert session.connection_timeout_seconds == 4.0
