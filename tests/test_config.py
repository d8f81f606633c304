from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from mail_composer.config import MailConfig, load_config

_ENV_KEYS = [
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USERNAME",
    "SMTP_PASSWORD",
    "SMTP_STARTTLS",
    "MAIL_SOCKET_CONNECTION_TIMEOUT_MS",
    "FROM_EMAIL",
    "SMTP_SSL_PORT",
    "SMTP_SSL_ON_CONNECT",
    "MAIL_CHARSET",
    "MAIL_SOCKET_TIMEOUT_MS",
    "MAIL_LOG_PATH",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv first so teardown also removes values load_dotenv writes
    for key in _ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


def test_load_config_defaults_without_env_file() -> None:
    cfg = load_config(env_file=None)

    assert cfg.smtp_host is None
    assert cfg.smtp_ready is False
    assert cfg.smtp_port == 25
    assert cfg.auth_enabled is False


def test_load_config_reads_env_file_but_shell_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "SMTP_HOST=smtp.from-file.com\nSMTP_PORT=2525\nSMTP_STARTTLS=true\nFROM_EMAIL=file@example.com\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("SMTP_HOST", "smtp.from-shell.com")

    cfg = load_config(env_file=str(env_file))

    assert cfg.smtp_host == "smtp.from-shell.com"
    assert cfg.smtp_port == 2525
    assert cfg.start_tls is True
    assert cfg.from_email == "file@example.com"


def test_config_rejects_bad_port_and_timeout() -> None:
    with pytest.raises(ValidationError):
        MailConfig(smtp_port=70000)
    with pytest.raises(ValidationError):
        MailConfig(socket_connection_timeout_ms=0)
