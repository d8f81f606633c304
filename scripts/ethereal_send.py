from __future__ import annotations

import csv
import sys
from datetime import datetime, timezone
from pathlib import Path

# Ensure imports work when this file is executed directly (sys.path[0] becomes
# the scripts/ directory, not the repo root).
WORKSPACE_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(WORKSPACE_ROOT))

from mail_composer.builder import Email
from mail_composer.config import load_config
from mail_composer.render.eml import write_eml_file


def _utc_stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%SZ")


def _read_ethereal_smtp_row(path: Path) -> dict[str, str]:
    if not path.exists():
        raise FileNotFoundError(f"credentials file not found: {path}")

    with path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            if not row:
                continue
            if (row.get("Service") or "").strip().upper() == "SMTP":
                return {k: (v or "").strip() for k, v in row.items() if k}

    raise ValueError("No SMTP row found in credentials.csv")


def main() -> int:
    # SMTP settings from .env win; credentials.csv (Ethereal export) is the fallback.
    cfg = load_config(env_file=str(WORKSPACE_ROOT / ".env"))

    if not (cfg.smtp_ready and cfg.auth_enabled):
        smtp_row = _read_ethereal_smtp_row(WORKSPACE_ROOT / "credentials.csv")

        host = smtp_row.get("Hostname")
        port_text = smtp_row.get("Port")
        username = smtp_row.get("Username")
        password = smtp_row.get("Password")

        if not host or not port_text or not username or not password:
            raise ValueError("credentials.csv SMTP row is missing Hostname/Port/Username/Password")

        try:
            port = int(port_text)
        except ValueError as exc:
            raise ValueError(f"Invalid SMTP port in credentials.csv: {port_text}") from exc

        cfg = cfg.model_copy(
            update={
                "smtp_host": host,
                "smtp_port": port,
                "smtp_username": username,
                "smtp_password": password,
                "start_tls": True,
                "from_email": username,
            }
        )

    email = Email.from_config(cfg)
    email.add_to(str(cfg.from_email))
    email.set_subject(f"mail_composer smoke test {_utc_stamp()}")
    email.set_msg("Sent by scripts/ethereal_send.py")
    message = email.build()

    out_path = WORKSPACE_ROOT / "runs" / f"ethereal-{_utc_stamp()}.eml"
    write_eml_file(message=message, out_path=out_path)
    email.send()

    print(message.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except KeyboardInterrupt:
        raise SystemExit(130)
    except Exception as exc:  # noqa: BLE001
        print(f"ethereal_send failed: {exc}", file=sys.stderr)
        raise SystemExit(1)
