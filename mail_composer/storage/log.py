from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any

from mail_composer.models import utc_now


@dataclass
class StructuredLogger:
    path: Path
    session_id: str

    def __post_init__(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()

    def log(
        self,
        *,
        level: str,
        event: str,
        stage: str,
        status: str = "ok",
        error_type: str | None = None,
        error_message: str | None = None,
        url: str | None = None,
        latency_ms: int | None = None,
        **extra: Any,
    ) -> None:
        payload: dict[str, Any] = {
            "timestamp": utc_now().isoformat(),
            "level": level.lower(),
            "event": event,
            "session_id": self.session_id,
            "stage": stage,
            "status": status,
            "error_type": error_type,
            "error_message": error_message,
            "url": url,
            "latency_ms": latency_ms,
        }
        payload.update(extra)
        with self._lock:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(payload, ensure_ascii=True, default=str) + "\n")

    def info(self, event: str, stage: str, **kwargs: Any) -> None:
        self.log(level="info", event=event, stage=stage, **kwargs)

    def warning(self, event: str, stage: str, **kwargs: Any) -> None:
        self.log(level="warning", event=event, stage=stage, **kwargs)

    def error(self, event: str, stage: str, **kwargs: Any) -> None:
        self.log(level="error", event=event, stage=stage, status="error", **kwargs)


def read_events(path: Path) -> list[dict[str, Any]]:
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]
