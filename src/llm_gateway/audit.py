"""Append-only audit sinks for structured request/pipeline events."""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Protocol

logger = logging.getLogger(__name__)


class AuditSink(Protocol):
    def record(self, event_type: str, fields: Mapping[str, Any]) -> None:
        ...


class NullAuditSink:
    def record(self, event_type: str, fields: Mapping[str, Any]) -> None:
        return None


class JsonFileAuditSink:
    """One JSON object per line in ``<log_dir>/<event_type>-<YYYY-MM-DD>.log``.

    Write failures are logged and swallowed: auditing must never take a
    request down with it.
    """

    def __init__(self, log_dir: str):
        self.log_dir = log_dir
        self._lock = threading.Lock()

    def path_for(self, event_type: str, now: datetime | None = None) -> str:
        now = now or datetime.now(timezone.utc)
        return os.path.join(self.log_dir, f"{event_type}-{now.strftime('%Y-%m-%d')}.log")

    def record(self, event_type: str, fields: Mapping[str, Any]) -> None:
        now = datetime.now(timezone.utc)
        entry: Dict[str, Any] = {
            "timestamp": now.isoformat(),
            "level": fields.get("level", "INFO"),
            "message": fields.get("message", event_type),
        }
        entry.update({k: v for k, v in fields.items() if k not in ("level", "message") and v is not None})
        try:
            line = json.dumps(entry, default=str) + "\n"
            with self._lock:
                os.makedirs(self.log_dir, exist_ok=True)
                with open(self.path_for(event_type, now), "a", encoding="utf-8") as fh:
                    fh.write(line)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Failed to write %s audit log: %s", event_type, exc)
