"""File-backed store of saved chat transcripts.

Layout under ``root``: one ``<chat id>.json`` per chat plus ``index.json``
holding the summaries used for listing.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .errors import ChatNotFoundError, ValidationError

logger = logging.getLogger(__name__)

TITLE_LIMIT = 50
INDEX_NAME = "index"


def generate_title(messages: List[Dict[str, Any]]) -> str:
    """First user message, shortened to fit a sidebar entry."""
    first = next((m for m in messages if isinstance(m, dict) and m.get("role") == "user"), None)
    if first is None:
        return "New Chat"
    content = str(first.get("content", "")).strip()
    if len(content) <= TITLE_LIMIT:
        return content
    return content[: TITLE_LIMIT - 3] + "..."


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


class FileChatStore:
    def __init__(self, root: str):
        self.root = root
        self._index_path = os.path.join(root, f"{INDEX_NAME}.json")
        self._lock = threading.Lock()

    def _chat_path(self, chat_id: str) -> str:
        # ids are generated here; anything path-like or the index name was not
        if (
            not chat_id
            or os.path.basename(chat_id) != chat_id
            or chat_id.startswith(".")
            or chat_id == INDEX_NAME
        ):
            raise ChatNotFoundError(chat_id)
        return os.path.join(self.root, f"{chat_id}.json")

    def _load_index(self) -> List[Dict[str, Any]]:
        try:
            with open(self._index_path, encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return []
        except ValueError:
            logger.error("Chat index %s is corrupt; starting from an empty index", self._index_path)
            return []
        return data if isinstance(data, list) else []

    def _write_json(self, path: str, data: Any) -> None:
        os.makedirs(self.root, exist_ok=True)
        tmp = f"{path}.tmp"
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2)
        os.replace(tmp, path)

    def _read_chat(self, chat_id: str) -> Dict[str, Any]:
        try:
            with open(self._chat_path(chat_id), encoding="utf-8") as fh:
                return json.load(fh)
        except FileNotFoundError:
            raise ChatNotFoundError(chat_id) from None

    def create(self, title: Optional[str], messages: List[Dict[str, Any]], settings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not isinstance(messages, list) or not messages:
            raise ValidationError("Messages array is required and cannot be empty")
        chat_id = _new_id()
        now = _now()
        chat = {
            "id": chat_id,
            "title": title or generate_title(messages),
            "messages": messages,
            "settings": settings or {},
            "createdAt": now,
            "updatedAt": now,
        }
        with self._lock:
            self._write_json(self._chat_path(chat_id), chat)
            index = self._load_index()
            index.append(
                {
                    "id": chat_id,
                    "title": chat["title"],
                    "createdAt": now,
                    "updatedAt": now,
                    "messageCount": len(messages),
                }
            )
            self._write_json(self._index_path, index)
        logger.info("Saved chat %s (%d messages)", chat_id, len(messages))
        return {"id": chat_id, "title": chat["title"], "createdAt": now, "updatedAt": now}

    def get(self, chat_id: str) -> Dict[str, Any]:
        return self._read_chat(chat_id)

    def update(
        self,
        chat_id: str,
        messages: List[Dict[str, Any]],
        settings: Optional[Dict[str, Any]] = None,
        title: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not isinstance(messages, list):
            raise ValidationError("Messages array is required")
        with self._lock:
            existing = self._read_chat(chat_id)
            now = _now()
            chat = {
                **existing,
                "title": title or existing.get("title"),
                "messages": messages,
                "settings": settings or existing.get("settings", {}),
                "updatedAt": now,
            }
            self._write_json(self._chat_path(chat_id), chat)
            index = self._load_index()
            for entry in index:
                if entry.get("id") == chat_id:
                    entry.update(title=chat["title"], updatedAt=now, messageCount=len(messages))
                    self._write_json(self._index_path, index)
                    break
        return {"id": chat_id, "title": chat["title"], "updatedAt": now}

    def delete(self, chat_id: str) -> None:
        with self._lock:
            try:
                os.remove(self._chat_path(chat_id))
            except FileNotFoundError:
                raise ChatNotFoundError(chat_id) from None
            index = [c for c in self._load_index() if c.get("id") != chat_id]
            self._write_json(self._index_path, index)

    def list(self) -> List[Dict[str, Any]]:
        return sorted(self._load_index(), key=lambda c: c.get("updatedAt", ""), reverse=True)
