"""File-backed storage for the message board."""
from __future__ import annotations

import asyncio
import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from cinescout.config import settings
from cinescout.errors import InvalidRequest
from cinescout.services import logger as log_service


def validate_message_text(raw: Any, *, max_length: int | None = None) -> str:
    """Return the trimmed message, or raise InvalidRequest."""
    limit = settings.max_message_length if max_length is None else max_length
    if not raw or not isinstance(raw, str):
        raise InvalidRequest("Message is required")
    trimmed = raw.strip()
    if not trimmed:
        raise InvalidRequest("Message cannot be empty")
    if len(trimmed) > limit:
        raise InvalidRequest(f"Message must be {limit} characters or less")
    return trimmed


def new_entry(message: str, *, source: str | None = None, sender: str | None = None) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "id": int(time.time() * 1000),
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }
    if source is not None:
        entry["source"] = source
    if sender is not None:
        entry["sender"] = sender
    return entry


class MessageStore:
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _ensure_file(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.write_text("[]", encoding="utf-8")

    def _read_sync(self) -> list[dict[str, Any]]:
        self._ensure_file()
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            log_service.log_storage_operation("read", str(self.path), "failed", error=str(e))
            raise
        return payload if isinstance(payload, list) else []

    def _write_sync(self, entries: list[dict[str, Any]]) -> None:
        self._ensure_file()
        self.path.write_text(json.dumps(entries, indent=2), encoding="utf-8")

    async def list_messages(self) -> list[dict[str, Any]]:
        async with self._lock:
            return await asyncio.to_thread(self._read_sync)

    async def append(self, entry: dict[str, Any]) -> dict[str, Any]:
        async with self._lock:
            entries = await asyncio.to_thread(self._read_sync)
            entries.append(entry)
            await asyncio.to_thread(self._write_sync, entries)
        log_service.log_storage_operation(
            "append", str(self.path), "success", details=f"id={entry.get('id')}"
        )
        return entry


_store: MessageStore | None = None


def get_message_store() -> MessageStore:
    global _store
    if _store is None or _store.path != Path(settings.messages_file):
        _store = MessageStore(settings.messages_file)
    return _store
