"""curlbridge history - bounded, newest-first record of dispatch attempts."""

from __future__ import annotations

import contextlib
import json
import logging
from pathlib import Path

from curlbridge.models import HistoryEntry

logger = logging.getLogger("curlbridge.history")

MAX_HISTORY = 50


class HistoryStore:
    """Keeps HistoryEntry records in memory, mirrored to a JSON file if path is set."""

    def __init__(self, path: str | Path | None = None, max_items: int = MAX_HISTORY):
        self.path = Path(path) if path else None
        self.max_items = max_items
        self._entries: list[HistoryEntry] = self._load()

    def _load(self) -> list[HistoryEntry]:
        if not self.path or not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text())
            return [HistoryEntry.from_dict(item) for item in data]
        except Exception as e:
            logger.warning("Ignoring unreadable history file %s: %s", self.path, e)
            return []

    def _save(self) -> None:
        if not self.path:
            return
        with contextlib.suppress(OSError, TypeError, ValueError):
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps([e.to_dict() for e in self._entries], indent=2, default=str),
            )

    def add(self, entry: HistoryEntry) -> HistoryEntry:
        self._entries.insert(0, entry)
        del self._entries[self.max_items :]
        self._save()
        return entry

    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    def get(self, index: int) -> HistoryEntry | None:
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None

    def delete(self, entry_id: str) -> None:
        self._entries = [e for e in self._entries if e.id != entry_id]
        self._save()

    def clear(self) -> None:
        self._entries = []
        self._save()

    def search(self, query: str) -> list[HistoryEntry]:
        """Entries whose URL, method or name contains query (case-insensitive)."""
        q = query.lower()
        return [
            e
            for e in self._entries
            if q in e.request.url.lower()
            or q in e.request.method.lower()
            or q in e.request.name.lower()
        ]

    def __len__(self) -> int:
        return len(self._entries)
