"""Bounded audit log of executed commands."""

from __future__ import annotations

import threading
from datetime import datetime

from loguru import logger

from shellmate.core.types import CommandLogEntry
from shellmate.errors import StoreError
from shellmate.store.preferences import COMMAND_LOGS_KEY, PreferenceStore

MAX_LOG_ENTRIES = 100


class CommandLogStore:
    """Chronological command log capped at ``max_entries`` (oldest evicted first)."""

    def __init__(self, preferences: PreferenceStore, *, max_entries: int = MAX_LOG_ENTRIES) -> None:
        self._preferences = preferences
        self._max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: list[CommandLogEntry] = self._load()

    def _load(self) -> list[CommandLogEntry]:
        raw = self._preferences.get(COMMAND_LOGS_KEY)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.error("command_log.load_failed error=expected a list, got {}", type(raw).__name__)
            return []
        entries: list[CommandLogEntry] = []
        for payload in raw:
            entry = CommandLogEntry.from_payload(payload)
            if entry is None:
                logger.error("command_log.load_failed error=malformed entry, discarding log")
                return []
            entries.append(entry)
        return entries[-self._max_entries :]

    def append(self, entry: CommandLogEntry) -> None:
        with self._lock:
            self._entries.append(entry)
            overflow = len(self._entries) - self._max_entries
            if overflow > 0:
                del self._entries[:overflow]
            payload = [item.to_payload() for item in self._entries]
        try:
            self._preferences.set(COMMAND_LOGS_KEY, payload)
        except StoreError as exc:
            logger.warning("command_log.persist_failed error={}", exc)

    def entries(self) -> list[CommandLogEntry]:
        with self._lock:
            return list(self._entries)

    def query(self, since: datetime) -> list[CommandLogEntry]:
        """Entries at or after ``since``, most recent first."""
        with self._lock:
            return [entry for entry in reversed(self._entries) if entry.timestamp >= since]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
