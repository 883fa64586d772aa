"""JSON-backed preference and credential storage."""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from loguru import logger

from shellmate.errors import StoreError

COMMAND_LOGS_KEY = "CommandLogs"
API_KEY_KEY = "ApiKey"


class PreferenceStore:
    """
    A small key-value store persisted as one JSON document.

    Writes go to a temporary file in the same directory which then replaces
    the target, so readers never observe a half-written document.
    """

    def __init__(self, file_path: str | Path):
        self.file_path = Path(file_path)
        self._lock = threading.RLock()
        self._values: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        """Load preferences from the JSON file."""
        if not self.file_path.exists():
            return {}
        try:
            with open(self.file_path, encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("preferences.load_failed path={} error={}", self.file_path, e)
            return {}
        if not isinstance(loaded, dict):
            logger.error("preferences.load_failed path={} error=not a JSON object", self.file_path)
            return {}
        return loaded

    def _save(self) -> None:
        """Write all preferences to disk; raises ``StoreError`` on failure."""
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.file_path.name}.",
                suffix=".tmp",
                dir=self.file_path.parent,
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(self._values, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.file_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreError(f"failed to write {self.file_path}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value
            self._save()

    def delete(self, key: str) -> None:
        with self._lock:
            if self._values.pop(key, None) is not None:
                self._save()


class CredentialStore:
    """API key persistence on top of the preference store."""

    def __init__(self, preferences: PreferenceStore) -> None:
        self._preferences = preferences

    def load(self) -> str | None:
        value = self._preferences.get(API_KEY_KEY)
        if not isinstance(value, str) or not value.strip():
            return None
        return value.strip()

    def save(self, api_key: str) -> None:
        key = api_key.strip()
        if not key:
            raise StoreError("API key must not be empty")
        self._preferences.set(API_KEY_KEY, key)

    def clear(self) -> None:
        self._preferences.delete(API_KEY_KEY)
