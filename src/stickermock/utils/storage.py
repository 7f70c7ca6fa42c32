"""
Key-value storage backends for stickermock.

CredentialStore persists through a small string key-value interface so the
backend can be swapped: a JSON settings file for the CLI and web UI, or an
in-memory dict for tests and throwaway sessions. Backends raise StorageError
on any read or write failure.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

from stickermock.logging_config import get_logger
from stickermock.utils.exceptions import StorageError

logger = get_logger(__name__)


class KeyValueStorage(Protocol):
    """String key-value storage used for persisted settings."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store value under key. Raises StorageError on failure."""
        ...

    def delete(self, key: str) -> None:
        """Remove key if present. Raises StorageError on failure."""
        ...


class MemoryStorage:
    """In-memory storage; contents live as long as the instance."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage:
    """Storage backed by a single JSON object on disk.

    The file is re-read on every access so several instances (e.g. CLI and
    web UI in separate processes) observe each other's writes. Writes go to a
    temporary file that replaces the target, so a failed write never leaves a
    truncated settings file behind.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Could not read settings file {self.path}: {e}") from e
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise StorageError(f"Settings file {self.path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Settings file {self.path} must contain a JSON object.")
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".settings_", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, sort_keys=True)
                os.replace(tmp, self.path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Could not write settings file {self.path}: {e}") from e
        logger.debug("Wrote settings file path=%s keys=%d", self.path, len(data))

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._write(data)


__all__ = ["JsonFileStorage", "KeyValueStorage", "MemoryStorage"]
