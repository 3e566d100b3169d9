"""
Local key-value store for session snapshots.

Persistence is best-effort: read and write failures are logged and
swallowed so a broken store never interrupts the conversation. There is
no concurrent-writer arbitration; the last write wins.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class SessionStore(Protocol):
    """Blob store scoped to one visitor."""

    def read(self, key: str) -> Optional[dict[str, Any]]: ...

    def write(self, key: str, data: dict[str, Any]) -> None: ...

    def clear(self, key: str) -> None: ...


class InMemorySessionStore:
    """Process-local store, used by tests and the offline demo."""

    def __init__(self) -> None:
        self._blobs: dict[str, str] = {}

    def read(self, key: str) -> Optional[dict[str, Any]]:
        raw = self._blobs.get(key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Stored blob for '%s' is not valid JSON", key)
            return None
        return data if isinstance(data, dict) else None

    def write(self, key: str, data: dict[str, Any]) -> None:
        try:
            self._blobs[key] = json.dumps(data)
        except (TypeError, ValueError) as exc:
            logger.warning("Unable to persist '%s': %s", key, exc)

    def clear(self, key: str) -> None:
        self._blobs.pop(key, None)


class JsonFileSessionStore:
    """One JSON file per key under a directory."""

    def __init__(self, directory: str) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_SAFE_KEY.sub('_', key)}.json"

    def read(self, key: str) -> Optional[dict[str, Any]]:
        path = self._path(key)
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.error("Failed to read stored state '%s': %s", key, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("Stored state '%s' is not an object; ignoring", key)
            return None
        return data

    def write(self, key: str, data: dict[str, Any]) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Unable to persist state '%s': %s", key, exc)

    def clear(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Unable to clear state '%s': %s", key, exc)
