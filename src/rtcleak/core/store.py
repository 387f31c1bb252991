"""Key/value state persistence.

Every backend failure is contained here: reads fall back to the caller's
default and writes become no-ops, so callers keep working with in-memory
state only.
"""

from __future__ import annotations

import contextlib
import copy
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Keys of the persisted document
KEY_LAST_REPORTED = "last_reported_address"
KEY_HISTORY = "history"
KEY_PANEL_STATE = "panel_state"


class StateStore(ABC):
    """Generic key/value persistence used by the history ledger and the UI layer."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for *key*, or *default* if missing or unreadable."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*. Failures are logged, never raised."""
        ...


class MemoryStore(StateStore):
    """Session-only store. Values are copied in and out."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)


class JsonFileStore(StateStore):
    """All keys live in one JSON document on disk (last writer wins)."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"state document is a {type(data).__name__}, expected object")
        return data

    def get(self, key: str, default: Any = None) -> Any:
        try:
            data = self._read()
        except (OSError, ValueError) as exc:
            logger.warning("Error reading state key %s from %s: %s", key, self.path, exc)
            return default
        return data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        try:
            try:
                data = self._read()
            except ValueError as exc:
                logger.warning("Discarding unreadable state file %s: %s", self.path, exc)
                data = {}
            data[key] = value
            payload = json.dumps(data, indent=2)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".state-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Error writing state key %s to %s: %s", key, self.path, exc)
