"""Bounded, most-recent-first history of leaked addresses."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from rtcleak.core.base import HistoryEntry, ResolvedMetadata, utcnow
from rtcleak.core.store import KEY_HISTORY, KEY_LAST_REPORTED, StateStore

logger = logging.getLogger(__name__)

MAX_HISTORY = 5

Listener = Callable[["HistoryLedger"], None]


class HistoryLedger:
    """Sole owner of the address history and the last reported address.

    Every mutation is persisted through the StateStore before the call
    returns, then listeners are notified.
    """

    def __init__(
        self,
        store: StateStore,
        max_entries: int = MAX_HISTORY,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._store = store
        self._max_entries = max_entries
        self._clock = clock
        self._listeners: list[Listener] = []
        self._entries = self._load_entries()
        last = store.get(KEY_LAST_REPORTED, None)
        self._last_reported: str | None = last if isinstance(last, str) and last else None

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def _load_entries(self) -> list[HistoryEntry]:
        raw = self._store.get(KEY_HISTORY, [])
        if not isinstance(raw, list):
            logger.warning("Ignoring persisted history: expected a list, got %s", type(raw).__name__)
            return []

        entries: list[HistoryEntry] = []
        seen: set[str] = set()
        for item in raw:
            try:
                entry = HistoryEntry.model_validate(item)
            except ValidationError as exc:
                logger.warning("Skipping corrupt history entry: %s", exc.errors()[0]["msg"])
                continue
            if entry.address in seen:
                continue
            seen.add(entry.address)
            entries.append(entry)
        return entries[: self._max_entries]

    def record(self, address: str, metadata: ResolvedMetadata | None) -> None:
        """Promote *address* to the front of the history and make it the last reported one."""
        now = self._clock()
        existing = self._find(address)

        if existing is not None:
            self._entries.remove(existing)
            existing.last_seen_at = now
            if metadata is not None:
                existing.metadata = metadata
            self._entries.insert(0, existing)
        else:
            self._entries.insert(0, HistoryEntry(address=address, metadata=metadata, last_seen_at=now))

        while len(self._entries) > self._max_entries:
            evicted = self._entries.pop()
            logger.debug("Evicted %s from history", evicted.address)

        self._last_reported = address
        self._persist()
        self._notify()

    def clear(self) -> None:
        """Forget every remembered address."""
        self._entries = []
        self._last_reported = None
        self._persist()
        self._notify()

    def list(self) -> list[HistoryEntry]:
        """Return a copy of the history, most recent first."""
        return [entry.model_copy(deep=True) for entry in self._entries]

    def get(self, address: str) -> HistoryEntry | None:
        entry = self._find(address)
        return entry.model_copy(deep=True) if entry is not None else None

    def _find(self, address: str) -> HistoryEntry | None:
        for entry in self._entries:
            if entry.address == address:
                return entry
        return None

    def last_reported(self) -> str | None:
        return self._last_reported

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback fired after each mutation. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _persist(self) -> None:
        payload: list[dict[str, Any]] = [entry.model_dump(mode="json") for entry in self._entries]
        self._store.set(KEY_HISTORY, payload)
        self._store.set(KEY_LAST_REPORTED, self._last_reported)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("History listener %r failed", listener)

    def __len__(self) -> int:
        return len(self._entries)
