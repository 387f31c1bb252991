"""Per-connection novelty filter for leaked addresses."""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class NoveltyFilter:
    """Per-connection gate in front of metadata resolution.

    *last_reported* is read on every call so a success recorded by another
    connection is honoured immediately.
    """

    def __init__(self, last_reported: Callable[[], str | None]) -> None:
        self._last_reported = last_reported
        self._seen: set[str] = set()

    def admit(self, address: str) -> bool:
        if address == self._last_reported():
            return False
        if address in self._seen:
            return False
        self._seen.add(address)
        logger.info("New public IP detected (srflx): %s", address)
        return True

    def discard(self, address: str) -> None:
        """Forget an admission that could not be acted on."""
        self._seen.discard(address)

    def reset(self) -> None:
        self._seen.clear()

    @property
    def seen(self) -> frozenset[str]:
        return frozenset(self._seen)
