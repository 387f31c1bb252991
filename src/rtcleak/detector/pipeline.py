"""Detection pipeline: classify, filter, resolve and record leaked addresses.

Runs on a single asyncio event loop. Candidate records are classified and
filtered synchronously in delivery order; resolutions run as background
tasks, so history order follows resolution completion order.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Iterable
from typing import Any

from rtcleak.core.base import CandidateRecord, HistoryEntry
from rtcleak.core.config import Settings
from rtcleak.core.errors import HookInstallationError
from rtcleak.core.ledger import HistoryLedger
from rtcleak.core.store import JsonFileStore, StateStore
from rtcleak.detector.classifier import classify
from rtcleak.detector.novelty import NoveltyFilter
from rtcleak.detector.resolver import MetadataResolver
from rtcleak.detector.source import CandidateSource, ObservedPeerConnection

logger = logging.getLogger(__name__)

ADMITTED_LOG_SIZE = 100


class LeakDetector:
    """Wires candidate sources to the resolver and the history ledger.

    Construct once per process; attach one CandidateSource per connection.
    """

    def __init__(self, ledger: HistoryLedger, resolver: MetadataResolver) -> None:
        self.ledger = ledger
        self.resolver = resolver
        if resolver.ledger is None:
            resolver.ledger = ledger
        self._tasks: set[asyncio.Task[Any]] = set()
        # Most recent admissions, for reporting
        self.admitted: deque[str] = deque(maxlen=ADMITTED_LOG_SIZE)

    @classmethod
    def from_settings(cls, settings: Settings, store: StateStore | None = None) -> LeakDetector:
        if store is None:
            store = JsonFileStore(settings.state_path)
        ledger = HistoryLedger(store, max_entries=settings.history_size)
        resolver = MetadataResolver(
            base_url=settings.lookup_url,
            token=settings.token,
            timeout=settings.timeout,
            ledger=ledger,
        )
        return cls(ledger, resolver)

    # --- sources ---

    def attach(self, source: CandidateSource) -> NoveltyFilter:
        """Start observing *source*. Its session state lives as long as the subscription."""
        novelty = NoveltyFilter(self.ledger.last_reported)
        source.subscribe(lambda record: self._on_record(record, novelty))
        logger.debug("Observing %s", source.name)
        return novelty

    def observe(self, pc: Any, name: str | None = None) -> Any:
        """Wrap a peer connection so its remote candidates are observed.

        Returns the wrapper, or *pc* itself when it cannot be observed.
        """
        try:
            observed = ObservedPeerConnection(pc, name=name)
        except HookInstallationError as exc:
            logger.warning("WebRTC detection disabled: %s", exc)
            return pc
        self.attach(observed.source)
        return observed

    def feed(self, records: Iterable[CandidateRecord], name: str | None = None) -> CandidateSource:
        """Replay recorded candidates as one connection."""
        source = CandidateSource(name)
        self.attach(source)
        for record in records:
            source.emit(record)
        source.end()
        return source

    # --- pipeline ---

    def _on_record(self, record: CandidateRecord, novelty: NoveltyFilter) -> None:
        extracted = classify(record)
        if not extracted.actionable or extracted.address is None:
            return
        if not novelty.admit(extracted.address):
            return
        if not self._schedule(extracted.address):
            novelty.discard(extracted.address)
            return
        self.admitted.append(extracted.address)

    def _schedule(self, address: str) -> bool:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("No running event loop, cannot resolve %s", address)
            return False
        task = loop.create_task(self.resolver.resolve(address), name=f"resolve-{address}")
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return True

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Resolution task %s failed", task.get_name(), exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every in-flight resolution, including ones scheduled meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # --- presentation accessors ---

    def current_address(self) -> str | None:
        return self.ledger.last_reported()

    def history(self) -> list[HistoryEntry]:
        return self.ledger.list()

    def subscribe(self, listener: Callable[[LeakDetector], None]) -> Callable[[], None]:
        """Call *listener* after every history change."""
        return self.ledger.subscribe(lambda _ledger: listener(self))
