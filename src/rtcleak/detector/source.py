"""Streams of raw ICE candidate records, one source per connection."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Mapping
from typing import Any

from rtcleak.core.base import CandidateRecord
from rtcleak.core.errors import HookInstallationError

logger = logging.getLogger(__name__)

Observer = Callable[[CandidateRecord], None]

_source_ids = itertools.count(1)


def candidate_record(candidate: Any) -> CandidateRecord:
    """Normalize whatever was passed to addIceCandidate into a candidate line.

    Accepts None, plain strings, browser-style objects or dicts with a
    ``candidate`` string, and aiortc-style candidates with ``ip``/``type``
    attributes (rendered back to SDP form).
    """
    if candidate is None:
        return None
    if isinstance(candidate, str):
        return candidate
    if isinstance(candidate, Mapping):
        value = candidate.get("candidate")
        return value if isinstance(value, str) else None

    value = getattr(candidate, "candidate", None)
    if isinstance(value, str):
        return value

    ip = getattr(candidate, "ip", None)
    typ = getattr(candidate, "type", None)
    if not ip or not typ:
        return None

    line = (
        f"candidate:{getattr(candidate, 'foundation', '0')} "
        f"{getattr(candidate, 'component', 1)} "
        f"{getattr(candidate, 'protocol', 'udp')} "
        f"{getattr(candidate, 'priority', 0)} "
        f"{ip} {getattr(candidate, 'port', 0)} typ {typ}"
    )
    rel_addr = getattr(candidate, "relatedAddress", None)
    rel_port = getattr(candidate, "relatedPort", None)
    if rel_addr is not None and rel_port is not None:
        line += f" raddr {rel_addr} rport {rel_port}"
    return line


class CandidateSource:
    """Candidate records of a single connection, delivered to observers in order.

    Observer failures are logged and never reach the emitter.
    """

    def __init__(self, name: str | None = None) -> None:
        self.name = name or f"connection-{next(_source_ids)}"
        self._observers: list[Observer] = []
        self.ended = False

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def emit(self, record: CandidateRecord) -> None:
        if self.ended:
            return
        for observer in list(self._observers):
            try:
                observer(record)
            except Exception:
                logger.exception("Candidate observer failed on %s", self.name)

    def end(self) -> None:
        """Stop delivery and release observers (and the session state they hold)."""
        self.ended = True
        self._observers.clear()

    def __repr__(self) -> str:
        return f"CandidateSource({self.name!r}, ended={self.ended})"


class ObservedPeerConnection:
    """Wrapper around a peer connection that reports every remote candidate.

    ``addIceCandidate`` notifies the source, then forwards the original call
    unchanged and returns its result (a coroutine for aiortc). Every other
    attribute is delegated to the wrapped connection.
    """

    def __init__(self, pc: Any, name: str | None = None) -> None:
        add = getattr(pc, "addIceCandidate", None)
        if not callable(add):
            raise HookInstallationError(pc, "no addIceCandidate method")
        self._pc = pc
        self._add = add
        self.source = CandidateSource(name)

    @property
    def wrapped(self) -> Any:
        return self._pc

    def addIceCandidate(self, candidate: Any, *args: Any, **kwargs: Any) -> Any:  # noqa: N802
        try:
            self.source.emit(candidate_record(candidate))
        except Exception:
            logger.exception("Error observing candidate on %s", self.source.name)
        return self._add(candidate, *args, **kwargs)

    add_ice_candidate = addIceCandidate

    def close(self, *args: Any, **kwargs: Any) -> Any:
        self.source.end()
        close = getattr(self._pc, "close", None)
        if close is None:
            return None
        return close(*args, **kwargs)

    def __getattr__(self, name: str) -> Any:
        if name == "_pc":
            raise AttributeError(name)
        return getattr(self._pc, name)
