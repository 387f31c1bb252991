"""Recorded candidate input: plain text logs and Chrome webrtc-internals dumps."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator
from typing import Any, TextIO

logger = logging.getLogger(__name__)

# Remote candidates handed to the page's connection
REMOTE_CANDIDATE_EVENT = "addIceCandidate"

_CANDIDATE_FIELD = re.compile(r"candidate:\s*(candidate:.*)$", re.DOTALL)


def _candidate_from_value(value: Any) -> str | None:
    """Pull the SDP candidate line out of an updateLog value."""
    if isinstance(value, dict):
        candidate = value.get("candidate")
        return candidate if isinstance(candidate, str) else None
    if not isinstance(value, str):
        return None
    match = _CANDIDATE_FIELD.search(value)
    if match:
        return match.group(1).strip()
    return value.strip() or None


def iter_internals_dump(data: dict[str, Any]) -> Iterator[tuple[str, list[str]]]:
    """Yield (connection id, remote candidate records) per peer connection in a dump."""
    connections = data.get("PeerConnections")
    if not isinstance(connections, dict):
        return

    for connection_id, connection in connections.items():
        if not isinstance(connection, dict):
            continue
        update_log = connection.get("updateLog")
        if not isinstance(update_log, list):
            update_log = []
        records: list[str] = []
        for event in update_log:
            if not isinstance(event, dict) or event.get("type") != REMOTE_CANDIDATE_EVENT:
                continue
            record = _candidate_from_value(event.get("value"))
            if record:
                records.append(record)
        yield str(connection_id), records


def read_sessions(stream: TextIO) -> list[tuple[str | None, list[str]]]:
    """Read candidate sessions from a text stream.

    A JSON object is treated as a webrtc-internals dump with one session per
    peer connection; anything else is one session with one record per line.
    """
    text = stream.read()
    stripped = text.lstrip()

    if stripped.startswith("{"):
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError as exc:
            logger.warning("Input looks like JSON but could not be parsed (%s); reading lines", exc)
        else:
            if isinstance(data, dict):
                return list(iter_internals_dump(data))

    lines = [line.strip() for line in text.splitlines()]
    return [(None, [line for line in lines if line])]
