"""Shared test fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import httpx
import pytest

from rtcleak.core.ledger import HistoryLedger
from rtcleak.core.store import MemoryStore


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def mock_lookup_client(
    response: httpx.Response | None = None, exc: Exception | None = None
) -> AsyncMock:
    """Create a mock httpx.AsyncClient whose get() returns *response* or raises *exc*."""
    mock_client = AsyncMock()
    if exc is not None:
        mock_client.get.side_effect = exc
    else:
        mock_client.get.return_value = response
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


IPINFO_PAYLOAD = {
    "ip": "203.0.113.7",
    "hostname": "host-7.example.net",
    "city": "Amsterdam",
    "region": "North Holland",
    "country": "NL",
    "loc": "52.3740,4.8897",
    "org": "AS64500 Example Transit B.V.",
}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def ledger(store, clock):
    return HistoryLedger(store, clock=clock)


@pytest.fixture
def lookup_client():
    """Factory for mocked lookup clients."""
    return mock_lookup_client


@pytest.fixture
def ipinfo_payload():
    return dict(IPINFO_PAYLOAD)
