"""Metadata resolution against an ipinfo-compatible lookup service."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from datetime import datetime
from importlib.metadata import version
from typing import TYPE_CHECKING, Any

import httpx
import yaml

from rtcleak.core.base import UNKNOWN, ResolvedMetadata, utcnow
from rtcleak.core.config import DEFAULT_LOOKUP_URL
from rtcleak.core.paths import PACKAGE_DATA_DIR

if TYPE_CHECKING:
    from rtcleak.core.ledger import HistoryLedger

logger = logging.getLogger(__name__)

USER_AGENT = f"rtcleak/{version('rtcleak')} (webrtc leak detector)"


@functools.cache
def _load_country_names() -> dict[str, str]:
    path = PACKAGE_DATA_DIR / "countries.yaml"
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return {str(code).upper(): str(name) for code, name in data.items()}


def country_name(code: Any) -> str:
    """Expand an ISO country code to its display name. Unknown codes pass through."""
    if not code:
        return UNKNOWN
    code = str(code)
    return _load_country_names().get(code.upper(), code)


def _text(value: Any) -> str:
    if value is None or value == "":
        return UNKNOWN
    return str(value)


class MetadataResolver:
    """Resolve descriptive metadata for an address without ever raising.

    When bound to a ledger, successful lookups are recorded there. Failed
    lookups leave the ledger untouched.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_LOOKUP_URL,
        token: str | None = None,
        timeout: float = 10.0,
        ledger: HistoryLedger | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.ledger = ledger
        self._clock = clock

    async def resolve(self, address: str) -> ResolvedMetadata | None:
        if not address:
            return None

        data = await self._fetch(address)
        if data is None:
            return None

        metadata = self.normalize(address, data)
        if self.ledger is not None:
            self.ledger.record(address, metadata)
        return metadata

    async def _fetch(self, address: str) -> dict[str, Any] | None:
        """Issue the single lookup request. Returns the JSON object or None."""
        params = {"token": self.token} if self.token else None

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, headers={"User-Agent": USER_AGENT}
            ) as client:
                resp = await client.get(f"{self.base_url}/{address}", params=params)
        except httpx.HTTPError as exc:
            logger.warning("Lookup request failed for %s: %s", address, exc)
            return None

        try:
            data = resp.json()
        except ValueError:
            logger.warning(
                "Lookup for %s returned a non-JSON body (HTTP %s)", address, resp.status_code
            )
            return None

        if not isinstance(data, dict):
            logger.warning("Lookup for %s returned unexpected payload type %s", address, type(data).__name__)
            return None

        error = data.get("error")
        if error:
            message = error.get("message", error) if isinstance(error, dict) else error
            logger.warning("Lookup API error for %s: %s", address, message)
            return None

        if resp.is_error:
            logger.warning("Lookup for %s failed with HTTP %s", address, resp.status_code)
            return None

        return data

    def normalize(self, address: str, data: dict[str, Any]) -> ResolvedMetadata:
        """Map a lookup payload onto ResolvedMetadata, filling gaps with the unknown marker."""
        return ResolvedMetadata(
            address=str(data.get("ip") or address),
            country_name=country_name(data.get("country")),
            region=_text(data.get("region")),
            city=_text(data.get("city")),
            coordinates=_text(data.get("loc")),
            organization=_text(data.get("org")),
            hostname=_text(data.get("hostname")),
            vpn_suspected=bool(data.get("bogon")),
            resolved_at=self._clock(),
        )
