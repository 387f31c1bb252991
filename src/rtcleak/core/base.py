"""Core data model — candidates, resolved metadata and history entries."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

# Explicit marker for metadata the lookup service did not provide
UNKNOWN = "N/A"

# Raw candidate line from the negotiation layer, may be absent
CandidateRecord = str | None


def utcnow() -> datetime:
    return datetime.now(UTC)


class CandidateClass(StrEnum):
    SERVER_REFLEXIVE = "srflx"
    OTHER = "other"


class ExtractedCandidate(BaseModel):
    """Result of classifying a candidate record.

    Only server-reflexive candidates carry an address.
    """

    model_config = {"frozen": True}

    candidate_class: CandidateClass = CandidateClass.OTHER
    address: str | None = None

    @model_validator(mode="after")
    def _address_only_for_srflx(self) -> ExtractedCandidate:
        if self.candidate_class is CandidateClass.SERVER_REFLEXIVE:
            if not self.address:
                raise ValueError("server-reflexive candidate requires an address")
        elif self.address is not None:
            raise ValueError("only server-reflexive candidates carry an address")
        return self

    @property
    def actionable(self) -> bool:
        return self.candidate_class is CandidateClass.SERVER_REFLEXIVE


NOT_APPLICABLE = ExtractedCandidate()


class ResolvedMetadata(BaseModel):
    """Descriptive metadata for one public address, as returned by the lookup service."""

    address: str
    country_name: str = UNKNOWN
    region: str = UNKNOWN
    city: str = UNKNOWN
    coordinates: str = UNKNOWN  # "lat,lon"
    organization: str = UNKNOWN
    hostname: str = UNKNOWN
    vpn_suspected: bool = False  # bogon heuristic, not authoritative
    resolved_at: datetime = Field(default_factory=utcnow)

    def as_table(self) -> dict[str, str]:
        """Display rows in the order the panel shows them."""
        return {
            "IP Address": self.address,
            "Country": self.country_name,
            "Region": self.region,
            "City": self.city,
            "Location": self.coordinates,
            "ISP": self.organization,
            "Hostname": self.hostname,
            "VPN/Proxy": "Yes (Bogon)" if self.vpn_suspected else "No",
        }


class HistoryEntry(BaseModel):
    """One remembered address in the history ledger."""

    address: str
    metadata: ResolvedMetadata | None = None
    last_seen_at: datetime = Field(default_factory=utcnow)
