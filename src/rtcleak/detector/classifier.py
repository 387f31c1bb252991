"""Pick server-reflexive IPv4 candidates out of ICE records."""

from __future__ import annotations

import ipaddress
import re

from rtcleak.core.base import (
    NOT_APPLICABLE,
    CandidateClass,
    CandidateRecord,
    ExtractedCandidate,
)

# Host and relay candidates are not the peer's public address, only srflx is
_SRFLX_PATTERN = re.compile(r"typ\s(srflx)")
_IPV4_PATTERN = re.compile(r"([0-9]{1,3}(?:\.[0-9]{1,3}){3})")


def classify(record: CandidateRecord) -> ExtractedCandidate:
    """Extract (class, address) from a raw candidate record.

    The first IPv4-shaped token is taken as the address; the rest of the
    record is ignored. Never raises.
    """
    if not isinstance(record, str) or not record:
        return NOT_APPLICABLE

    if _SRFLX_PATTERN.search(record) is None:
        return NOT_APPLICABLE

    match = _IPV4_PATTERN.search(record)
    if match is None:
        return NOT_APPLICABLE

    return ExtractedCandidate(
        candidate_class=CandidateClass.SERVER_REFLEXIVE,
        address=match.group(1),
    )


def is_private_ip(ip: str) -> bool:
    """Check if an IP address is in a private/reserved range."""
    try:
        return ipaddress.ip_address(ip).is_private
    except ValueError:
        return False
