"""Tests for candidate classification."""

import pytest

from rtcleak.core.base import NOT_APPLICABLE, CandidateClass
from rtcleak.detector.classifier import classify, is_private_ip

SRFLX = (
    "candidate:842163049 1 udp 1677729535 203.0.113.7 54321 typ srflx "
    "raddr 192.168.1.20 rport 54321 generation 0 ufrag abcd network-cost 999"
)


def test_srflx_candidate_extracted():
    result = classify(SRFLX)
    assert result.candidate_class is CandidateClass.SERVER_REFLEXIVE
    assert result.address == "203.0.113.7"


def test_loose_srflx_record():
    result = classify("... typ srflx ... 203.0.113.7 ...")
    assert result.candidate_class is CandidateClass.SERVER_REFLEXIVE
    assert result.address == "203.0.113.7"


def test_first_ipv4_token_wins():
    result = classify("typ srflx 198.51.100.9 then 203.0.113.7")
    assert result.address == "198.51.100.9"


@pytest.mark.parametrize(
    "record",
    [
        "candidate:1 1 udp 2122260223 192.168.1.20 54400 typ host generation 0",
        "candidate:3 1 udp 41885439 198.51.100.20 3478 typ relay raddr 203.0.113.7 rport 1",
        "candidate:2 1 udp 1686052607 2001:db8::7 54321 typ srflx raddr :: rport 0",
        "candidate:4 1 udp 2122260223 3f1c5b0e-1234.local 54400 typ host",
        "typ srflx without any address",
        "203.0.113.7 with no type marker",
        "",
    ],
)
def test_non_actionable_records(record):
    assert classify(record) == NOT_APPLICABLE


@pytest.mark.parametrize("record", [None, 42, b"typ srflx 203.0.113.7", ["typ srflx 203.0.113.7"]])
def test_non_string_records(record):
    assert classify(record) == NOT_APPLICABLE


def test_is_private_ip():
    assert is_private_ip("192.168.1.1") is True
    assert is_private_ip("10.0.0.1") is True
    assert is_private_ip("172.16.0.1") is True
    assert is_private_ip("8.8.8.8") is False
    assert is_private_ip("1.1.1.1") is False


def test_is_private_ip_invalid():
    assert is_private_ip("not-an-ip") is False
