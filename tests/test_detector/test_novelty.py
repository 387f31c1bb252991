"""Tests for the per-connection novelty filter."""

from rtcleak.detector.novelty import NoveltyFilter


def test_same_address_twice_in_session():
    novelty = NoveltyFilter(lambda: None)
    assert novelty.admit("203.0.113.7") is True
    assert novelty.admit("203.0.113.7") is False


def test_distinct_addresses_admitted():
    novelty = NoveltyFilter(lambda: None)
    assert novelty.admit("203.0.113.7") is True
    assert novelty.admit("198.51.100.9") is True
    assert novelty.seen == {"203.0.113.7", "198.51.100.9"}


def test_last_reported_address_rejected():
    novelty = NoveltyFilter(lambda: "203.0.113.7")
    assert novelty.admit("203.0.113.7") is False
    assert "203.0.113.7" not in novelty.seen


def test_last_reported_read_on_each_call():
    last = {"address": None}
    novelty = NoveltyFilter(lambda: last["address"])

    last["address"] = "198.51.100.9"
    assert novelty.admit("198.51.100.9") is False
    last["address"] = "203.0.113.7"
    assert novelty.admit("198.51.100.9") is True


def test_sessions_are_independent():
    first = NoveltyFilter(lambda: None)
    second = NoveltyFilter(lambda: None)
    assert first.admit("203.0.113.7") is True
    assert second.admit("203.0.113.7") is True


def test_reset_starts_new_session():
    novelty = NoveltyFilter(lambda: None)
    novelty.admit("203.0.113.7")
    novelty.reset()
    assert novelty.admit("203.0.113.7") is True


def test_discard_allows_admission_again():
    novelty = NoveltyFilter(lambda: None)
    novelty.admit("203.0.113.7")
    novelty.discard("203.0.113.7")
    assert novelty.admit("203.0.113.7") is True
    assert novelty.seen == frozenset({"203.0.113.7"})
