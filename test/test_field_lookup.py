"""
Tests for the cached field list lookup.
"""

import threading

import pytest

from ruletree.config import Config
from ruletree.field_lookup import CaseType, FieldLookup, Section, demo_field_source


class CountingFetcher:
    """Fetcher that records calls and can be held until released."""

    def __init__(self, hold: bool = False) -> None:
        self.calls = []
        self.release = threading.Event()
        if not hold:
            self.release.set()

    def __call__(self, section, case_type):
        self.calls.append((section, case_type))
        self.release.wait(5)
        return demo_field_source(section, case_type)


def test_demo_source_table():
    assert demo_field_source(Section.SECTION1, CaseType.A) == ["Section1_A_1", "Section1_A_2"]
    assert demo_field_source(Section.SECTION3, CaseType.C) == ["Section3_C_1", "Section3_C_2"]


def test_uncached_request_fetches_in_background():
    fetcher = CountingFetcher()
    lookup = FieldLookup(fetcher)
    received = []

    assert lookup.request(Section.SECTION2, CaseType.B, received.append) is None
    assert lookup.wait_idle(5)

    assert received == [["Section2_B_1", "Section2_B_2"]]
    assert lookup.cached("Section2", "B") == ["Section2_B_1", "Section2_B_2"]
    assert fetcher.calls == [(Section.SECTION2, CaseType.B)]


def test_cached_request_is_synchronous():
    fetcher = CountingFetcher()
    lookup = FieldLookup(fetcher)
    lookup.request("Section1", "A")
    lookup.wait_idle(5)

    received = []
    fields = lookup.request("Section1", "A", received.append)

    assert fields == ["Section1_A_1", "Section1_A_2"]
    assert received == [fields]
    assert len(fetcher.calls) == 1
    assert lookup.fetch_count == 1


def test_returned_lists_are_copies():
    lookup = FieldLookup(CountingFetcher())
    lookup.request("Section1", "B")
    lookup.wait_idle(5)
    lookup.cached("Section1", "B").append("junk")
    assert lookup.cached("Section1", "B") == ["Section1_B_1", "Section1_B_2"]


def test_concurrent_requests_not_deduplicated():
    fetcher = CountingFetcher(hold=True)
    lookup = FieldLookup(fetcher)

    assert lookup.request("Section3", "A") is None
    assert lookup.request("Section3", "A") is None
    fetcher.release.set()
    assert lookup.wait_idle(5)

    assert len(fetcher.calls) == 2
    assert lookup.is_cached("Section3", "A")


def test_keys_are_independent():
    lookup = FieldLookup(CountingFetcher())
    lookup.request("Section1", "A")
    lookup.wait_idle(5)
    assert not lookup.is_cached("Section1", "B")
    assert not lookup.is_cached("Section2", "A")


def test_failed_fetch_not_cached(caplog):
    def broken(section, case_type):
        raise ConnectionError("backend down")

    lookup = FieldLookup(broken)
    received = []
    lookup.request("Section1", "C", received.append)
    assert lookup.wait_idle(5)

    assert received == []
    assert not lookup.is_cached("Section1", "C")
    assert "backend down" in caplog.text


def test_clear():
    lookup = FieldLookup(CountingFetcher())
    lookup.request("Section2", "C")
    lookup.wait_idle(5)
    lookup.clear()
    assert lookup.cached("Section2", "C") is None


def test_unknown_key_rejected():
    lookup = FieldLookup(CountingFetcher())
    with pytest.raises(ValueError, match="Unknown field lookup key"):
        lookup.request("Section9", "A")


def test_latency_from_config():
    assert FieldLookup(demo_field_source, config=Config()).latency == pytest.approx(0.3)
    assert FieldLookup(demo_field_source, latency=0).latency == 0.0
    assert FieldLookup(demo_field_source).latency == 0.0
