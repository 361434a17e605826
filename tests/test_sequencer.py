"""Tests for event coercion and per-user sequencing."""

from datetime import datetime, timezone

import pytest

from scripts.conversations.sequencer import (
    MessageEvent,
    coerce_event,
    coerce_events,
    find_first_index,
    parse_timestamp,
    sequence_by_user,
)
from scripts.lib.errors import EventInputError


class TestParseTimestamp:
    def test_zulu_suffix(self):
        assert parse_timestamp("2025-01-06T10:00:00Z") == datetime(2025, 1, 6, 10, tzinfo=timezone.utc)

    def test_offset_preserved_as_instant(self):
        ts = parse_timestamp("2025-01-06T12:00:00+02:00")
        assert ts == datetime(2025, 1, 6, 10, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_timestamp("2025-01-06 10:00:00").tzinfo == timezone.utc

    @pytest.mark.parametrize("value,micro", [
        ("2025-01-06T10:00:00.12345+00:00", 123450),
        ("2025-01-06T10:00:00.5Z", 500000),
        ("2025-01-06T10:00:00.1234567", 123456),
    ])
    def test_trimmed_fractional_seconds(self, value, micro):
        ts = parse_timestamp(value)
        assert ts == datetime(2025, 1, 6, 10, 0, 0, micro, tzinfo=timezone.utc)

    def test_naive_event_normalised_to_utc(self):
        event = coerce_event(MessageEvent("u1", datetime(2025, 1, 6, 10), "outbound"))
        assert event.timestamp == datetime(2025, 1, 6, 10, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "yesterday", "2025-99-01T00:00:00Z", 12345])
    def test_malformed_returns_none(self, value):
        assert parse_timestamp(value) is None


class TestCoerceEvent:
    def test_table_columns(self):
        event = coerce_event({
            "ig_username": "ana.lopez",
            "created_at": "2025-01-06T10:00:00Z",
            "direction": "outbound",
            "message_tag": "startMessage_A",
        }, position=3)
        assert event.user_id == "ana.lopez"
        assert event.tag == "startMessage_A"
        assert event.is_outbound
        assert event.position == 3
        assert event.raw_timestamp == "2025-01-06T10:00:00Z"

    def test_camel_case_contract(self):
        event = coerce_event({
            "userId": "u1",
            "timestamp": "2025-01-06T10:00:00Z",
            "direction": "INBOUND",
            "tag": None,
        })
        assert event.user_id == "u1"
        assert event.is_inbound
        assert event.tag is None

    def test_blank_values_become_none(self):
        event = coerce_event({"user_id": "  ", "timestamp": "bad", "direction": "", "tag": ""})
        assert event.user_id is None
        assert event.timestamp is None
        assert event.direction is None
        assert event.tag is None

    def test_non_mapping_row_does_not_raise(self):
        event = coerce_event("garbage", position=1)
        assert event.user_id is None and event.timestamp is None

    def test_existing_event_gets_position(self):
        original = MessageEvent("u1", parse_timestamp("2025-01-06T10:00:00Z"), "outbound")
        assert coerce_event(original, position=5).position == 5


class TestCoerceEvents:
    def test_rejects_non_list(self):
        with pytest.raises(EventInputError):
            coerce_events({"user_id": "u1"})

    def test_rejects_none(self):
        with pytest.raises(EventInputError):
            coerce_events(None)

    def test_positions_follow_input_order(self):
        events = coerce_events([{"user_id": "a"}, {"user_id": "b"}])
        assert [e.position for e in events] == [0, 1]


class TestSequenceByUser:
    def test_groups_and_sorts(self):
        events = coerce_events([
            {"user_id": "b", "timestamp": "2025-01-06T10:05:00Z", "direction": "inbound"},
            {"user_id": "a", "timestamp": "2025-01-06T10:10:00Z", "direction": "inbound"},
            {"user_id": "a", "timestamp": "2025-01-06T10:00:00Z", "direction": "outbound"},
        ])
        timelines = sequence_by_user(events)
        assert set(timelines) == {"a", "b"}
        assert [e.direction for e in timelines["a"]] == ["outbound", "inbound"]

    def test_ties_keep_input_order(self):
        events = coerce_events([
            {"user_id": "a", "timestamp": "2025-01-06T10:00:00Z", "direction": "outbound", "tag": "first"},
            {"user_id": "a", "timestamp": "2025-01-06T10:00:00Z", "direction": "inbound", "tag": "second"},
            {"user_id": "a", "timestamp": "2025-01-06T10:00:00Z", "direction": "outbound", "tag": "third"},
        ])
        assert [e.tag for e in sequence_by_user(events)["a"]] == ["first", "second", "third"]

    def test_drops_missing_user_and_bad_timestamps(self):
        events = coerce_events([
            {"user_id": None, "timestamp": "2025-01-06T10:00:00Z", "direction": "outbound"},
            {"user_id": "a", "timestamp": "nope", "direction": "outbound"},
            {"user_id": "a", "timestamp": "2025-01-06T10:00:00Z", "direction": "inbound"},
        ])
        timelines = sequence_by_user(events)
        assert list(timelines) == ["a"]
        assert len(timelines["a"]) == 1

    def test_empty(self):
        assert sequence_by_user([]) == {}


class TestFindFirstIndex:
    @pytest.fixture
    def timeline(self):
        return coerce_events([
            {"user_id": "a", "timestamp": "2025-01-06T10:00:00Z", "direction": "outbound"},
            {"user_id": "a", "timestamp": "2025-01-06T10:01:00Z", "direction": "inbound"},
            {"user_id": "a", "timestamp": "2025-01-06T10:02:00Z", "direction": "inbound"},
        ])

    def test_first_match(self, timeline):
        assert find_first_index(timeline, lambda e: e.is_inbound) == 1

    def test_start_offset(self, timeline):
        assert find_first_index(timeline, lambda e: e.is_inbound, start=2) == 2

    def test_no_match(self, timeline):
        assert find_first_index(timeline, lambda e: e.direction == "other") is None

    def test_start_past_end(self, timeline):
        assert find_first_index(timeline, lambda e: True, start=10) is None
