"""Tests for the per-period delivery counts."""

from scripts.conversations.deliveries import DeliveryAggregator
from scripts.conversations.sequencer import coerce_events


def row(user, ts, direction="outbound", tag=None):
    return {"user_id": user, "timestamp": ts, "direction": direction, "tag": tag}


class TestDeliveryAggregator:
    def test_counts_by_category_and_leads(self):
        events = coerce_events([
            row("a", "2025-01-06T09:00:00Z", tag="startMessage_A"),
            row("b", "2025-01-06T11:00:00Z", tag="startMessage_C"),
            row("a", "2025-01-06T12:00:00Z", tag="secondMessage_B"),
            row("a", "2025-01-06T13:00:00Z", tag="finalMessageFollowUp"),
            row("a", "2025-01-06T14:00:00Z", tag="goodByeMessage_afterLeadCreated"),
        ])
        series = DeliveryAggregator("day").aggregate(events)
        assert series == [{
            "period": "2025-01-06",
            "label": "06 ene",
            "start_count": 2,
            "second_count": 1,
            "final_count": 1,
            "leads_count": 1,
        }]

    def test_ignores_inbound_and_untagged(self):
        events = coerce_events([
            row("a", "2025-01-06T09:00:00Z", direction="inbound", tag="startMessage_A"),
            row("a", "2025-01-07T09:00:00Z", tag=None),
        ])
        assert DeliveryAggregator("day").aggregate(events) == []

    def test_sorted_by_period_and_empty_periods_absent(self):
        events = coerce_events([
            row("a", "2025-01-09T09:00:00Z", tag="startMessage_A"),
            row("b", "2025-01-06T09:00:00Z", tag="startMessage_B"),
        ])
        periods = [r["period"] for r in DeliveryAggregator("day").aggregate(events)]
        assert periods == ["2025-01-06", "2025-01-09"]

    def test_week_grouping(self):
        events = coerce_events([
            row("a", "2025-01-06T09:00:00Z", tag="startMessage_A"),
            row("b", "2025-01-12T22:00:00Z", tag="startMessage_B"),
            row("c", "2025-01-13T01:00:00Z", tag="startMessage_B"),
        ])
        series = DeliveryAggregator("week").aggregate(events)
        assert [(r["period"], r["start_count"]) for r in series] == [
            ("2025-01-06", 2),
            ("2025-01-13", 1),
        ]
        assert series[0]["label"] == "Sem 06 ene"

    def test_closing_only_period_has_zero_funnel_counts(self):
        events = coerce_events([
            row("a", "2025-02-01T09:00:00Z", tag="goodByeMessage_afterNotInterested"),
        ])
        series = DeliveryAggregator("month").aggregate(events)
        assert series == [{
            "period": "2025-02",
            "label": "feb 2025",
            "start_count": 0,
            "second_count": 0,
            "final_count": 0,
            "leads_count": 0,
        }]

    def test_malformed_timestamp_excluded(self):
        events = coerce_events([
            row("a", "not a time", tag="startMessage_A"),
            row("a", "2025-01-06T09:00:00Z", tag="startMessage_A"),
        ])
        series = DeliveryAggregator("day").aggregate(events)
        assert len(series) == 1
        assert series[0]["start_count"] == 1

    def test_events_without_user_still_counted(self):
        events = coerce_events([row(None, "2025-01-06T09:00:00Z", tag="startMessage_A")])
        assert DeliveryAggregator("day").aggregate(events)[0]["start_count"] == 1

    def test_unknown_mode_groups_by_day(self):
        events = coerce_events([row("a", "2025-01-06T09:00:00Z", tag="startMessage_A")])
        assert DeliveryAggregator("quarter").aggregate(events)[0]["period"] == "2025-01-06"
