"""Tests for period bucket keys and labels."""

import random
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from scripts.conversations.periods import (
    PeriodMode,
    bucket_key,
    normalize_mode,
    period_label,
    resolve_timezone,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestBucketKey:
    def test_day_key(self):
        assert bucket_key(utc(2025, 3, 7, 15, 30), "day") == "2025-03-07"

    def test_week_key_is_monday(self):
        # 2025-03-07 is a Friday
        assert bucket_key(utc(2025, 3, 7, 15, 30), "week") == "2025-03-03"

    def test_week_key_on_sunday_belongs_to_previous_monday(self):
        assert bucket_key(utc(2025, 3, 9, 23, 59), "week") == "2025-03-03"

    def test_week_key_on_monday(self):
        assert bucket_key(utc(2025, 3, 10, 0, 0), "week") == "2025-03-10"

    def test_week_crossing_year_boundary(self):
        # Thursday 2025-01-02 sits in the week starting Monday 2024-12-30
        assert bucket_key(utc(2025, 1, 2, 12), PeriodMode.WEEK) == "2024-12-30"

    def test_month_key(self):
        assert bucket_key(utc(2025, 3, 7), "month") == "2025-03"

    def test_missing_timestamp(self):
        assert bucket_key(None, "day") is None

    def test_unknown_mode_falls_back_to_day(self):
        assert bucket_key(utc(2025, 3, 7, 1), "fortnight") == "2025-03-07"

    def test_naive_timestamp_read_as_utc(self):
        assert bucket_key(datetime(2025, 3, 7, 23, 30), "day") == "2025-03-07"

    def test_timezone_moves_day_boundary(self):
        ts = utc(2025, 3, 8, 2, 0)
        assert bucket_key(ts, "day") == "2025-03-08"
        assert bucket_key(ts, "day", ZoneInfo("America/Mexico_City")) == "2025-03-07"

    @pytest.mark.parametrize("mode", ["day", "week", "month"])
    def test_keys_sort_like_timestamps(self, mode):
        rng = random.Random(1729)
        base = utc(2023, 11, 1)
        for _ in range(50):
            stamps = sorted(
                base + timedelta(minutes=rng.randint(0, 60 * 24 * 500))
                for _ in range(30)
            )
            keys = [bucket_key(ts, mode) for ts in stamps]
            assert keys == sorted(keys)


class TestPeriodLabel:
    def test_day_label_spanish(self):
        assert period_label("2025-01-05", "day") == "05 ene"

    def test_week_label_spanish(self):
        assert period_label("2025-03-03", "week") == "Sem 03 mar"

    def test_month_label_spanish(self):
        assert period_label("2025-08", "month") == "ago 2025"

    def test_english_labels(self):
        assert period_label("2025-01-05", "day", locale="en") == "05 Jan"
        assert period_label("2025-03-03", "week", locale="en") == "Wk 03 Mar"

    def test_unknown_locale_uses_spanish(self):
        assert period_label("2025-12", "month", locale="xx") == "dic 2025"

    @pytest.mark.parametrize("key,mode", [
        ("not-a-date", "day"),
        ("2025-13", "month"),
        ("2025-02-30", "week"),
        ("", "day"),
    ])
    def test_malformed_key_returned_unchanged(self, key, mode):
        assert period_label(key, mode) == key


class TestModesAndZones:
    def test_normalize_mode(self):
        assert normalize_mode("WEEK") is PeriodMode.WEEK
        assert normalize_mode(PeriodMode.MONTH) is PeriodMode.MONTH
        assert normalize_mode(None) is PeriodMode.DAY

    def test_resolve_timezone(self):
        assert resolve_timezone("UTC") is timezone.utc
        assert resolve_timezone(None) is timezone.utc
        assert resolve_timezone("Not/AZone") is timezone.utc
        assert resolve_timezone("Europe/Madrid") == ZoneInfo("Europe/Madrid")
