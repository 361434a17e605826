"""
AURA Conversations — Tag Conversion Rates
===========================================

A tracked outbound message counts as converted when the very next message
in the user's timeline is inbound. Adjacency is by position only: elapsed
time and the tags of other messages play no part, and a user's last
message can't convert.

Rates:
  by_tag / category_total  - percent with one decimal, None without sends
  series cells             - whole percent, None for periods without sends
"""
from __future__ import annotations

import logging
from datetime import timezone, tzinfo
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from scripts.conversations.latency import round_half_up
from scripts.conversations.periods import DEFAULT_LOCALE, bucket_key, normalize_mode, period_label
from scripts.conversations.sequencer import MessageEvent
from scripts.conversations.tags import CONVERSION_TAGS, TagCategory

logger = logging.getLogger(__name__)

SERIES_DEFAULT_TAG_COUNT = 2


def resolve_conversion_tags(category: TagCategory) -> List[str]:
    return list(CONVERSION_TAGS.get(category, []))


def default_series_tags(category: TagCategory) -> List[str]:
    return resolve_conversion_tags(category)[:SERIES_DEFAULT_TAG_COUNT]


def aggregate_rate(converted: int, sent: int) -> Optional[float]:
    """Conversion percent rounded to one decimal."""
    if sent <= 0:
        return None
    return round_half_up(converted / sent * 1000) / 10


def period_rate(converted: int, sent: int) -> Optional[int]:
    """Conversion percent rounded to a whole number."""
    if sent <= 0:
        return None
    return round_half_up(converted / sent * 100)


def _totals(sent: int, converted: int) -> Dict[str, Any]:
    return {"sent": sent, "converted": converted, "rate": aggregate_rate(converted, sent)}


class ConversionAnalyzer:
    """Send / reply-next counts for a set of tracked tags."""

    def __init__(
        self,
        tracked_tags: Iterable[str],
        mode="day",
        tz: tzinfo = timezone.utc,
        locale: str = DEFAULT_LOCALE,
    ):
        # dict keeps the caller's tag order for output
        self.tracked_tags = list(dict.fromkeys(tracked_tags))
        self.mode = normalize_mode(mode)
        self.tz = tz
        self.locale = locale

    def _series_tags(self, series_tags: Optional[Iterable[str]]) -> List[str]:
        if series_tags is None:
            return list(self.tracked_tags)
        tracked = set(self.tracked_tags)
        selected = []
        for tag in dict.fromkeys(series_tags):
            if tag in tracked:
                selected.append(tag)
            else:
                logger.warning("Ignoring series tag %r: not a tracked tag", tag)
        return selected

    def count(self, timelines: Mapping[str, Sequence[MessageEvent]]):
        """Per-tag totals and per-tag, per-period cells of {sent, converted}."""
        tracked = set(self.tracked_tags)
        by_tag = {tag: {"sent": 0, "converted": 0} for tag in self.tracked_tags}
        cells: Dict[str, Dict[str, Dict[str, int]]] = {tag: {} for tag in self.tracked_tags}

        for timeline in timelines.values():
            for idx, event in enumerate(timeline):
                if not event.is_outbound or event.tag not in tracked:
                    continue
                converted = idx + 1 < len(timeline) and timeline[idx + 1].is_inbound

                by_tag[event.tag]["sent"] += 1
                if converted:
                    by_tag[event.tag]["converted"] += 1

                period = bucket_key(event.timestamp, self.mode, self.tz)
                if period is None:
                    continue
                cell = cells[event.tag].setdefault(period, {"sent": 0, "converted": 0})
                cell["sent"] += 1
                if converted:
                    cell["converted"] += 1

        return by_tag, cells

    def analyze(
        self,
        timelines: Mapping[str, Sequence[MessageEvent]],
        series_tags: Optional[Iterable[str]] = None,
    ) -> Dict[str, Any]:
        by_tag_counts, cells = self.count(timelines)
        selected = self._series_tags(series_tags)

        by_tag = {
            tag: _totals(counts["sent"], counts["converted"])
            for tag, counts in by_tag_counts.items()
        }
        category_total = _totals(
            sum(c["sent"] for c in by_tag_counts.values()),
            sum(c["converted"] for c in by_tag_counts.values()),
        )

        periods = sorted({period for tag in selected for period in cells[tag]})
        series: List[Dict[str, Any]] = []
        for period in periods:
            row: Dict[str, Any] = {
                "period": period,
                "label": period_label(period, self.mode, self.locale),
            }
            for tag in selected:
                cell = cells[tag].get(period)
                row[tag] = period_rate(cell["converted"], cell["sent"]) if cell else None
            series.append(row)

        return {
            "tracked_tags": list(self.tracked_tags),
            "series_tags": selected,
            "by_tag": by_tag,
            "category_total": category_total,
            "series": series,
        }
