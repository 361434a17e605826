"""
AURA Conversations — Aggregate Entry Point
============================================

compute_aggregates() turns one snapshot of conversation events into every
dashboard view: delivery counts, response latencies and tag conversion.

It is a pure function of (events, params). Nothing is cached or kept
between calls; callers that want memoisation key it on both arguments.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from scripts.conversations.conversion import (
    ConversionAnalyzer,
    default_series_tags,
    resolve_conversion_tags,
)
from scripts.conversations.deliveries import DeliveryAggregator
from scripts.conversations.latency import LatencyAnalyzer
from scripts.conversations.periods import DEFAULT_LOCALE, normalize_mode, resolve_timezone
from scripts.conversations.sequencer import coerce_events, sequence_by_user
from scripts.conversations.tags import (
    CONVERSION_CATEGORY_LABELS,
    TagCategory,
    parse_conversion_category,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregateParams:
    period_mode: str = "day"
    conversion_category: str = TagCategory.START.value
    tracked_tags: Optional[Tuple[str, ...]] = None
    series_tags: Optional[Tuple[str, ...]] = None
    timezone: str = "UTC"
    locale: str = DEFAULT_LOCALE

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("tracked_tags", "series_tags"):
            if data[key] is not None:
                data[key] = list(data[key])
        return data


def _resolve_category(value: str) -> TagCategory:
    category = parse_conversion_category(value)
    if category is None:
        logger.warning("Unknown conversion category %r, using start", value)
        return TagCategory.START
    return category


def compute_aggregates(events: Sequence[Any], params: AggregateParams = None) -> Dict[str, Any]:
    """
    Compute all dashboard aggregates for one event snapshot.

    Args:
        events: List of event rows or MessageEvent records.
        params: Grouping and selection parameters (defaults: day, start).

    Returns:
        Dict with record/user counts, skipped-row counts, ``deliveries``,
        ``response_times`` and ``conversion``.

    Raises:
        EventInputError: ``events`` is not a list or tuple.
    """
    params = params or AggregateParams()
    records = coerce_events(events)

    mode = normalize_mode(params.period_mode)
    tz = resolve_timezone(params.timezone)
    category = _resolve_category(params.conversion_category)

    tracked = list(params.tracked_tags) if params.tracked_tags is not None else resolve_conversion_tags(category)
    if params.series_tags is not None:
        series_tags = list(params.series_tags)
    elif params.tracked_tags is not None:
        series_tags = None
    else:
        series_tags = default_series_tags(category)

    timelines = sequence_by_user(records)

    deliveries = DeliveryAggregator(mode, tz, params.locale).aggregate(records)
    response_times = LatencyAnalyzer().analyze(timelines)
    conversion = ConversionAnalyzer(tracked, mode, tz, params.locale).analyze(timelines, series_tags)

    skipped = {
        "missing_user": sum(1 for r in records if not r.user_id),
        "malformed_timestamp": sum(1 for r in records if r.timestamp is None),
    }
    logger.info(
        "Aggregated %d events for %d users (%s, category=%s)",
        len(records), len(timelines), mode.value, category.value,
    )

    return {
        "record_count": len(records),
        "user_count": len(timelines),
        "skipped": skipped,
        "period_mode": mode.value,
        "deliveries": deliveries,
        "response_times": response_times,
        "conversion": {
            "category": category.value,
            "category_label": CONVERSION_CATEGORY_LABELS[category],
            **conversion,
        },
    }
