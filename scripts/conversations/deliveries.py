"""
AURA Conversations — Delivery Counts
======================================

Per-period counts of outbound funnel messages and created leads.
"""
from __future__ import annotations

import logging
from datetime import timezone, tzinfo
from typing import Any, Dict, List, Sequence

from scripts.conversations.periods import DEFAULT_LOCALE, bucket_key, normalize_mode, period_label
from scripts.conversations.sequencer import MessageEvent
from scripts.conversations.tags import LEAD_CREATED_TAG, TagCategory, category_of

logger = logging.getLogger(__name__)

_CATEGORY_COUNTER = {
    TagCategory.START: "start_count",
    TagCategory.SECOND: "second_count",
    TagCategory.FINAL: "final_count",
}


class DeliveryAggregator:
    """Bucket tagged outbound messages into funnel-stage counts per period."""

    def __init__(self, mode="day", tz: tzinfo = timezone.utc, locale: str = DEFAULT_LOCALE):
        self.mode = normalize_mode(mode)
        self.tz = tz
        self.locale = locale

    def aggregate(self, events: Sequence[MessageEvent]) -> List[Dict[str, Any]]:
        grouped: Dict[str, Dict[str, Any]] = {}
        skipped = 0

        for event in events:
            if not event.is_outbound or not event.tag:
                continue
            key = bucket_key(event.timestamp, self.mode, self.tz)
            if key is None:
                skipped += 1
                continue

            row = grouped.get(key)
            if row is None:
                row = grouped[key] = {
                    "period": key,
                    "start_count": 0,
                    "second_count": 0,
                    "final_count": 0,
                    "leads_count": 0,
                }

            counter = _CATEGORY_COUNTER.get(category_of(event.tag))
            if counter:
                row[counter] += 1
            if event.tag == LEAD_CREATED_TAG:
                row["leads_count"] += 1

        if skipped:
            logger.debug("Deliveries skipped %d tagged events with bad timestamps", skipped)

        series = []
        for key in sorted(grouped):
            row = grouped[key]
            series.append({
                "period": key,
                "label": period_label(key, self.mode, self.locale),
                "start_count": row["start_count"],
                "second_count": row["second_count"],
                "final_count": row["final_count"],
                "leads_count": row["leads_count"],
            })
        return series
