"""
AURA Conversations — Response Latency
=======================================

Elapsed minutes between funnel stages, one sample per user per transition.

For each transition the origin is the user's first message in the origin
category and the target is the first later message matching the target
predicate. Only the first target counts, even when later messages would
also qualify. Samples outside (0, 2880) minutes are dropped as noise.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from scripts.conversations.sequencer import MessageEvent, find_first_index
from scripts.conversations.tags import TagCategory, is_in_category

logger = logging.getLogger(__name__)

MAX_LATENCY_MINUTES = 2880  # 48h


@dataclass(frozen=True)
class TransitionSpec:
    name: str
    origin: TagCategory
    target: Callable[[MessageEvent], bool]


def _is_reply_or_advance(event: MessageEvent) -> bool:
    # A later second/final message means the user answered in between
    return event.is_inbound or is_in_category(event.tag, TagCategory.SECOND, TagCategory.FINAL)


def _is_final(event: MessageEvent) -> bool:
    return is_in_category(event.tag, TagCategory.FINAL)


def _is_closing(event: MessageEvent) -> bool:
    return is_in_category(event.tag, TagCategory.CLOSING)


START_TO_RESPONSE = TransitionSpec("start_to_response", TagCategory.START, _is_reply_or_advance)
SECOND_TO_FINAL = TransitionSpec("second_to_final", TagCategory.SECOND, _is_final)
FINAL_TO_CLOSING = TransitionSpec("final_to_closing", TagCategory.FINAL, _is_closing)

DEFAULT_TRANSITIONS = (START_TO_RESPONSE, SECOND_TO_FINAL, FINAL_TO_CLOSING)

# Pooled figure shown next to the start latency on the dashboard
FOLLOW_UP_STAT = "follow_up"
FOLLOW_UP_SOURCES = (SECOND_TO_FINAL.name, FINAL_TO_CLOSING.name)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def elapsed_minutes(origin: MessageEvent, target: MessageEvent) -> int:
    """Whole minutes from origin to target, truncated toward zero."""
    seconds = (target.timestamp - origin.timestamp).total_seconds()
    return int(seconds / 60)


def transition_sample(timeline: Sequence[MessageEvent], transition: TransitionSpec) -> Optional[int]:
    """The user's latency sample for one transition, or None."""
    origin_idx = find_first_index(timeline, lambda e: is_in_category(e.tag, transition.origin))
    if origin_idx is None:
        return None
    target_idx = find_first_index(timeline, transition.target, start=origin_idx + 1)
    if target_idx is None:
        return None

    minutes = elapsed_minutes(timeline[origin_idx], timeline[target_idx])
    if 0 < minutes < MAX_LATENCY_MINUTES:
        return minutes
    return None


def format_minutes(minutes: float) -> str:
    hours = int(minutes // 60)
    rest = round_half_up(minutes % 60)
    return f"{hours}h {rest}m" if hours > 0 else f"{rest}m"


def summarize_samples(samples: Sequence[int]) -> Optional[Dict]:
    """
    Reduce a sample set to count, mean and median.

    The median is the element at ``n // 2`` of the sorted samples (upper
    median for even counts). Returns None for an empty set.
    """
    if not samples:
        return None
    mean = sum(samples) / len(samples)
    ordered = sorted(samples)
    median = ordered[len(ordered) // 2]
    return {
        "sample_count": len(samples),
        "mean_minutes": round_half_up(mean),
        "median_minutes": median,
        "formatted": format_minutes(mean),
        "median_formatted": format_minutes(median),
    }


class LatencyAnalyzer:
    """Collect per-user transition samples and reduce them to statistics."""

    def __init__(self, transitions: Sequence[TransitionSpec] = DEFAULT_TRANSITIONS):
        self.transitions = tuple(transitions)

    def collect(self, timelines: Mapping[str, Sequence[MessageEvent]]) -> Dict[str, List[int]]:
        samples: Dict[str, List[int]] = {t.name: [] for t in self.transitions}
        for timeline in timelines.values():
            for transition in self.transitions:
                sample = transition_sample(timeline, transition)
                if sample is not None:
                    samples[transition.name].append(sample)
        return samples

    def analyze(self, timelines: Mapping[str, Sequence[MessageEvent]]) -> Dict[str, Optional[Dict]]:
        samples = self.collect(timelines)
        stats = {name: summarize_samples(values) for name, values in samples.items()}

        if all(name in samples for name in FOLLOW_UP_SOURCES):
            pooled = [v for name in FOLLOW_UP_SOURCES for v in samples[name]]
            stats[FOLLOW_UP_STAT] = summarize_samples(pooled)

        logger.debug(
            "Latency samples: %s",
            ", ".join(f"{name}={len(values)}" for name, values in samples.items()),
        )
        return stats
