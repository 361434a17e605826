"""
AURA Conversations — Event Model and Per-User Sequencing
==========================================================

Normalises raw conversation rows into immutable MessageEvent records and
partitions them into chronologically ordered per-user timelines, the shared
input of the latency and conversion analyses.

Functions:
  parse_timestamp()    - ISO-8601 string -> aware datetime (None if malformed)
  coerce_event()       - One row or MessageEvent -> MessageEvent
  coerce_events()      - Validate the collection and coerce every row
  sequence_by_user()   - user_id -> events sorted by time (stable)
  find_first_index()   - First position in a timeline matching a predicate
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from scripts.lib.errors import EventInputError

logger = logging.getLogger(__name__)

OUTBOUND = "outbound"
INBOUND = "inbound"

# Fractional seconds, which Postgres trims of trailing zeros
_FRACTION_RE = re.compile(r"\.(\d+)(?=[+-]\d{2}:?\d{2}$|$)")

# Accepted spellings per field, first match wins
_FIELD_ALIASES = {
    "user_id": ("user_id", "userId", "ig_username"),
    "timestamp": ("timestamp", "created_at"),
    "direction": ("direction",),
    "tag": ("tag", "message_tag"),
}


@dataclass(frozen=True)
class MessageEvent:
    user_id: Optional[str]
    timestamp: Optional[datetime]
    direction: Optional[str]
    tag: Optional[str] = None
    raw_timestamp: Optional[str] = None
    position: int = 0

    @property
    def is_outbound(self) -> bool:
        return self.direction == OUTBOUND

    @property
    def is_inbound(self) -> bool:
        return self.direction == INBOUND


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp to a timezone-aware datetime (UTC if naive)."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            text = value.strip().replace("Z", "+00:00")
            text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _pick(row: Mapping[str, Any], field: str) -> Any:
    for key in _FIELD_ALIASES[field]:
        if row.get(key) is not None:
            return row[key]
    return None


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def coerce_event(row: MessageEvent | Mapping[str, Any], position: int = 0) -> MessageEvent:
    """
    Build a MessageEvent from a row.

    Rows may use engine field names (user_id, timestamp, direction, tag),
    camelCase (userId) or the conversations table columns (ig_username,
    created_at, message_tag). Bad values become None instead of raising.
    """
    if isinstance(row, MessageEvent):
        return MessageEvent(
            user_id=row.user_id,
            timestamp=parse_timestamp(row.timestamp),
            direction=row.direction,
            tag=row.tag,
            raw_timestamp=row.raw_timestamp,
            position=position,
        )
    if not isinstance(row, Mapping):
        logger.debug("Row %d is not a mapping (%s), treating as empty", position, type(row).__name__)
        row = {}

    raw_ts = _pick(row, "timestamp")
    direction = _clean_str(_pick(row, "direction"))
    return MessageEvent(
        user_id=_clean_str(_pick(row, "user_id")),
        timestamp=parse_timestamp(raw_ts),
        direction=direction.lower() if direction else None,
        tag=_clean_str(_pick(row, "tag")),
        raw_timestamp=raw_ts if isinstance(raw_ts, str) else None,
        position=position,
    )


def coerce_events(events: Sequence[Any]) -> List[MessageEvent]:
    """Coerce an event collection; anything but a list or tuple is rejected."""
    if not isinstance(events, (list, tuple)):
        raise EventInputError(type(events).__name__)
    return [coerce_event(row, position=i) for i, row in enumerate(events)]


def sequence_by_user(events: Sequence[MessageEvent]) -> Dict[str, List[MessageEvent]]:
    """
    Group events per user and order each timeline by timestamp.

    Events without a user id or with an unparseable timestamp are left out.
    Equal timestamps keep their input order (``position``).
    """
    timelines: Dict[str, List[MessageEvent]] = {}
    missing_user = 0
    malformed = 0

    for event in events:
        if not event.user_id:
            missing_user += 1
            continue
        if event.timestamp is None:
            malformed += 1
            continue
        timelines.setdefault(event.user_id, []).append(event)

    for timeline in timelines.values():
        timeline.sort(key=lambda e: (e.timestamp, e.position))

    if missing_user or malformed:
        logger.debug(
            "Sequencing skipped %d events without user and %d with bad timestamps",
            missing_user, malformed,
        )
    return timelines


def find_first_index(
    timeline: Sequence[MessageEvent],
    predicate: Callable[[MessageEvent], bool],
    start: int = 0,
) -> Optional[int]:
    """Index of the first event at or after ``start`` matching the predicate."""
    for i in range(max(start, 0), len(timeline)):
        if predicate(timeline[i]):
            return i
    return None
