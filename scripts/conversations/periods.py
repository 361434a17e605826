"""
AURA Conversations — Period Keys
==================================

Maps timestamps to day / week / month bucket keys and display labels.

Keys are zero-padded ISO strings (``YYYY-MM-DD`` for day and week,
``YYYY-MM`` for month), so sorting keys as strings sorts them in time.
Week keys are the Monday that starts the ISO week.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


class PeriodMode(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


MONTH_ABBREVIATIONS = {
    "es": ["ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic"],
    "en": ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"],
}
WEEK_PREFIX = {"es": "Sem", "en": "Wk"}
DEFAULT_LOCALE = "es"


def normalize_mode(mode) -> PeriodMode:
    """Coerce a grouping mode, falling back to day for anything unknown."""
    if isinstance(mode, PeriodMode):
        return mode
    try:
        return PeriodMode(str(mode).lower())
    except ValueError:
        logger.warning("Unknown period mode %r, grouping by day", mode)
        return PeriodMode.DAY


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """ZoneInfo for a timezone name; UTC when empty or unknown."""
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, using UTC", name)
        return timezone.utc


def bucket_key(
    timestamp: Optional[datetime],
    mode=PeriodMode.DAY,
    tz: tzinfo = timezone.utc,
) -> Optional[str]:
    """
    Bucket key for a timestamp.

    Args:
        timestamp: Timezone-aware instant (naive values are read as UTC).
        mode: day, week or month; unknown values group by day.
        tz: Timezone whose calendar defines the buckets.

    Returns:
        The key, or None when there is no timestamp.
    """
    if timestamp is None:
        return None
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    local_day = timestamp.astimezone(tz).date()

    mode = normalize_mode(mode)
    if mode is PeriodMode.WEEK:
        monday = local_day - timedelta(days=local_day.weekday())
        return monday.isoformat()
    if mode is PeriodMode.MONTH:
        return f"{local_day.year:04d}-{local_day.month:02d}"
    return local_day.isoformat()


def period_label(key: str, mode=PeriodMode.DAY, locale: str = DEFAULT_LOCALE) -> str:
    """
    Human label for a bucket key: ``05 ene``, ``Sem 05 ene`` or ``ene 2025``.

    A key that doesn't parse for the mode is returned unchanged.
    """
    months = MONTH_ABBREVIATIONS.get(locale) or MONTH_ABBREVIATIONS[DEFAULT_LOCALE]
    week_prefix = WEEK_PREFIX.get(locale) or WEEK_PREFIX[DEFAULT_LOCALE]
    mode = normalize_mode(mode)
    try:
        if mode is PeriodMode.MONTH:
            day = date.fromisoformat(f"{key}-01")
            return f"{months[day.month - 1]} {day.year}"
        day = date.fromisoformat(key)
    except (TypeError, ValueError):
        return key

    label = f"{day.day:02d} {months[day.month - 1]}"
    if mode is PeriodMode.WEEK:
        return f"{week_prefix} {label}"
    return label
