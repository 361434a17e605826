"""
AURA Dashboard — Conversation Analytics Router
================================================

Instagram DM funnel analytics computed from ig_conversations on request.

Endpoints:
  GET /api/conversations/analytics/summary         - Every aggregate below
  GET /api/conversations/analytics/deliveries      - Funnel sends + leads per period
  GET /api/conversations/analytics/response-times  - Stage transition latencies
  GET /api/conversations/analytics/conversion      - Reply-next conversion per tag
  GET /api/conversations/analytics/tags            - Tag taxonomy and labels
  GET /api/conversations/analytics/snapshot        - Latest published snapshot
"""
from __future__ import annotations

import os
from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.concurrency import run_in_threadpool

from models.conversation_models import AnalyticsSummary, ConversionResult, DeliveryRow, ResponseTimes
from scripts.conversations.aggregates import AggregateParams, compute_aggregates
from scripts.conversations.tags import taxonomy
from scripts.lib.errors import ConfigError, DataFetchError
from scripts.lib.logger import setup_logger
from scripts.lib.supabase_client import fetch_conversations, get_latest_snapshot

logger = setup_logger("conversation_analytics_router")

router = APIRouter(prefix="/api/conversations/analytics", tags=["conversation-analytics"])

DEFAULT_LOOKBACK_DAYS = int(os.getenv("DEFAULT_LOOKBACK_DAYS", "30"))
REPORT_TIMEZONE = os.getenv("REPORT_TIMEZONE", "UTC")
REPORT_LOCALE = os.getenv("REPORT_LOCALE", "es")
SNAPSHOT_SOURCE = "ig_conversations"


def _date_range(start_date: Optional[date], end_date: Optional[date]) -> tuple[date, date]:
    end = end_date or date.today()
    start = start_date or end - timedelta(days=DEFAULT_LOOKBACK_DAYS)
    if start > end:
        raise HTTPException(status_code=422, detail="start_date must not be after end_date")
    return start, end


def _run(
    start_date: Optional[date],
    end_date: Optional[date],
    group_by: str,
    category: str,
    tags: Optional[List[str]],
    timezone: Optional[str],
    locale: Optional[str],
) -> dict:
    """Fetch the range and compute aggregates, mapping failures to HTTP errors.

    Blocking (paged Supabase reads with sleeping retries), so handlers call it
    through run_in_threadpool.
    """
    start, end = _date_range(start_date, end_date)
    params = AggregateParams(
        period_mode=group_by,
        conversion_category=category,
        series_tags=tuple(tags) if tags else None,
        timezone=timezone or REPORT_TIMEZONE,
        locale=locale or REPORT_LOCALE,
    )
    try:
        rows = fetch_conversations(start, end)
    except (ConfigError, DataFetchError) as e:
        logger.error("Conversation fetch failed: %s", e)
        raise HTTPException(status_code=503, detail="Conversation data unavailable")

    try:
        result = compute_aggregates(rows, params)
    except Exception as e:
        logger.error("Conversation aggregation failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to compute conversation analytics")

    result["start_date"] = start
    result["end_date"] = end
    return result


@router.get("/summary", response_model=AnalyticsSummary)
async def conversation_summary(
    start_date: Optional[date] = Query(None, description="First day (default: lookback window)"),
    end_date: Optional[date] = Query(None, description="Last day (default: today)"),
    group_by: str = Query("day", description="Period grouping: day, week, month"),
    category: str = Query("start", description="Conversion category: start, second, final"),
    tags: Optional[List[str]] = Query(None, description="Tags charted in the conversion series"),
    timezone: Optional[str] = Query(None, description="Timezone for period buckets"),
    locale: Optional[str] = Query(None, description="Label locale: es, en"),
):
    """
    All conversation aggregates for a date range.

    Returns delivery counts per period, response-time statistics, and
    per-tag conversion with a per-period rate series.
    """
    return await run_in_threadpool(_run, start_date, end_date, group_by, category, tags, timezone, locale)


@router.get("/deliveries", response_model=List[DeliveryRow])
async def deliveries(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    group_by: str = Query("day", description="Period grouping: day, week, month"),
    timezone: Optional[str] = Query(None),
    locale: Optional[str] = Query(None),
):
    """Start / second / final sends and leads created, one row per active period."""
    result = await run_in_threadpool(_run, start_date, end_date, group_by, "start", None, timezone, locale)
    return result["deliveries"]


@router.get("/response-times", response_model=ResponseTimes)
async def response_times(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    """Latency between funnel stages; null where no user produced a sample."""
    result = await run_in_threadpool(_run, start_date, end_date, "day", "start", None, None, None)
    return result["response_times"]


@router.get("/conversion", response_model=ConversionResult)
async def conversion(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    group_by: str = Query("day", description="Period grouping: day, week, month"),
    category: str = Query("start", description="Conversion category: start, second, final"),
    tags: Optional[List[str]] = Query(None, description="Tags charted in the series"),
    timezone: Optional[str] = Query(None),
    locale: Optional[str] = Query(None),
):
    """Share of tracked sends whose next message in the conversation was a reply."""
    result = await run_in_threadpool(_run, start_date, end_date, group_by, category, tags, timezone, locale)
    return result["conversion"]


@router.get("/tags")
async def tag_taxonomy():
    """Tag categories, conversion tags, and display labels."""
    return taxonomy()


@router.get("/snapshot")
async def latest_snapshot():
    """Latest aggregates published by the batch analyzer."""
    data = await run_in_threadpool(get_latest_snapshot, SNAPSHOT_SOURCE)
    if not data:
        raise HTTPException(status_code=404, detail=f"No snapshot for source: {SNAPSHOT_SOURCE}")
    return data
