"""
AURA Dashboard — Conversation Analytics Pydantic Models
=========================================================

Response models for the conversation analytics endpoints.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ─── Deliveries ─────────────────────────────────────────────

class DeliveryRow(BaseModel):
    """Outbound funnel messages and leads in one period."""
    period: str
    label: str
    start_count: int = 0
    second_count: int = 0
    final_count: int = 0
    leads_count: int = 0


# ─── Response Times ─────────────────────────────────────────

class LatencyStats(BaseModel):
    """Reduced latency samples for one stage transition."""
    sample_count: int
    mean_minutes: int
    median_minutes: int
    formatted: str
    median_formatted: str


class ResponseTimes(BaseModel):
    start_to_response: Optional[LatencyStats] = None
    second_to_final: Optional[LatencyStats] = None
    final_to_closing: Optional[LatencyStats] = None
    follow_up: Optional[LatencyStats] = None


# ─── Conversion ─────────────────────────────────────────────

class ConversionTotals(BaseModel):
    sent: int = 0
    converted: int = 0
    rate: Optional[float] = Field(None, description="Percent, one decimal; null without sends")


class ConversionResult(BaseModel):
    category: str
    category_label: str
    tracked_tags: List[str] = Field(default_factory=list)
    series_tags: List[str] = Field(default_factory=list)
    by_tag: Dict[str, ConversionTotals] = Field(default_factory=dict)
    category_total: ConversionTotals = Field(default_factory=ConversionTotals)
    series: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="{period, label, <tag>: whole percent or null}",
    )


# ─── Summary ────────────────────────────────────────────────

class SkippedCounts(BaseModel):
    missing_user: int = 0
    malformed_timestamp: int = 0


class AnalyticsSummary(BaseModel):
    """Every conversation aggregate for one date range."""
    start_date: date
    end_date: date
    record_count: int
    user_count: int
    skipped: SkippedCounts
    period_mode: str
    deliveries: List[DeliveryRow] = Field(default_factory=list)
    response_times: ResponseTimes
    conversion: ConversionResult
