"""
Instagram Conversations Analyzer
==================================
Fetches ig_conversations rows for a date range (or reads a JSON export),
computes delivery, response-time and conversion aggregates, and writes
data/processed/conversation_metrics.json.

Usage:
    python scripts/conversations_analyzer.py                              # last 30 days, by day
    python scripts/conversations_analyzer.py --group-by week --category second
    python scripts/conversations_analyzer.py --input data/raw/export.json  # offline
    python scripts/conversations_analyzer.py --publish                    # also store a snapshot
"""
from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Path setup
# ---------------------------------------------------------------------------
SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent
PROCESSED_DIR = PROJECT_ROOT / "data" / "processed"
sys.path.insert(0, str(PROJECT_ROOT))

load_dotenv(PROJECT_ROOT / ".env")

from scripts.conversations.aggregates import AggregateParams, compute_aggregates
from scripts.lib.errors import DashboardError
from scripts.lib.logger import setup_logger
from scripts.lib.utils import atomic_write_json

logger = setup_logger("conversations_analyzer")

SNAPSHOT_SOURCE = "ig_conversations"

# ---------------------------------------------------------------------------
# Default configuration
# ---------------------------------------------------------------------------
DEFAULT_CONFIG: Dict[str, Any] = {
    "lookback_days": int(os.getenv("DEFAULT_LOOKBACK_DAYS", "30")),
    "period_mode": "day",
    "conversion_category": "start",
    "timezone": os.getenv("REPORT_TIMEZONE", "UTC"),
    "locale": os.getenv("REPORT_LOCALE", "es"),
    "output_path": str(PROCESSED_DIR / "conversation_metrics.json"),
}


def _load_export(path: Path) -> List[dict]:
    """Load rows from a JSON export: a bare list or {"results"|"data": [...]}."""
    logger.info("Loading conversations from %s", path)
    with open(path, "r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if isinstance(payload, dict):
        payload = payload.get("results", payload.get("data", []))
    return payload


def run_conversation_analysis(
    start_date: date,
    end_date: date,
    params: AggregateParams,
    input_path: Optional[Path] = None,
    output_path: Optional[Path] = None,
    publish: bool = False,
) -> Dict[str, Any]:
    """Load conversations, compute aggregates, save them, and optionally publish.

    Returns the full output dictionary.
    """
    logger.info("Starting conversation analysis %s → %s", start_date, end_date)

    if input_path:
        rows = _load_export(input_path)
    else:
        from scripts.lib.supabase_client import fetch_conversations
        rows = fetch_conversations(start_date, end_date)

    aggregates = compute_aggregates(rows, params)

    output = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "data_source": str(input_path) if input_path else "supabase",
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        **aggregates,
        "params_used": params.to_dict(),
    }

    output_path = Path(output_path or DEFAULT_CONFIG["output_path"])
    if atomic_write_json(output, output_path):
        logger.info("Analysis complete. Output saved to %s", output_path)
    else:
        logger.error("Could not write output to %s", output_path)

    if publish:
        from scripts.lib.supabase_client import upsert_snapshot
        if not upsert_snapshot(SNAPSHOT_SOURCE, output):
            logger.warning("Snapshot publish failed (non-fatal)")

    return output


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO date: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Instagram Conversations Analyzer")
    parser.add_argument("--start", type=_parse_date, help="First day (YYYY-MM-DD)")
    parser.add_argument("--end", type=_parse_date, help="Last day (YYYY-MM-DD, default today)")
    parser.add_argument(
        "--group-by", choices=["day", "week", "month"],
        default=DEFAULT_CONFIG["period_mode"], help="Period grouping",
    )
    parser.add_argument(
        "--category", choices=["start", "second", "final"],
        default=DEFAULT_CONFIG["conversion_category"], help="Conversion category",
    )
    parser.add_argument("--tags", nargs="+", help="Tags charted in the conversion series")
    parser.add_argument("--timezone", default=DEFAULT_CONFIG["timezone"], help="Timezone for buckets")
    parser.add_argument("--locale", default=DEFAULT_CONFIG["locale"], help="Label locale (es, en)")
    parser.add_argument("--input", type=Path, help="Read rows from a JSON export instead of Supabase")
    parser.add_argument("--output", type=Path, help="Output JSON path")
    parser.add_argument("--publish", action="store_true", help="Store the result as a dashboard snapshot")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    end = args.end or date.today()
    start = args.start or end - timedelta(days=DEFAULT_CONFIG["lookback_days"])
    if start > end:
        logger.error("--start %s is after --end %s", start, end)
        return 2

    params = AggregateParams(
        period_mode=args.group_by,
        conversion_category=args.category,
        series_tags=tuple(args.tags) if args.tags else None,
        timezone=args.timezone,
        locale=args.locale,
    )

    try:
        results = run_conversation_analysis(
            start, end, params,
            input_path=args.input, output_path=args.output, publish=args.publish,
        )
    except (DashboardError, OSError, json.JSONDecodeError) as e:
        logger.error("Conversation analysis failed: %s", e)
        return 1

    print(f"\nAnalysis complete. {results['record_count']} records, {results['user_count']} users.")
    return 0


# ============================================================================
# Standalone entry point
# ============================================================================

if __name__ == "__main__":
    sys.exit(main())
