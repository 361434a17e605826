"""
Supabase Client Helper for the AURA conversations dashboard.
Provides connection, paginated conversation retrieval, and snapshot management.

Usage:
    from scripts.lib.supabase_client import fetch_conversations, upsert_snapshot

    rows = fetch_conversations("2025-01-01", "2025-01-31")
    upsert_snapshot("ig_conversations", metrics)
"""
import os
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from scripts.lib.errors import ConfigError, DataFetchError
from scripts.lib.logger import setup_logger
from scripts.lib.utils import retry_on_exception

logger = setup_logger(__name__)

# Load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(PROJECT_ROOT / ".env")

SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_KEY = (
    os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")
    or os.environ.get("SUPABASE_KEY", "")
)

CONVERSATIONS_TABLE = os.environ.get("CONVERSATIONS_TABLE", "ig_conversations")
PAGE_SIZE = int(os.environ.get("CONVERSATIONS_PAGE_SIZE", "1000"))
FETCH_RETRY_ATTEMPTS = 3
FETCH_RETRY_DELAY = 1.0

_client = None


def get_client():
    """Create and return a Supabase client (singleton)."""
    global _client
    if _client is not None:
        return _client

    if not SUPABASE_URL or not SUPABASE_KEY:
        raise ConfigError(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in .env",
            setting="SUPABASE_URL",
        )

    from supabase import create_client
    _client = create_client(SUPABASE_URL, SUPABASE_KEY)
    logger.info("Supabase client connected to %s", SUPABASE_URL)
    return _client


def _day_bounds(start_date: date | str, end_date: date | str) -> tuple[str, str]:
    """Inclusive UTC bounds covering whole days from start_date to end_date."""
    start = start_date.isoformat() if isinstance(start_date, date) else str(start_date)
    end = end_date.isoformat() if isinstance(end_date, date) else str(end_date)
    return f"{start}T00:00:00.000Z", f"{end}T23:59:59.999Z"


def fetch_conversations(
    start_date: date | str,
    end_date: date | str,
    page_size: int = None,
    table: str = None,
) -> List[Dict[str, Any]]:
    """
    Fetch every conversation row created within a date range.

    Pages through the table with ``.range()`` until a short page comes back,
    so ranges larger than the PostgREST row cap are never truncated. Each
    page is retried; a page that keeps failing aborts the whole fetch.

    Args:
        start_date: First day of the range (inclusive).
        end_date: Last day of the range (inclusive).
        page_size: Rows per request (default CONVERSATIONS_PAGE_SIZE).
        table: Source table (default CONVERSATIONS_TABLE).

    Returns:
        All rows ordered by created_at ascending.

    Raises:
        DataFetchError: A page could not be fetched after retries.
    """
    page_size = page_size or PAGE_SIZE
    table = table or CONVERSATIONS_TABLE
    from_ts, to_ts = _day_bounds(start_date, end_date)
    client = get_client()

    logger.info("Fetching %s from %s to %s", table, from_ts, to_ts)

    @retry_on_exception(max_attempts=FETCH_RETRY_ATTEMPTS, delay=FETCH_RETRY_DELAY)
    def _fetch_page(page: int) -> List[Dict[str, Any]]:
        result = (
            client.table(table)
            .select("*")
            .gte("created_at", from_ts)
            .lte("created_at", to_ts)
            .order("created_at", desc=False)
            .range(page * page_size, (page + 1) * page_size - 1)
            .execute()
        )
        return result.data or []

    rows: List[Dict[str, Any]] = []
    page = 0
    while True:
        try:
            batch = _fetch_page(page)
        except Exception as e:
            raise DataFetchError(
                f"Failed to fetch page {page + 1} of {table}: {e}",
                source=table, page=page,
            ) from e

        if not batch:
            break
        rows.extend(batch)
        logger.info("Page %d: fetched %d records", page + 1, len(batch))
        if len(batch) < page_size:
            break
        page += 1

    logger.info("Total records fetched: %d", len(rows))
    return rows


def upsert_snapshot(source: str, data: Dict) -> bool:
    """
    Insert a new dashboard snapshot for a given source.

    Args:
        source: Source identifier (e.g. "ig_conversations").
        data: Full processed metrics dict.

    Returns:
        True on success, False on failure.
    """
    try:
        client = get_client()
        row = {
            "source": source,
            "data": data,
            "generated_at": datetime.now(timezone.utc).isoformat(),
        }
        client.table("dashboard_snapshots").insert(row).execute()
        logger.info("Snapshot inserted for source: %s", source)
        return True
    except Exception as e:
        logger.error("Supabase snapshot insert failed for %s: %s", source, e)
        return False


def get_latest_snapshot(source: str) -> Optional[Dict]:
    """
    Fetch the latest snapshot for a source.

    Args:
        source: Source identifier.

    Returns:
        The data dict from the latest snapshot, or None.
    """
    try:
        client = get_client()
        result = (
            client.table("dashboard_snapshots")
            .select("data, generated_at")
            .eq("source", source)
            .order("generated_at", desc=True)
            .limit(1)
            .execute()
        )
        if result.data:
            return result.data[0].get("data")
        return None
    except Exception as e:
        logger.error("Supabase fetch failed for %s: %s", source, e)
        return None
