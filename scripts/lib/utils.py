"""
Utility functions for the AURA conversations dashboard.
Atomic file writes and retry logic.

Usage:
    from scripts.lib.utils import atomic_write_json, retry_on_exception
"""
import json
import os
import time
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict

from scripts.lib.logger import get_logger

logger = get_logger(__name__)


def atomic_write_json(data: Dict, file_path: str | Path, indent: int = 2) -> bool:
    """
    Write JSON data to file atomically using temp file + rename.
    Prevents data corruption if the program crashes during write.

    Args:
        data: Dictionary to serialize as JSON.
        file_path: Target file path.
        indent: JSON indentation level.

    Returns:
        True if successful, False otherwise.
    """
    file_path = Path(file_path)
    temp_path = file_path.with_suffix(file_path.suffix + ".tmp")

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=indent, default=str)

        os.replace(temp_path, file_path)
        logger.debug("Atomically wrote JSON to %s", file_path)
        return True

    except (OSError, TypeError, ValueError) as e:
        logger.error("Failed to write JSON to %s: %s", file_path, e)
        if temp_path.exists():
            temp_path.unlink(missing_ok=True)
        return False


def retry_on_exception(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: tuple = (Exception,),
):
    """
    Decorator that retries a function on specified exceptions.

    Args:
        max_attempts: Maximum number of attempts.
        delay: Initial delay between retries in seconds.
        backoff: Multiplier for delay after each retry.
        exceptions: Tuple of exception types to catch.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            current_delay = delay
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        logger.error(
                            "%s failed after %d attempts: %s",
                            func.__name__, max_attempts, e, exc_info=True,
                        )
                        raise
                    logger.warning(
                        "%s failed (attempt %d/%d): %s. Retrying in %.1fs...",
                        func.__name__, attempt, max_attempts, e, current_delay,
                    )
                    time.sleep(current_delay)
                    current_delay *= backoff
        return wrapper
    return decorator
