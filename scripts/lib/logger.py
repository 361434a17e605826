"""
Centralized logging for the AURA conversations dashboard.
Provides consistent logging across all modules with console + daily file output.

Usage:
    from scripts.lib.logger import setup_logger, get_logger
    logger = setup_logger(__name__)
    logger.info("Aggregation started")
"""
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

# Project root: aura-dashboard/
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs"


def _file_logging_enabled() -> bool:
    return os.getenv("LOG_TO_FILE", "true").lower() == "true"


def setup_logger(
    name: str,
    level: str = None,
    log_to_file: bool = None,
    log_dir: Path = None,
) -> logging.Logger:
    """
    Configure and return a logger instance.

    Args:
        name: Logger name (typically __name__ from calling module).
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Defaults to the LOG_LEVEL environment variable, then INFO.
        log_to_file: Whether to also log to a file. Defaults to LOG_TO_FILE.
        log_dir: Directory for log files (default: project_root/logs).

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    level = level or os.getenv("LOG_LEVEL", "INFO")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console handler
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_to_file is None:
        log_to_file = _file_logging_enabled()

    # File handler
    if log_to_file:
        target_dir = Path(log_dir) if log_dir else LOG_DIR
        target_dir.mkdir(parents=True, exist_ok=True)

        log_file = target_dir / f"{datetime.now().strftime('%Y%m%d')}_aura_dashboard.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get an existing logger or create one with default settings."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        return setup_logger(name)
    return logger
