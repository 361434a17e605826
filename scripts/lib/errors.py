"""
Custom error classes for the AURA conversations dashboard.
Structured error handling with error codes across all modules.

Hierarchy:
    DashboardError
    └── DataError
        ├── ConfigError
        ├── DataFetchError
        └── EventInputError
"""


class DashboardError(Exception):
    """Base exception for all dashboard errors."""

    def __init__(self, message: str, code: str = "UNKNOWN", details: dict = None):
        self.code = code
        self.details = details or {}
        super().__init__(f"[{code}] {message}")


# --- Data Errors ---

class DataError(DashboardError):
    """Base class for data processing errors."""
    pass


class ConfigError(DataError):
    """Missing or invalid configuration."""

    def __init__(self, message: str, setting: str = None):
        super().__init__(
            message, code="CONFIG_ERROR",
            details={"setting": setting},
        )


class DataFetchError(DataError):
    """Failed to fetch or load data from storage."""

    def __init__(self, message: str, source: str = None, page: int = None):
        super().__init__(
            message, code="DATA_FETCH_FAILED",
            details={"source": source, "page": page},
        )


class EventInputError(DataError):
    """The event collection handed to the engine is not a list of rows."""

    def __init__(self, received_type: str):
        super().__init__(
            f"Expected a list of events, got {received_type}",
            code="EVENT_INPUT_INVALID",
            details={"received_type": received_type},
        )
