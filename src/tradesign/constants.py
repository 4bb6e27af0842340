"""Core constants for tradesign."""

from enum import Enum, IntEnum


class Direction(IntEnum):
    """Inferred trade initiator."""

    BUY = 1
    SELL = -1
    UNCLASSIFIED = 0


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogFormat(str, Enum):
    """Log line format."""

    TEXT = "text"
    JSON = "json"


# ============================================
# Input Schema
# ============================================

REQUIRED_TRADE_COLUMNS = ("symbol", "date", "time", "price", "volume")
REQUIRED_QUOTE_COLUMNS = ("symbol", "date", "time", "bid", "ask")

EVENT_TYPE_COLUMN = "event_type"
TRADE_EVENT_TYPES = frozenset({"t", "trade"})
QUOTE_EVENT_TYPES = frozenset({"q", "quote"})

# ============================================
# Default Values
# ============================================

DEFAULT_LATE_REPORT_LAG_SECONDS = 5.0
DEFAULT_MAX_WORKERS = 1

# ============================================
# Application Constants
# ============================================

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_FORMAT_JSON = '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'
