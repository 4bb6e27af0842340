"""Tabular input schema.

Converts trade-print and quote-update rows (any mapping, e.g. dicts from a
DataFrame's ``to_dict("records")`` or a ``csv.DictReader``) into market data
events, and splits a combined feed into its trade and quote tables.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from tradesign.constants import (
    EVENT_TYPE_COLUMN,
    QUOTE_EVENT_TYPES,
    REQUIRED_QUOTE_COLUMNS,
    REQUIRED_TRADE_COLUMNS,
    TRADE_EVENT_TYPES,
)
from tradesign.data.diagnostics import InputDiagnostics
from tradesign.data.market_data import QuoteEvent, TradeEvent

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]

SECONDS_PATTERN = re.compile(r"\d+(?:\.\d+)?")


class MissingColumnsError(ValueError):
    """Input table lacks required columns. Raised before any processing."""

    def __init__(self, table: str, missing: Sequence[str]) -> None:
        self.table = table
        self.missing = tuple(missing)
        super().__init__(f"{table} table is missing required columns: {', '.join(self.missing)}")


def require_columns(rows: Sequence[Row], columns: Sequence[str], table: str) -> None:
    """
    Check every row carries the required columns.

    Raises:
        MissingColumnsError: If any row lacks a required column.
    """
    missing: set[str] = set()
    for row in rows:
        missing.update(col for col in columns if col not in row)
    if missing:
        raise MissingColumnsError(table, [col for col in columns if col in missing])


# ============================================
# Feed Splitting
# ============================================


def _event_type(row: Row) -> str:
    return str(row.get(EVENT_TYPE_COLUMN, "")).strip().lower()


def select_trade_rows(rows: Iterable[Row]) -> list[Row]:
    """Trade rows of a combined trade/quote feed."""
    return [row for row in rows if _event_type(row) in TRADE_EVENT_TYPES]


def select_quote_rows(rows: Iterable[Row]) -> list[Row]:
    """Quote rows of a combined trade/quote feed."""
    return [row for row in rows if _event_type(row) in QUOTE_EVENT_TYPES]


# ============================================
# Value Parsing
# ============================================


def parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def _seconds_to_time(seconds: float, value: Any) -> time:
    if not 0 <= seconds < 86400:
        raise ValueError(f"Seconds since midnight out of range: {value}")
    return (datetime.min + timedelta(seconds=seconds)).time()


def parse_time(value: Any) -> time:
    """
    Parse a time of day.

    Accepts a ``time``, an ISO string, or seconds since midnight as a number
    or numeric string (CSV readers deliver numbers as text).
    """
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, time):
        return value
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return _seconds_to_time(float(value), value)
    text = str(value).strip()
    if SECONDS_PATTERN.fullmatch(text):
        return _seconds_to_time(float(text), value)
    return time.fromisoformat(text)


def parse_price(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        price = value
    else:
        try:
            price = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"Invalid price: {value!r}") from e
    if not price.is_finite():
        raise ValueError(f"Invalid price: {value!r}")
    return price


def parse_optional_price(value: Any) -> Decimal | None:
    """Missing quote sides arrive as None, empty strings or NaN."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, float) and value != value:
        return None
    return parse_price(value)


def parse_volume(value: Any) -> int:
    volume = Decimal(str(value).strip())
    if not volume.is_finite() or volume != volume.to_integral_value():
        raise ValueError(f"Volume must be an integer, got: {value!r}")
    return int(volume)


# ============================================
# Row Conversion
# ============================================


def trades_from_rows(
    rows: Sequence[Row], diagnostics: InputDiagnostics | None = None
) -> list[TradeEvent]:
    """
    Convert trade-print rows into trade events.

    Rows whose values cannot be parsed are skipped and counted as malformed.
    Value checks (negative volume, non-positive price) are left to the
    aggregator.

    Raises:
        MissingColumnsError: If required columns are absent.
    """
    require_columns(rows, REQUIRED_TRADE_COLUMNS, "trade")

    trades = []
    for row in rows:
        try:
            trades.append(
                TradeEvent(
                    symbol=str(row["symbol"]),
                    date=parse_date(row["date"]),
                    time=parse_time(row["time"]),
                    price=parse_price(row["price"]),
                    volume=parse_volume(row["volume"]),
                )
            )
        except (TypeError, ValueError, InvalidOperation) as e:
            logger.warning(f"Skipping invalid trade row: {e}")
            if diagnostics is not None:
                diagnostics.trades_received += 1
                diagnostics.malformed_trades += 1

    return trades


def quotes_from_rows(
    rows: Sequence[Row], diagnostics: InputDiagnostics | None = None
) -> list[QuoteEvent]:
    """
    Convert quote-update rows into quote events.

    Raises:
        MissingColumnsError: If required columns are absent.
    """
    require_columns(rows, REQUIRED_QUOTE_COLUMNS, "quote")

    quotes = []
    for row in rows:
        try:
            quotes.append(
                QuoteEvent(
                    symbol=str(row["symbol"]),
                    date=parse_date(row["date"]),
                    time=parse_time(row["time"]),
                    bid=parse_optional_price(row["bid"]),
                    ask=parse_optional_price(row["ask"]),
                )
            )
        except (TypeError, ValueError, InvalidOperation) as e:
            logger.warning(f"Skipping invalid quote row: {e}")
            if diagnostics is not None:
                diagnostics.quotes_received += 1
                diagnostics.malformed_quotes += 1

    return quotes
