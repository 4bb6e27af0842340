"""Trade Aggregator.

Collapses prints sharing (symbol, date, time, price) into one trade with
summed volume and print count.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from itertools import groupby

from tradesign.data.diagnostics import InputDiagnostics
from tradesign.data.market_data import TradeEvent

logger = logging.getLogger(__name__)


def aggregate_trades(
    prints: Iterable[TradeEvent], diagnostics: InputDiagnostics | None = None
) -> list[TradeEvent]:
    """
    Aggregate simultaneous same-price prints.

    Output is sorted by (symbol, date, time, price) regardless of input
    order. Prints with negative volume or non-positive price are dropped and
    counted. Already-aggregated input passes through unchanged.

    Args:
        prints: Raw or aggregated trade events.
        diagnostics: Optional counters to update.

    Returns:
        One TradeEvent per distinct key.
    """
    valid = []
    received = 0
    malformed = 0

    for trade in prints:
        received += 1
        if trade.is_malformed:
            malformed += 1
            logger.debug(f"Dropping malformed trade print: {trade}")
            continue
        valid.append(trade)

    if malformed:
        logger.warning(f"Excluded {malformed} malformed trade prints of {received}")

    valid.sort(key=lambda t: t.key)

    aggregated = []
    for (symbol, day, at, price), group in groupby(valid, key=lambda t: t.key):
        members = list(group)
        aggregated.append(
            TradeEvent(
                symbol=symbol,
                date=day,
                time=at,
                price=price,
                volume=sum(t.volume for t in members),
                trade_count=sum(t.trade_count for t in members),
            )
        )

    if diagnostics is not None:
        diagnostics.trades_received += received
        diagnostics.malformed_trades += malformed
        diagnostics.aggregated_trades += len(aggregated)

    return aggregated
