"""Lee-Ready Classification Engine.

Runs the full pipeline over a historical trade/quote dataset:

1. aggregate simultaneous same-price prints
2. compact quotes to midpoint revisions
3. per (symbol, date): tick test, late-report adjusted quote lookup,
   quote/tick direction, spread and flow metrics
4. concatenate partitions and sort by (symbol, date, time, price)

Partitions share no state, so they can run on a worker pool. Within a
partition everything runs in time order.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from tradesign.config_loader import AppConfig, ClassificationConfig
from tradesign.constants import REQUIRED_QUOTE_COLUMNS, REQUIRED_TRADE_COLUMNS
from tradesign.data.diagnostics import InputDiagnostics
from tradesign.data.market_data import PartitionKey, QuoteEvent, TradeEvent
from tradesign.data.schema import quotes_from_rows, require_columns, trades_from_rows
from tradesign.engine.aggregator import aggregate_trades
from tradesign.engine.direction import classify_direction
from tradesign.engine.merger import MatchedTrade, merge_partition
from tradesign.engine.metrics import compute_metrics
from tradesign.engine.quotes import compact_quotes
from tradesign.engine.results import ClassificationResult, ClassifiedTrade
from tradesign.engine.tick_test import assign_ticks

logger = logging.getLogger(__name__)

Partition = tuple[PartitionKey, list[TradeEvent], list[QuoteEvent]]


def build_classified_trade(matched: MatchedTrade) -> ClassifiedTrade:
    """Apply the direction rule and metrics to a trade with its quote state."""
    trade = matched.ticked.trade
    quote = matched.quote
    direction = classify_direction(trade.price, quote, matched.tick)
    metrics = compute_metrics(trade.price, trade.volume, direction, quote)

    return ClassifiedTrade(
        symbol=trade.symbol,
        date=trade.date,
        time=trade.time,
        price=trade.price,
        volume=trade.volume,
        trade_count=trade.trade_count,
        bid=quote.bid,
        ask=quote.ask,
        midpoint=quote.midpoint,
        tick=matched.tick,
        direction=direction,
        effective_spread=metrics.effective_spread,
        absolute_spread=metrics.absolute_spread,
        relative_spread=metrics.relative_spread,
        net_order_flow=metrics.net_order_flow,
    )


class LeeReadyClassifier:
    """
    Classify trades as buyer- or seller-initiated.

    Usage:
        classifier = LeeReadyClassifier(config.classification)
        result = classifier.classify(trades, quotes)
        print(result.summary())
    """

    def __init__(self, config: ClassificationConfig | None = None):
        self.config = config or ClassificationConfig()
        self.lag = self.config.late_report_lag

    @classmethod
    def from_app_config(cls, config: AppConfig) -> LeeReadyClassifier:
        return cls(config.classification)

    # ============================================
    # Partition Level
    # ============================================

    def classify_partition(
        self, trades: Sequence[TradeEvent], revisions: Sequence[QuoteEvent]
    ) -> list[ClassifiedTrade]:
        """
        Classify one symbol/day.

        Args:
            trades: Aggregated trades of the partition, sorted by (time, price).
            revisions: Compacted quotes of the partition, sorted by time.
        """
        ticked = assign_ticks(trades)
        matched = merge_partition(ticked, revisions, self.lag)
        return [build_classified_trade(m) for m in matched]

    def _classify_partition(self, partition: Partition) -> list[ClassifiedTrade]:
        key, trades, revisions = partition
        classified = self.classify_partition(trades, revisions)
        logger.debug(
            f"{key.symbol} {key.date}: {len(classified)} trades against {len(revisions)} quote revisions"
        )
        return classified

    def _partitions(
        self,
        trades: Iterable[TradeEvent],
        quotes: Iterable[QuoteEvent],
        diagnostics: InputDiagnostics,
    ) -> list[Partition]:
        """Aggregate, compact and group inputs by (symbol, date)."""
        aggregated = aggregate_trades(trades, diagnostics)
        revisions = compact_quotes(quotes, diagnostics)

        trades_by_key: dict[PartitionKey, list[TradeEvent]] = defaultdict(list)
        for trade in aggregated:
            trades_by_key[trade.partition].append(trade)

        quotes_by_key: dict[PartitionKey, list[QuoteEvent]] = defaultdict(list)
        for quote in revisions:
            quotes_by_key[quote.partition].append(quote)

        # Quote-only partitions produce no output
        partitions = [
            (key, partition_trades, quotes_by_key.get(key, []))
            for key, partition_trades in sorted(trades_by_key.items())
        ]
        diagnostics.partitions += len(partitions)
        return partitions

    # ============================================
    # Dataset Level
    # ============================================

    def iter_partitions(
        self,
        trades: Iterable[TradeEvent],
        quotes: Iterable[QuoteEvent],
        diagnostics: InputDiagnostics | None = None,
    ) -> Iterator[tuple[PartitionKey, list[ClassifiedTrade]]]:
        """Yield classified trades one symbol/day at a time, in (symbol, date) order."""
        diagnostics = diagnostics if diagnostics is not None else InputDiagnostics()
        for partition in self._partitions(trades, quotes, diagnostics):
            yield partition[0], self._classify_partition(partition)

    def classify(
        self,
        trades: Iterable[TradeEvent],
        quotes: Iterable[QuoteEvent],
        diagnostics: InputDiagnostics | None = None,
    ) -> ClassificationResult:
        """
        Classify every trade in the dataset.

        Args:
            trades: Raw trade prints, any order.
            quotes: Raw quote updates, any order.
            diagnostics: Counters already holding row-conversion rejects.

        Returns:
            ClassificationResult sorted by (symbol, date, time, price).
        """
        diagnostics = diagnostics if diagnostics is not None else InputDiagnostics()
        partitions = self._partitions(trades, quotes, diagnostics)

        logger.info(
            f"Classifying {diagnostics.aggregated_trades} trades in {len(partitions)} partitions "
            f"(lag {self.config.late_report_lag_seconds}s, workers {self.config.max_workers})"
        )

        if self.config.is_parallel and len(partitions) > 1:
            with ThreadPoolExecutor(
                max_workers=self.config.max_workers, thread_name_prefix="classifier"
            ) as executor:
                classified_parts = list(executor.map(self._classify_partition, partitions))
        else:
            classified_parts = [self._classify_partition(p) for p in partitions]

        classified = [trade for part in classified_parts for trade in part]
        classified.sort(key=lambda t: t.sort_key)

        result = ClassificationResult(trades=classified, diagnostics=diagnostics)
        result.calculate_metrics()

        logger.info(
            f"Classified {result.total_trades} trades: {result.buys} buys, {result.sells} sells, "
            f"{result.unclassified} unclassified"
        )
        return result

    def classify_rows(
        self, trade_rows: Sequence[dict[str, Any]], quote_rows: Sequence[dict[str, Any]]
    ) -> ClassificationResult:
        """
        Classify tabular input.

        Raises:
            MissingColumnsError: If either table lacks required columns.
        """
        require_columns(trade_rows, REQUIRED_TRADE_COLUMNS, "trade")
        require_columns(quote_rows, REQUIRED_QUOTE_COLUMNS, "quote")

        diagnostics = InputDiagnostics()
        trades = trades_from_rows(trade_rows, diagnostics)
        quotes = quotes_from_rows(quote_rows, diagnostics)
        return self.classify(trades, quotes, diagnostics)


def classify_trades(
    trade_rows: Sequence[dict[str, Any]],
    quote_rows: Sequence[dict[str, Any]],
    config: ClassificationConfig | None = None,
) -> ClassificationResult:
    """
    Convenience function to classify tabular trade and quote data.

    Args:
        trade_rows: Trade-print rows with symbol, date, time, price, volume.
        quote_rows: Quote-update rows with symbol, date, time, bid, ask.
        config: Classification settings, defaults if omitted.

    Returns:
        ClassificationResult.
    """
    return LeeReadyClassifier(config).classify_rows(trade_rows, quote_rows)
