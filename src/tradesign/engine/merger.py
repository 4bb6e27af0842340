"""Stream Merger & Late-Report Adjuster.

Pairs each trade with the quote state that was in force when it executed.
Trade prints reach the tape later than the quote updates they traded
against, so the lookup uses the trade time minus a fixed lag. The output
keeps the original trade time.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from tradesign.constants import Direction
from tradesign.data.market_data import PartitionKey, QuoteEvent
from tradesign.engine.tick_test import TickedTrade


@dataclass(frozen=True)
class QuoteState:
    """Best quote outstanding at a point in time. Unknown before the first revision."""

    bid: Decimal | None = None
    ask: Decimal | None = None
    midpoint: Decimal | None = None
    quoted_at: datetime | None = None

    @property
    def is_known(self) -> bool:
        return self.midpoint is not None

    @classmethod
    def from_quote(cls, quote: QuoteEvent) -> QuoteState:
        return cls(bid=quote.bid, ask=quote.ask, midpoint=quote.midpoint, quoted_at=quote.timestamp)


UNKNOWN_QUOTE = QuoteState()


@dataclass(frozen=True)
class MatchedTrade:
    """Trade, its tick and the quote state found at the adjusted time."""

    ticked: TickedTrade
    quote: QuoteState
    lookup_time: datetime

    @property
    def tick(self) -> Direction:
        return self.ticked.tick


@dataclass
class QuoteCursor:
    """
    Walks one partition's quote revisions forward in time.

    Holds the last bid, ask and midpoint seen. Never moves backwards, so
    lookups must come in non-decreasing time order.
    """

    revisions: Sequence[QuoteEvent]
    position: int = 0
    state: QuoteState = UNKNOWN_QUOTE

    def advance_to(self, at: datetime) -> QuoteState:
        """Apply every revision stamped at or before ``at``."""
        while self.position < len(self.revisions) and self.revisions[self.position].timestamp <= at:
            self.state = QuoteState.from_quote(self.revisions[self.position])
            self.position += 1
        return self.state


def merge_partition(
    trades: Sequence[TickedTrade],
    revisions: Sequence[QuoteEvent],
    lag: timedelta,
) -> list[MatchedTrade]:
    """
    Attach quote state to each trade of a single symbol/day.

    Args:
        trades: Ticked trades of one partition, sorted by time.
        revisions: Compacted quotes of the same partition, sorted by time.
        lag: Late-report adjustment subtracted from each trade time.

    Returns:
        One MatchedTrade per input trade, in input order.
    """
    cursor = QuoteCursor(revisions)
    matched = []

    for ticked in trades:
        lookup_time = ticked.trade.timestamp - lag
        matched.append(
            MatchedTrade(ticked=ticked, quote=cursor.advance_to(lookup_time), lookup_time=lookup_time)
        )

    return matched


def merge_streams(
    trades: Iterable[TickedTrade],
    revisions: Iterable[QuoteEvent],
    lag: timedelta,
) -> list[MatchedTrade]:
    """Merge multi-partition streams; each (symbol, date) is merged on its own."""
    quotes_by_partition: dict[PartitionKey, list[QuoteEvent]] = defaultdict(list)
    for quote in revisions:
        quotes_by_partition[quote.partition].append(quote)

    trades_by_partition: dict[PartitionKey, list[TickedTrade]] = defaultdict(list)
    for ticked in trades:
        trades_by_partition[ticked.trade.partition].append(ticked)

    matched = []
    for key, partition_trades in trades_by_partition.items():
        matched.extend(merge_partition(partition_trades, quotes_by_partition.get(key, []), lag))
    return matched
