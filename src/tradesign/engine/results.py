"""Classification Results and Classified Trade Records."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, time
from decimal import Decimal
from typing import Any

from tradesign.constants import Direction
from tradesign.data.diagnostics import InputDiagnostics
from tradesign.data.market_data import PartitionKey


@dataclass(frozen=True)
class ClassifiedTrade:
    """Record of one aggregated trade after classification."""

    symbol: str
    date: date
    time: time  # original reporting time, not the adjusted lookup time
    price: Decimal
    volume: int
    trade_count: int

    # Quote state in force at the adjusted time
    bid: Decimal | None
    ask: Decimal | None
    midpoint: Decimal | None

    tick: Direction
    direction: Direction

    # Derived metrics, None when no quote was in force
    effective_spread: Decimal | None
    absolute_spread: Decimal | None
    relative_spread: Decimal | None
    net_order_flow: int | None

    @property
    def partition(self) -> PartitionKey:
        return PartitionKey(self.symbol, self.date)

    @property
    def sort_key(self) -> tuple[str, date, time, Decimal]:
        return (self.symbol, self.date, self.time, self.price)

    @property
    def is_classified(self) -> bool:
        return self.direction != Direction.UNCLASSIFIED

    @property
    def has_quote(self) -> bool:
        return self.midpoint is not None

    def to_dict(self) -> dict[str, Any]:
        row = asdict(self)
        row["tick"] = int(self.tick)
        row["direction"] = int(self.direction)
        return row


@dataclass
class ClassificationResult:
    """Classified-trade table with diagnostics and summary metrics."""

    trades: list[ClassifiedTrade] = field(default_factory=list)
    diagnostics: InputDiagnostics = field(default_factory=InputDiagnostics)

    # Counts
    total_trades: int = 0
    buys: int = 0
    sells: int = 0
    unclassified: int = 0
    without_quote: int = 0

    # Volume
    total_volume: int = 0
    buy_volume: int = 0
    sell_volume: int = 0
    unclassified_volume: int = 0
    net_order_flow: int = 0
    unclassified_volume_share: float = 0.0

    # Spreads over classified trades with a quote
    mean_effective_spread: Decimal | None = None
    mean_relative_spread: Decimal | None = None

    def calculate_metrics(self) -> None:
        """Calculate all summary metrics from trades."""
        self.total_trades = len(self.trades)
        self.buys = sum(1 for t in self.trades if t.direction == Direction.BUY)
        self.sells = sum(1 for t in self.trades if t.direction == Direction.SELL)
        self.unclassified = self.total_trades - self.buys - self.sells
        self.without_quote = sum(1 for t in self.trades if not t.has_quote)

        self.total_volume = sum(t.volume for t in self.trades)
        self.buy_volume = sum(t.volume for t in self.trades if t.direction == Direction.BUY)
        self.sell_volume = sum(t.volume for t in self.trades if t.direction == Direction.SELL)
        self.unclassified_volume = self.total_volume - self.buy_volume - self.sell_volume
        self.net_order_flow = sum(t.net_order_flow or 0 for t in self.trades)

        if self.total_volume > 0:
            self.unclassified_volume_share = self.unclassified_volume / self.total_volume

        effective = [t.effective_spread for t in self.trades if t.is_classified and t.has_quote]
        if effective:
            self.mean_effective_spread = sum(effective) / len(effective)

        relative = [
            t.relative_spread
            for t in self.trades
            if t.is_classified and t.relative_spread is not None
        ]
        if relative:
            self.mean_relative_spread = sum(relative) / len(relative)

    def classified(self) -> list[ClassifiedTrade]:
        """Trades with a non-zero direction."""
        return [t for t in self.trades if t.is_classified]

    def to_rows(self) -> list[dict[str, Any]]:
        """Full classified-trade table as plain dicts, unclassified rows included."""
        return [t.to_dict() for t in self.trades]

    def order_flow_view(self) -> list[dict[str, Any]]:
        """Price-impact regression input: signed trades only."""
        return [
            {
                "symbol": t.symbol,
                "date": t.date,
                "time": t.time,
                "price": t.price,
                "volume": t.volume,
                "direction": int(t.direction),
            }
            for t in self.classified()
        ]

    def spread_view(self) -> list[dict[str, Any]]:
        """Spread decomposition input: signed trades only."""
        return [
            {
                "symbol": t.symbol,
                "date": t.date,
                "time": t.time,
                "absolute_spread": t.absolute_spread,
                "midpoint": t.midpoint,
                "direction": int(t.direction),
            }
            for t in self.classified()
        ]

    def summary(self) -> str:
        """Generate text summary of results."""
        diag = self.diagnostics
        lines = [
            f"Partitions: {diag.partitions}",
            f"Trade prints: {diag.trades_received} ({diag.malformed_trades} malformed) "
            f"-> {diag.aggregated_trades} aggregated",
            f"Quotes: {diag.quotes_received} ({diag.malformed_quotes} malformed) "
            f"-> {diag.quote_revisions} revisions",
            f"Malformed records excluded: {diag.malformed_total}",
            "",
            f"Classified Trades: {self.total_trades}",
            f"Buys: {self.buys} | Sells: {self.sells} | Unclassified: {self.unclassified}",
            f"No quote in force: {self.without_quote}",
            f"Volume: {self.total_volume} (buy {self.buy_volume}, sell {self.sell_volume})",
            f"Unclassified Volume: {self.unclassified_volume} ({self.unclassified_volume_share:.1%})",
            f"Net Order Flow: {self.net_order_flow}",
        ]

        if self.mean_effective_spread is not None:
            lines.append(f"Mean Effective Spread: {self.mean_effective_spread:.4f}")
        if self.mean_relative_spread is not None:
            lines.append(f"Mean Relative Spread: {self.mean_relative_spread:.6f}")

        return "\n".join(lines)
