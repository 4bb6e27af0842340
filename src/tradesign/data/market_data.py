"""Market data structures and types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import NamedTuple


class PartitionKey(NamedTuple):
    """A single security on a single trading day."""

    symbol: str
    date: date


@dataclass(frozen=True)
class TradeEvent:
    """Trade print, or several prints collapsed at one (symbol, date, time, price)."""

    symbol: str
    date: date
    time: time
    price: Decimal
    volume: int
    trade_count: int = 1

    @property
    def key(self) -> tuple[str, date, time, Decimal]:
        return (self.symbol, self.date, self.time, self.price)

    @property
    def partition(self) -> PartitionKey:
        return PartitionKey(self.symbol, self.date)

    @property
    def timestamp(self) -> datetime:
        return datetime.combine(self.date, self.time)

    @property
    def is_malformed(self) -> bool:
        return self.volume < 0 or not self.price.is_finite() or self.price <= 0


@dataclass(frozen=True)
class QuoteEvent:
    """Best bid/ask update. Midpoint is fixed at construction."""

    symbol: str
    date: date
    time: time
    bid: Decimal | None
    ask: Decimal | None
    midpoint: Decimal | None = field(init=False)

    def __post_init__(self) -> None:
        if self.bid is None or self.ask is None:
            midpoint = None
        elif not (self.bid.is_finite() and self.ask.is_finite()):
            midpoint = None
        else:
            midpoint = (self.bid + self.ask) / 2
        object.__setattr__(self, "midpoint", midpoint)

    @property
    def partition(self) -> PartitionKey:
        return PartitionKey(self.symbol, self.date)

    @property
    def timestamp(self) -> datetime:
        return datetime.combine(self.date, self.time)

    @property
    def is_malformed(self) -> bool:
        """Crossed book, or a non-finite or non-positive side."""
        for side in (self.bid, self.ask):
            if side is not None and (not side.is_finite() or side <= 0):
                return True
        if self.bid is not None and self.ask is not None:
            return self.ask < self.bid
        return False
