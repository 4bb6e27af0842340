"""Spread and order-flow metrics for a classified trade."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from tradesign.constants import Direction
from tradesign.engine.merger import QuoteState


@dataclass(frozen=True)
class TradeMetrics:
    """Derived metrics. None means undefined (no quote in force), never zero."""

    effective_spread: Decimal | None = None
    absolute_spread: Decimal | None = None
    relative_spread: Decimal | None = None
    net_order_flow: int | None = None


def compute_metrics(
    price: Decimal, volume: int, direction: Direction | int, quote: QuoteState
) -> TradeMetrics:
    """
    Compute spreads and signed volume.

    absolute_spread = ask - bid
    relative_spread = absolute_spread / price
    effective_spread = 2 * |price - midpoint|
    net_order_flow = direction * volume
    """
    if not quote.is_known:
        return TradeMetrics()

    absolute_spread = None
    relative_spread = None
    if quote.bid is not None and quote.ask is not None:
        absolute_spread = quote.ask - quote.bid
        relative_spread = absolute_spread / price

    return TradeMetrics(
        effective_spread=abs(price - quote.midpoint) * 2,
        absolute_spread=absolute_spread,
        relative_spread=relative_spread,
        net_order_flow=int(direction) * volume,
    )
