"""Direction Classifier.

Quote test against the prevailing midpoint, tick test at the midpoint.
"""

from __future__ import annotations

from decimal import Decimal

from tradesign.constants import Direction
from tradesign.engine.merger import QuoteState


def classify_direction(price: Decimal, quote: QuoteState, tick: Direction | int) -> Direction:
    """
    Infer the trade initiator.

    Args:
        price: Trade price.
        quote: Quote state at the late-report adjusted time.
        tick: Tick-test result for this trade.

    Returns:
        BUY above the midpoint, SELL below it, the tick exactly at it, and
        UNCLASSIFIED when no quote is in force yet.
    """
    if not quote.is_known:
        return Direction.UNCLASSIFIED
    if price < quote.midpoint:
        return Direction.SELL
    if price > quote.midpoint:
        return Direction.BUY
    return Direction(tick)
