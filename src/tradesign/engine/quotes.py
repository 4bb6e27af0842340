"""Quote Compactor.

Reduces a raw quote feed to the revisions that move the midpoint.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from tradesign.data.diagnostics import InputDiagnostics
from tradesign.data.market_data import PartitionKey, QuoteEvent

logger = logging.getLogger(__name__)


def compact_quotes(
    quotes: Iterable[QuoteEvent], diagnostics: InputDiagnostics | None = None
) -> list[QuoteEvent]:
    """
    Keep only quotes whose midpoint differs from the last retained one.

    Quotes are sorted by (symbol, date, time); updates sharing a timestamp
    keep their feed order. The first quote of each symbol/day is always
    retained, even with an unknown midpoint. Crossed or non-positive quotes
    are dropped and counted.

    Args:
        quotes: Raw quote updates in any order.
        diagnostics: Optional counters to update.

    Returns:
        Retained quote revisions, time-ordered within each partition.
    """
    valid = []
    received = 0
    malformed = 0

    for quote in quotes:
        received += 1
        if quote.is_malformed:
            malformed += 1
            logger.debug(f"Dropping malformed quote: {quote}")
            continue
        valid.append(quote)

    if malformed:
        logger.warning(f"Excluded {malformed} malformed quotes of {received}")

    valid.sort(key=lambda q: (q.symbol, q.date, q.time))

    revisions: list[QuoteEvent] = []
    current: PartitionKey | None = None

    for quote in valid:
        if quote.partition != current:
            current = quote.partition
            revisions.append(quote)
        elif quote.midpoint != revisions[-1].midpoint:
            revisions.append(quote)

    if diagnostics is not None:
        diagnostics.quotes_received += received
        diagnostics.malformed_quotes += malformed
        diagnostics.quote_revisions += len(revisions)

    logger.debug(f"Compacted {len(valid)} quotes to {len(revisions)} revisions")
    return revisions
