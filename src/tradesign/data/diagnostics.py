"""Input diagnostics collected during a classification run."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class InputDiagnostics:
    """Counts of records received, rejected and retained."""

    trades_received: int = 0
    malformed_trades: int = 0
    aggregated_trades: int = 0

    quotes_received: int = 0
    malformed_quotes: int = 0
    quote_revisions: int = 0

    partitions: int = 0

    @property
    def malformed_total(self) -> int:
        return self.malformed_trades + self.malformed_quotes
