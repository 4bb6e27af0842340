"""Trade classification engine."""

from tradesign.engine.classifier import LeeReadyClassifier, classify_trades
from tradesign.engine.results import ClassificationResult, ClassifiedTrade

__all__ = [
    "LeeReadyClassifier",
    "classify_trades",
    "ClassificationResult",
    "ClassifiedTrade",
]
