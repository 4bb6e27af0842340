"""Tests for the end-to-end classification engine."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal

import pytest

from tradesign.config_loader import ClassificationConfig
from tradesign.constants import Direction
from tradesign.data.market_data import PartitionKey, QuoteEvent, TradeEvent
from tradesign.data.schema import MissingColumnsError
from tradesign.engine.classifier import LeeReadyClassifier, classify_trades

DAY = date(2024, 3, 1)


def seconds(s: int) -> time:
    return time(s // 3600, (s // 60) % 60, s % 60)


def trade(s: int, price: str, volume: int, symbol: str = "ABC", day: date = DAY) -> TradeEvent:
    return TradeEvent(symbol, day, seconds(s), Decimal(price), volume)


def quote(s: int, bid: str, ask: str, symbol: str = "ABC", day: date = DAY) -> QuoteEvent:
    return QuoteEvent(symbol, day, seconds(s), Decimal(bid), Decimal(ask))


@pytest.fixture
def classifier() -> LeeReadyClassifier:
    return LeeReadyClassifier()


@pytest.fixture
def abc_quotes() -> list[QuoteEvent]:
    return [quote(100, "10.00", "10.10"), quote(200, "10.00", "10.20")]


@pytest.fixture
def abc_trades() -> list[TradeEvent]:
    return [trade(103, "10.05", 100), trade(150, "10.10", 50), trade(250, "10.10", 200)]


def multi_partition_dataset() -> tuple[list[TradeEvent], list[QuoteEvent]]:
    """Three symbols over two days, interleaved."""
    trades = []
    quotes = []
    for day in (DAY, date(2024, 3, 4)):
        for symbol, base in (("ABC", 10), ("XYZ", 20), ("QQQ", 30)):
            quotes += [
                quote(100, f"{base}.00", f"{base}.10", symbol, day),
                quote(160, f"{base}.02", f"{base}.12", symbol, day),
                quote(300, f"{base}.00", f"{base}.20", symbol, day),
            ]
            trades += [
                trade(103, f"{base}.05", 100, symbol, day),
                trade(150, f"{base}.10", 50, symbol, day),
                trade(170, f"{base}.07", 10, symbol, day),
                trade(170, f"{base}.07", 15, symbol, day),
                trade(250, f"{base}.07", 200, symbol, day),
                trade(310, f"{base}.10", 75, symbol, day),
                trade(320, f"{base}.10", 25, symbol, day),
            ]
    return trades, quotes


class TestExampleScenario:
    """One symbol, one day, two quotes and three trades."""

    def test_directions(self, classifier, abc_trades, abc_quotes) -> None:
        result = classifier.classify(abc_trades, abc_quotes)
        assert [t.direction for t in result.trades] == [0, 1, 1]

    def test_first_trade_has_no_quote(self, classifier, abc_trades, abc_quotes) -> None:
        """Shifted time 98 precedes the first quote at 100."""
        first = classifier.classify(abc_trades, abc_quotes).trades[0]
        assert first.midpoint is None
        assert first.effective_spread is None
        assert first.net_order_flow is None

    def test_second_trade_quote_test(self, classifier, abc_trades, abc_quotes) -> None:
        second = classifier.classify(abc_trades, abc_quotes).trades[1]
        assert second.midpoint == Decimal("10.05")
        assert second.direction == Direction.BUY
        assert second.net_order_flow == 50
        assert second.absolute_spread == Decimal("0.10")

    def test_third_trade_falls_back_to_tick(self, classifier, abc_trades, abc_quotes) -> None:
        third = classifier.classify(abc_trades, abc_quotes).trades[2]
        assert third.midpoint == Decimal("10.10")
        assert third.tick == Direction.BUY
        assert third.direction == Direction.BUY
        assert third.effective_spread == Decimal("0")
        assert third.net_order_flow == 200

    def test_original_times_restored(self, classifier, abc_trades, abc_quotes) -> None:
        result = classifier.classify(abc_trades, abc_quotes)
        assert [t.time for t in result.trades] == [seconds(103), seconds(150), seconds(250)]

    def test_lag_is_configurable(self, abc_trades, abc_quotes) -> None:
        """Without the lag the first trade already sees the t=100 quote."""
        classifier = LeeReadyClassifier(ClassificationConfig(late_report_lag_seconds=0))
        first = classifier.classify(abc_trades, abc_quotes).trades[0]
        assert first.midpoint == Decimal("10.05")
        assert first.direction == Direction.UNCLASSIFIED  # at midpoint, tick 0


class TestInvariants:
    """Properties that hold for every classified trade."""

    @pytest.fixture
    def result(self, classifier):
        trades, quotes = multi_partition_dataset()
        return classifier.classify(trades, quotes)

    def test_direction_domain(self, result) -> None:
        assert {int(t.direction) for t in result.trades} <= {-1, 0, 1}

    def test_unclassified_iff_no_quote_or_flat_tick_at_midpoint(self, result) -> None:
        for t in result.trades:
            expected_zero = t.midpoint is None or (t.price == t.midpoint and t.tick == 0)
            assert (t.direction == 0) == expected_zero

    def test_quote_test_dominates(self, result) -> None:
        for t in result.trades:
            if t.midpoint is None:
                continue
            if t.price < t.midpoint:
                assert t.direction == Direction.SELL
            elif t.price > t.midpoint:
                assert t.direction == Direction.BUY

    def test_net_order_flow_sign(self, result) -> None:
        for t in result.trades:
            if t.midpoint is not None:
                assert t.net_order_flow == int(t.direction) * t.volume

    def test_simultaneous_prints_aggregated(self, result) -> None:
        at_170 = [t for t in result.trades if t.time == seconds(170)]
        assert len(at_170) == 6
        assert all(t.volume == 25 and t.trade_count == 2 for t in at_170)

    def test_presentation_order(self, result) -> None:
        keys = [t.sort_key for t in result.trades]
        assert keys == sorted(keys)


class TestPartitionIndependence:
    """A partition classifies the same alone or inside a larger dataset."""

    def test_single_partition_matches_embedded(self, classifier) -> None:
        trades, quotes = multi_partition_dataset()
        key = PartitionKey("XYZ", date(2024, 3, 4))

        embedded = [t for t in classifier.classify(trades, quotes).trades if t.partition == key]
        alone = classifier.classify(
            [t for t in trades if t.partition == key],
            [q for q in quotes if q.partition == key],
        ).trades

        assert alone == embedded
        assert len(alone) == 6

    def test_parallel_matches_sequential(self) -> None:
        trades, quotes = multi_partition_dataset()
        sequential = LeeReadyClassifier().classify(trades, quotes)
        parallel = LeeReadyClassifier(ClassificationConfig(max_workers=4)).classify(trades, quotes)
        assert parallel.trades == sequential.trades

    def test_iter_partitions(self, classifier) -> None:
        trades, quotes = multi_partition_dataset()
        parts = list(classifier.iter_partitions(trades, quotes))

        assert [key for key, _ in parts] == sorted(key for key, _ in parts)
        assert len(parts) == 6
        streamed = sorted((t for _, part in parts for t in part), key=lambda t: t.sort_key)
        assert streamed == classifier.classify(trades, quotes).trades

    def test_quote_only_partition_produces_nothing(self, classifier) -> None:
        result = classifier.classify([trade(150, "10.10", 50)], [quote(100, "20.00", "20.10", "XYZ")])
        assert len(result.trades) == 1
        assert result.trades[0].midpoint is None
        assert result.diagnostics.partitions == 1


class TestClassificationResult:
    """Tests for summary metrics and downstream views."""

    def test_summary_counts(self, classifier, abc_trades, abc_quotes) -> None:
        result = classifier.classify(abc_trades, abc_quotes)

        assert result.total_trades == 3
        assert result.buys == 2
        assert result.sells == 0
        assert result.unclassified == 1
        assert result.without_quote == 1
        assert result.total_volume == 350
        assert result.unclassified_volume == 100
        assert result.unclassified_volume_share == pytest.approx(100 / 350)
        assert result.net_order_flow == 250
        assert result.mean_effective_spread == Decimal("0.05")

    def test_summary_text(self, classifier, abc_trades, abc_quotes) -> None:
        text = classifier.classify(abc_trades, abc_quotes).summary()
        assert "Buys: 2 | Sells: 0 | Unclassified: 1" in text
        assert "Net Order Flow: 250" in text
        assert "Malformed records excluded: 0" in text

    def test_views_exclude_unclassified(self, classifier, abc_trades, abc_quotes) -> None:
        result = classifier.classify(abc_trades, abc_quotes)

        flow = result.order_flow_view()
        spread = result.spread_view()

        assert len(flow) == 2
        assert set(flow[0]) == {"symbol", "date", "time", "price", "volume", "direction"}
        assert set(spread[0]) == {"symbol", "date", "time", "absolute_spread", "midpoint", "direction"}
        assert all(row["direction"] != 0 for row in flow + spread)

    def test_to_rows_keeps_unclassified(self, classifier, abc_trades, abc_quotes) -> None:
        rows = classifier.classify(abc_trades, abc_quotes).to_rows()
        assert len(rows) == 3
        assert rows[0]["direction"] == 0
        assert rows[0]["relative_spread"] is None

    def test_empty_dataset(self, classifier) -> None:
        result = classifier.classify([], [])
        assert result.trades == []
        assert result.unclassified_volume_share == 0.0
        assert result.mean_effective_spread is None


class TestClassifyRows:
    """Tests for tabular entry points."""

    def test_classify_trades_rows(self) -> None:
        trade_rows = [
            {"symbol": "ABC", "date": "2024-03-01", "time": 103, "price": "10.05", "volume": 100},
            {"symbol": "ABC", "date": "2024-03-01", "time": 150, "price": "10.10", "volume": 50},
            {"symbol": "ABC", "date": "2024-03-01", "time": 250, "price": "10.10", "volume": 200},
            {"symbol": "ABC", "date": "2024-03-01", "time": 260, "price": "10.10", "volume": -1},
        ]
        quote_rows = [
            {"symbol": "ABC", "date": "2024-03-01", "time": 100, "bid": "10.00", "ask": "10.10"},
            {"symbol": "ABC", "date": "2024-03-01", "time": 200, "bid": "10.00", "ask": "10.20"},
            {"symbol": "ABC", "date": "2024-03-01", "time": 210, "bid": "10.30", "ask": "10.20"},
        ]
        result = classify_trades(trade_rows, quote_rows)

        assert [int(t.direction) for t in result.trades] == [0, 1, 1]
        assert result.diagnostics.trades_received == 4
        assert result.diagnostics.malformed_trades == 1
        assert result.diagnostics.malformed_quotes == 1

    def test_missing_quote_columns_fail_before_processing(self) -> None:
        trade_rows = [{"symbol": "ABC", "date": "2024-03-01", "time": 103, "price": "10.05", "volume": 100}]
        quote_rows = [{"symbol": "ABC", "date": "2024-03-01", "time": 100, "bid": "10.00"}]

        with pytest.raises(MissingColumnsError) as exc_info:
            classify_trades(trade_rows, quote_rows)
        assert exc_info.value.missing == ("ask",)

    def test_non_finite_decimal_values_counted_as_malformed(self) -> None:
        """Decimal NaN in a trade price or quote side is excluded, not fatal."""
        trade_rows = [
            {"symbol": "ABC", "date": "2024-03-01", "time": 103, "price": Decimal("NaN"), "volume": 100},
            {"symbol": "ABC", "date": "2024-03-01", "time": 150, "price": Decimal("10.10"), "volume": 50},
        ]
        quote_rows = [
            {"symbol": "ABC", "date": "2024-03-01", "time": 100, "bid": Decimal("10.00"), "ask": Decimal("10.10")},
            {"symbol": "ABC", "date": "2024-03-01", "time": 120, "bid": Decimal("NaN"), "ask": Decimal("10.20")},
        ]
        result = classify_trades(trade_rows, quote_rows)

        assert result.total_trades == 1
        assert result.trades[0].direction == Direction.BUY
        assert result.diagnostics.malformed_trades == 1
        assert result.diagnostics.malformed_quotes == 1
        assert "Malformed records excluded: 2" in result.summary()

    def test_seconds_read_as_text(self) -> None:
        trade_rows = [{"symbol": "ABC", "date": "2024-03-01", "time": "34200.5", "price": "10.05", "volume": 100}]
        quote_rows = [{"symbol": "ABC", "date": "2024-03-01", "time": "34190", "bid": "10.00", "ask": "10.10"}]
        result = classify_trades(trade_rows, quote_rows)

        assert result.trades[0].time == time(9, 30, 0, 500000)
        assert result.trades[0].midpoint == Decimal("10.05")
