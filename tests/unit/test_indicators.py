"""Tests for window indicators."""

from typing import List, Sequence

import pytest

from tick_analyzer.models.market_models import Tick
from tick_analyzer.services.market.indicators import IndicatorEngine, momentum, rsi, sma, volatility


def _ticks(prices: Sequence[float]) -> List[Tick]:
    return [Tick(symbol="R_100", epoch=1_700_000_000 + i, price=float(p)) for i, p in enumerate(prices)]


class TestSMA:
    def test_constant_price_equals_price(self):
        ticks = _ticks([123.45] * 60)
        for period in (1, 5, 20, 50, 60):
            assert sma(ticks, period) == 123.45

    @pytest.mark.parametrize("price", [0.1, 0.3, 0.7, 9.99, 1234.567])
    def test_constant_price_is_exact_for_decimal_quotes(self, price):
        ticks = _ticks([price] * 60)
        assert sma(ticks, 20) == price
        assert sma(ticks, 50) == price

    def test_uses_last_period_prices(self):
        ticks = _ticks(range(10, 30))
        assert sma(ticks, 20) == pytest.approx(19.5)
        assert sma(ticks, 5) == pytest.approx(27.0)

    def test_insufficient_samples(self):
        assert sma(_ticks(range(19)), 20) is None
        assert sma([], 1) is None


class TestRSI:
    def test_needs_period_plus_one_samples(self):
        assert rsi(_ticks(range(14)), 14) is None
        assert rsi(_ticks(range(15)), 14) is not None

    def test_strictly_increasing_is_100(self):
        assert rsi(_ticks(range(100, 130))) == 100.0

    def test_strictly_decreasing_is_0(self):
        assert rsi(_ticks(range(130, 100, -1))) == 0.0

    def test_flat_series_is_100(self):
        # No losses at all
        assert rsi(_ticks([50.0] * 20)) == 100.0

    def test_alternating_series_is_50(self):
        assert rsi(_ticks([10, 11] * 8)) == pytest.approx(50.0)

    def test_averages_divide_by_period_not_by_count(self):
        # 11 flat changes, +1, +1, -1: gain 2/14, loss 1/14 -> rs 2
        ticks = _ticks([10.0] * 12 + [11.0, 12.0, 11.0])
        assert rsi(ticks, 14) == pytest.approx(100.0 - 100.0 / 3.0)

    def test_only_recent_changes_count(self):
        # Old crash is outside the 14-change lookback
        ticks = _ticks([200.0, 100.0] + [100.0 + i for i in range(1, 16)])
        assert rsi(ticks, 14) == 100.0

    def test_always_within_bounds(self):
        prices = [100, 103, 101, 99, 104, 104, 98, 97, 105, 110, 90, 91, 95, 94, 96, 99, 102, 88]
        value = rsi(_ticks(prices))
        assert value is not None
        assert 0.0 <= value <= 100.0


class TestVolatility:
    def test_constant_series_is_zero(self):
        assert volatility(_ticks([42.0] * 25)) == 0.0

    @pytest.mark.parametrize("price", [0.1, 0.3, 0.7, 9.99, 1234.567])
    def test_constant_decimal_quotes_are_exactly_zero(self, price):
        assert volatility(_ticks([price] * 20)) == 0.0

    def test_population_standard_deviation(self):
        assert volatility(_ticks([2, 4, 4, 4, 5, 5, 7, 9]), 8) == pytest.approx(2.0)

    def test_insufficient_samples(self):
        assert volatility(_ticks([1.0] * 19)) is None


class TestMomentum:
    def test_percent_change_from_lookback(self):
        ticks = _ticks([100.0] * 9 + [102.0])
        assert momentum(ticks, 10) == pytest.approx(2.0)

    def test_lookback_reads_period_samples_from_end(self):
        ticks = _ticks(range(10, 30))
        # prices[-10] == 20
        assert momentum(ticks, 10) == pytest.approx(45.0)

    def test_unavailable_below_period(self):
        assert momentum(_ticks([1.0] * 9), 10) is None

    def test_zero_base_price_is_unavailable(self):
        ticks = _ticks([0.0] + [1.0] * 9)
        assert momentum(ticks, 10) is None


class TestIndicatorEngine:
    def test_compute_with_short_window(self):
        ind = IndicatorEngine().compute(_ticks(range(10, 30)))

        assert ind.sma20 == pytest.approx(19.5)
        assert ind.sma50 is None
        assert ind.rsi14 == 100.0
        assert ind.volatility20 == pytest.approx(5.766281297335398)
        assert ind.momentum10 == pytest.approx(45.0)

    def test_empty_window_has_no_indicators(self):
        ind = IndicatorEngine().compute([])
        assert (ind.sma20, ind.sma50, ind.rsi14, ind.volatility20, ind.momentum10) == (None,) * 5

    def test_rejects_invalid_periods(self):
        with pytest.raises(ValueError):
            IndicatorEngine(rsi_period=0)
