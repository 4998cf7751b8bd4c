"""
Unit tests for the higher-timeframe bias analyzer.
"""

import pytest

from conftest import zigzag_candles
from signal_engine.engines.htf_bias import (
    HTFBias,
    PriceZone,
    analyze_htf_structure,
    build_dealing_range,
    get_htf_timeframe,
    resolve_direction,
)
from signal_engine.engines.signals import Bias, Direction, Trend


def bias_with_range(high: float, low: float, bias: Bias = Bias.NONE) -> HTFBias:
    return HTFBias(bias=bias, swing_high=high, swing_low=low, description="")


class TestTimeframeMap:
    """Tests for working -> higher timeframe mapping."""

    @pytest.mark.parametrize(
        "timeframe,expected",
        [
            ("1m", "15m"),
            ("5m", "1h"),
            ("15m", "4h"),
            ("30m", "4h"),
            ("1h", "1D"),
            ("4h", "1D"),
            ("1D", "1W"),
            ("1W", "1W"),
        ],
    )
    def test_mapping(self, timeframe, expected):
        assert get_htf_timeframe(timeframe) == expected

    def test_unmapped_defaults_to_daily(self):
        assert get_htf_timeframe("2h") == "1D"


class TestHTFStructure:
    """Tests for bias classification."""

    def test_bullish(self, bullish_htf):
        bias = analyze_htf_structure(bullish_htf, 128.0)

        assert bias.bias is Bias.BULLISH
        assert bias.direction is Direction.BUY
        assert bias.higher_highs == 3
        assert bias.higher_lows == 4
        assert bias.swing_high == pytest.approx(125.2)
        assert bias.swing_low == pytest.approx(109.8)
        assert bias.description == "BULLISH structure (HH: 3, HL: 4)"

    def test_bearish(self, bearish_htf):
        bias = analyze_htf_structure(bearish_htf, 172.0)

        assert bias.bias is Bias.BEARISH
        assert bias.direction is Direction.SELL
        assert bias.lower_highs == 4
        assert bias.lower_lows == 3
        assert bias.swing_high == pytest.approx(190.2)
        assert bias.swing_low == pytest.approx(174.8)

    def test_insufficient_swings_falls_back(self, two_swing_htf):
        bias = analyze_htf_structure(two_swing_htf, 110.0)

        assert bias.bias is Bias.NONE
        assert bias.insufficient_data
        assert bias.direction is None
        assert bias.swing_high == pytest.approx(115.2)
        assert bias.swing_low == pytest.approx(99.8)

    def test_no_candles_uses_current_price(self):
        bias = analyze_htf_structure([], 250.0)

        assert bias.bias is Bias.NONE
        assert bias.swing_high == 250.0
        assert bias.swing_low == 250.0

    def test_mixed_structure(self):
        candles = zigzag_candles([105, 100, 120, 95, 110, 105, 115, 90, 125])
        bias = analyze_htf_structure(candles, 110.0)

        assert bias.bias is Bias.NONE
        assert not bias.insufficient_data
        assert bias.description.startswith("No clear structure")


class TestDealingRange:
    """Tests for premium/discount classification."""

    def test_premium(self):
        rng = build_dealing_range(bias_with_range(120, 100), 115)

        assert rng.zone is PriceZone.PREMIUM
        assert rng.is_premium
        assert rng.equilibrium == 110
        assert rng.position_pct == pytest.approx(75.0)
        assert rng.range == 20

    def test_discount(self):
        rng = build_dealing_range(bias_with_range(120, 100), 105)
        assert rng.zone is PriceZone.DISCOUNT
        assert rng.is_discount

    def test_equilibrium(self):
        rng = build_dealing_range(bias_with_range(120, 100), 110)
        assert rng.zone is PriceZone.EQUILIBRIUM
        assert not rng.is_premium and not rng.is_discount

    def test_zero_width_range(self):
        rng = build_dealing_range(bias_with_range(100, 100), 100)
        assert rng.zone is PriceZone.EQUILIBRIUM
        assert rng.position_pct == 0.0


class TestResolveDirection:
    """Tests for direction resolution."""

    def test_bias_wins_over_trend(self):
        bias = bias_with_range(120, 100, Bias.BEARISH)
        assert resolve_direction(bias, Trend.BULLISH) is Direction.SELL

    def test_trend_fallback(self):
        bias = bias_with_range(120, 100)
        assert resolve_direction(bias, Trend.BEARISH) is Direction.SELL
        assert resolve_direction(bias, Trend.BULLISH) is Direction.BUY
        assert resolve_direction(bias, Trend.NEUTRAL) is Direction.BUY
