"""
Unit tests for entry, stop and target derivation.
"""

import pytest

from conftest import flat_candles, zigzag_candles
from signal_engine.engines.order_blocks import FairValueGap, OrderBlock, ZoneKind
from signal_engine.engines.signal_config import SignalEngineConfig, TradeSetupThresholds
from signal_engine.engines.signals import Direction, OrderType
from signal_engine.engines.trade_setup import generate_trade_setup, price_decimals, swing_stop


def bullish_block(mitigated: bool = False) -> OrderBlock:
    return OrderBlock(ZoneKind.BULLISH, 99.7, 100.3, 99.7, 20, mitigated=mitigated)


def bullish_gap() -> FairValueGap:
    return FairValueGap(ZoneKind.BULLISH, 100.3, 102.9, 22, created_in_displacement=True)


class TestSwingStop:
    """Tests for the structural stop."""

    def test_buy_below_lowest_swing(self):
        candles = zigzag_candles([105, 100, 110, 105, 115, 110])
        assert swing_stop(candles, Direction.BUY) == pytest.approx(99.8 * 0.998)

    def test_sell_above_highest_swing(self):
        candles = zigzag_candles([105, 100, 110, 105, 115, 110])
        assert swing_stop(candles, Direction.SELL) == pytest.approx(115.2 * 1.002)

    def test_no_swings(self):
        assert swing_stop(flat_candles(30), Direction.BUY) is None
        assert swing_stop([], Direction.SELL) is None


class TestMarketSetup:
    """Tests for market-order setups."""

    def test_atr_stop_buy(self):
        setup = generate_trade_setup(flat_candles(60), Direction.BUY, OrderType.MARKET, 100.0)

        assert setup.entry_price == 100.0
        assert setup.entry_source == "market"
        assert setup.atr == pytest.approx(2.0)
        assert setup.stop_distance == pytest.approx(3.0)
        assert setup.stop_loss == 97.0
        assert setup.take_profit_1 == 106.0
        assert setup.take_profit_2 == 109.0
        assert setup.take_profit_3 == 115.0
        assert (setup.tp1_percentage, setup.tp2_percentage, setup.tp3_percentage) == (6.0, 9.0, 15.0)
        assert setup.risk_reward_ratio == 3.3
        assert setup.is_buy

    def test_atr_stop_sell(self):
        setup = generate_trade_setup(flat_candles(60), Direction.SELL, OrderType.MARKET, 100.0)

        assert setup.stop_loss == 103.0
        assert setup.take_profit_1 == 94.0
        assert setup.take_profit_3 == 85.0
        assert setup.take_profit_1 > setup.take_profit_2 > setup.take_profit_3
        assert not setup.is_buy

    def test_minimum_stop_percentage(self):
        setup = generate_trade_setup([], Direction.BUY, OrderType.MARKET, 100.0)

        assert setup.atr == 0.0
        assert setup.stop_loss == 99.19999
        assert 100.0 - setup.stop_loss >= setup.stop_distance
        assert setup.take_profit_1 == 101.6
        assert setup.tp1_percentage == 1.6

    def test_swing_stop_dominates(self):
        candles = zigzag_candles([105, 100, 110, 105, 115, 110])
        setup = generate_trade_setup(candles, Direction.BUY, OrderType.MARKET, 110.0)

        assert setup.stop_loss == pytest.approx(99.6004)
        assert setup.stop_distance == pytest.approx(110.0 - 99.8 * 0.998)

    def test_custom_multiples(self):
        config = SignalEngineConfig(trade_setup=TradeSetupThresholds(tp_multiples=(1.0, 2.0, 3.0)))
        setup = generate_trade_setup(flat_candles(60), Direction.BUY, OrderType.MARKET, 100.0, config=config)

        assert setup.take_profit_1 == 103.0
        assert setup.risk_reward_ratio == 2.0


class TestLimitSetup:
    """Tests for limit-order entry derivation."""

    def test_order_block_entry(self):
        setup = generate_trade_setup(
            flat_candles(60), Direction.BUY, OrderType.LIMIT, 103.0, order_blocks=[bullish_block()]
        )
        assert setup.entry_price == pytest.approx(100.0)
        assert setup.entry_source == "order block"

    def test_mitigated_block_skipped(self):
        setup = generate_trade_setup(
            flat_candles(60),
            Direction.BUY,
            OrderType.LIMIT,
            103.2,
            order_blocks=[bullish_block(mitigated=True)],
            fvgs=[bullish_gap()],
        )
        assert setup.entry_price == pytest.approx(101.6)
        assert setup.entry_source == "fvg"

    def test_offset_entry(self):
        setup = generate_trade_setup(flat_candles(60), Direction.BUY, OrderType.LIMIT, 100.0)

        assert setup.entry_price == 99.5
        assert setup.entry_source == "offset"
        assert setup.stop_loss == 96.5

    def test_offset_entry_sell(self):
        setup = generate_trade_setup(flat_candles(60), Direction.SELL, OrderType.LIMIT, 100.0)
        assert setup.entry_price == 100.5

    def test_market_ignores_zones(self):
        setup = generate_trade_setup(
            flat_candles(60), Direction.BUY, OrderType.MARKET, 103.0, order_blocks=[bullish_block()]
        )
        assert setup.entry_price == 103.0


class TestPricePrecision:
    """Tests for price rounding."""

    def test_decimals_scale_with_price(self):
        assert price_decimals(95000.0) == 5
        assert price_decimals(100.0) == 5
        assert price_decimals(0.5) == 6
        assert price_decimals(0.0000123) == 10
        assert price_decimals(0.0) == 5

    @pytest.mark.parametrize("direction", [Direction.BUY, Direction.SELL])
    def test_low_priced_levels_stay_distinct(self, direction):
        setup = generate_trade_setup([], direction, OrderType.MARKET, 0.0000123)

        assert setup.entry_price == 0.0000123
        levels = [setup.stop_loss, setup.entry_price, setup.take_profit_1, setup.take_profit_2, setup.take_profit_3]
        if direction is Direction.SELL:
            levels.reverse()
        assert levels == sorted(set(levels))
        assert abs(setup.entry_price - setup.stop_loss) >= setup.stop_distance
        assert setup.tp1_percentage == 1.6

    def test_buy_stop_rounds_down(self):
        setup = generate_trade_setup([], Direction.BUY, OrderType.MARKET, 100.000006)

        assert setup.entry_price == 100.00001
        assert setup.stop_loss == 99.2
        assert setup.entry_price - setup.stop_loss >= setup.stop_distance
        assert setup.stop_distance >= setup.entry_price * 0.8 / 100

    def test_sell_stop_rounds_up(self):
        setup = generate_trade_setup([], Direction.SELL, OrderType.MARKET, 100.000006)

        assert setup.entry_price == 100.00001
        assert setup.stop_loss == 100.80002
        assert setup.stop_loss - setup.entry_price >= setup.stop_distance
