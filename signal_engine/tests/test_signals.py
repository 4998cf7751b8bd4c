"""
Unit tests for the shared enums.
"""

import pytest

from signal_engine.engines.signals import Bias, Direction, OrderType, Trend, coerce_order_type


class TestEnums:
    """Tests for enum members and their string form."""

    def test_direction_members(self):
        assert list(Direction) == [Direction.BUY, Direction.SELL]
        assert str(Direction.BUY) == "buy"
        assert f"{Direction.SELL}" == "sell"

    def test_labels(self):
        assert str(Bias.NONE) == "NONE"
        assert str(Trend.NEUTRAL) == "neutral"


class TestCoerceOrderType:
    """Tests for order-type parsing."""

    @pytest.mark.parametrize("raw", ["limit", "LIMIT", " Limit ", OrderType.LIMIT])
    def test_accepts(self, raw):
        assert coerce_order_type(raw) is OrderType.LIMIT

    def test_rejects_unknown(self):
        with pytest.raises(ValueError):
            coerce_order_type("stop")
