"""
Unit tests for the session / volatility filter.

Tests:
- Market category detection by symbol pattern
- Per-category session windows
- Volume expansion and low-volume regimes
- Session hour resolution
"""

from datetime import datetime, timezone
from typing import List

import pytest

from conftest import flat_candles
from signal_engine.engines.primitives import Candle
from signal_engine.engines.session_filter import (
    MarketCategory,
    apply_session_filter,
    identify_market_type,
    resolve_session_hour,
)


def at_hour(hour: int) -> datetime:
    return datetime(2024, 1, 2, hour, 30, tzinfo=timezone.utc)


def create_volume_candles(recent_volume: float) -> List[Candle]:
    """60 flat candles whose last 20 trade `recent_volume`."""
    return flat_candles(40) + flat_candles(20, volume=recent_volume, start=40)


class TestMarketType:
    """Tests for symbol classification."""

    @pytest.mark.parametrize(
        "symbol,expected",
        [
            ("BTCUSDT", MarketCategory.CRYPTO),
            ("ethbtc", MarketCategory.CRYPTO),
            ("EURUSD", MarketCategory.FOREX),
            ("GBPJPY", MarketCategory.FOREX),
            ("XAUUSD", MarketCategory.FOREX),
            ("US30", MarketCategory.INDICES),
            ("NAS100", MarketCategory.INDICES),
            ("CRUDE", MarketCategory.COMMODITIES),
            ("COPPER", MarketCategory.COMMODITIES),
            ("AAPL", MarketCategory.STOCKS),
        ],
    )
    def test_identify(self, symbol, expected):
        assert identify_market_type(symbol) is expected


class TestCrypto:
    """Tests for the 24/7 crypto regime."""

    def test_killzone_bonus(self):
        result = apply_session_filter(MarketCategory.CRYPTO, flat_candles(60), at_hour(9))

        assert result.confidence_adjustment == 5
        assert "Killzone" in result.description
        assert not result.volume_expansion
        assert result.atr_ratio == pytest.approx(1.0)
        assert result.volume_ratio == pytest.approx(1.0)

    def test_outside_killzone_neutral(self):
        result = apply_session_filter(MarketCategory.CRYPTO, flat_candles(60), at_hour(3))
        assert result.confidence_adjustment == 0
        assert result.description.startswith("24/7 market")

    def test_volume_expansion(self):
        result = apply_session_filter(MarketCategory.CRYPTO, create_volume_candles(2000), at_hour(12))

        assert result.volume_expansion
        assert result.volume_ratio == pytest.approx(2.0)
        assert result.confidence_adjustment == 5

    def test_low_volume(self):
        result = apply_session_filter(MarketCategory.CRYPTO, create_volume_candles(500), at_hour(12))

        assert not result.volume_expansion
        assert result.confidence_adjustment == -5
        assert "Low volume" in result.description


class TestForex:
    """Tests for forex sessions."""

    def test_london_ny_overlap(self):
        result = apply_session_filter(MarketCategory.FOREX, flat_candles(60), at_hour(14))
        assert result.confidence_adjustment == 10
        assert result.description.startswith("London-NY Overlap")

    def test_london_only(self):
        result = apply_session_filter(MarketCategory.FOREX, flat_candles(60), at_hour(9))
        assert result.confidence_adjustment == 5
        assert result.description.startswith("London Session")

    def test_asian_session_ignores_expansion(self):
        result = apply_session_filter(MarketCategory.FOREX, create_volume_candles(2000), at_hour(3))

        assert result.confidence_adjustment == -10
        assert not result.volume_expansion
        assert result.volume_ratio == pytest.approx(2.0)


class TestStocksAndIndices:
    """Tests for exchange-hour categories."""

    def test_stocks_midday(self):
        result = apply_session_filter(MarketCategory.STOCKS, flat_candles(60), at_hour(17))
        assert result.confidence_adjustment == -10

    def test_stocks_open(self):
        result = apply_session_filter(MarketCategory.STOCKS, flat_candles(60), at_hour(15))
        assert result.confidence_adjustment == 5

    def test_stocks_closed(self):
        result = apply_session_filter(MarketCategory.STOCKS, create_volume_candles(2000), at_hour(3))
        assert result.confidence_adjustment == -15
        assert not result.volume_expansion

    def test_stocks_midday_keeps_expansion(self):
        result = apply_session_filter(MarketCategory.STOCKS, create_volume_candles(2000), at_hour(17))
        assert result.volume_expansion

    def test_indices_session(self):
        result = apply_session_filter(MarketCategory.INDICES, flat_candles(60), at_hour(15))
        assert result.confidence_adjustment == 5
        assert result.description.startswith("NY session active")

    def test_indices_off_session(self):
        result = apply_session_filter(MarketCategory.INDICES, flat_candles(60), at_hour(2))
        assert result.confidence_adjustment == -10


class TestCommodities:
    """Tests for commodity sessions."""

    def test_optimal_hours(self):
        result = apply_session_filter(MarketCategory.COMMODITIES, flat_candles(60), at_hour(10))

        assert result.confidence_adjustment == 5
        assert result.description.startswith("Commodity session (optimal hours)")

    def test_off_peak(self):
        result = apply_session_filter(MarketCategory.COMMODITIES, flat_candles(60), at_hour(23))
        assert result.confidence_adjustment == -5


class TestSessionHour:
    """Tests for session hour resolution."""

    def test_from_as_of(self):
        assert resolve_session_hour(flat_candles(5), at_hour(7)) == 7

    def test_naive_as_of_is_utc(self):
        assert resolve_session_hour([], datetime(2024, 1, 2, 18, 0)) == 18

    def test_from_last_candle(self):
        candles = flat_candles(57)  # last bar opens at 14:00 UTC
        assert candles[-1].time == 1704117600000
        assert resolve_session_hour(candles) == 14

    def test_unknown_without_time(self):
        result = apply_session_filter(MarketCategory.FOREX, [], None)

        assert result.hour_utc is None
        assert result.confidence_adjustment == 0
        assert result.description == "Session time unknown - no session adjustment"

    def test_description_carries_hour(self):
        result = apply_session_filter(MarketCategory.FOREX, flat_candles(60), at_hour(14))
        assert result.hour_utc == 14
        assert "[14:00 UTC, ATR 1.00x, Vol 1.00x]" in result.description
