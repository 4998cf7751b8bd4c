"""
Unit tests for the wave-count filter.
"""

import pytest

from conftest import zigzag_candles
from signal_engine.engines.elliott_wave import apply_elliott_wave_filter


class TestWaveFilter:
    """Tests for wave leg comparison."""

    def test_wave5_exhaustion_blocks(self):
        candles = zigzag_candles([105, 100, 110, 105, 130, 120, 125, 122, 124, 120])
        result = apply_elliott_wave_filter(candles)

        assert result.block
        assert result.wave == "Wave 5"
        assert result.description == "Wave 5 exhaustion - NO ENTRY"
        assert result.reason == "Wave 5 detected - exhaustion phase"
        assert result.wave1 == pytest.approx(10.4)
        assert result.wave3 == pytest.approx(25.4)
        assert result.wave5 == pytest.approx(5.4)

    def test_mid_wave3_blocks(self):
        candles = zigzag_candles([105, 100, 110, 105, 130, 120, 125])
        result = apply_elliott_wave_filter(candles)

        assert result.block
        assert result.wave == "Wave 3"
        assert result.description == "Wave 3 already in motion - too late for entry"
        assert result.wave5 == 0.0

    def test_corrective_structure_passes(self):
        candles = zigzag_candles([105, 100, 130, 120, 125, 118, 128, 120])
        result = apply_elliott_wave_filter(candles)

        assert not result.block
        assert result.wave == "Wave 2 or 4"
        assert result.wave1 > result.wave3

    def test_insufficient_swings_allow_trade(self):
        candles = zigzag_candles([105, 100, 110, 105])
        result = apply_elliott_wave_filter(candles)

        assert not result.block
        assert result.wave == "Unknown"
        assert result.description == "Wave count uncertain - allowing trade"

    def test_empty(self):
        assert not apply_elliott_wave_filter([]).block
