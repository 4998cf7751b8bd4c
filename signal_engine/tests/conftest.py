import math
import os
import sys
from typing import List, Sequence

import pytest


TESTS_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(TESTS_DIR, "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from signal_engine.engines.primitives import Candle  # noqa: E402

BASE_TIME = 1704067200000  # 2024-01-01 00:00 UTC
INTERVAL_MS = 15 * 60 * 1000


def make_candle(
    o: float, h: float, l: float, c: float, v: float = 1000.0, index: int = 0
) -> Candle:
    """Candle `index` bars after BASE_TIME."""
    return Candle(open=o, high=h, low=l, close=c, volume=v, time=BASE_TIME + index * INTERVAL_MS)


def flat_candles(count: int, price: float = 100.0, volume: float = 1000.0, start: int = 0) -> List[Candle]:
    """Doji candles with a constant 2-point range."""
    return [make_candle(price, price + 1, price - 1, price, volume, start + i) for i in range(count)]


def zigzag_candles(pivots: Sequence[float], leg: int = 6, wick: float = 0.2) -> List[Candle]:
    """
    Doji candles walking linearly between pivots, `leg` bars per leg.

    Every interior pivot is a strict fractal swing for radius < leg; the first
    and last pivots sit on the series edges and are never swings.
    """
    values = []
    for a, b in zip(pivots, pivots[1:]):
        values.extend(a + (b - a) * t / leg for t in range(leg))
    values.append(pivots[-1])
    return [make_candle(v, v + wick, v - wick, v, 1000.0, i) for i, v in enumerate(values)]


def wave_candles(count: int, drift: float, amplitude: float = 3.0, base: float = 100.0) -> List[Candle]:
    """Sine wave with drift; candles open at the previous close."""
    values = [base + drift * i + amplitude * math.sin(i / 4) for i in range(count + 1)]
    candles = []
    for i in range(1, count + 1):
        o, c = values[i - 1], values[i]
        candles.append(make_candle(o, max(o, c) + 0.3, min(o, c) - 0.3, c, 1000.0 + 100 * (i % 7), i - 1))
    return candles


BULLISH_PIVOTS = [105, 100, 110, 105, 115, 110, 120, 115, 125, 120, 130]
BEARISH_PIVOTS = [195, 200, 190, 195, 185, 190, 180, 185, 175, 180, 170]


@pytest.fixture
def bullish_htf():
    """HTF zigzag with 3 higher highs and 4 higher lows."""
    return zigzag_candles(BULLISH_PIVOTS)


@pytest.fixture
def bearish_htf():
    """HTF zigzag with 4 lower highs and 3 lower lows."""
    return zigzag_candles(BEARISH_PIVOTS)


@pytest.fixture
def two_swing_htf():
    """HTF zigzag with only two swing highs."""
    return zigzag_candles([105, 100, 110, 105, 115, 110])


@pytest.fixture
def rising_wave():
    """200 working candles oscillating around an up drift."""
    return wave_candles(200, drift=0.05)


@pytest.fixture
def falling_wave():
    """200 working candles oscillating around a down drift."""
    return wave_candles(200, drift=-0.05, base=120.0)
