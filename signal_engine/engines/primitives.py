"""
Series Primitives

Building blocks shared by every pipeline stage:
- Candle record (immutable, time ascending)
- Fractal swing detection with a symmetric strict lookback
- True range / ATR over the trailing bars
- Trend classification from range comparison

DESIGN:
- Pure functions over a borrowed candle list, no state
- Insufficient data degrades to approximate/neutral values, never raises
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple

from .signal_config import safe_divide
from .signals import Trend


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass(frozen=True)
class Candle:
    """OHLCV candle."""
    open: float
    high: float
    low: float
    close: float
    volume: float
    time: int  # Unix ms

    @classmethod
    def from_kline(cls, row: Sequence) -> "Candle":
        """Build from a Binance kline array [open_time, o, h, l, c, v, ...]."""
        return cls(
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=float(row[5]),
            time=int(row[0]),
        )

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open


class SwingKind(Enum):
    """Swing point type."""
    HIGH = "high"
    LOW = "low"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SwingPoint:
    """A confirmed swing high or swing low."""
    price: float
    index: int  # Index in the candle list it was detected on
    kind: SwingKind
    volume: float


# ============================================================================
# HELPERS
# ============================================================================

def average_body(candles: Sequence[Candle]) -> float:
    """Mean absolute body size, 0.0 for an empty window."""
    return safe_divide(sum(c.body for c in candles), len(candles))


def average_volume(candles: Sequence[Candle]) -> float:
    """Mean volume, 0.0 for an empty window."""
    return safe_divide(sum(c.volume for c in candles), len(candles))


def true_range(candle: Candle, prev_close: float) -> float:
    """True range of a candle against the previous close."""
    return max(
        candle.high - candle.low,
        abs(candle.high - prev_close),
        abs(candle.low - prev_close),
    )


# ============================================================================
# SWINGS / ATR / TREND
# ============================================================================

def find_swing_points(candles: Sequence[Candle], lookback: int = 5) -> List[SwingPoint]:
    """
    Detect fractal swing points.

    A candle is a swing high iff its high is strictly greater than the high of
    every candle within `lookback` bars on both sides; swing lows mirror this.
    The first and last `lookback` bars can never be swings.

    Args:
        candles: Candle series, time ascending
        lookback: Fractal radius

    Returns:
        Swing points ordered by index (a high precedes a low on the same bar)
    """
    swings: List[SwingPoint] = []

    for i in range(lookback, len(candles) - lookback):
        current = candles[i]
        is_swing_high = True
        is_swing_low = True

        for j in range(1, lookback + 1):
            before = candles[i - j]
            after = candles[i + j]
            if before.high >= current.high or after.high >= current.high:
                is_swing_high = False
            if before.low <= current.low or after.low <= current.low:
                is_swing_low = False
            if not is_swing_high and not is_swing_low:
                break

        if is_swing_high:
            swings.append(SwingPoint(current.high, i, SwingKind.HIGH, current.volume))
        if is_swing_low:
            swings.append(SwingPoint(current.low, i, SwingKind.LOW, current.volume))

    return swings


def split_swings(swings: Sequence[SwingPoint]) -> Tuple[List[SwingPoint], List[SwingPoint]]:
    """Split swings into (highs, lows), each ordered by index."""
    highs = [s for s in swings if s.kind is SwingKind.HIGH]
    lows = [s for s in swings if s.kind is SwingKind.LOW]
    return highs, lows


def calculate_atr(candles: Sequence[Candle], period: int = 14) -> float:
    """
    Average True Range over the trailing `period` bars.

    Falls back to the mean high-low range when fewer than `period + 1` bars
    exist, and to 0.0 for an empty series.
    """
    if len(candles) < period + 1:
        return safe_divide(sum(c.high - c.low for c in candles), len(candles))

    true_ranges = [
        true_range(candles[i], candles[i - 1].close) for i in range(1, len(candles))
    ]
    return sum(true_ranges[-period:]) / period


def classify_trend(candles: Sequence[Candle], window: int = 20) -> Trend:
    """
    Compare the extremes of the last `window` bars with the prior `window` bars.

    Higher high and higher low -> BULLISH, lower high and lower low -> BEARISH,
    anything else (including too little data) -> NEUTRAL.
    """
    if len(candles) < window:
        return Trend.NEUTRAL

    recent = candles[-window:]
    older = candles[-2 * window:-window]
    if not older:
        return Trend.NEUTRAL

    recent_high = max(c.high for c in recent)
    recent_low = min(c.low for c in recent)
    older_high = max(c.high for c in older)
    older_low = min(c.low for c in older)

    if recent_high > older_high and recent_low > older_low:
        return Trend.BULLISH
    if recent_high < older_high and recent_low < older_low:
        return Trend.BEARISH
    return Trend.NEUTRAL
