"""
Higher-Timeframe Bias Analyzer

Derives the structural bias of the higher timeframe from its swing sequence
and the dealing range that frames premium/discount pricing:

- BULLISH: at least 2 higher-high and 2 higher-low transitions
- BEARISH: at least 2 lower-high and 2 lower-low transitions
- NONE:    anything else, or fewer than 3 swings on either side

The dealing range is the max of the last 3 swing highs and the min of the last
3 swing lows. When swings are insufficient it falls back to the extremes of
the last 50 candles.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

from .primitives import Candle, find_swing_points, split_swings
from .signal_config import DEFAULT_CONFIG, SignalEngineConfig, safe_divide
from .signals import Bias, Direction, Trend

logger = logging.getLogger(__name__)


HTF_TIMEFRAME_MAP: Dict[str, str] = {
    "1m": "15m",
    "5m": "1h",
    "15m": "4h",
    "30m": "4h",
    "1h": "1D",
    "4h": "1D",
    "1D": "1W",
    "1W": "1W",
}

DEFAULT_HTF = "1D"


def get_htf_timeframe(timeframe: str) -> str:
    """Map a working timeframe to its higher timeframe (unmapped -> 1D)."""
    return HTF_TIMEFRAME_MAP.get(timeframe, DEFAULT_HTF)


# ============================================================================
# DATA CLASSES
# ============================================================================

class PriceZone(Enum):
    """Where the current price sits inside the dealing range."""
    PREMIUM = "PREMIUM"
    DISCOUNT = "DISCOUNT"
    EQUILIBRIUM = "EQUILIBRIUM"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class HTFBias:
    """Structural bias of the higher timeframe."""
    bias: Bias
    swing_high: float
    swing_low: float
    description: str
    higher_highs: int = 0
    higher_lows: int = 0
    lower_highs: int = 0
    lower_lows: int = 0
    insufficient_data: bool = False

    @property
    def direction(self) -> Optional[Direction]:
        if self.bias is Bias.BULLISH:
            return Direction.BUY
        if self.bias is Bias.BEARISH:
            return Direction.SELL
        return None


@dataclass(frozen=True)
class DealingRange:
    """Swing-defined range with premium/discount classification."""
    high: float
    low: float
    equilibrium: float
    zone: PriceZone
    position_pct: float  # Current price as % of the range from its low

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def is_premium(self) -> bool:
        return self.zone is PriceZone.PREMIUM

    @property
    def is_discount(self) -> bool:
        return self.zone is PriceZone.DISCOUNT


# ============================================================================
# ANALYSIS
# ============================================================================

def _fallback_range(candles: Sequence[Candle], window: int, current_price: float) -> Tuple[float, float]:
    recent = candles[-window:]
    if not recent:
        return current_price, current_price
    return max(c.high for c in recent), min(c.low for c in recent)


def analyze_htf_structure(
    htf_candles: Sequence[Candle],
    current_price: float,
    config: Optional[SignalEngineConfig] = None,
) -> HTFBias:
    """
    Classify the higher-timeframe structure.

    Args:
        htf_candles: Higher-timeframe candles, time ascending
        current_price: Live price, used for the fallback range when there are
            no candles at all
        config: Engine configuration

    Returns:
        HTFBias with the dealing-range extremes
    """
    cfg = config or DEFAULT_CONFIG
    swings = find_swing_points(htf_candles, cfg.swings.htf_lookback)
    highs, lows = split_swings(swings)

    if len(highs) < cfg.htf.min_swings or len(lows) < cfg.htf.min_swings:
        swing_high, swing_low = _fallback_range(htf_candles, cfg.htf.fallback_window, current_price)
        logger.debug(
            "HTF swings insufficient (highs=%d, lows=%d), using fallback range",
            len(highs),
            len(lows),
        )
        return HTFBias(
            bias=Bias.NONE,
            swing_high=swing_high,
            swing_low=swing_low,
            description="Insufficient swing points for HTF bias determination",
            insufficient_data=True,
        )

    higher_highs = sum(1 for a, b in zip(highs, highs[1:]) if b.price > a.price)
    lower_highs = sum(1 for a, b in zip(highs, highs[1:]) if b.price < a.price)
    higher_lows = sum(1 for a, b in zip(lows, lows[1:]) if b.price > a.price)
    lower_lows = sum(1 for a, b in zip(lows, lows[1:]) if b.price < a.price)

    swing_high = max(h.price for h in highs[-cfg.htf.range_swings:])
    swing_low = min(l.price for l in lows[-cfg.htf.range_swings:])
    counts = dict(
        higher_highs=higher_highs,
        higher_lows=higher_lows,
        lower_highs=lower_highs,
        lower_lows=lower_lows,
    )
    needed = cfg.htf.min_transitions

    if higher_highs >= needed and higher_lows >= needed:
        return HTFBias(
            bias=Bias.BULLISH,
            swing_high=swing_high,
            swing_low=swing_low,
            description=f"BULLISH structure (HH: {higher_highs}, HL: {higher_lows})",
            **counts,
        )

    if lower_highs >= needed and lower_lows >= needed:
        return HTFBias(
            bias=Bias.BEARISH,
            swing_high=swing_high,
            swing_low=swing_low,
            description=f"BEARISH structure (LH: {lower_highs}, LL: {lower_lows})",
            **counts,
        )

    return HTFBias(
        bias=Bias.NONE,
        swing_high=swing_high,
        swing_low=swing_low,
        description=(
            f"No clear structure (HH:{higher_highs} HL:{higher_lows} "
            f"LH:{lower_highs} LL:{lower_lows})"
        ),
        **counts,
    )


def build_dealing_range(bias: HTFBias, current_price: float) -> DealingRange:
    """Classify `current_price` against the midpoint of the bias range."""
    equilibrium = (bias.swing_high + bias.swing_low) / 2

    if current_price > equilibrium:
        zone = PriceZone.PREMIUM
    elif current_price < equilibrium:
        zone = PriceZone.DISCOUNT
    else:
        zone = PriceZone.EQUILIBRIUM

    position_pct = safe_divide(current_price - bias.swing_low, bias.swing_high - bias.swing_low) * 100

    return DealingRange(
        high=bias.swing_high,
        low=bias.swing_low,
        equilibrium=equilibrium,
        zone=zone,
        position_pct=position_pct,
    )


def resolve_direction(bias: HTFBias, trend: Trend) -> Direction:
    """HTF bias decides; without one the working-timeframe trend does (buy unless bearish)."""
    if bias.direction is not None:
        return bias.direction
    return Direction.SELL if trend is Trend.BEARISH else Direction.BUY
