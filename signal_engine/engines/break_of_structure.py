"""
Break-of-Structure Validator

A BOS is a high-conviction close beyond the prior structural extreme:
- Structure level: highest swing high (buy) / lowest swing low (sell) of the
  last 100 bars, ignoring swings formed in the most recent 30 bars
- Conviction: body >= 1.5x and volume >= 1.0x the averages of the 20 bars
  that precede the last 10
- Window: the last 5 bars, oldest first; the first qualifying bar wins
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from .primitives import Candle, SwingKind, average_body, average_volume, find_swing_points
from .signal_config import DEFAULT_CONFIG, SignalEngineConfig, safe_divide
from .signals import Direction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BOSValidation:
    """Outcome of the break-of-structure check."""
    valid: bool
    price: float = 0.0  # Close of the breaking bar
    structure_level: Optional[float] = None
    body_strength: float = 0.0  # Body / average body
    volume_ratio: float = 0.0  # Volume / average volume
    index: Optional[int] = None  # Index of the breaking bar
    description: str = ""


def find_structure_level(
    candles: Sequence[Candle],
    direction: Direction,
    config: Optional[SignalEngineConfig] = None,
) -> Optional[float]:
    """
    Prior structural extreme a BOS must close beyond.

    Returns None when no swing of the needed kind formed before the
    excluded recent bars.
    """
    cfg = config or DEFAULT_CONFIG
    window = candles[-cfg.bos.structure_window:]
    offset = len(candles) - len(window)
    cutoff = len(candles) - cfg.bos.exclude_recent

    kind = SwingKind.HIGH if direction is Direction.BUY else SwingKind.LOW
    prices = [
        s.price
        for s in find_swing_points(window, cfg.swings.bos_lookback)
        if s.kind is kind and s.index + offset < cutoff
    ]
    if not prices:
        return None
    return max(prices) if direction is Direction.BUY else min(prices)


def validate_bos(
    candles: Sequence[Candle],
    direction: Direction,
    config: Optional[SignalEngineConfig] = None,
) -> BOSValidation:
    """
    Validate a break of structure in `direction`.

    Args:
        candles: Working-timeframe candles
        direction: Intended trade direction
        config: Engine configuration

    Returns:
        BOSValidation, invalid with a reason when data or conviction is missing
    """
    cfg = config or DEFAULT_CONFIG
    bos = cfg.bos

    if len(candles) < bos.min_bars:
        return BOSValidation(valid=False, description="Insufficient data for BOS validation")

    level = find_structure_level(candles, direction, cfg)
    if level is None:
        return BOSValidation(valid=False, description="No prior structure level to break")

    recent = candles[-bos.exclude_recent:]
    baseline = recent[:bos.avg_window]
    avg_body = average_body(baseline)
    avg_vol = average_volume(baseline)

    first = len(candles) - bos.scan_bars
    for i in range(first, len(candles)):
        candle = candles[i]
        body_strength = safe_divide(candle.body, avg_body)
        volume_ratio = safe_divide(candle.volume, avg_vol)

        beyond = candle.close > level if direction is Direction.BUY else candle.close < level
        if beyond and body_strength >= bos.body_multiplier and volume_ratio >= bos.volume_multiplier:
            logger.debug("BOS at index %d beyond %.5f", i, level)
            return BOSValidation(
                valid=True,
                price=candle.close,
                structure_level=level,
                body_strength=body_strength,
                volume_ratio=volume_ratio,
                index=i,
                description=(
                    f"Valid BOS at {candle.close:.5f} beyond {level:.5f} "
                    f"(Body: {body_strength:.2f}x, Vol: {volume_ratio:.2f}x)"
                ),
            )

    return BOSValidation(
        valid=False,
        structure_level=level,
        description=(
            f"No valid BOS beyond {level:.5f} "
            f"(needs close beyond structure + {bos.body_multiplier}x body + volume)"
        ),
    )
