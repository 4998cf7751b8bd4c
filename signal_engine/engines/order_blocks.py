"""
Order Block / Fair Value Gap Detector

Displacement candles (body >= 1.5x the 50-bar average body) mark aggressive
order flow. From them:

- Order block: the opposite-coloured candle right before a displacement.
  Bullish block = bearish candle before a bullish displacement, and vice
  versa. A bullish block is mitigated once price trades below its low, a
  bearish block once price trades above its high. Mitigation is evaluated
  against the price supplied at query time and never cached.
- Fair value gap: three-candle imbalance where candle i-2 and candle i do
  not overlap. Detected over the whole history; tagged when bar i-1 or i is
  a displacement; only the most recent 10 are kept.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import FrozenSet, List, Optional, Sequence

from .primitives import Candle, average_body
from .signal_config import DEFAULT_CONFIG, SignalEngineConfig
from .signals import Direction

logger = logging.getLogger(__name__)


# ============================================================================
# DATA CLASSES
# ============================================================================

class ZoneKind(Enum):
    """Supply/demand side of a zone."""
    BULLISH = "bullish"
    BEARISH = "bearish"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def for_direction(cls, direction: Direction) -> "ZoneKind":
        return cls.BULLISH if direction is Direction.BUY else cls.BEARISH


@dataclass(frozen=True)
class OrderBlock:
    """Candle preceding a displacement, treated as a supply/demand origin."""
    kind: ZoneKind
    price: float  # Low of a bullish block, high of a bearish block
    high: float
    low: float
    origin_index: int
    mitigated: bool = False

    @property
    def midpoint(self) -> float:
        return (self.high + self.low) / 2

    def is_mitigated_at(self, current_price: float) -> bool:
        if self.kind is ZoneKind.BULLISH:
            return current_price < self.low
        return current_price > self.high

    def with_price(self, current_price: float) -> "OrderBlock":
        """Copy of the block with mitigation evaluated at `current_price`."""
        return replace(self, mitigated=self.is_mitigated_at(current_price))

    def supports(self, direction: Direction, current_price: float) -> bool:
        """Unmitigated, same side as the trade, and on the retracement side of price."""
        if self.mitigated or self.kind is not ZoneKind.for_direction(direction):
            return False
        if direction is Direction.BUY:
            return self.price < current_price
        return self.price > current_price


@dataclass(frozen=True)
class FairValueGap:
    """Three-candle price imbalance."""
    kind: ZoneKind
    bottom: float
    top: float
    index: int  # Index of the third candle
    created_in_displacement: bool = False

    @property
    def midpoint(self) -> float:
        return (self.top + self.bottom) / 2

    def lies_behind(self, direction: Direction, current_price: float) -> bool:
        """Same side as the trade and entirely on the retracement side of price."""
        if self.kind is not ZoneKind.for_direction(direction):
            return False
        if direction is Direction.BUY:
            return self.top < current_price
        return self.bottom > current_price

    def supports(self, direction: Direction, current_price: float) -> bool:
        return self.created_in_displacement and self.lies_behind(direction, current_price)


# ============================================================================
# DETECTION
# ============================================================================

def find_displacement_candles(
    candles: Sequence[Candle],
    config: Optional[SignalEngineConfig] = None,
) -> List[int]:
    """
    Indices (into `candles`) of displacement bars within the trailing window.
    """
    cfg = (config or DEFAULT_CONFIG).displacement
    recent = candles[-cfg.window:]
    offset = len(candles) - len(recent)
    avg = average_body(recent)
    if avg <= 0:
        return []

    return [offset + i for i, c in enumerate(recent) if c.body >= avg * cfg.body_multiplier]


def find_order_blocks(
    candles: Sequence[Candle],
    displacement_indices: Sequence[int],
    current_price: float,
) -> List[OrderBlock]:
    """
    Order blocks at the origin of each displacement, mitigation evaluated at
    `current_price`.
    """
    blocks: List[OrderBlock] = []

    for idx in displacement_indices:
        if idx <= 0 or idx >= len(candles):
            continue

        displacement = candles[idx]
        prev = candles[idx - 1]

        if displacement.is_bullish and prev.is_bearish:
            block = OrderBlock(ZoneKind.BULLISH, prev.low, prev.high, prev.low, idx - 1)
        elif displacement.is_bearish and prev.is_bullish:
            block = OrderBlock(ZoneKind.BEARISH, prev.high, prev.high, prev.low, idx - 1)
        else:
            continue

        blocks.append(block.with_price(current_price))

    return blocks


def find_fair_value_gaps(
    candles: Sequence[Candle],
    displacement_indices: Sequence[int],
    config: Optional[SignalEngineConfig] = None,
) -> List[FairValueGap]:
    """
    Three-candle gaps over the whole history, most recent `max_fvgs` kept.
    """
    cfg = (config or DEFAULT_CONFIG).displacement
    displaced: FrozenSet[int] = frozenset(displacement_indices)
    gaps: List[FairValueGap] = []

    for i in range(2, len(candles)):
        first = candles[i - 2]
        third = candles[i]
        tagged = (i - 1) in displaced or i in displaced

        if first.low > third.high:
            gaps.append(FairValueGap(ZoneKind.BEARISH, third.high, first.low, i, tagged))
        if first.high < third.low:
            gaps.append(FairValueGap(ZoneKind.BULLISH, first.high, third.low, i, tagged))

    return gaps[-cfg.max_fvgs:]


def has_retest_zone(
    order_blocks: Sequence[OrderBlock],
    fvgs: Sequence[FairValueGap],
    direction: Direction,
    current_price: float,
) -> bool:
    """True when an order block or displacement FVG supports `direction`."""
    return any(ob.supports(direction, current_price) for ob in order_blocks) or any(
        fvg.supports(direction, current_price) for fvg in fvgs
    )
