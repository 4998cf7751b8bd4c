"""
Liquidity Module - Equal Highs/Lows and Sweeps

Two stages of the pipeline live here:

1. Liquidity pool identification
   Swing highs (lows) within a small % tolerance of each other are treated as
   one pool of resting orders. Clustering is first-found greedy: the earliest
   unclaimed swing seeds a cluster and claims every later unclaimed swing
   within tolerance of the seed. A swing belongs to at most one pool per side.
   This is not globally optimal clustering.

2. Liquidity sweep validation
   A raid through a pool on the side opposite to the trade (lows for a buy,
   highs for a sell), a close back on the pool's side, and a displacement
   candle right after the raid.

Outcomes are graded FULL / PARTIAL / NONE.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .primitives import Candle, SwingKind, SwingPoint, average_body, find_swing_points, split_swings
from .signal_config import DEFAULT_CONFIG, SignalEngineConfig, safe_divide
from .signals import Direction

logger = logging.getLogger(__name__)


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass(frozen=True)
class LiquidityPool:
    """Cluster of near-equal swing highs or lows."""
    price: float  # Mean of member prices
    kind: SwingKind
    indices: Tuple[int, ...]  # Member swing indices (within the pool window)

    @property
    def touches(self) -> int:
        return len(self.indices)


@dataclass(frozen=True)
class LiquidityPools:
    """Equal-high and equal-low pools of one candle window."""
    highs: Tuple[LiquidityPool, ...] = ()
    lows: Tuple[LiquidityPool, ...] = ()

    @property
    def total(self) -> int:
        return len(self.highs) + len(self.lows)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def opposing(self, direction: Direction) -> Tuple[LiquidityPool, ...]:
        """Pools a trade in `direction` expects to be raided first."""
        return self.lows if direction is Direction.BUY else self.highs


class SweepGrade(Enum):
    """Quality of a liquidity sweep."""
    FULL = "FULL"  # Pierced, reclaimed, displacement after
    PARTIAL = "PARTIAL"  # Pierced, missing reclaim or displacement
    NONE = "NONE"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class LiquiditySweep:
    """Result of the liquidity sweep validation."""
    grade: SweepGrade
    swept_price: float = 0.0
    closed_inside: bool = False
    has_displacement: bool = False
    sweep_index: Optional[int] = None  # Index in the full candle list
    description: str = ""

    @property
    def swept(self) -> bool:
        return self.grade is not SweepGrade.NONE


# ============================================================================
# POOLS
# ============================================================================

def _cluster(swings: Sequence[SwingPoint], kind: SwingKind, tolerance_pct: float, min_members: int) -> List[LiquidityPool]:
    pools: List[LiquidityPool] = []
    claimed = set()

    for i, seed in enumerate(swings):
        if i in claimed:
            continue

        members = [i]
        for j in range(i + 1, len(swings)):
            if j in claimed:
                continue
            pct_diff = safe_divide(abs(seed.price - swings[j].price), seed.price) * 100
            if pct_diff <= tolerance_pct:
                members.append(j)

        if len(members) >= min_members:
            claimed.update(members)
            prices = [swings[m].price for m in members]
            pools.append(LiquidityPool(
                price=sum(prices) / len(prices),
                kind=kind,
                indices=tuple(swings[m].index for m in members),
            ))

    return pools


def identify_liquidity_pools(
    candles: Sequence[Candle],
    config: Optional[SignalEngineConfig] = None,
) -> LiquidityPools:
    """
    Cluster equal highs and equal lows of the trailing window.

    Args:
        candles: Working-timeframe candles
        config: Engine configuration (window, tolerance, swing radius)

    Returns:
        LiquidityPools with highs and lows in seed order
    """
    cfg = config or DEFAULT_CONFIG
    recent = candles[-cfg.liquidity.window:]
    swings = find_swing_points(recent, cfg.swings.liquidity_lookback)
    highs, lows = split_swings(swings)

    pools = LiquidityPools(
        highs=tuple(_cluster(highs, SwingKind.HIGH, cfg.liquidity.tolerance_pct, cfg.liquidity.min_members)),
        lows=tuple(_cluster(lows, SwingKind.LOW, cfg.liquidity.tolerance_pct, cfg.liquidity.min_members)),
    )
    logger.debug("Liquidity pools: %d highs, %d lows", len(pools.highs), len(pools.lows))
    return pools


# ============================================================================
# SWEEPS
# ============================================================================

def _pierced(candle: Candle, pool: LiquidityPool, direction: Direction) -> bool:
    return candle.low < pool.price if direction is Direction.BUY else candle.high > pool.price


def _reclaimed(candle: Candle, pool: LiquidityPool, direction: Direction) -> bool:
    return candle.close > pool.price if direction is Direction.BUY else candle.close < pool.price


def validate_liquidity_sweep(
    candles: Sequence[Candle],
    pools: LiquidityPools,
    direction: Direction,
    current_price: float,
    config: Optional[SignalEngineConfig] = None,
) -> LiquiditySweep:
    """
    Look for a raid-and-reclaim of the opposing pools in the trailing bars.

    Pools are tried nearest to `current_price` first; within a pool the
    trailing bars are scanned oldest to newest and the first pierce decides.

    Args:
        candles: Working-timeframe candles
        pools: Pools from identify_liquidity_pools()
        direction: Intended trade direction
        current_price: Live price used to order pools
        config: Engine configuration

    Returns:
        LiquiditySweep graded FULL, PARTIAL or NONE
    """
    cfg = (config or DEFAULT_CONFIG).sweep
    candidates = pools.opposing(direction)
    side_name = "equal lows" if direction is Direction.BUY else "equal highs"

    if not candidates:
        return LiquiditySweep(grade=SweepGrade.NONE, description=f"No {side_name} to sweep")

    recent = list(candles[-cfg.scan_window:])
    offset = len(candles) - len(recent)
    avg_body = average_body(recent[-cfg.avg_body_window:])
    start = max(0, len(recent) - cfg.recent_bars)

    ordered = sorted(candidates, key=lambda p: (abs(current_price - p.price), p.price))

    for pool in ordered:
        for i in range(start, len(recent)):
            candle = recent[i]
            if not _pierced(candle, pool, direction):
                continue

            next_candle = recent[i + 1] if i + 1 < len(recent) else None
            closed_inside = _reclaimed(candle, pool, direction) or (
                next_candle is not None and _reclaimed(next_candle, pool, direction)
            )
            has_displacement = (
                next_candle is not None
                and avg_body > 0
                and next_candle.body >= avg_body * cfg.displacement_multiplier
            )

            if closed_inside and has_displacement:
                grade = SweepGrade.FULL
                description = f"Liquidity swept at {pool.price:.5f}, closed inside, displacement confirmed"
            elif closed_inside:
                grade = SweepGrade.PARTIAL
                description = f"Swept at {pool.price:.5f} but no displacement candle"
            else:
                grade = SweepGrade.PARTIAL
                description = f"Swept at {pool.price:.5f} but did not close back inside"

            return LiquiditySweep(
                grade=grade,
                swept_price=pool.price,
                closed_inside=closed_inside,
                has_displacement=has_displacement,
                sweep_index=offset + i,
                description=description,
            )

    return LiquiditySweep(
        grade=SweepGrade.NONE,
        description=f"No valid liquidity sweep for {direction.value.upper()}",
    )
