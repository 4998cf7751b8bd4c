"""
Trade Setup Generator

Turns a direction and the detected zones into entry, stop and targets.

Entry:
- market: the live price
- limit:  midpoint of the first supporting order block, else of the first
          same-side FVG behind price, else a fixed 0.5% retracement

Stop distance = max(swing distance, 1.5x ATR, 0.8% of entry), where the swing
stop sits 0.2% beyond the extreme of the last 10 swing points.

Targets sit at fixed R multiples of the stop distance (2R/3R/5R by default);
the reported risk/reward is the mean multiple.

Prices are rounded to a precision that grows as the entry shrinks, so the
stop and targets of sub-cent instruments stay distinct. The stop is always
rounded away from the entry.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .order_blocks import FairValueGap, OrderBlock
from .primitives import Candle, SwingKind, calculate_atr, find_swing_points
from .signal_config import DEFAULT_CONFIG, SignalEngineConfig, safe_divide
from .signals import Direction, OrderType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TradeSetup:
    """Rounded entry, stop and targets of a setup."""
    direction: Direction
    order_type: OrderType
    entry_price: float
    stop_loss: float
    take_profit_1: float
    take_profit_2: float
    take_profit_3: float
    tp1_percentage: float
    tp2_percentage: float
    tp3_percentage: float
    risk_reward_ratio: float
    stop_distance: float  # Unrounded
    atr: float
    entry_source: str  # "market", "order block", "fvg" or "offset"

    @property
    def is_buy(self) -> bool:
        return self.direction is Direction.BUY


def price_decimals(price: float, minimum: int = 5) -> int:
    """Decimal places giving at least `minimum` digits after the leading one."""
    if price <= 0:
        return minimum
    return max(minimum, minimum - math.floor(math.log10(price)))


def _stop_price(entry: float, distance: float, sign: int, decimals: int) -> float:
    """Stop `distance` away from `entry`, rounded so it never moves closer."""
    stop = round(entry - sign * distance, decimals)
    if abs(entry - stop) < distance:
        stop = round(stop - sign * 10 ** -decimals, decimals)
    return stop


def _limit_entry(
    direction: Direction,
    current_price: float,
    order_blocks: Sequence[OrderBlock],
    fvgs: Sequence[FairValueGap],
    offset_pct: float,
) -> Tuple[float, str]:
    for ob in order_blocks:
        if ob.supports(direction, current_price):
            return ob.midpoint, "order block"

    for fvg in fvgs:
        if fvg.lies_behind(direction, current_price):
            return fvg.midpoint, "fvg"

    if direction is Direction.BUY:
        return current_price * (1 - offset_pct / 100), "offset"
    return current_price * (1 + offset_pct / 100), "offset"


def swing_stop(
    candles: Sequence[Candle],
    direction: Direction,
    config: Optional[SignalEngineConfig] = None,
) -> Optional[float]:
    """
    Structural stop beyond the extreme of the recent swings.

    Returns None when the recent swings hold no point of the needed kind.
    """
    cfg = config or DEFAULT_CONFIG
    setup = cfg.trade_setup
    swings = find_swing_points(candles, cfg.swings.stop_lookback)[-setup.recent_swings:]
    buffer = setup.swing_buffer_pct / 100

    if direction is Direction.BUY:
        lows = [s.price for s in swings if s.kind is SwingKind.LOW]
        return min(lows) * (1 - buffer) if lows else None

    highs = [s.price for s in swings if s.kind is SwingKind.HIGH]
    return max(highs) * (1 + buffer) if highs else None


def generate_trade_setup(
    candles: Sequence[Candle],
    direction: Direction,
    order_type: OrderType,
    current_price: float,
    order_blocks: Sequence[OrderBlock] = (),
    fvgs: Sequence[FairValueGap] = (),
    config: Optional[SignalEngineConfig] = None,
) -> TradeSetup:
    """
    Compute entry, stop-loss and take-profit levels.

    Args:
        candles: Working-timeframe candles
        direction: Trade direction
        order_type: Market or limit entry
        current_price: Live price
        order_blocks: Order blocks evaluated at `current_price`
        fvgs: Fair value gaps
        config: Engine configuration

    Returns:
        TradeSetup with prices rounded to a precision scaled to the entry
    """
    cfg = config or DEFAULT_CONFIG
    setup = cfg.trade_setup

    if order_type is OrderType.LIMIT:
        entry, source = _limit_entry(direction, current_price, order_blocks, fvgs, setup.limit_offset_pct)
    else:
        entry, source = current_price, "market"

    decimals = price_decimals(entry, setup.price_decimals)
    entry = round(entry, decimals)

    atr = calculate_atr(candles, cfg.primitives.atr_period)
    stop = swing_stop(candles, direction, cfg)
    swing_distance = abs(entry - stop) if stop is not None else 0.0
    stop_distance = max(swing_distance, atr * setup.atr_multiplier, entry * setup.min_stop_pct / 100)

    sign = 1 if direction is Direction.BUY else -1
    targets = [entry + sign * stop_distance * multiple for multiple in setup.tp_multiples]
    percentages = [safe_divide(stop_distance * multiple, entry) * 100 for multiple in setup.tp_multiples]
    risk_reward = sum(setup.tp_multiples) / len(setup.tp_multiples)

    logger.debug(
        "Setup %s %s: entry=%.10g (%s) stop_distance=%.10g atr=%.10g",
        direction, order_type, entry, source, stop_distance, atr,
    )

    pct_decimals = setup.pct_decimals
    return TradeSetup(
        direction=direction,
        order_type=order_type,
        entry_price=entry,
        stop_loss=_stop_price(entry, stop_distance, sign, decimals),
        take_profit_1=round(targets[0], decimals),
        take_profit_2=round(targets[1], decimals),
        take_profit_3=round(targets[2], decimals),
        tp1_percentage=round(percentages[0], pct_decimals),
        tp2_percentage=round(percentages[1], pct_decimals),
        tp3_percentage=round(percentages[2], pct_decimals),
        risk_reward_ratio=round(risk_reward, pct_decimals),
        stop_distance=stop_distance,
        atr=atr,
        entry_source=source,
    )
