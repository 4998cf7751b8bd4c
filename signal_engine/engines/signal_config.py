"""
Signal Engine Configuration Module
Centralizes all magic numbers, windows and confidence deltas of the pipeline.

This module provides a single source of truth for every tunable parameter,
making it easy to adjust a stage without hunting through multiple files.
"""

from dataclasses import dataclass, field
from typing import Tuple

# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

EPSILON = 1e-9


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is near zero.

    Args:
        numerator: The numerator
        denominator: The denominator
        default: Value to return if division is unsafe (default: 0.0)

    Returns:
        numerator / denominator if safe, otherwise default
    """
    return numerator / denominator if abs(denominator) > EPSILON else default


@dataclass
class PrimitiveThresholds:
    """Series primitive parameters."""

    atr_period: int = 14
    trend_window: int = 20  # Recent window compared with the prior one


@dataclass
class SwingThresholds:
    """Fractal radius used by each stage."""

    htf_lookback: int = 5
    liquidity_lookback: int = 3
    bos_lookback: int = 5
    wave_lookback: int = 5
    stop_lookback: int = 5


@dataclass
class LiquidityThresholds:
    """Equal-high / equal-low pool clustering."""

    window: int = 100  # Bars considered for pools
    tolerance_pct: float = 0.1  # Max % difference to the seed swing
    min_members: int = 2


@dataclass
class HTFThresholds:
    """Higher-timeframe bias detection."""

    min_swings: int = 3  # Per side
    min_transitions: int = 2  # HH+HL (or LH+LL) needed for a bias
    fallback_window: int = 50  # Bars used for the fallback range
    range_swings: int = 3  # Last N swings per side define the dealing range


@dataclass
class SweepThresholds:
    """Liquidity sweep validation."""

    scan_window: int = 30
    recent_bars: int = 10  # Trailing bars of the scan window checked for a pierce
    avg_body_window: int = 20
    displacement_multiplier: float = 1.5


@dataclass
class BOSThresholds:
    """Break-of-structure validation."""

    min_bars: int = 50
    structure_window: int = 100
    exclude_recent: int = 30  # Swings newer than this are not structure
    avg_window: int = 20  # Averaging window inside the last `exclude_recent` bars
    scan_bars: int = 5
    body_multiplier: float = 1.5
    volume_multiplier: float = 1.0


@dataclass
class DisplacementThresholds:
    """Displacement, order block and FVG detection."""

    window: int = 50
    body_multiplier: float = 1.5
    max_fvgs: int = 10


@dataclass
class WaveThresholds:
    """Elliott-wave leg counting."""

    min_swings: int = 5
    recent_swings: int = 8


@dataclass
class SessionThresholds:
    """Session windows (UTC hours, inclusive) and session deltas."""

    atr_period: int = 14
    avg_atr_window: int = 50
    avg_atr_period: int = 20
    volume_window: int = 20
    volume_expansion_ratio: float = 1.3
    low_volume_ratio: float = 0.7
    very_low_volatility: float = 0.5
    low_volatility: float = 0.7

    crypto_killzones: Tuple[Tuple[int, int], ...] = ((8, 10), (13, 15))
    london_hours: Tuple[int, int] = (8, 16)
    new_york_hours: Tuple[int, int] = (13, 21)
    overlap_hours: Tuple[int, int] = (13, 16)
    stock_hours: Tuple[int, int] = (14, 21)
    stock_midday_hours: Tuple[int, int] = (16, 18)
    index_hours: Tuple[int, int] = (14, 21)

    crypto_low_volume: int = -5
    crypto_volume_expansion: int = 5
    crypto_low_volatility: int = -5
    crypto_killzone: int = 5
    forex_off_session: int = -10
    forex_overlap: int = 10
    forex_session: int = 5
    stocks_closed: int = -15
    stocks_midday: int = -10
    stocks_open: int = 5
    indices_off_session: int = -10
    indices_session: int = 5
    commodities_very_low_volatility: int = -10
    commodities_low_volatility: int = -5
    commodities_peak: int = 5
    commodities_off_peak: int = -5


@dataclass
class ScoreWeights:
    """Confidence deltas contributed by each pipeline stage."""

    htf_bias: int = 15
    htf_no_bias: int = -5
    premium_zone: int = 15
    zone_misaligned: int = -10
    no_liquidity: int = -3
    sweep_full: int = 20
    sweep_partial: int = 10
    sweep_none: int = -3
    bos_valid: int = 20
    bos_invalid: int = -3
    retest_zone: int = 15
    no_retest_zone: int = -3
    wave_pass: int = 10
    wave_block: int = -5
    volume_expansion: int = 5


@dataclass
class TradeSetupThresholds:
    """Stop, target and rounding rules of the trade setup."""

    atr_multiplier: float = 1.5
    min_stop_pct: float = 0.8  # % of entry
    swing_buffer_pct: float = 0.2  # Stop placed beyond the swing by this %
    recent_swings: int = 10
    tp_multiples: Tuple[float, float, float] = (2.0, 3.0, 5.0)
    min_risk_reward: float = 1.2
    limit_offset_pct: float = 0.5  # Limit entry offset when no zone exists
    price_decimals: int = 5
    pct_decimals: int = 1


@dataclass
class SignalEngineConfig:
    """
    Master configuration for the signal pipeline.

    Usage:
        config = SignalEngineConfig()
        # Use defaults

        # Or customize:
        config = SignalEngineConfig(
            liquidity=LiquidityThresholds(tolerance_pct=0.15),
            trade_setup=TradeSetupThresholds(min_risk_reward=1.5),
        )
    """

    primitives: PrimitiveThresholds = field(default_factory=PrimitiveThresholds)
    swings: SwingThresholds = field(default_factory=SwingThresholds)
    liquidity: LiquidityThresholds = field(default_factory=LiquidityThresholds)
    htf: HTFThresholds = field(default_factory=HTFThresholds)
    sweep: SweepThresholds = field(default_factory=SweepThresholds)
    bos: BOSThresholds = field(default_factory=BOSThresholds)
    displacement: DisplacementThresholds = field(default_factory=DisplacementThresholds)
    wave: WaveThresholds = field(default_factory=WaveThresholds)
    session: SessionThresholds = field(default_factory=SessionThresholds)
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    trade_setup: TradeSetupThresholds = field(default_factory=TradeSetupThresholds)

    default_min_confidence: int = 35


# Global default config instance
DEFAULT_CONFIG = SignalEngineConfig()


def get_config() -> SignalEngineConfig:
    """Get the default configuration."""
    return DEFAULT_CONFIG


def create_aggressive_config() -> SignalEngineConfig:
    """
    Create a looser configuration: wider pool tolerance and smaller
    displacement requirements. Useful on low timeframes.
    """
    return SignalEngineConfig(
        liquidity=LiquidityThresholds(tolerance_pct=0.15),
        sweep=SweepThresholds(displacement_multiplier=1.3),
        bos=BOSThresholds(body_multiplier=1.3),
        displacement=DisplacementThresholds(body_multiplier=1.3),
        default_min_confidence=30,
    )


def create_conservative_config() -> SignalEngineConfig:
    """
    Create a stricter configuration: tighter pools, heavier displacement
    and a higher risk/reward floor. Useful for swing setups.
    """
    return SignalEngineConfig(
        liquidity=LiquidityThresholds(tolerance_pct=0.05),
        sweep=SweepThresholds(displacement_multiplier=2.0),
        bos=BOSThresholds(body_multiplier=2.0, volume_multiplier=1.2),
        displacement=DisplacementThresholds(body_multiplier=2.0),
        trade_setup=TradeSetupThresholds(min_risk_reward=1.5),
        default_min_confidence=55,
    )
