"""
Session / Volatility Filter

Market-category and time-of-day aware confidence adjustment.

Categories (by symbol pattern): crypto, forex, stocks, indices, commodities.
Each has its own UTC session windows and deltas; all windows are inclusive
hour ranges. Shared checks:
- ATR ratio: ATR(14) over ATR(20) of the last 50 bars
- Volume ratio: 20-bar average volume over the previous 20-bar average;
  expansion above 1.3x earns a separate bonus in the scorer

No category blocks generation. Crypto trades 24/7 but still loses points in
dead volume or volatility and gains them in killzones.

The session hour comes from an explicit `as_of` timestamp or, failing that,
from the last candle, so identical inputs always score identically.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .primitives import Candle, average_volume, calculate_atr
from .signal_config import DEFAULT_CONFIG, SessionThresholds, SignalEngineConfig, safe_divide


class MarketCategory(Enum):
    """Instrument class used to pick session windows."""
    CRYPTO = "crypto"
    FOREX = "forex"
    STOCKS = "stocks"
    INDICES = "indices"
    COMMODITIES = "commodities"

    def __str__(self) -> str:
        return self.value


CRYPTO_MARKERS = ("USDT", "BTC", "ETH")
FOREX_MARKERS = ("USD", "EUR", "GBP", "JPY", "AUD", "CAD", "NZD")
INDEX_SYMBOLS = ("US30", "NAS100", "SPX", "DJI")
COMMODITY_MARKERS = ("XAU", "XAG", "CRUDE", "OIL", "NGAS", "COPPER")


def identify_market_type(symbol: str) -> MarketCategory:
    """Classify a symbol. Checks run crypto, forex, indices, commodities; default stocks."""
    upper = symbol.upper()

    if any(marker in upper for marker in CRYPTO_MARKERS):
        return MarketCategory.CRYPTO
    if any(marker in upper for marker in FOREX_MARKERS):
        return MarketCategory.FOREX
    if upper in INDEX_SYMBOLS:
        return MarketCategory.INDICES
    if any(marker in upper for marker in COMMODITY_MARKERS):
        return MarketCategory.COMMODITIES
    return MarketCategory.STOCKS


@dataclass(frozen=True)
class SessionFilterResult:
    """Session and volatility assessment."""
    category: MarketCategory
    description: str
    confidence_adjustment: int
    volume_expansion: bool
    atr_ratio: float
    volume_ratio: float
    hour_utc: Optional[int] = None


def _in_hours(hour: int, window: Tuple[int, int]) -> bool:
    return window[0] <= hour <= window[1]


def resolve_session_hour(candles: Sequence[Candle], as_of: Optional[datetime] = None) -> Optional[int]:
    """UTC hour of `as_of`, else of the last candle, else None."""
    if as_of is not None:
        if as_of.tzinfo is None:
            as_of = as_of.replace(tzinfo=timezone.utc)
        return as_of.astimezone(timezone.utc).hour
    if candles:
        return datetime.fromtimestamp(candles[-1].time / 1000, tz=timezone.utc).hour
    return None


def _crypto(hour: int, atr_ratio: float, volume_ratio: float, expansion: bool, cfg: SessionThresholds) -> Tuple[int, str]:
    adjustment = 0
    parts: List[str] = ["24/7 market"]

    if volume_ratio < cfg.low_volume_ratio:
        adjustment += cfg.crypto_low_volume
        parts.append(f"Low volume ({cfg.crypto_low_volume:+d})")
    elif expansion:
        adjustment += cfg.crypto_volume_expansion
        parts.append(f"Volume expansion ({cfg.crypto_volume_expansion:+d})")

    if atr_ratio < cfg.very_low_volatility:
        adjustment += cfg.crypto_low_volatility
        parts.append(f"Very low volatility ({cfg.crypto_low_volatility:+d})")

    description = ", ".join(parts)
    if any(_in_hours(hour, zone) for zone in cfg.crypto_killzones):
        adjustment += cfg.crypto_killzone
        description += f" (Killzone {cfg.crypto_killzone:+d})"

    return adjustment, description


def _forex(hour: int, cfg: SessionThresholds) -> Tuple[int, str]:
    london = _in_hours(hour, cfg.london_hours)
    new_york = _in_hours(hour, cfg.new_york_hours)

    if not london and not new_york:
        return cfg.forex_off_session, "Asian session - reduced confidence"
    if _in_hours(hour, cfg.overlap_hours):
        return cfg.forex_overlap, "London-NY Overlap"
    return cfg.forex_session, "London Session" if london else "NY Session"


def _stocks(hour: int, cfg: SessionThresholds) -> Tuple[int, str]:
    if not _in_hours(hour, cfg.stock_hours):
        return cfg.stocks_closed, "Market closed - use with caution"
    if _in_hours(hour, cfg.stock_midday_hours):
        return cfg.stocks_midday, "Market open (midday - lower confidence)"
    return cfg.stocks_open, "Market open"


def _indices(hour: int, cfg: SessionThresholds) -> Tuple[int, str]:
    if not _in_hours(hour, cfg.index_hours):
        return cfg.indices_off_session, "Outside primary session"
    return cfg.indices_session, "NY session active"


def _commodities(hour: int, atr_ratio: float, cfg: SessionThresholds) -> Tuple[int, str]:
    adjustment = 0
    description = "Commodity session"

    if atr_ratio < cfg.very_low_volatility:
        adjustment += cfg.commodities_very_low_volatility
        description = "Very low volatility"
    elif atr_ratio < cfg.low_volatility:
        adjustment += cfg.commodities_low_volatility
        description += " (lower volatility)"

    if _in_hours(hour, cfg.london_hours) or _in_hours(hour, cfg.new_york_hours):
        adjustment += cfg.commodities_peak
        description += " (optimal hours)"
    else:
        adjustment += cfg.commodities_off_peak
        description += " (off-peak)"

    return adjustment, description


def _off_session(category: MarketCategory, hour: int, cfg: SessionThresholds) -> bool:
    if category is MarketCategory.FOREX:
        return not (_in_hours(hour, cfg.london_hours) or _in_hours(hour, cfg.new_york_hours))
    if category is MarketCategory.STOCKS:
        return not _in_hours(hour, cfg.stock_hours)
    if category is MarketCategory.INDICES:
        return not _in_hours(hour, cfg.index_hours)
    return False


def apply_session_filter(
    category: MarketCategory,
    candles: Sequence[Candle],
    as_of: Optional[datetime] = None,
    config: Optional[SignalEngineConfig] = None,
) -> SessionFilterResult:
    """
    Score the current session and volatility regime.

    Args:
        category: Market category from identify_market_type()
        candles: Working-timeframe candles
        as_of: Evaluation time; defaults to the last candle's time
        config: Engine configuration

    Returns:
        SessionFilterResult with the additive confidence adjustment
    """
    cfg = (config or DEFAULT_CONFIG).session

    atr = calculate_atr(candles, cfg.atr_period)
    avg_atr = calculate_atr(candles[-cfg.avg_atr_window:], cfg.avg_atr_period)
    atr_ratio = safe_divide(atr, avg_atr, default=1.0)

    current_volume = average_volume(candles[-cfg.volume_window:])
    trailing_volume = average_volume(candles[-2 * cfg.volume_window:-cfg.volume_window])
    volume_ratio = safe_divide(current_volume, trailing_volume, default=1.0)
    expansion = volume_ratio > cfg.volume_expansion_ratio

    hour = resolve_session_hour(candles, as_of)
    if hour is None:
        return SessionFilterResult(
            category=category,
            description="Session time unknown - no session adjustment",
            confidence_adjustment=0,
            volume_expansion=expansion,
            atr_ratio=atr_ratio,
            volume_ratio=volume_ratio,
        )

    if category is MarketCategory.CRYPTO:
        adjustment, description = _crypto(hour, atr_ratio, volume_ratio, expansion, cfg)
    elif category is MarketCategory.FOREX:
        adjustment, description = _forex(hour, cfg)
    elif category is MarketCategory.STOCKS:
        adjustment, description = _stocks(hour, cfg)
    elif category is MarketCategory.INDICES:
        adjustment, description = _indices(hour, cfg)
    else:
        adjustment, description = _commodities(hour, atr_ratio, cfg)

    # Volume expansion does not count outside the primary session
    if _off_session(category, hour, cfg):
        expansion = False

    return SessionFilterResult(
        category=category,
        description=f"{description} [{hour:02d}:00 UTC, ATR {atr_ratio:.2f}x, Vol {volume_ratio:.2f}x]",
        confidence_adjustment=adjustment,
        volume_expansion=expansion,
        atr_ratio=atr_ratio,
        volume_ratio=volume_ratio,
        hour_utc=hour,
    )
