"""Market-Structure Signal Engine.

Public symbols are exposed lazily so importing `signal_engine` does not eagerly
import optional network dependencies (for example `aiohttp` via the candle
fetcher).
"""

from __future__ import annotations

import importlib
from typing import Dict, Tuple


__all__ = [
    # Data fetcher
    "BinanceCandleFetcher",
    "MarketDataProvider",
    "MarketSnapshot",
    "PriceCache",
    "RequestConfig",
    "DEFAULT_REQUEST_CONFIG",
    # Exceptions
    "MarketDataError",
    "MarketDataRateLimitError",
    "MarketDataTimeoutError",
    "MarketDataConnectionError",
    # Configuration
    "SignalEngineConfig",
    "DEFAULT_CONFIG",
    "get_config",
    "create_aggressive_config",
    "create_conservative_config",
    # Shared enums
    "Direction",
    "OrderType",
    "Bias",
    "Trend",
    # Primitives
    "Candle",
    "SwingPoint",
    "SwingKind",
    "find_swing_points",
    "calculate_atr",
    "classify_trend",
    # Liquidity
    "LiquidityPool",
    "LiquidityPools",
    "LiquiditySweep",
    "SweepGrade",
    "identify_liquidity_pools",
    "validate_liquidity_sweep",
    # HTF bias
    "HTFBias",
    "DealingRange",
    "PriceZone",
    "analyze_htf_structure",
    "build_dealing_range",
    "get_htf_timeframe",
    # Break of structure
    "BOSValidation",
    "validate_bos",
    # Order blocks / FVG
    "OrderBlock",
    "FairValueGap",
    "ZoneKind",
    "find_displacement_candles",
    "find_order_blocks",
    "find_fair_value_gaps",
    # Wave filter
    "WaveFilterResult",
    "apply_elliott_wave_filter",
    # Session filter
    "MarketCategory",
    "SessionFilterResult",
    "identify_market_type",
    "apply_session_filter",
    # Scoring
    "ScoreStep",
    "ScoreCard",
    "Rejection",
    "ConfidenceTooLow",
    "RiskRewardTooLow",
    # Trade setup
    "TradeSetup",
    "generate_trade_setup",
    # Engine
    "SignalEngine",
    "TradeSignal",
    "AnalysisSummary",
    "SignalResult",
    "is_signal",
]


_EXPORT_TO_SOURCE: Dict[str, Tuple[str, str]] = {}


def _register(module: str, names: list[str], aliases: Dict[str, str] | None = None) -> None:
    for name in names:
        _EXPORT_TO_SOURCE[name] = (module, name)
    if aliases:
        for public_name, source_name in aliases.items():
            _EXPORT_TO_SOURCE[public_name] = (module, source_name)


_register(
    ".engines.data_fetcher",
    [
        "BinanceCandleFetcher",
        "MarketDataProvider",
        "MarketSnapshot",
        "PriceCache",
        "RequestConfig",
        "DEFAULT_REQUEST_CONFIG",
        "MarketDataError",
        "MarketDataRateLimitError",
        "MarketDataTimeoutError",
        "MarketDataConnectionError",
    ],
)

_register(
    ".engines.signal_config",
    [
        "SignalEngineConfig",
        "DEFAULT_CONFIG",
        "get_config",
        "create_aggressive_config",
        "create_conservative_config",
    ],
)

_register(".engines.signals", ["Direction", "OrderType", "Bias", "Trend"])

_register(
    ".engines.primitives",
    [
        "Candle",
        "SwingPoint",
        "SwingKind",
        "find_swing_points",
        "calculate_atr",
        "classify_trend",
    ],
)

_register(
    ".engines.liquidity",
    [
        "LiquidityPool",
        "LiquidityPools",
        "LiquiditySweep",
        "SweepGrade",
        "identify_liquidity_pools",
        "validate_liquidity_sweep",
    ],
)

_register(
    ".engines.htf_bias",
    [
        "HTFBias",
        "DealingRange",
        "PriceZone",
        "analyze_htf_structure",
        "build_dealing_range",
        "get_htf_timeframe",
    ],
)

_register(".engines.break_of_structure", ["BOSValidation", "validate_bos"])

_register(
    ".engines.order_blocks",
    [
        "OrderBlock",
        "FairValueGap",
        "ZoneKind",
        "find_displacement_candles",
        "find_order_blocks",
        "find_fair_value_gaps",
    ],
)

_register(".engines.elliott_wave", ["WaveFilterResult", "apply_elliott_wave_filter"])

_register(
    ".engines.session_filter",
    [
        "MarketCategory",
        "SessionFilterResult",
        "identify_market_type",
        "apply_session_filter",
    ],
)

_register(
    ".engines.scoring",
    ["ScoreStep", "ScoreCard", "Rejection", "ConfidenceTooLow", "RiskRewardTooLow"],
)

_register(".engines.trade_setup", ["TradeSetup", "generate_trade_setup"])

_register(
    ".engines.signal_generator",
    ["SignalEngine", "TradeSignal", "AnalysisSummary", "SignalResult", "is_signal"],
)


_missing_exports = [name for name in __all__ if name not in _EXPORT_TO_SOURCE]
if _missing_exports:
    raise RuntimeError(f"Lazy export map incomplete: {_missing_exports}")


def __getattr__(name: str):
    if name not in _EXPORT_TO_SOURCE:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, symbol_name = _EXPORT_TO_SOURCE[name]
    module = importlib.import_module(module_name, __name__)
    value = getattr(module, symbol_name)

    # Cache resolved symbol on module globals for subsequent fast access.
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))
