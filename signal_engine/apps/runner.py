"""
Signal orchestration.
Fetches both timeframes, resolves the live price and runs the engine.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from signal_engine.display import print_rejection, print_signal
from signal_engine.engines.data_fetcher import BinanceCandleFetcher, MarketDataProvider, normalize_symbol
from signal_engine.engines.signal_config import SignalEngineConfig
from signal_engine.engines.signal_generator import SignalEngine, SignalResult, is_signal
from signal_engine.engines.signals import OrderTypeLike

logger = logging.getLogger(__name__)


async def _generate_with(
    provider: MarketDataProvider,
    symbol: str,
    timeframe: str,
    order_type: OrderTypeLike,
    methods: Sequence[str],
    min_confidence: Optional[int],
    config: Optional[SignalEngineConfig],
    as_of: Optional[datetime],
) -> SignalResult:
    working, htf = await provider.fetch_snapshots(symbol, timeframe)
    if working.synthetic:
        logger.warning(f"Generating {symbol} {timeframe} signal on fallback data: {working.error}")

    current_price = await provider.get_current_price(symbol, initial_price=working.price)

    engine = SignalEngine(config)
    return engine.generate(
        symbol=symbol,
        timeframe=timeframe,
        order_type=order_type,
        methods=methods,
        min_confidence=min_confidence,
        candles=working.candles,
        htf_candles=htf.candles,
        current_price=current_price,
        as_of=as_of,
    )


async def generate_signal(
    symbol: str,
    timeframe: str,
    order_type: OrderTypeLike = "market",
    methods: Sequence[str] = (),
    min_confidence: Optional[int] = None,
    provider: Optional[MarketDataProvider] = None,
    config: Optional[SignalEngineConfig] = None,
    as_of: Optional[datetime] = None,
) -> SignalResult:
    """
    Generate a signal for `symbol` on `timeframe`.

    Args:
        symbol: Instrument symbol (BTCUSDT, BTC/USDT, ...)
        timeframe: Working timeframe (1m, 5m, 15m, 30m, 1h, 4h, 1D, 1W)
        order_type: "market" or "limit"
        methods: Advisory methodology labels
        min_confidence: Minimum confidence score; the config's
            default_min_confidence applies when omitted
        provider: Market-data provider; a Binance-backed one is created
            (and closed) when omitted
        config: Engine configuration
        as_of: Session evaluation time (defaults to the last candle)

    Returns:
        TradeSignal or a Rejection
    """
    if not symbol or not symbol.strip():
        raise ValueError("symbol must not be empty")
    symbol = normalize_symbol(symbol.strip())

    if provider is not None:
        return await _generate_with(
            provider, symbol, timeframe, order_type, methods, min_confidence, config, as_of
        )

    async with BinanceCandleFetcher() as fetcher:
        return await _generate_with(
            MarketDataProvider(fetcher),
            symbol, timeframe, order_type, methods, min_confidence, config, as_of,
        )


async def run_signal(
    symbol: str,
    timeframe: str,
    order_type: OrderTypeLike = "market",
    methods: Sequence[str] = (),
    min_confidence: Optional[int] = None,
    show_trace: bool = False,
    config: Optional[SignalEngineConfig] = None,
) -> SignalResult:
    """Generate a signal and print it."""
    result = await generate_signal(
        symbol, timeframe, order_type, methods, min_confidence, config=config
    )
    if is_signal(result):
        print_signal(result, show_trace=show_trace)
    else:
        print_rejection(result, show_trace=show_trace)
    return result
