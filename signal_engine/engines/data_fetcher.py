"""
Binance Candle Fetcher and Market-Data Provider
Fetches working and higher-timeframe klines plus the live ticker price.

The provider is the recovery boundary: fetch failures are logged and replaced
by a synthetic snapshot (no candles, cached or base price) so the engine can
still run on degraded data.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import aiohttp

from .htf_bias import get_htf_timeframe
from .primitives import Candle, average_volume, classify_trend
from .signals import Trend

logger = logging.getLogger(__name__)


# =============================================================================
# CUSTOM EXCEPTIONS
# =============================================================================


class MarketDataError(Exception):
    """Candles or a ticker price could not be fetched. Not retried by default."""

    retryable = False

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Market data error {status_code}: {message}")


class MarketDataRateLimitError(MarketDataError):
    """HTTP 429; `retry_after` is the Retry-After header in seconds, if sent."""

    retryable = True

    def __init__(self, retry_after: Optional[int] = None):
        self.retry_after = retry_after
        super().__init__(429, "Rate limit exceeded")


class MarketDataTimeoutError(MarketDataError):
    retryable = True

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(0, f"Request timed out after {timeout}s")


class MarketDataConnectionError(MarketDataError):
    retryable = True

    def __init__(self, original_error: Exception):
        self.original_error = original_error
        super().__init__(0, f"Connection error: {original_error}")


# =============================================================================
# REQUEST CONFIGURATION
# =============================================================================


KLINE_LIMIT = 200


@dataclass(frozen=True)
class RequestConfig:
    """Where and how patiently the fetcher talks to the exchange."""

    base_url: str = "https://api.binance.com"
    kline_limit: int = KLINE_LIMIT  # Candles per timeframe
    timeout_total: float = 30.0
    timeout_connect: float = 10.0
    max_retries: int = 3  # Attempts per request, including the first
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0
    retry_on_status: Tuple[int, ...] = (500, 502, 503, 504)  # 429 is always retried


DEFAULT_REQUEST_CONFIG = RequestConfig()


TIMEFRAME_INTERVALS: Dict[str, str] = {
    "1m": "1m",
    "5m": "5m",
    "15m": "15m",
    "30m": "30m",
    "1h": "1h",
    "4h": "4h",
    "1D": "1d",
    "1W": "1w",
}

DEFAULT_INTERVAL = "15m"
DEFAULT_TIMEFRAME = "15m"


def timeframe_to_interval(timeframe: str) -> str:
    """Map a signal timeframe label to a Binance kline interval (unknown -> 15m)."""
    return TIMEFRAME_INTERVALS.get(timeframe, DEFAULT_INTERVAL)


def normalize_symbol(symbol: str) -> str:
    """Normalize symbol format (BTC/USDT -> BTCUSDT)."""
    return symbol.upper().replace("/", "").replace("-", "").replace("_", "")


# =============================================================================
# FETCHER
# =============================================================================


class BinanceCandleFetcher:
    """
    Fetches klines and ticker prices from the Binance spot API.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        request_config: Optional[RequestConfig] = None,
    ):
        self._session = session
        self._owns_session = session is None
        self._config = request_config or DEFAULT_REQUEST_CONFIG

    async def __aenter__(self):
        if self._session is None:
            timeout = aiohttp.ClientTimeout(
                total=self._config.timeout_total, connect=self._config.timeout_connect
            )
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._owns_session and self._session:
            await self._session.close()

    def _calculate_backoff_delay(self, attempt: int, retry_after: Optional[int] = None) -> float:
        """Calculate exponential backoff delay with jitter."""
        if retry_after is not None:
            return min(retry_after, self._config.retry_max_delay)

        delay = self._config.retry_base_delay * (2**attempt)
        jitter = random.uniform(0, 0.1 * delay)
        return min(delay + jitter, self._config.retry_max_delay)

    async def _status_error(self, response: aiohttp.ClientResponse) -> MarketDataError:
        """Typed error for a non-200 response."""
        if response.status == 429:
            header = response.headers.get("Retry-After", "")
            return MarketDataRateLimitError(int(header) if header.isdigit() else None)
        error = MarketDataError(response.status, await response.text())
        error.retryable = response.status in self._config.retry_on_status
        return error

    async def _get(self, path: str, params: Dict[str, Any]) -> Any:
        """
        GET `path` on the configured base URL and return the parsed JSON.

        Rate limits, timeouts, connection failures and the configured server
        statuses are retried with backoff; the last error is raised once
        attempts run out. Other statuses raise immediately.

        Raises:
            MarketDataError: Or one of its subclasses, on failure
        """
        if self._session is None:
            raise RuntimeError(
                "Session not initialized. Use 'async with BinanceCandleFetcher()' "
                "or pass a session to __init__."
            )

        url = f"{self._config.base_url}{path}"
        attempts = max(1, self._config.max_retries)

        for attempt in range(attempts):
            logger.debug("GET %s params=%s (attempt %d/%d)", url, params, attempt + 1, attempts)
            try:
                async with self._session.get(url, params=params) as response:
                    if response.status == 200:
                        return await response.json()
                    error = await self._status_error(response)
            except asyncio.TimeoutError:
                error = MarketDataTimeoutError(self._config.timeout_total)
            except aiohttp.ClientError as e:
                error = MarketDataConnectionError(e)

            if not error.retryable or attempt == attempts - 1:
                raise error

            delay = self._calculate_backoff_delay(attempt, getattr(error, "retry_after", None))
            logger.warning(
                f"{error.message} on {url}, attempt {attempt + 1}/{attempts}. "
                f"Retrying in {delay:.1f}s"
            )
            await asyncio.sleep(delay)

    async def get_klines(self, symbol: str, timeframe: str, limit: Optional[int] = None) -> List[Candle]:
        """
        Fetch OHLCV candles for a signal timeframe.

        Args:
            symbol: Trading pair (e.g., 'BTCUSDT' or 'BTC/USDT')
            timeframe: Signal timeframe label (1m, 15m, 1h, 1D, ...)
            limit: Number of candles (defaults to the config's kline_limit)

        Returns:
            Candles, time ascending

        Raises:
            MarketDataError: On request failure or an empty response
        """
        data = await self._get(
            "/api/v3/klines",
            {
                "symbol": normalize_symbol(symbol),
                "interval": timeframe_to_interval(timeframe),
                "limit": limit or self._config.kline_limit,
            },
        )
        if not data:
            raise MarketDataError(0, "No candle data received")

        try:
            return [Candle.from_kline(row) for row in data]
        except (IndexError, TypeError, ValueError) as e:
            raise MarketDataError(0, f"Malformed kline payload: {e}") from e

    async def get_ticker_price(self, symbol: str) -> float:
        """Fetch the latest traded price."""
        data = await self._get("/api/v3/ticker/price", {"symbol": normalize_symbol(symbol)})
        try:
            return float(data["price"])
        except (KeyError, TypeError, ValueError) as e:
            raise MarketDataError(0, f"Malformed ticker payload: {e}") from e


# =============================================================================
# PRICE CACHE
# =============================================================================


class PriceCache:
    """
    Per-symbol live-price cache with a short TTL.

    Entries are keyed independently; a stale entry is kept as the last known
    price until it is overwritten.
    """

    def __init__(self, ttl: float = 2.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[float, float]] = {}

    def get(self, symbol: str) -> Optional[float]:
        """Fresh price for `symbol`, or None when missing or expired."""
        entry = self._entries.get(symbol)
        if entry is None:
            return None
        price, stored_at = entry
        if self._clock() - stored_at < self.ttl:
            return price
        return None

    def get_stale(self, symbol: str) -> Optional[float]:
        """Last known price regardless of age."""
        entry = self._entries.get(symbol)
        return entry[0] if entry else None

    def set(self, symbol: str, price: float) -> None:
        self._entries[symbol] = (price, self._clock())

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# PROVIDER
# =============================================================================


BASE_PRICES: Dict[str, float] = {
    "BTCUSDT": 95000,
    "ETHUSDT": 3500,
    "BNBUSDT": 620,
    "SOLUSDT": 180,
    "XRPUSDT": 2.5,
    "ADAUSDT": 0.95,
    "EURUSD": 1.0850,
    "GBPUSD": 1.2650,
    "USDJPY": 148.50,
    "AUDUSD": 0.6450,
    "USDCAD": 1.3550,
    "NZDUSD": 0.5950,
    "AAPL": 185,
    "GOOGL": 145,
    "MSFT": 415,
    "AMZN": 175,
    "TSLA": 245,
    "NVDA": 725,
    "XAUUSD": 2650,
    "XAGUSD": 30.5,
    "CRUDE": 82,
    "NGAS": 3.2,
    "COPPER": 4.15,
    "WHEAT": 6.8,
}

DEFAULT_BASE_PRICE = 100.0


@dataclass
class MarketSnapshot:
    """Candles and price of one symbol/timeframe."""

    symbol: str
    timeframe: str
    price: float
    candles: Tuple[Candle, ...] = ()
    trend: Trend = Trend.NEUTRAL
    synthetic: bool = False  # True when built from fallback data
    error: Optional[str] = None

    @property
    def high(self) -> float:
        recent = self.candles[-20:]
        return max(c.high for c in recent) if recent else self.price * 1.01

    @property
    def low(self) -> float:
        recent = self.candles[-20:]
        return min(c.low for c in recent) if recent else self.price * 0.99

    @property
    def volume(self) -> float:
        return average_volume(self.candles[-20:])


@dataclass
class MarketDataProvider:
    """
    Market-data collaborator of the signal engine.

    Wraps a fetcher exposing `get_klines(symbol, timeframe)` and
    `get_ticker_price(symbol)`.
    """

    fetcher: Any
    price_cache: PriceCache = field(default_factory=PriceCache)
    base_prices: Mapping[str, float] = field(default_factory=lambda: dict(BASE_PRICES))
    fetch_timeout: Optional[float] = None  # Overall timeout around the kline fetches
    _locks: Dict[str, asyncio.Lock] = field(default_factory=dict, init=False, repr=False)

    def get_base_price(self, symbol: str) -> float:
        return float(self.base_prices.get(normalize_symbol(symbol), DEFAULT_BASE_PRICE))

    def _synthetic(self, symbol: str, timeframe: str, error: str) -> MarketSnapshot:
        price = self.price_cache.get_stale(symbol)
        if price is None:
            price = self.get_base_price(symbol)
        return MarketSnapshot(symbol, timeframe, price, synthetic=True, error=error)

    async def fetch_snapshot(self, symbol: str, timeframe: str) -> MarketSnapshot:
        """Fetch one timeframe; failures yield a synthetic snapshot."""
        symbol = normalize_symbol(symbol)
        try:
            candles = tuple(await self.fetcher.get_klines(symbol, timeframe))
        except MarketDataError as e:
            logger.warning(f"Market data unavailable for {symbol} {timeframe}, using fallback: {e}")
            return self._synthetic(symbol, timeframe, str(e))

        if not candles:
            logger.warning(f"No candles returned for {symbol} {timeframe}, using fallback")
            return self._synthetic(symbol, timeframe, "No candle data received")

        return MarketSnapshot(
            symbol=symbol,
            timeframe=timeframe,
            price=candles[-1].close,
            candles=candles,
            trend=classify_trend(candles),
        )

    async def fetch_snapshots(self, symbol: str, timeframe: str) -> Tuple[MarketSnapshot, MarketSnapshot]:
        """
        Fetch the working and higher timeframe concurrently.

        Returns:
            (working snapshot, HTF snapshot)
        """
        symbol = normalize_symbol(symbol)
        htf_timeframe = get_htf_timeframe(timeframe)
        both = asyncio.gather(
            self.fetch_snapshot(symbol, timeframe),
            self.fetch_snapshot(symbol, htf_timeframe),
        )

        try:
            if self.fetch_timeout is not None:
                working, htf = await asyncio.wait_for(both, timeout=self.fetch_timeout)
            else:
                working, htf = await both
        except asyncio.TimeoutError:
            logger.warning(f"Market data fetch for {symbol} timed out after {self.fetch_timeout}s")
            reason = f"Timed out after {self.fetch_timeout}s"
            working = self._synthetic(symbol, timeframe, reason)
            htf = self._synthetic(symbol, htf_timeframe, reason)

        if not working.synthetic:
            self.price_cache.set(symbol, working.price)
        return working, htf

    async def get_current_price(self, symbol: str, initial_price: Optional[float] = None) -> float:
        """
        Live price with burst deduplication.

        Order: fresh cache, ticker, stale cache, `initial_price`, last close
        of a fresh fetch (or the base price when that fails too).
        """
        symbol = normalize_symbol(symbol)
        lock = self._locks.setdefault(symbol, asyncio.Lock())

        async with lock:
            cached = self.price_cache.get(symbol)
            if cached is not None:
                return cached

            try:
                price = await self.fetcher.get_ticker_price(symbol)
            except MarketDataError as e:
                logger.warning(f"Ticker price unavailable for {symbol}: {e}")
            else:
                self.price_cache.set(symbol, price)
                return price

            stale = self.price_cache.get_stale(symbol)
            if stale is not None:
                return stale

            if initial_price:
                self.price_cache.set(symbol, initial_price)
                return initial_price

            snapshot = await self.fetch_snapshot(symbol, DEFAULT_TIMEFRAME)
            self.price_cache.set(symbol, snapshot.price)
            return snapshot.price
