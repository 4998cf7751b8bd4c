"""Shared enums and helpers to avoid stringly-typed directions and biases."""

from enum import Enum
from typing import Union


class Direction(Enum):
    """Trade direction of a signal."""
    BUY = "buy"
    SELL = "sell"

    def __str__(self) -> str:
        return self.value


class OrderType(Enum):
    """How the entry is placed. Only changes entry-price derivation."""
    MARKET = "market"
    LIMIT = "limit"

    def __str__(self) -> str:
        return self.value


class Bias(Enum):
    """Higher-timeframe structural bias."""
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NONE = "NONE"

    def __str__(self) -> str:
        return self.value


class Trend(Enum):
    """Working-timeframe trend from range comparison."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"

    def __str__(self) -> str:
        return self.value


OrderTypeLike = Union[OrderType, str]


def coerce_order_type(order_type: OrderTypeLike) -> OrderType:
    """Convert 'market'/'limit' (any case) to OrderType. Raises ValueError otherwise."""
    if isinstance(order_type, OrderType):
        return order_type
    return OrderType(str(order_type).strip().lower())
