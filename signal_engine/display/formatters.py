"""Formatting utilities for signal display."""

from ..engines.signals import Direction
from ..engines.trade_setup import price_decimals
from .colors import Colors


def direction_color(direction: Direction) -> str:
    """Get color for a trade direction."""
    return Colors.BUY if direction is Direction.BUY else Colors.SELL


def delta_color(delta: int) -> str:
    """Get color for a confidence delta."""
    if delta > 0:
        return Colors.BONUS
    if delta < 0:
        return Colors.PENALTY
    return Colors.NEUTRAL


def strength_bar(strength: float, width: int = 20) -> str:
    """Create a visual strength bar.

    Args:
        strength: Value from 0-100 (clamped)
        width: Bar width in characters

    Returns:
        Colored bar string
    """
    strength = max(0.0, min(100.0, strength))
    filled = int(strength / 100 * width)
    empty = width - filled

    if strength >= 70:
        color = Colors.GREEN
    elif strength >= 50:
        color = Colors.YELLOW
    else:
        color = Colors.RED

    return f"{color}{'█' * filled}{Colors.DIM}{'░' * empty}{Colors.RESET}"


def format_price(price: float) -> str:
    """Price at the precision used for setups, trailing zeros trimmed."""
    text = f"{price:,.{price_decimals(price)}f}".rstrip("0")
    return text.rstrip(".") if text.endswith(".") else text
