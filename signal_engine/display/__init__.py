"""Display utilities for signal engine output."""

from .colors import Colors
from .formatters import delta_color, direction_color, format_price, strength_bar
from .printers import (
    print_header,
    print_rejection,
    print_score_card,
    print_section,
    print_signal,
    print_trace,
)

__all__ = [
    # Colors
    "Colors",
    # Formatters
    "direction_color",
    "delta_color",
    "strength_bar",
    "format_price",
    # Printers
    "print_header",
    "print_section",
    "print_score_card",
    "print_trace",
    "print_signal",
    "print_rejection",
]
