"""ANSI color codes for signal output."""


class Colors:
    """ANSI escape codes, plus the roles they play in signal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"

    # Roles
    BUY = GREEN
    SELL = RED
    BONUS = GREEN
    PENALTY = RED
    NEUTRAL = DIM
    STOP = RED
    TARGET = GREEN
    REJECTED = YELLOW
