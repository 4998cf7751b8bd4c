"""Print functions for signal engine output."""

from ..engines.scoring import ConfidenceTooLow, Rejection, RiskRewardTooLow, ScoreCard
from ..engines.signal_generator import TradeSignal
from .colors import Colors
from .formatters import delta_color, direction_color, format_price, strength_bar


def print_header(symbol: str, timeframe: str, htf_timeframe: str, price: float):
    """Print analysis header."""
    print()
    print(f"{Colors.BOLD}{'═' * 80}{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.CYAN}  SIGNAL ANALYSIS: {symbol}{Colors.RESET}")
    print(f"{Colors.BOLD}{'═' * 80}{Colors.RESET}")
    print(f"  Price: {Colors.BOLD}{format_price(price)}{Colors.RESET}  |  "
          f"Timeframe: {timeframe}  |  HTF: {htf_timeframe}")
    print(f"{Colors.DIM}{'─' * 80}{Colors.RESET}")


def print_section(title: str):
    """Print section header."""
    print()
    print(f"{Colors.BOLD}{Colors.BLUE}{title}{Colors.RESET}")
    print(f"{Colors.DIM}{'─' * 40}{Colors.RESET}")


def print_score_card(card: ScoreCard):
    """Print every confidence step with its delta."""
    print_section("CONFIDENCE BREAKDOWN")
    for step in card.steps:
        color = delta_color(step.delta)
        print(f"  {color}{step.delta:+4d}{Colors.RESET}  {Colors.BOLD}{step.stage:<22}{Colors.RESET} "
              f"{Colors.DIM}{step.description}{Colors.RESET}")
    print(f"  {Colors.BOLD}{card.total:+4d}  TOTAL{Colors.RESET}")


def print_trace(trace: str):
    """Print the rationale trace dimmed."""
    print_section("RATIONALE")
    for line in trace.splitlines():
        print(f"  {Colors.DIM}{line}{Colors.RESET}")


def print_signal(signal: TradeSignal, show_trace: bool = False):
    """Print a generated signal."""
    print_header(signal.symbol, signal.timeframe, signal.htf_timeframe, signal.current_price)
    print_score_card(signal.score_card)

    color = direction_color(signal.direction)
    summary = signal.analysis_summary

    print_section("TRADE SETUP")
    print(f"  {Colors.BOLD}Signal:{Colors.RESET}     {color}{signal.direction.value.upper()}{Colors.RESET} "
          f"({signal.order_type})")
    print(f"  {Colors.BOLD}Confidence:{Colors.RESET} {strength_bar(signal.confidence_score)} "
          f"{signal.confidence_score}/100 ({summary.quality})")
    print(f"  {Colors.BOLD}Entry:{Colors.RESET}      {format_price(signal.entry_price)}")
    print(f"  {Colors.BOLD}Stop Loss:{Colors.RESET}  {Colors.STOP}{format_price(signal.stop_loss)}{Colors.RESET}")

    targets = (
        (signal.take_profit_1, signal.tp1_percentage),
        (signal.take_profit_2, signal.tp2_percentage),
        (signal.take_profit_3, signal.tp3_percentage),
    )
    for number, (price, pct) in enumerate(targets, start=1):
        print(f"  {Colors.BOLD}TP{number}:{Colors.RESET}        {Colors.TARGET}{format_price(price)}{Colors.RESET} "
              f"{Colors.DIM}({pct}%){Colors.RESET}")

    print(f"  {Colors.BOLD}Risk/Reward:{Colors.RESET} 1:{signal.risk_reward_ratio}")
    print(f"  {Colors.BOLD}Confluence:{Colors.RESET}  {summary.confluence_count} methodologies")
    if signal.methods:
        print(f"  {Colors.DIM}Methods: {', '.join(signal.methods)}{Colors.RESET}")

    if show_trace:
        print_trace(signal.rationale_trace)
    print()


def print_rejection(rejection: Rejection, show_trace: bool = False):
    """Print why no signal was produced."""
    print()
    print(f"{Colors.BOLD}{Colors.REJECTED}  NO SIGNAL{Colors.RESET}")
    print(f"{Colors.DIM}{'─' * 80}{Colors.RESET}")

    if isinstance(rejection, ConfidenceTooLow):
        print(f"  Confidence {Colors.RED}{rejection.achieved}{Colors.RESET} "
              f"below threshold {Colors.BOLD}{rejection.threshold}{Colors.RESET}")
    elif isinstance(rejection, RiskRewardTooLow):
        print(f"  Risk/reward {Colors.RED}1:{rejection.risk_reward_ratio}{Colors.RESET} "
              f"below minimum {Colors.BOLD}1:{rejection.minimum}{Colors.RESET}")
    else:
        print(f"  {rejection.reason}")

    print_score_card(rejection.score_card)
    if show_trace:
        print_trace(rejection.rationale_trace)
    print()
