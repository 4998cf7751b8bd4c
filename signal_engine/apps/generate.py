#!/usr/bin/env python3
"""
Market-Structure Signal - Entry Point.
Generates one signal for a symbol and prints it.
"""

import argparse
import asyncio
import logging
import sys

from signal_engine.apps.runner import run_signal
from signal_engine.display.colors import Colors
from signal_engine.engines.htf_bias import HTF_TIMEFRAME_MAP
from signal_engine.engines.signal_config import (
    create_aggressive_config,
    create_conservative_config,
    get_config,
)
from signal_engine.logging_config import log_exception, setup_logging

logger = logging.getLogger(__name__)

PRESETS = {
    "default": get_config,
    "aggressive": create_aggressive_config,
    "conservative": create_conservative_config,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Market-structure trading signal generator")
    parser.add_argument(
        "symbol", nargs="?", default="BTCUSDT", help="Trading pair symbol (default: BTCUSDT)"
    )
    parser.add_argument(
        "--timeframe",
        "-t",
        default="15m",
        choices=sorted(HTF_TIMEFRAME_MAP),
        help="Working timeframe (default: 15m)",
    )
    parser.add_argument(
        "--order-type",
        "-o",
        default="market",
        choices=["market", "limit"],
        help="Entry order type (default: market)",
    )
    parser.add_argument(
        "--methods",
        "-m",
        default="ict,smc,elliott_wave",
        help="Comma-separated methodology labels (advisory only)",
    )
    parser.add_argument(
        "--min-confidence",
        "-c",
        type=int,
        default=None,
        help="Minimum confidence score (default: the preset's threshold)",
    )
    parser.add_argument(
        "--preset",
        default="default",
        choices=sorted(PRESETS),
        help="Threshold preset (default: default)",
    )
    parser.add_argument(
        "--trace", action="store_true", help="Print the full rationale trace"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: LOG_LEVEL env or INFO)",
    )
    return parser


def main(argv=None):
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level)

    methods = [m.strip() for m in args.methods.split(",") if m.strip()]
    config = PRESETS[args.preset]()

    try:
        asyncio.run(
            run_signal(
                args.symbol,
                args.timeframe,
                order_type=args.order_type,
                methods=methods,
                min_confidence=args.min_confidence,
                show_trace=args.trace,
                config=config,
            )
        )
    except ValueError as e:
        print(f"{Colors.RED}Error: {e}{Colors.RESET}")
        sys.exit(2)
    except KeyboardInterrupt:
        print(f"\n{Colors.YELLOW}Signal generation cancelled.{Colors.RESET}")
        sys.exit(0)
    except Exception as e:
        log_exception(logger, e, "Signal generation failed")
        print(f"\n{Colors.RED}Error: {e}{Colors.RESET}")
        sys.exit(1)


if __name__ == "__main__":
    main()
