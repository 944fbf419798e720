# main.py

"""Entry point for the price_monitor bot (long-running or one-shot)."""

import argparse
import asyncio
import logging
import sys

from price_monitor.config.logging_config import setup_logging
from price_monitor.config.settings import Settings

logger = logging.getLogger("price_monitor.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    categories = ", ".join(Settings.CATEGORIES)

    parser = argparse.ArgumentParser(
        prog="price_monitor",
        description="Price change monitor with Telegram notifications.",
        epilog=f"Monitored categories: {categories}",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--once",
        action="store_true",
        default=False,
        help="Run a single monitoring cycle and exit (no notification).",
    )
    mode.add_argument(
        "--prices",
        action="store_true",
        default=False,
        help="Print current prices and exit (state is not modified).",
    )
    parser.add_argument(
        "--no-initial-run",
        action="store_false",
        dest="initial_run",
        default=True,
        help="Do not run a cycle at bot start-up.",
    )
    return parser


def main() -> None:
    """Route to the bot (default) or one of the one-shot modes."""
    args = _build_parser().parse_args()

    from price_monitor.cli.runner import run_bot, run_once, show_prices

    if args.once:
        setup_logging()
        exit_code = asyncio.run(run_once())
    elif args.prices:
        setup_logging()
        exit_code = asyncio.run(show_prices())
    else:
        log_file = setup_logging(console_level=logging.INFO)
        logger.info("price_monitor starting, log file: %s", log_file)
        try:
            exit_code = asyncio.run(run_bot(initial_run=args.initial_run))
        except Exception:
            logger.critical("Fatal error during bot run", exc_info=True)
            raise
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
