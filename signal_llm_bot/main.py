"""Main entry point for the Signal LLM bot."""

import argparse
import asyncio
import logging
import signal
import sys

from pydantic import ValidationError

from .bot import Bot
from .config import load_config


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def async_main(args, logger) -> int:
    """Async main function (polling mode)."""
    try:
        logger.info("Loading configuration from %s", args.config)
        config = load_config(args.config)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    bot = Bot(config)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Not available on Windows event loops
            pass

    try:
        if args.once:
            logger.info("Running single poll cycle...")
            processed = await bot.run_once()
            logger.info("Processed %d message(s)", processed)
        else:
            await bot.run(stop_event)
        return 0

    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1
    finally:
        await bot.close()
        logger.info("Exited")


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Signal bot that answers mentions with an LLM",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                              # Run with default config.yaml
  %(prog)s -c myconfig.yaml             # Run with custom config
  %(prog)s -v                           # Run with verbose logging
  %(prog)s --once                       # Poll once and exit (useful for testing)
        """,
    )

    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run once and exit (don't poll continuously)",
    )

    args = parser.parse_args()

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    return asyncio.run(async_main(args, logger))


if __name__ == "__main__":
    sys.exit(main())
