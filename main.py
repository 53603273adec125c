#!/usr/bin/env python3
"""Entry point for the Union bridge bot.

Loads configuration from the environment and wallets from wallet.json, then
submits the requested number of Sepolia bridge transfers for every wallet.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys

from union_bridge_bot.bot import BridgeBot
from union_bridge_bot.config import DESTINATIONS, BotConfig
from union_bridge_bot.exceptions import ConfigurationError
from union_bridge_bot.wallets import load_wallets


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


# Get logger for this module
logger = logging.getLogger(__name__)


def ask_transaction_count() -> int:
    """Prompt for the number of transactions per wallet."""
    value = input("Enter the number of transactions per wallet: ").strip()
    try:
        count = int(value)
    except ValueError:
        raise ConfigurationError("Invalid number. Please enter a positive number.") from None
    if count <= 0:
        raise ConfigurationError("Invalid number. Please enter a positive number.")
    return count


async def read_transaction_count(count: int | None) -> int:
    """Return ``count`` or prompt for it in a worker thread."""
    if count is not None:
        return count
    return await asyncio.to_thread(ask_transaction_count)


async def main() -> None:
    """Main entry point for the Union bridge bot."""
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Union Bridge Bot - Repeated Sepolia bridge transfers through UCS03",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  RPC_URL          - Sepolia RPC endpoint
  BRIDGE_ADDRESS   - UCS03 bridge contract address
  USDC_ADDRESS     - Funding asset address
  DESTINATION      - Destination chain (default: holesky)
  TRANSFER_AMOUNT  - Amount per transfer in smallest units (default: 10000)
  WALLET_FILE      - Wallet file path (default: wallet.json)
  LOG_LEVEL        - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--count",
        type=int,
        default=None,
        help="Number of transactions per wallet (prompted when omitted)"
    )
    parser.add_argument(
        "--destination",
        choices=sorted(DESTINATIONS),
        default=None,
        help="Destination chain (default: DESTINATION or holesky)"
    )
    parser.add_argument(
        "--wallet-file",
        default=None,
        help="Path to wallet.json"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)
    logger.info("=== Union Bridge Bot Starting ===")

    grace = 5.0
    try:
        config: BotConfig = BotConfig.from_env(
            destination=args.destination,
            wallet_file=args.wallet_file
        )
        grace = config.pipeline.startup_grace
        config.log_config()

        wallets = load_wallets(config.wallet_file)
        count = await read_transaction_count(args.count)

        bot = BridgeBot(config)
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, bot.stop)
            loop.add_signal_handler(signal.SIGTERM, bot.stop)
        except NotImplementedError:
            pass  # Windows event loops lack signal handlers

        summary = await bot.run_from_config(wallets, count)
        logger.info(f"Final statistics: {summary}")

    except ValueError as e:
        # ConfigurationError is a ValueError too
        logger.error(f"Configuration Error: {e}")
        await asyncio.sleep(grace)
        sys.exit(1)

    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        await asyncio.sleep(grace)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
