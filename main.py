"""
Main entrypoint: ARC Score indexer and metrics scheduler.

Usage:
  python main.py                              # start periodic indexer + metrics jobs
  python main.py --action indexer             # one indexer cycle, then exit
  python main.py --action metrics             # rescore all wallets + network stats
  python main.py --action network-stats       # network stats only
  python main.py --overview 0xAbC...          # print a wallet overview as JSON

Env: ARC_RPC_URL, DATABASE_URL, INDEXER_ENABLED, INDEXER_BATCH_SIZE, etc. (see .env).
"""

import argparse
import json
import sys

# Configure structured JSON logging before other imports that may log
from backend_arcscore.arc_logging import get_logger

logger = get_logger("main")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="ARC Score block indexer and wallet scoring.")
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--action",
        choices=["indexer", "metrics", "network-stats"],
        help="Run one action immediately, then exit.",
    )
    group.add_argument(
        "--overview",
        metavar="ADDRESS",
        help="Print the wallet overview for ADDRESS as JSON, then exit.",
    )
    args = parser.parse_args(argv)

    from backend_arcscore.agent_worker import build_services, run_action
    from backend_arcscore.core.exceptions import InvalidWalletAddress

    try:
        services = build_services()
    except ValueError as e:
        logger.error("main_config_error", error=str(e))
        return 1

    try:
        if args.action:
            result = run_action(services, args.action)
            print(json.dumps(result.to_dict(), indent=2))
            return 0 if result.ok else 1
        if args.overview:
            try:
                overview = services.wallets.get_wallet_overview(args.overview)
            except InvalidWalletAddress as e:
                logger.error("main_invalid_address", error=str(e))
                return 1
            print(json.dumps(overview, indent=2, default=str))
            return 0

        from backend_arcscore.scheduler import run_scheduler

        run_scheduler(services)
        return 0
    finally:
        services.close()


if __name__ == "__main__":
    sys.exit(main())
