import argparse
import dataclasses
import logging
import sys
from typing import List, Optional

from config import ConfigError, EngineConfig, resolve_log_level
from models import TransactionType
from payments_engine import PaymentsEngine
from report_writer import write_accounts

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Replay a transactions CSV and print final client balances.")
    parser.add_argument("input", help="Path to transactions CSV")
    parser.add_argument(
        "--allow-locked-activity",
        action="store_true",
        help="Keep applying deposits and withdrawals to locked accounts",
    )
    parser.add_argument(
        "--deposits-only-disputes",
        action="store_true",
        help="Only deposits can be disputed",
    )
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR (default: $PAYMENTS_LOG_LEVEL or WARNING)")
    return parser


def build_config(args: argparse.Namespace) -> EngineConfig:
    """Environment values first, then command-line flags on top."""
    config = EngineConfig.from_env()
    if args.allow_locked_activity:
        config = dataclasses.replace(config, allow_locked_deposits_and_withdrawals=True)
    if args.deposits_only_disputes:
        config = dataclasses.replace(config, disputable_types=frozenset({TransactionType.DEPOSIT}))
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        level = resolve_log_level(args.log_level)
        config = build_config(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    engine = PaymentsEngine(config)
    try:
        accounts = engine.process_file(args.input)
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Cannot read {args.input}: {e}")
        return 1

    write_accounts(accounts, sys.stdout, config.amount_scale)
    return 0


if __name__ == "__main__":
    sys.exit(main())
