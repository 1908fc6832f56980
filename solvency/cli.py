"""Command-line interface for the solvency engine."""
from __future__ import annotations

import argparse
import asyncio
import sys
from decimal import Decimal, InvalidOperation

from .config import EngineConfig, load_config
from .engine.positions import build_position_set
from .engine.simulator import ACTIONS
from .errors import DomainError, Err
from .logging_setup import configure_logging
from .models import PositionSet
from .report import (
    format_account_report,
    format_capacity,
    format_plan,
    format_preview,
    format_summary,
)
from .services import RiskEngine
from .sources import open_source

EXIT_DOMAIN_ERROR = 2


def _decimal_arg(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a decimal number: {value!r}") from None


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="solvency",
        description="Solvency and liquidation-risk engine for lending accounts",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--network",
        default=None,
        help="Network id to evaluate (overrides config)",
    )

    sub = parser.add_subparsers(dest="command")

    def _command(name: str, help_text: str) -> argparse.ArgumentParser:
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument(
            "snapshot",
            nargs="?",
            default=None,
            help="Snapshot file or http(s) URL (default: snapshot_url from config)",
        )
        return cmd

    report = _command("report", "Health report for one account")
    report.add_argument("--account", required=True)

    cap = _command("capacity", "Max borrow / withdraw for one market")
    cap.add_argument("--account", required=True)
    cap.add_argument("--market", required=True)

    preview = _command("preview", "Preview the effect of a pending action")
    preview.add_argument("--account", required=True)
    preview.add_argument("--action", required=True, choices=sorted(ACTIONS))
    preview.add_argument("--market", required=True)
    preview.add_argument("--amount", required=True, type=_decimal_arg)

    _command("rank", "Rank all accounts in the snapshot by risk")

    liq = _command("liquidate", "Size a liquidation of one account")
    liq.add_argument("--account", required=True)
    liq.add_argument("--repay-market", required=True)
    liq.add_argument("--collateral-market", required=True)
    liq.add_argument("--amount", required=True, type=_decimal_arg, help="Repay in USD")

    return parser


def _fail(error: DomainError) -> int:
    print(f"Error: {error}", file=sys.stderr)
    return EXIT_DOMAIN_ERROR


async def _run(args: argparse.Namespace, config: EngineConfig) -> int:
    """Execute the selected command; returns the process exit status."""
    location = args.snapshot or config.snapshot_url
    if not location:
        print("Error: no snapshot given and no snapshot_url configured", file=sys.stderr)
        return 1

    network = args.network if args.network is not None else config.network
    source = open_source(location)
    engine = RiskEngine(config)
    markets = await source.fetch_markets(network)

    if args.command == "rank":
        position_sets: list[PositionSet] = []
        for account_id in await source.list_accounts(network):
            built = build_position_set(
                await source.fetch_balances(account_id, network), markets, account_id
            )
            if isinstance(built, Err):
                print(f"Skipping {account_id}: {built.error}", file=sys.stderr)
                continue
            position_sets.append(built.value)
        reports, summary, failures = engine.rank_accounts(position_sets)
        for account_id, error in failures.items():
            print(f"Skipping {account_id}: {error}", file=sys.stderr)
        print(format_summary(summary, reports))
        return 0

    built = build_position_set(
        await source.fetch_balances(args.account, network), markets, args.account
    )
    if isinstance(built, Err):
        return _fail(built.error)
    position_set = built.value

    if args.command == "report":
        evaluated = engine.evaluate(position_set)
        if isinstance(evaluated, Err):
            return _fail(evaluated.error)
        report = evaluated.value
        print(format_account_report(report, engine.assess(report.metrics)))
    elif args.command == "capacity":
        market = markets.get(args.market)
        borrow = engine.max_borrow(position_set, market, network, market_id=args.market)
        withdraw = engine.max_withdraw(position_set, market, network, market_id=args.market)
        if market is None:
            return _fail(borrow.error)
        print(
            format_capacity(
                market,
                borrow.error if isinstance(borrow, Err) else borrow.value,
                withdraw.error if isinstance(withdraw, Err) else withdraw.value,
            )
        )
    elif args.command == "preview":
        delta = ACTIONS[args.action](args.market, args.amount)
        projected = engine.preview(position_set, delta, markets)
        if isinstance(projected, Err):
            return _fail(projected.error)
        print(
            format_preview(
                f"{args.action} {args.amount} in market {args.market}",
                engine.metrics(position_set),
                projected.value,
            )
        )
    elif args.command == "liquidate":
        planned = engine.liquidate(
            position_set,
            args.repay_market,
            args.collateral_market,
            args.amount,
            markets,
        )
        if isinstance(planned, Err):
            return _fail(planned.error)
        print(format_plan(planned.value))
    return 0


def main(argv: list[str] | None = None) -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.log_level)
    config = load_config(args.config)
    sys.exit(asyncio.run(_run(args, config)))
