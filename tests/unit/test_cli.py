"""Unit tests for CLI argument parsing."""
from __future__ import annotations

from decimal import Decimal

import pytest

from solvency.cli import build_parser


# ---------------------------------------------------------------------------
# build_parser
# ---------------------------------------------------------------------------


class TestBuildParser:
    def test_report_command(self) -> None:
        parser = build_parser()
        args = parser.parse_args(["report", "snap.yaml", "--account", "alice"])
        assert args.command == "report"
        assert args.snapshot == "snap.yaml"
        assert args.account == "alice"

    def test_snapshot_is_optional(self) -> None:
        parser = build_parser()
        args = parser.parse_args(["rank"])
        assert args.command == "rank"
        assert args.snapshot is None

    def test_preview_parses_decimal_amount(self) -> None:
        parser = build_parser()
        args = parser.parse_args(
            ["preview", "--account", "a", "--action", "borrow", "--market", "2", "--amount", "0.1"]
        )
        assert args.action == "borrow"
        assert args.amount == Decimal("0.1")

    def test_preview_rejects_unknown_action(self) -> None:
        parser = build_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(
                ["preview", "--account", "a", "--action", "swap", "--market", "2", "--amount", "1"]
            )

    def test_rejects_non_decimal_amount(self) -> None:
        parser = build_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(
                ["preview", "--account", "a", "--action", "repay", "--market", "2", "--amount", "lots"]
            )

    def test_liquidate_command(self) -> None:
        parser = build_parser()
        args = parser.parse_args(
            [
                "liquidate",
                "--account", "carol",
                "--repay-market", "2",
                "--collateral-market", "3",
                "--amount", "600",
            ]
        )
        assert args.repay_market == "2"
        assert args.collateral_market == "3"
        assert args.amount == Decimal(600)

    def test_capacity_requires_market(self) -> None:
        parser = build_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(["capacity", "--account", "a"])

    def test_global_flags(self) -> None:
        parser = build_parser()
        args = parser.parse_args(
            ["--config", "/tmp/c.yaml", "--log-level", "DEBUG", "--network", "voi", "rank"]
        )
        assert args.config == "/tmp/c.yaml"
        assert args.log_level == "DEBUG"
        assert args.network == "voi"

    def test_no_command(self) -> None:
        parser = build_parser()
        args = parser.parse_args([])
        assert args.command is None
