"""End-to-end CLI runs against a snapshot file."""
from __future__ import annotations

from pathlib import Path

import pytest

import solvency.cli as cli
from solvency.cli import EXIT_DOMAIN_ERROR, main

EXAMPLE_SNAPSHOT = Path(__file__).resolve().parents[2] / "examples_data" / "snapshot.yaml"


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class TestCommands:
    def test_report(
        self, sample_config_path: Path, snapshot_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = _run(
            ["--config", str(sample_config_path), "report", str(snapshot_path), "--account", "alice"]
        )
        out = capsys.readouterr().out
        assert code == 0
        assert "MODERATE" in out
        assert "HF: 1.33" in out
        assert "Time to liquidation: 1-7 days" in out

    def test_report_unpriced_market(
        self, sample_config_path: Path, snapshot_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = _run(
            ["--config", str(sample_config_path), "report", str(snapshot_path), "--account", "dave"]
        )
        assert code == EXIT_DOMAIN_ERROR
        assert "missing_market_data [dead]" in capsys.readouterr().err

    def test_capacity(
        self, sample_config_path: Path, snapshot_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = _run(
            [
                "--config", str(sample_config_path),
                "capacity", str(snapshot_path),
                "--account", "alice",
                "--market", "usdc",
            ]
        )
        out = capsys.readouterr().out
        assert code == 0
        assert "Max borrow: 100.000000 USDC" in out
        assert "Max withdraw: 0 USDC" in out

    def test_capacity_unknown_market(
        self, sample_config_path: Path, snapshot_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = _run(
            [
                "--config", str(sample_config_path),
                "capacity", str(snapshot_path),
                "--account", "alice",
                "--market", "btc",
            ]
        )
        assert code == EXIT_DOMAIN_ERROR
        assert "missing_market_data" in capsys.readouterr().err

    def test_preview_rejected(
        self, sample_config_path: Path, snapshot_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = _run(
            [
                "--config", str(sample_config_path),
                "preview", str(snapshot_path),
                "--account", "alice",
                "--action", "borrow",
                "--market", "usdc",
                "--amount", "101",
            ]
        )
        assert code == EXIT_DOMAIN_ERROR
        assert "insufficient_collateral" in capsys.readouterr().err

    def test_preview_repay(
        self, sample_config_path: Path, snapshot_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = _run(
            [
                "--config", str(sample_config_path),
                "preview", str(snapshot_path),
                "--account", "alice",
                "--action", "repay",
                "--market", "usdc",
                "--amount", "100",
            ]
        )
        out = capsys.readouterr().out
        assert code == 0
        assert "Before: HF: 1.33" in out
        assert "After:  HF: 2.00" in out

    def test_rank(
        self, sample_config_path: Path, snapshot_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = _run(["--config", str(sample_config_path), "rank", str(snapshot_path)])
        captured = capsys.readouterr()
        assert code == 0
        assert "Accounts: 3" in captured.out
        assert captured.out.index("carol:") < captured.out.index("alice:")
        assert captured.out.index("alice:") < captured.out.index("bob:")
        assert "Skipping dave" in captured.err

    def test_liquidate(
        self, sample_config_path: Path, snapshot_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = _run(
            [
                "--config", str(sample_config_path),
                "liquidate", str(snapshot_path),
                "--account", "carol",
                "--repay-market", "usdc",
                "--collateral-market", "eth",
                "--amount", "600",
            ]
        )
        out = capsys.readouterr().out
        assert code == 0
        assert "Repay: $500.00" in out
        assert "Bonus: $25.00" in out
        assert "Seize: 0.2625 from market eth" in out

    def test_example_snapshot(
        self, sample_config_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = _run(
            [
                "--config", str(sample_config_path),
                "--network", "voi-mainnet",
                "rank", str(EXAMPLE_SNAPSHOT),
            ]
        )
        assert code == 0
        assert "Accounts: 3" in capsys.readouterr().out


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    def test_no_command(self) -> None:
        assert _run([]) == 1

    def test_no_snapshot_location(
        self, sample_config_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = _run(["--config", str(sample_config_path), "rank"])
        assert code == 1
        assert "no snapshot" in capsys.readouterr().err
