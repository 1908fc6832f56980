"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from decimal import Decimal
from pathlib import Path

import pytest

from solvency.config import EngineConfig, HealthConfig
from solvency.models import (
    AccountBalance,
    AggregateResult,
    MarketState,
    Position,
    PositionSet,
)

D = Decimal


def make_position(
    market_id: str,
    amount: str | int,
    price: str | int = 1,
    cf: str = "0.8",
    lt: str = "0.85",
    symbol: str | None = None,
) -> Position:
    return Position(
        market_id=market_id,
        symbol=symbol or market_id.upper(),
        amount=D(amount),
        price_usd=D(price),
        collateral_factor=D(cf),
        liquidation_threshold=D(lt),
    )


def make_market(
    market_id: str,
    price: str | int | None = 1,
    deposits: str | int = 1_000_000,
    borrows: str | int = 0,
    cf: str = "0.8",
    lt: str = "0.85",
    symbol: str | None = None,
    close_factor: str | None = None,
) -> MarketState:
    return MarketState(
        market_id=market_id,
        symbol=symbol or market_id.upper(),
        total_deposits=D(deposits),
        total_borrows=D(borrows),
        price_usd=D(price) if price is not None else None,
        collateral_factor=D(cf),
        liquidation_threshold=D(lt),
        close_factor=D(close_factor) if close_factor is not None else None,
    )


# ---------------------------------------------------------------------------
# Market fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def voi_market() -> MarketState:
    return make_market("voi", price="0.5", deposits=5_000_000, borrows=1_200_000)


@pytest.fixture()
def usdc_market() -> MarketState:
    return make_market("usdc", price=1, deposits=400, borrows=250, cf="0.85", lt="0.9")


@pytest.fixture()
def eth_market() -> MarketState:
    return make_market("eth", price=2000, deposits=120, borrows=30, close_factor="0.4")


@pytest.fixture()
def markets(
    voi_market: MarketState, usdc_market: MarketState, eth_market: MarketState
) -> dict[str, MarketState]:
    return {m.market_id: m for m in (voi_market, usdc_market, eth_market)}


# ---------------------------------------------------------------------------
# Position set fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def moderate_account() -> PositionSet:
    """1000 VOI @ $0.50 (CF 0.8) against 300 USDC of debt → HF 1.333."""
    return PositionSet(
        collateral=(make_position("voi", 1000, "0.5"),),
        debt=(make_position("usdc", 300, 1, cf="0.85", lt="0.9"),),
        account_id="alice",
    )


@pytest.fixture()
def debt_free_account() -> PositionSet:
    return PositionSet(
        collateral=(make_position("eth", 1, 2000),),
        account_id="bob",
    )


@pytest.fixture()
def underwater_account() -> PositionSet:
    """0.4 ETH @ $2000 against 1000 USDC → HF 0.64."""
    return PositionSet(
        collateral=(make_position("eth", "0.4", 2000),),
        debt=(make_position("usdc", 1000, 1, cf="0.85", lt="0.9"),),
        account_id="carol",
    )


@pytest.fixture(
    params=["factor_above_one", "negative_debt", "threshold_below_factor", "duplicate_market"]
)
def degenerate_account(request: pytest.FixtureRequest) -> PositionSet:
    """Variants of alice's account that no engine entry point may accept."""
    collateral = (make_position("voi", 1000, "0.5"),)
    debt = (make_position("usdc", 300, 1, cf="0.85", lt="0.9"),)
    if request.param == "factor_above_one":
        collateral = (make_position("voi", 1000, "0.5", cf="1.2", lt="1.2"),)
    elif request.param == "negative_debt":
        debt = (make_position("usdc", -300, 1, cf="0.85", lt="0.9"),)
    elif request.param == "threshold_below_factor":
        collateral = (make_position("voi", 1000, "0.5", cf="0.9", lt="0.8"),)
    else:
        collateral = (make_position("voi", 100, "0.5"), make_position("voi", 900, "0.5"))
    return PositionSet(collateral=collateral, debt=debt, account_id="alice")


@pytest.fixture()
def headroom_aggregate() -> AggregateResult:
    """Aggregate with exactly $200 of borrowing headroom."""
    return AggregateResult(
        total_collateral_usd=D(500),
        weighted_collateral_usd=D(400),
        total_debt_usd=D(200),
        weighted_liquidation_threshold=D("0.85"),
    )


@pytest.fixture()
def settings() -> HealthConfig:
    return HealthConfig()


@pytest.fixture()
def engine_config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture()
def alice_balances() -> list[AccountBalance]:
    return [
        AccountBalance(market_id="voi", deposit_balance=D(1000)),
        AccountBalance(market_id="usdc", debt_balance=D(290), accrued_interest=D(10)),
    ]


# ---------------------------------------------------------------------------
# YAML fixtures
# ---------------------------------------------------------------------------

SAMPLE_CONFIG_YAML = textwrap.dedent("""\
    engine:
      display_cap: 3.0
      default_liquidation_threshold: 0.85
      safety_buffer_pct: 0.001
      amount_precision: 6
      tiers: {liquidatable: 1.0, danger: 1.1, moderate: 1.5}
    liquidation:
      close_factor: 0.5
      bonus_rate: 0.05
    cache:
      ttl_seconds: 15
      max_size: 10
    network: voi-testnet
""")

SAMPLE_SNAPSHOT_YAML = textwrap.dedent("""\
    network: voi-testnet
    markets:
      - {market_id: voi, symbol: VOI, total_deposits: 5000000, total_borrows: 1200000,
         price_usd: 0.5, collateral_factor: 0.8, liquidation_threshold: 0.85,
         supply_rate: 0.02, borrow_rate: 0.05}
      - {market_id: usdc, symbol: USDC, total_deposits: 400, total_borrows: 250,
         price_usd: 1.0, collateral_factor: 0.85, liquidation_threshold: 0.9}
      - {market_id: eth, symbol: ETH, total_deposits: 120, total_borrows: 30,
         price_usd: 2000, collateral_factor: 0.8, liquidation_threshold: 0.85,
         close_factor: 0.5}
      - {market_id: dead, symbol: DEAD, total_deposits: 10, total_borrows: 0,
         collateral_factor: 0.5, liquidation_threshold: 0.6}
    accounts:
      alice:
        - {market_id: voi, deposit_balance: 1000}
        - {market_id: usdc, debt_balance: 290, accrued_interest: 10}
      bob:
        - {market_id: eth, deposit_balance: 1}
      carol:
        - {market_id: eth, deposit_balance: 0.4}
        - {market_id: usdc, debt_balance: 1000}
      dave:
        - {market_id: dead, deposit_balance: 5}
""")


@pytest.fixture()
def sample_config_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_CONFIG_YAML)
    return cfg_file


@pytest.fixture()
def snapshot_path(tmp_path: Path) -> Path:
    path = tmp_path / "snapshot.yaml"
    path.write_text(SAMPLE_SNAPSHOT_YAML)
    return path
