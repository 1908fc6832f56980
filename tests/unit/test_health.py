"""Unit tests for health factor, LTV, margin and liquidation price."""
from __future__ import annotations

from decimal import Decimal

from conftest import make_position
from solvency.engine.aggregator import aggregate
from solvency.engine.health import health, health_factor_raw, liquidation_price
from solvency.models import AggregateResult, PositionSet


def _metrics(position_set: PositionSet):
    return health(aggregate(position_set))


# ---------------------------------------------------------------------------
# health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_moderate_account(self, moderate_account: PositionSet) -> None:
        metrics = _metrics(moderate_account)
        assert metrics.health_factor == Decimal(400) / Decimal(300)
        assert metrics.health_factor_raw == metrics.health_factor
        assert metrics.ltv == Decimal("0.6")
        assert metrics.liquidation_margin_pct == 25
        assert not metrics.is_empty

    def test_no_debt_is_capped(self, debt_free_account: PositionSet) -> None:
        metrics = _metrics(debt_free_account)
        assert metrics.health_factor == Decimal("3.0")
        assert metrics.health_factor_raw.is_infinite()
        assert metrics.ltv == 0
        assert metrics.liquidation_margin_pct == 85

    def test_debt_without_collateral(self) -> None:
        metrics = _metrics(PositionSet(debt=(make_position("usdc", 100),)))
        assert metrics.health_factor == 0
        assert metrics.health_factor_raw == 0
        assert metrics.ltv == 0

    def test_underwater_margin_clamped(self, underwater_account: PositionSet) -> None:
        metrics = _metrics(underwater_account)
        assert metrics.health_factor == Decimal("0.64")
        assert metrics.ltv == Decimal("1.25")
        assert metrics.liquidation_margin_pct == 0

    def test_empty_account(self) -> None:
        metrics = _metrics(PositionSet())
        assert metrics.health_factor == Decimal("3.0")
        assert metrics.is_empty

    def test_display_cap_applies_above_raw(self) -> None:
        result = AggregateResult(Decimal(1000), Decimal(500), Decimal(100), Decimal("0.85"))
        metrics = health(result)
        assert metrics.health_factor_raw == 5
        assert metrics.health_factor == Decimal("3.0")

    def test_custom_display_cap(self) -> None:
        result = AggregateResult(Decimal(1000), Decimal(500), Decimal(100), Decimal("0.85"))
        assert health(result, Decimal(10)).health_factor == 5

    def test_raw_without_debt(self) -> None:
        result = AggregateResult(Decimal(1), Decimal(1), Decimal(0), Decimal("0.85"))
        assert health_factor_raw(result).is_infinite()


# ---------------------------------------------------------------------------
# liquidation_price
# ---------------------------------------------------------------------------


class TestLiquidationPrice:
    def test_single_collateral(self, moderate_account: PositionSet) -> None:
        # 1000 VOI * p * 0.8 == 300
        assert liquidation_price(moderate_account, "voi") == Decimal("0.375")

    def test_other_collateral_covers_debt(self, moderate_account: PositionSet) -> None:
        ps = PositionSet(
            collateral=moderate_account.collateral + (make_position("eth", 1, 2000),),
            debt=moderate_account.debt,
        )
        assert liquidation_price(ps, "voi") == 0

    def test_no_debt(self, debt_free_account: PositionSet) -> None:
        assert liquidation_price(debt_free_account, "eth") is None

    def test_unknown_market(self, moderate_account: PositionSet) -> None:
        assert liquidation_price(moderate_account, "eth") is None

    def test_zero_collateral_factor(self) -> None:
        ps = PositionSet(
            collateral=(make_position("x", 10, 1, cf="0"),),
            debt=(make_position("usdc", 1),),
        )
        assert liquidation_price(ps, "x") is None


# ---------------------------------------------------------------------------
# monotonicity
# ---------------------------------------------------------------------------


class TestMonotonicity:
    def test_more_debt_never_raises_health(self) -> None:
        factors = [
            health(
                AggregateResult(Decimal(1000), Decimal(800), Decimal(debt), Decimal("0.85"))
            ).health_factor_raw
            for debt in (100, 200, 400, 800, 1600)
        ]
        assert factors == sorted(factors, reverse=True)

    def test_more_collateral_never_lowers_health(self) -> None:
        factors = [
            health(
                AggregateResult(Decimal(1000), Decimal(weighted), Decimal(500), Decimal("0.85"))
            ).health_factor
            for weighted in (0, 250, 500, 750, 1000)
        ]
        assert factors == sorted(factors)
