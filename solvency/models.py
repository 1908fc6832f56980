"""Data models. All frozen; all money as Decimal."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

ZERO = Decimal(0)
ONE = Decimal(1)
HUNDRED = Decimal(100)
INFINITY = Decimal("Infinity")


def to_decimal(value: Any) -> Decimal:
    """Convert an external number to Decimal without binary float noise.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")``.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError(f"Expected a number, got bool {value!r}")
    if isinstance(value, (int, str)):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    raise TypeError(f"Expected a number, got {type(value).__name__}")


class RiskTier(str, Enum):
    LIQUIDATABLE = "liquidatable"
    DANGER = "danger"
    MODERATE = "moderate"
    SAFE = "safe"


@dataclass(frozen=True)
class Position:
    """One collateral or debt position of an account in a single market."""

    market_id: str
    symbol: str
    amount: Decimal
    price_usd: Decimal
    collateral_factor: Decimal
    liquidation_threshold: Decimal

    @property
    def value_usd(self) -> Decimal:
        return self.amount * self.price_usd


@dataclass(frozen=True)
class PositionSet:
    """Collateral and debt of one account at one instant."""

    collateral: tuple[Position, ...] = ()
    debt: tuple[Position, ...] = ()
    account_id: str = ""

    def collateral_position(self, market_id: str) -> Position | None:
        for position in self.collateral:
            if position.market_id == market_id:
                return position
        return None

    def debt_position(self, market_id: str) -> Position | None:
        for position in self.debt:
            if position.market_id == market_id:
                return position
        return None

    @property
    def has_debt(self) -> bool:
        return any(p.amount > 0 for p in self.debt)


@dataclass(frozen=True)
class MarketState:
    """Pool-level state of a lending market, as reported by the data source."""

    market_id: str
    symbol: str
    total_deposits: Decimal
    total_borrows: Decimal
    price_usd: Decimal | None
    collateral_factor: Decimal
    liquidation_threshold: Decimal
    supply_rate: Decimal = ZERO
    borrow_rate: Decimal = ZERO
    close_factor: Decimal | None = None

    @property
    def raw_liquidity(self) -> Decimal:
        return self.total_deposits - self.total_borrows

    @property
    def liquidity_flagged(self) -> bool:
        """True when borrows exceed deposits, an upstream data error."""
        return self.raw_liquidity < 0

    @property
    def available_liquidity(self) -> Decimal:
        return max(ZERO, self.raw_liquidity)

    @property
    def utilization(self) -> Decimal:
        if self.total_deposits <= 0:
            return ZERO
        return self.total_borrows / self.total_deposits


@dataclass(frozen=True)
class AccountBalance:
    """Per-market balance of an account in human-readable units."""

    market_id: str
    deposit_balance: Decimal = ZERO
    debt_balance: Decimal = ZERO
    accrued_interest: Decimal = ZERO

    @property
    def total_debt(self) -> Decimal:
        return self.debt_balance + self.accrued_interest


@dataclass(frozen=True)
class AggregateResult:
    total_collateral_usd: Decimal
    weighted_collateral_usd: Decimal
    total_debt_usd: Decimal
    weighted_liquidation_threshold: Decimal


@dataclass(frozen=True)
class HealthMetrics:
    """Derived solvency metrics.

    ``health_factor`` is capped for display; ``health_factor_raw`` keeps the
    uncapped ratio (``Infinity`` without debt) for ranking.
    """

    health_factor: Decimal
    health_factor_raw: Decimal
    ltv: Decimal
    liquidation_margin_pct: Decimal
    is_empty: bool = False


@dataclass(frozen=True)
class LiquidationPlan:
    repay_usd: Decimal
    repay_market_id: str
    collateral_market_id: str
    collateral_amount: Decimal
    bonus_usd: Decimal
    projected_ltv: Decimal
    repay_amount: Decimal = ZERO


@dataclass(frozen=True)
class RankedDebtPosition:
    position: Position
    value_usd: Decimal
    risk_score: Decimal


@dataclass(frozen=True)
class RiskAssessment:
    tier: RiskTier
    severity: Decimal
    time_to_liquidation: str | None = None
    recommended_actions: tuple[str, ...] = ()


@dataclass(frozen=True)
class TierBucket:
    tier: RiskTier
    count: int
    percentage: Decimal


@dataclass(frozen=True)
class RiskSummary:
    """Statistics over many accounts, for the liquidation dashboard."""

    total_accounts: int
    total_borrowed_usd: Decimal
    value_at_risk_usd: Decimal
    average_health_factor: Decimal
    distribution: tuple[TierBucket, ...] = ()

    def count(self, tier: RiskTier) -> int:
        for bucket in self.distribution:
            if bucket.tier is tier:
                return bucket.count
        return 0


@dataclass(frozen=True)
class AccountReport:
    """Everything the dashboard shows for one account."""

    account_id: str
    aggregate: AggregateResult
    metrics: HealthMetrics
    tier: RiskTier
    ranked_debt: tuple[RankedDebtPosition, ...] = ()
