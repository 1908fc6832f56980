"""Health factor, LTV and liquidation margin from an aggregate."""
from __future__ import annotations

from decimal import Decimal

from ..models import (
    HUNDRED,
    INFINITY,
    ZERO,
    AggregateResult,
    HealthMetrics,
    PositionSet,
)

DISPLAY_CAP = Decimal("3.0")


def health_factor_raw(aggregate: AggregateResult) -> Decimal:
    """Uncapped weighted-collateral / debt ratio.

    ``Infinity`` without debt, ``0`` with debt but no collateral.
    """
    if aggregate.total_debt_usd == 0:
        return INFINITY
    if aggregate.total_collateral_usd == 0:
        return ZERO
    return aggregate.weighted_collateral_usd / aggregate.total_debt_usd


def health(
    aggregate: AggregateResult, display_cap: Decimal = DISPLAY_CAP
) -> HealthMetrics:
    """Derive HealthMetrics; the displayed factor never exceeds ``display_cap``.

    An account with neither collateral nor debt reports the cap and is
    flagged ``is_empty`` so callers can render "no position" instead.
    """
    raw = health_factor_raw(aggregate)
    displayed = min(display_cap, raw)

    if aggregate.total_collateral_usd > 0:
        ltv = aggregate.total_debt_usd / aggregate.total_collateral_usd
    else:
        ltv = ZERO

    margin = max(
        ZERO, aggregate.weighted_liquidation_threshold * HUNDRED - ltv * HUNDRED
    )

    return HealthMetrics(
        health_factor=displayed,
        health_factor_raw=raw,
        ltv=ltv,
        liquidation_margin_pct=margin,
        is_empty=(
            aggregate.total_collateral_usd == 0 and aggregate.total_debt_usd == 0
        ),
    )


def liquidation_price(position_set: PositionSet, market_id: str) -> Decimal | None:
    """Price of one collateral asset at which the raw health factor hits 1.0.

    All other prices are held fixed. Returns None when the account has no
    debt, holds no such collateral, or the asset has no borrowing power.
    A result of 0 means the remaining collateral alone covers the debt.
    """
    position = position_set.collateral_position(market_id)
    if position is None or position.amount <= 0 or position.collateral_factor == 0:
        return None

    total_debt = sum((p.value_usd for p in position_set.debt), ZERO)
    if total_debt == 0:
        return None

    other_weighted = sum(
        (
            p.value_usd * p.collateral_factor
            for p in position_set.collateral
            if p.market_id != market_id and p.amount > 0
        ),
        ZERO,
    )
    shortfall = total_debt - other_weighted
    if shortfall <= 0:
        return ZERO
    return shortfall / (position.amount * position.collateral_factor)
