"""Reduce a position set to raw and collateral-factor-weighted totals."""
from __future__ import annotations

from decimal import Decimal

from ..errors import EngineInvariantError
from ..models import ZERO, AggregateResult, PositionSet

DEFAULT_LIQUIDATION_THRESHOLD = Decimal("0.85")


def aggregate(
    position_set: PositionSet,
    default_liquidation_threshold: Decimal = DEFAULT_LIQUIDATION_THRESHOLD,
) -> AggregateResult:
    """Aggregate collateral and debt in USD.

    Only collateral with a positive amount counts. The liquidation
    threshold is value-weighted over that collateral and falls back to
    ``default_liquidation_threshold`` when there is none.
    """
    total_collateral = ZERO
    weighted_collateral = ZERO
    threshold_weighted = ZERO

    for position in position_set.collateral:
        if position.amount <= 0:
            continue
        value = position.value_usd
        total_collateral += value
        weighted_collateral += value * position.collateral_factor
        threshold_weighted += value * position.liquidation_threshold

    total_debt = sum((p.value_usd for p in position_set.debt), ZERO)

    if total_collateral < 0 or total_debt < 0 or weighted_collateral < 0:
        raise EngineInvariantError(
            f"negative aggregate: collateral={total_collateral} "
            f"weighted={weighted_collateral} debt={total_debt}"
        )
    if weighted_collateral > total_collateral:
        raise EngineInvariantError(
            f"weighted collateral {weighted_collateral} exceeds total {total_collateral}"
        )

    if total_collateral > 0:
        weighted_threshold = threshold_weighted / total_collateral
    else:
        weighted_threshold = default_liquidation_threshold

    return AggregateResult(
        total_collateral_usd=total_collateral,
        weighted_collateral_usd=weighted_collateral,
        total_debt_usd=total_debt,
        weighted_liquidation_threshold=weighted_threshold,
    )
