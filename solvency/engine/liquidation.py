"""Size a liquidation: how much debt to repay and how much collateral it buys."""
from __future__ import annotations

import logging
from decimal import Decimal

from ..config import HealthConfig
from ..errors import Err, ErrorKind, Ok, Result, err
from ..models import ONE, ZERO, LiquidationPlan, PositionSet
from .positions import check_position_set
from .simulator import Repay, Withdraw, project_all

logger = logging.getLogger(__name__)

DEFAULT_CLOSE_FACTOR = Decimal("0.5")
DEFAULT_BONUS_RATE = Decimal("0.05")


def bound_repay(
    requested_repay_usd: Decimal,
    target_debt_usd: Decimal,
    collateral_value_usd: Decimal,
    close_factor: Decimal = DEFAULT_CLOSE_FACTOR,
) -> Decimal:
    """Cap a requested repay by the close factor and the seizable collateral."""
    return max(
        ZERO,
        min(requested_repay_usd, target_debt_usd * close_factor, collateral_value_usd),
    )


def size(
    position_set: PositionSet,
    repay_market_id: str,
    collateral_market_id: str,
    requested_repay_usd: Decimal,
    close_factor: Decimal = DEFAULT_CLOSE_FACTOR,
    bonus_rate: Decimal = DEFAULT_BONUS_RATE,
    settings: HealthConfig | None = None,
) -> Result[LiquidationPlan]:
    """Build a LiquidationPlan against ``position_set``.

    The target debt is the account's debt in ``repay_market_id``; the
    liquidator receives ``(repay + bonus) / collateral price`` units of
    ``collateral_market_id``. Fails if that exceeds the account's balance.
    """
    problem = check_position_set(position_set)
    if problem is not None:
        return problem
    if requested_repay_usd < 0:
        logger.error("Degenerate input: negative repay %s", requested_repay_usd)
        return err(
            ErrorKind.DEGENERATE_INPUT,
            f"negative repay amount {requested_repay_usd}",
            repay_market_id,
        )
    for name, value in (("close_factor", close_factor), ("bonus_rate", bonus_rate)):
        if not ZERO <= value <= ONE:
            logger.error("Degenerate input: %s %s outside [0, 1]", name, value)
            return err(ErrorKind.DEGENERATE_INPUT, f"{name} {value} outside [0, 1]")

    debt = position_set.debt_position(repay_market_id)
    if debt is None or debt.amount <= 0:
        return err(
            ErrorKind.DEGENERATE_INPUT,
            "account has no debt in repay market",
            repay_market_id,
        )
    collateral = position_set.collateral_position(collateral_market_id)
    if collateral is None or collateral.amount <= 0:
        return err(
            ErrorKind.INSUFFICIENT_COLLATERAL,
            "account has no collateral in market",
            collateral_market_id,
        )
    for position in (debt, collateral):
        if position.price_usd <= 0:
            return err(
                ErrorKind.MISSING_MARKET_DATA, "no price for market", position.market_id
            )

    repay_usd = bound_repay(
        requested_repay_usd, debt.value_usd, collateral.value_usd, close_factor
    )
    bonus_usd = repay_usd * bonus_rate
    collateral_amount = (repay_usd + bonus_usd) / collateral.price_usd

    if collateral_amount > collateral.amount:
        return err(
            ErrorKind.INSUFFICIENT_COLLATERAL,
            f"liquidation needs {collateral_amount} {collateral.symbol} "
            f"but only {collateral.amount} is deposited",
            collateral_market_id,
        )

    repay_amount = repay_usd / debt.price_usd
    projected = project_all(
        position_set,
        (
            Repay(repay_market_id, repay_amount),
            Withdraw(collateral_market_id, collateral_amount),
        ),
        settings=settings,
    )
    if isinstance(projected, Err):
        return projected

    plan = LiquidationPlan(
        repay_usd=repay_usd,
        repay_market_id=repay_market_id,
        collateral_market_id=collateral_market_id,
        collateral_amount=collateral_amount,
        bonus_usd=bonus_usd,
        projected_ltv=projected.value.ltv,
        repay_amount=repay_amount,
    )
    logger.debug("Sized liquidation for %s: %s", position_set.account_id, plan)
    return Ok(plan)
