"""Maximum safe borrow and withdraw amounts for a single market.

Every amount is in units of the target market's asset and is rounded down
to ``HealthConfig.amount_precision`` decimal places, so a displayed maximum
can always be submitted as-is.
"""
from __future__ import annotations

import logging
from decimal import ROUND_DOWN, ROUND_FLOOR, Decimal, localcontext

from ..config import HealthConfig
from ..errors import EngineInvariantError, Err, ErrorKind, Ok, Result, err
from ..models import ONE, ZERO, AggregateResult, HealthMetrics, MarketState, PositionSet
from .aggregator import aggregate
from .positions import available_liquidity, check_position_set, validate_market
from .simulator import Borrow, Withdraw, project

logger = logging.getLogger(__name__)

DEFAULT_SAFETY_BUFFER_PCT = Decimal("0.001")


def _floor_div(numerator: Decimal, denominator: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.rounding = ROUND_FLOOR
        return numerator / denominator


def _round_down(value: Decimal, precision: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + precision + 2)
        return value.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_DOWN)


def headroom_usd(aggregate_result: AggregateResult) -> Decimal:
    """Borrowing power left before the health factor reaches 1.0."""
    return max(
        ZERO,
        aggregate_result.weighted_collateral_usd - aggregate_result.total_debt_usd,
    )


def buffered_liquidity(market: MarketState, safety_buffer_pct: Decimal) -> Decimal:
    return available_liquidity(market) * (ONE - safety_buffer_pct)


def max_borrow(
    aggregate_result: AggregateResult,
    market: MarketState | None,
    safety_buffer_pct: Decimal = DEFAULT_SAFETY_BUFFER_PCT,
    precision: int = HealthConfig.amount_precision,
    market_id: str = "",
) -> Result[Decimal]:
    """Largest amount of ``market``'s asset the account may borrow.

    ``min(headroom / price, liquidity * (1 - buffer))``, never negative.
    """
    checked = validate_market(market, market.market_id if market else market_id)
    if isinstance(checked, Err):
        return checked
    market = checked.value

    by_collateral = _floor_div(headroom_usd(aggregate_result), market.price_usd)
    by_liquidity = buffered_liquidity(market, safety_buffer_pct)
    amount = max(ZERO, min(by_collateral, by_liquidity))

    logger.debug(
        "max_borrow %s: collateral bound %s, liquidity bound %s",
        market.market_id,
        by_collateral,
        by_liquidity,
    )
    return Ok(_round_down(amount, precision))


def max_withdraw(
    position_set: PositionSet,
    market: MarketState | None,
    safety_buffer_pct: Decimal = DEFAULT_SAFETY_BUFFER_PCT,
    settings: HealthConfig | None = None,
    market_id: str = "",
) -> Result[Decimal]:
    """Largest amount of collateral the account may withdraw from ``market``.

    Bounded by the deposited balance, by buffered pool liquidity and, while
    the account has debt, by the collateral that keeps the health factor at
    or above 1.0. The result is re-checked with the simulator.
    """
    problem = check_position_set(position_set)
    if problem is not None:
        return problem
    settings = settings or HealthConfig()
    checked = validate_market(market, market.market_id if market else market_id)
    if isinstance(checked, Err):
        return checked
    market = checked.value

    position = position_set.collateral_position(market.market_id)
    if position is None or position.amount <= 0:
        return Ok(ZERO)

    bounds = [position.amount, buffered_liquidity(market, safety_buffer_pct)]

    if position_set.has_debt:
        current = aggregate(position_set, settings.default_liquidation_threshold)
        if current.weighted_collateral_usd < current.total_debt_usd:
            logger.info(
                "Account %s is below health factor 1.0; withdrawals blocked",
                position_set.account_id or "<anonymous>",
            )
            return Ok(ZERO)
        weight = position.price_usd * position.collateral_factor
        if weight > 0:
            bounds.append(_floor_div(headroom_usd(current), weight))

    amount = _round_down(max(ZERO, min(bounds)), settings.amount_precision)
    if amount == 0:
        return Ok(ZERO)

    projected = project(position_set, Withdraw(market.market_id, amount), settings=settings)
    if isinstance(projected, Err):
        return projected
    if position_set.has_debt and projected.value.health_factor_raw < ONE:
        raise EngineInvariantError(
            f"max_withdraw {amount} in {market.market_id} projects health factor "
            f"{projected.value.health_factor_raw} below 1.0"
        )
    return Ok(amount)


def check_borrow(
    position_set: PositionSet,
    market: MarketState | None,
    amount: Decimal,
    settings: HealthConfig | None = None,
    market_id: str = "",
) -> Result[HealthMetrics]:
    """Validate a concrete borrow and return the projected metrics."""
    problem = check_position_set(position_set)
    if problem is not None:
        return problem
    settings = settings or HealthConfig()
    checked = validate_market(market, market.market_id if market else market_id)
    if isinstance(checked, Err):
        return checked
    market = checked.value

    liquidity = available_liquidity(market)
    if amount > liquidity:
        return err(
            ErrorKind.INSUFFICIENT_LIQUIDITY,
            f"borrow {amount} exceeds available liquidity {liquidity}",
            market.market_id,
        )

    projected = project(
        position_set,
        Borrow(market.market_id, amount),
        {market.market_id: market},
        settings,
    )
    if isinstance(projected, Err):
        return projected
    if projected.value.health_factor_raw < ONE:
        return err(
            ErrorKind.INSUFFICIENT_COLLATERAL,
            f"borrow {amount} would drop health factor to "
            f"{projected.value.health_factor_raw:.4f}",
            market.market_id,
        )
    return projected


def check_withdraw(
    position_set: PositionSet,
    market: MarketState | None,
    amount: Decimal,
    settings: HealthConfig | None = None,
    market_id: str = "",
) -> Result[HealthMetrics]:
    """Validate a concrete withdrawal and return the projected metrics."""
    problem = check_position_set(position_set)
    if problem is not None:
        return problem
    settings = settings or HealthConfig()
    checked = validate_market(market, market.market_id if market else market_id)
    if isinstance(checked, Err):
        return checked
    market = checked.value

    projected = project(position_set, Withdraw(market.market_id, amount), settings=settings)
    if isinstance(projected, Err):
        return projected

    liquidity = available_liquidity(market)
    if amount > liquidity:
        return err(
            ErrorKind.INSUFFICIENT_LIQUIDITY,
            f"withdraw {amount} exceeds available liquidity {liquidity}",
            market.market_id,
        )
    if position_set.has_debt and projected.value.health_factor_raw < ONE:
        return err(
            ErrorKind.INSUFFICIENT_COLLATERAL,
            f"withdraw {amount} would drop health factor to "
            f"{projected.value.health_factor_raw:.4f}",
            market.market_id,
        )
    return projected
