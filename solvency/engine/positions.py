"""Pure construction and validation of position sets, without I/O.

Turns balance-source rows plus market data into a validated ``PositionSet``.
Prices are never guessed: a balance in a market without a price is an error.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Mapping

from ..errors import DomainError, Err, ErrorKind, Ok, Result, err
from ..models import (
    ZERO,
    AccountBalance,
    MarketState,
    Position,
    PositionSet,
)

logger = logging.getLogger(__name__)


def _degenerate(message: str, market_id: str | None = None) -> Err:
    logger.error("Degenerate input%s: %s", f" [{market_id}]" if market_id else "", message)
    return err(ErrorKind.DEGENERATE_INPUT, message, market_id)


def _check_fraction(name: str, value: Decimal, market_id: str) -> Err | None:
    if not ZERO <= value <= 1:
        return _degenerate(f"{name} {value} outside [0, 1]", market_id)
    return None


def _check_factors(
    collateral_factor: Decimal, liquidation_threshold: Decimal, market_id: str
) -> Err | None:
    """Both factors within [0, 1], and the threshold never below the factor."""
    for name, value in (
        ("collateral_factor", collateral_factor),
        ("liquidation_threshold", liquidation_threshold),
    ):
        problem = _check_fraction(name, value, market_id)
        if problem is not None:
            return problem
    if liquidation_threshold < collateral_factor:
        return _degenerate(
            f"liquidation_threshold {liquidation_threshold} below "
            f"collateral_factor {collateral_factor}",
            market_id,
        )
    return None


def validate_position(position: Position) -> DomainError | None:
    """Return the first problem with a position, or None if it is sane."""
    if position.amount < 0:
        return _degenerate(
            f"negative amount {position.amount}", position.market_id
        ).error
    if position.price_usd < 0:
        return _degenerate(
            f"negative price {position.price_usd}", position.market_id
        ).error
    problem = _check_factors(
        position.collateral_factor, position.liquidation_threshold, position.market_id
    )
    return problem.error if problem is not None else None


def _duplicate_market(positions: tuple[Position, ...]) -> str | None:
    seen: set[str] = set()
    for position in positions:
        if position.market_id in seen:
            return position.market_id
        seen.add(position.market_id)
    return None


def validate_position_set(position_set: PositionSet) -> DomainError | None:
    """First problem with any position, or a market listed twice on one side."""
    for position in (*position_set.collateral, *position_set.debt):
        problem = validate_position(position)
        if problem is not None:
            return problem
    for side, positions in (
        ("collateral", position_set.collateral),
        ("debt", position_set.debt),
    ):
        market_id = _duplicate_market(positions)
        if market_id is not None:
            return _degenerate(f"duplicate {side} position", market_id).error
    return None


def check_position_set(position_set: PositionSet) -> Err | None:
    """``validate_position_set`` as an ``Err`` ready to return to the caller."""
    problem = validate_position_set(position_set)
    return Err(problem) if problem is not None else None


def validate_market(market: MarketState | None, market_id: str) -> Result[MarketState]:
    """Check a market has usable price and pool data."""
    if market is None:
        return err(
            ErrorKind.MISSING_MARKET_DATA, "no market data", market_id
        )
    if market.price_usd is None or market.price_usd <= 0:
        return err(
            ErrorKind.MISSING_MARKET_DATA, "no price for market", market_id
        )
    if market.total_deposits < 0 or market.total_borrows < 0:
        return _degenerate("negative pool totals", market_id)
    problem = _check_factors(
        market.collateral_factor, market.liquidation_threshold, market_id
    )
    if problem is not None:
        return problem
    if market.close_factor is not None:
        problem = _check_fraction("close_factor", market.close_factor, market_id)
        if problem is not None:
            return problem
    return Ok(market)


def available_liquidity(market: MarketState) -> Decimal:
    """Pool liquidity, clamped at zero; a negative raw value is logged."""
    if market.liquidity_flagged:
        logger.warning(
            "Market %s reports borrows %s above deposits %s; clamping liquidity to 0",
            market.market_id,
            market.total_borrows,
            market.total_deposits,
        )
    return market.available_liquidity


def position_from_market(market: MarketState, amount: Decimal) -> Position:
    return Position(
        market_id=market.market_id,
        symbol=market.symbol,
        amount=amount,
        price_usd=market.price_usd if market.price_usd is not None else ZERO,
        collateral_factor=market.collateral_factor,
        liquidation_threshold=market.liquidation_threshold,
    )


def build_position_set(
    balances: Iterable[AccountBalance],
    markets: Mapping[str, MarketState],
    account_id: str = "",
) -> Result[PositionSet]:
    """Build a PositionSet from balance rows and market data.

    Rows with neither a deposit nor a debt are skipped. Debt includes
    accrued interest. Several rows for one market are summed into a
    single position per side, kept in first-seen order.
    """
    collateral: dict[str, Position] = {}
    debt: dict[str, Position] = {}

    for balance in balances:
        if (
            balance.deposit_balance < 0
            or balance.debt_balance < 0
            or balance.accrued_interest < 0
        ):
            return _degenerate("negative balance", balance.market_id)

        if balance.deposit_balance == 0 and balance.total_debt == 0:
            continue

        checked = validate_market(markets.get(balance.market_id), balance.market_id)
        if isinstance(checked, Err):
            return checked
        market = checked.value

        if balance.deposit_balance > 0:
            _merge(collateral, market, balance.deposit_balance)
        if balance.total_debt > 0:
            _merge(debt, market, balance.total_debt)

    logger.debug(
        "Built position set for %s: %d collateral, %d debt",
        account_id or "<anonymous>",
        len(collateral),
        len(debt),
    )
    return Ok(
        PositionSet(tuple(collateral.values()), tuple(debt.values()), account_id)
    )


def _merge(side: dict[str, Position], market: MarketState, amount: Decimal) -> None:
    existing = side.get(market.market_id)
    if existing is not None:
        logger.debug("Merging repeated balance row for market %s", market.market_id)
        amount += existing.amount
    side[market.market_id] = position_from_market(market, amount)
