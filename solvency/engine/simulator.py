"""What-if projection of a pending deposit, borrow, withdraw or repay.

The input PositionSet is never touched; every delta produces a new set.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable, Mapping

from ..config import HealthConfig
from ..errors import Err, ErrorKind, Ok, Result, err
from ..models import HealthMetrics, MarketState, Position, PositionSet
from .aggregator import aggregate
from .health import health
from .positions import check_position_set, position_from_market, validate_market

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Delta:
    market_id: str
    amount: Decimal

    @property
    def action(self) -> str:
        return type(self).__name__.lower()


@dataclass(frozen=True)
class Deposit(Delta):
    pass


@dataclass(frozen=True)
class Borrow(Delta):
    pass


@dataclass(frozen=True)
class Withdraw(Delta):
    pass


@dataclass(frozen=True)
class Repay(Delta):
    pass


ACTIONS: dict[str, type[Delta]] = {
    cls.__name__.lower(): cls for cls in (Deposit, Borrow, Withdraw, Repay)
}


def _replace_amount(
    positions: tuple[Position, ...], market_id: str, amount: Decimal
) -> tuple[Position, ...]:
    """Swap one market's amount; a zero amount drops the position."""
    updated: list[Position] = []
    for position in positions:
        if position.market_id != market_id:
            updated.append(position)
        elif amount > 0:
            updated.append(replace(position, amount=amount))
    return tuple(updated)


def _increase(
    positions: tuple[Position, ...],
    delta: Delta,
    markets: Mapping[str, MarketState],
) -> Result[tuple[Position, ...]]:
    for position in positions:
        if position.market_id == delta.market_id:
            return Ok(
                _replace_amount(positions, delta.market_id, position.amount + delta.amount)
            )

    checked = validate_market(markets.get(delta.market_id), delta.market_id)
    if isinstance(checked, Err):
        return checked
    return Ok(positions + (position_from_market(checked.value, delta.amount),))


def apply_delta(
    position_set: PositionSet,
    delta: Delta,
    markets: Mapping[str, MarketState] | None = None,
) -> Result[PositionSet]:
    """Return a new PositionSet with ``delta`` applied.

    Repaying more than is owed clears the debt; withdrawing more than is
    deposited is an error. An invalid set is rejected as DEGENERATE_INPUT.
    """
    problem = check_position_set(position_set)
    if problem is not None:
        return problem
    markets = markets or {}

    if delta.amount < 0:
        logger.error("Degenerate input: negative %s amount %s", delta.action, delta.amount)
        return err(
            ErrorKind.DEGENERATE_INPUT,
            f"negative {delta.action} amount {delta.amount}",
            delta.market_id,
        )

    if isinstance(delta, Deposit):
        grown = _increase(position_set.collateral, delta, markets)
        if isinstance(grown, Err):
            return grown
        return Ok(replace(position_set, collateral=grown.value))

    if isinstance(delta, Borrow):
        grown = _increase(position_set.debt, delta, markets)
        if isinstance(grown, Err):
            return grown
        return Ok(replace(position_set, debt=grown.value))

    if isinstance(delta, Withdraw):
        position = position_set.collateral_position(delta.market_id)
        held = position.amount if position is not None else Decimal(0)
        if delta.amount > held:
            return err(
                ErrorKind.INSUFFICIENT_COLLATERAL,
                f"withdraw {delta.amount} exceeds deposited {held}",
                delta.market_id,
            )
        collateral = _replace_amount(
            position_set.collateral, delta.market_id, held - delta.amount
        )
        return Ok(replace(position_set, collateral=collateral))

    if isinstance(delta, Repay):
        position = position_set.debt_position(delta.market_id)
        if position is None:
            return Ok(position_set)
        remaining = max(Decimal(0), position.amount - delta.amount)
        debt = _replace_amount(position_set.debt, delta.market_id, remaining)
        return Ok(replace(position_set, debt=debt))

    raise TypeError(f"Unknown delta type: {type(delta).__name__}")


def project_all(
    position_set: PositionSet,
    deltas: Iterable[Delta],
    markets: Mapping[str, MarketState] | None = None,
    settings: HealthConfig | None = None,
) -> Result[HealthMetrics]:
    """Project health after applying ``deltas`` in order to a copy."""
    problem = check_position_set(position_set)
    if problem is not None:
        return problem
    settings = settings or HealthConfig()
    projected = position_set
    for delta in deltas:
        applied = apply_delta(projected, delta, markets)
        if isinstance(applied, Err):
            return applied
        projected = applied.value

    result = aggregate(projected, settings.default_liquidation_threshold)
    return Ok(health(result, settings.display_cap))


def project(
    position_set: PositionSet,
    delta: Delta,
    markets: Mapping[str, MarketState] | None = None,
    settings: HealthConfig | None = None,
) -> Result[HealthMetrics]:
    """Preview the health of ``position_set`` as if ``delta`` had settled."""
    return project_all(position_set, (delta,), markets, settings)
