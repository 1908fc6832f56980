"""Async recomputation of an account view, last request wins."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal

from ..engine.positions import build_position_set
from ..engine.staleness import StalenessGuard
from ..errors import Err, Ok, Result
from ..interfaces import BalanceSource, MarketDataSource
from ..models import AccountBalance, AccountReport, MarketState, PositionSet
from .engine import RiskEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountView:
    """Fresh inputs and derived results for one (account, market) selection."""

    position_set: PositionSet
    markets: dict[str, MarketState]
    report: AccountReport
    market_id: str | None = None
    max_borrow: Result[Decimal] | None = None
    max_withdraw: Result[Decimal] | None = None


class Refresher:
    """Fetches inputs from collaborators and recomputes under a StalenessGuard.

    A response whose request was superseded for the same
    ``(account, market, network)`` key is dropped as ``STALE_RESULT``.
    """

    def __init__(
        self,
        engine: RiskEngine,
        market_source: MarketDataSource,
        balance_source: BalanceSource,
        network_id: str = "",
    ) -> None:
        self._engine = engine
        self._markets = market_source
        self._balances = balance_source
        self._network_id = network_id
        self._guard = StalenessGuard()

    @property
    def guard(self) -> StalenessGuard:
        return self._guard

    def _key(self, account_id: str, market_id: str | None) -> tuple[str, str, str]:
        return (account_id, market_id or "", self._network_id)

    async def refresh(
        self, account_id: str, market_id: str | None = None
    ) -> Result[AccountView]:
        ticket = self._guard.issue(self._key(account_id, market_id))
        logger.debug("Refreshing %s (generation %d)", ticket.key, ticket.generation)

        try:
            markets, balances = await asyncio.gather(
                self._markets.fetch_markets(self._network_id),
                self._balances.fetch_balances(account_id, self._network_id),
            )
        except Exception:
            self._guard.release(ticket)
            raise

        if not self._guard.is_current(ticket):
            return self._guard.accept(ticket, None)

        outcome = self._compute(account_id, market_id, markets, balances)
        if isinstance(outcome, Err):
            self._guard.release(ticket)
            return outcome
        return self._guard.accept(ticket, outcome.value)

    def _compute(
        self,
        account_id: str,
        market_id: str | None,
        markets: dict[str, MarketState],
        balances: list[AccountBalance],
    ) -> Result[AccountView]:
        built = build_position_set(balances, markets, account_id)
        if isinstance(built, Err):
            return built
        position_set = built.value

        evaluated = self._engine.evaluate(position_set)
        if isinstance(evaluated, Err):
            return evaluated

        borrow = withdraw = None
        if market_id is not None:
            market = markets.get(market_id)
            borrow = self._engine.max_borrow(
                position_set, market, self._network_id, market_id=market_id
            )
            withdraw = self._engine.max_withdraw(
                position_set, market, self._network_id, market_id=market_id
            )

        return Ok(
            AccountView(
                position_set=position_set,
                markets=dict(markets),
                report=evaluated.value,
                market_id=market_id,
                max_borrow=borrow,
                max_withdraw=withdraw,
            )
        )
