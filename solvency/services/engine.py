"""Config-bound facade over the pure engine functions."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable, Iterable, Mapping

from ..config import EngineConfig
from ..engine import capacity, liquidation, risk, simulator
from ..engine.aggregator import aggregate
from ..engine.cache import CacheKey, ResultCache, fingerprint
from ..engine.health import health
from ..engine.positions import check_position_set
from ..errors import DomainError, Err, Ok, Result
from ..models import (
    AccountReport,
    HealthMetrics,
    LiquidationPlan,
    MarketState,
    PositionSet,
    RiskAssessment,
    RiskSummary,
    RiskTier,
)

logger = logging.getLogger(__name__)


class RiskEngine:
    """Evaluates accounts with one EngineConfig and caches capacity results."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self._config = config or EngineConfig()
        self._settings = self._config.engine
        self._cache = ResultCache(
            ttl_seconds=self._config.cache.ttl_seconds,
            max_size=self._config.cache.max_size,
        )

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def cache(self) -> ResultCache:
        return self._cache

    # ------------------------------------------------------------------
    # Account evaluation
    # ------------------------------------------------------------------

    def metrics(self, position_set: PositionSet) -> HealthMetrics:
        result = aggregate(position_set, self._settings.default_liquidation_threshold)
        return health(result, self._settings.display_cap)

    def evaluate(self, position_set: PositionSet) -> Result[AccountReport]:
        problem = check_position_set(position_set)
        if problem is not None:
            return problem

        result = aggregate(position_set, self._settings.default_liquidation_threshold)
        metrics = health(result, self._settings.display_cap)
        tier = risk.classify(metrics, self._settings.tiers)

        logger.info(
            "Account %s · Collateral: $%.2f  Debt: $%.2f  LTV: %.2f%%  HF: %.2f  (%s)",
            position_set.account_id or "<anonymous>",
            result.total_collateral_usd,
            result.total_debt_usd,
            metrics.ltv * 100,
            metrics.health_factor,
            tier.value,
        )
        return Ok(
            AccountReport(
                account_id=position_set.account_id,
                aggregate=result,
                metrics=metrics,
                tier=tier,
                ranked_debt=tuple(risk.rank(position_set, metrics)),
            )
        )

    def assess(self, metrics: HealthMetrics) -> RiskAssessment:
        return risk.assess(metrics, self._settings.tiers)

    def rank_accounts(
        self, position_sets: Iterable[PositionSet]
    ) -> tuple[list[AccountReport], RiskSummary, dict[str, DomainError]]:
        """Evaluate many accounts, riskiest first, with dashboard statistics.

        Accounts that fail evaluation are returned separately, keyed by id.
        """
        reports: list[AccountReport] = []
        failures: dict[str, DomainError] = {}
        for position_set in position_sets:
            evaluated = self.evaluate(position_set)
            if isinstance(evaluated, Err):
                failures[position_set.account_id] = evaluated.error
                continue
            reports.append(evaluated.value)

        ordered = risk.sort_accounts_by_risk(reports)
        return ordered, risk.summarize(ordered), failures

    # ------------------------------------------------------------------
    # Capacity (cached)
    # ------------------------------------------------------------------

    def _cached(
        self,
        kind: str,
        position_set: PositionSet,
        market: MarketState | None,
        market_id: str,
        network_id: str,
        compute: Callable[[], Result[Decimal]],
    ) -> Result[Decimal]:
        key = CacheKey(
            account_id=position_set.account_id,
            market_id=market_id,
            network_id=network_id,
            input_hash=fingerprint(kind, position_set, market, self._settings),
        )
        hit = self._cache.get(key)
        if hit is not None:
            return hit
        outcome = compute()
        if isinstance(outcome, Ok):
            self._cache.put(key, outcome)
        return outcome

    def max_borrow(
        self,
        position_set: PositionSet,
        market: MarketState | None,
        network_id: str = "",
        market_id: str = "",
    ) -> Result[Decimal]:
        problem = check_position_set(position_set)
        if problem is not None:
            return problem
        market_id = market.market_id if market else market_id
        return self._cached(
            "borrow",
            position_set,
            market,
            market_id,
            network_id,
            lambda: capacity.max_borrow(
                aggregate(position_set, self._settings.default_liquidation_threshold),
                market,
                self._settings.safety_buffer_pct,
                self._settings.amount_precision,
                market_id=market_id,
            ),
        )

    def max_withdraw(
        self,
        position_set: PositionSet,
        market: MarketState | None,
        network_id: str = "",
        market_id: str = "",
    ) -> Result[Decimal]:
        market_id = market.market_id if market else market_id
        return self._cached(
            "withdraw",
            position_set,
            market,
            market_id,
            network_id,
            lambda: capacity.max_withdraw(
                position_set,
                market,
                self._settings.safety_buffer_pct,
                self._settings,
                market_id=market_id,
            ),
        )

    def invalidate(
        self,
        account_id: str | None = None,
        market_id: str | None = None,
        network_id: str | None = None,
    ) -> int:
        return self._cache.invalidate(account_id, market_id, network_id)

    # ------------------------------------------------------------------
    # Previews and liquidation
    # ------------------------------------------------------------------

    def preview(
        self,
        position_set: PositionSet,
        delta: simulator.Delta,
        markets: Mapping[str, MarketState] | None = None,
    ) -> Result[HealthMetrics]:
        """Projected metrics for a pending action.

        Borrows and withdrawals are also checked against pool liquidity and
        the 1.0 health-factor floor.
        """
        markets = markets or {}
        market = markets.get(delta.market_id)
        if isinstance(delta, simulator.Borrow):
            return capacity.check_borrow(
                position_set, market, delta.amount, self._settings, delta.market_id
            )
        if isinstance(delta, simulator.Withdraw):
            return capacity.check_withdraw(
                position_set, market, delta.amount, self._settings, delta.market_id
            )
        return simulator.project(position_set, delta, markets, self._settings)

    def liquidate(
        self,
        position_set: PositionSet,
        repay_market_id: str,
        collateral_market_id: str,
        requested_repay_usd: Decimal,
        markets: Mapping[str, MarketState] | None = None,
    ) -> Result[LiquidationPlan]:
        """Size a liquidation; a market-level close factor overrides the default."""
        problem = check_position_set(position_set)
        if problem is not None:
            return problem
        close_factor = self._config.liquidation.close_factor
        market = (markets or {}).get(collateral_market_id)
        if market is not None and market.close_factor is not None:
            close_factor = market.close_factor

        metrics = self.metrics(position_set)
        if risk.classify(metrics, self._settings.tiers) is not RiskTier.LIQUIDATABLE:
            logger.warning(
                "Sizing liquidation for %s, which is not liquidatable (HF %.4f)",
                position_set.account_id or "<anonymous>",
                metrics.health_factor,
            )

        return liquidation.size(
            position_set,
            repay_market_id,
            collateral_market_id,
            requested_repay_usd,
            close_factor=close_factor,
            bonus_rate=self._config.liquidation.bonus_rate,
            settings=self._settings,
        )
