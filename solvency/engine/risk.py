"""Risk tiers, per-position risk ranking and multi-account statistics.

One canonical tier table (``TierThresholds``) is used for every
classification; bounds are upper-inclusive.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence

from ..config import TierThresholds
from ..models import (
    HUNDRED,
    INFINITY,
    ONE,
    ZERO,
    AccountReport,
    HealthMetrics,
    PositionSet,
    RankedDebtPosition,
    RiskAssessment,
    RiskSummary,
    RiskTier,
    TierBucket,
)

_TIER_ORDER = {
    RiskTier.LIQUIDATABLE: 0,
    RiskTier.DANGER: 1,
    RiskTier.MODERATE: 2,
    RiskTier.SAFE: 3,
}

_TIME_TO_LIQUIDATION = {
    RiskTier.LIQUIDATABLE: "Immediate",
    RiskTier.DANGER: "< 24 hours",
    RiskTier.MODERATE: "1-7 days",
    RiskTier.SAFE: None,
}

_ACTIONS = {
    RiskTier.LIQUIDATABLE: (
        "Add collateral immediately",
        "Repay debt to improve health factor",
        "Consider partial liquidation",
    ),
    RiskTier.DANGER: (
        "Monitor position closely",
        "Prepare to add collateral",
        "Consider reducing leverage",
    ),
    RiskTier.MODERATE: (
        "Review position regularly",
        "Set up alerts for health factor changes",
    ),
    RiskTier.SAFE: (
        "Position is healthy",
        "Monitor for market changes",
    ),
}


def classify_health_factor(
    health_factor: Decimal, tiers: TierThresholds | None = None
) -> RiskTier:
    tiers = tiers or TierThresholds()
    if health_factor <= tiers.liquidatable:
        return RiskTier.LIQUIDATABLE
    if health_factor <= tiers.danger:
        return RiskTier.DANGER
    if health_factor <= tiers.moderate:
        return RiskTier.MODERATE
    return RiskTier.SAFE


def classify(metrics: HealthMetrics, tiers: TierThresholds | None = None) -> RiskTier:
    """Tier of an account, from its uncapped health factor."""
    return classify_health_factor(metrics.health_factor_raw, tiers)


def risk_score(value_usd: Decimal, total_collateral_usd: Decimal, hf_raw: Decimal) -> Decimal:
    if hf_raw.is_infinite():
        return ZERO
    if total_collateral_usd == 0 or hf_raw == 0:
        return INFINITY
    return (value_usd / total_collateral_usd) * (ONE / hf_raw)


def rank(position_set: PositionSet, metrics: HealthMetrics) -> list[RankedDebtPosition]:
    """Order debt positions by their share of liquidation risk.

    ``score = (debt value / total collateral) / raw health factor``. Ties
    go to the larger position, then to the lower market id, so the order
    never depends on input order.
    """
    total_collateral = sum(
        (p.value_usd for p in position_set.collateral if p.amount > 0), ZERO
    )
    ranked = [
        RankedDebtPosition(
            position=position,
            value_usd=position.value_usd,
            risk_score=risk_score(
                position.value_usd, total_collateral, metrics.health_factor_raw
            ),
        )
        for position in position_set.debt
    ]
    ranked.sort(key=lambda r: (-r.risk_score, -r.value_usd, r.position.market_id))
    return ranked


def _severity(hf: Decimal, tier: RiskTier, tiers: TierThresholds) -> Decimal:
    if tier is RiskTier.LIQUIDATABLE:
        severity = HUNDRED - (hf / tiers.liquidatable) * 20
    elif tier is RiskTier.DANGER:
        span = tiers.danger - tiers.liquidatable
        severity = 80 - ((hf - tiers.liquidatable) / span) * 30
    elif tier is RiskTier.MODERATE:
        span = tiers.moderate - tiers.danger
        severity = 50 - ((hf - tiers.danger) / span) * 30
    else:
        severity = max(ZERO, 20 - (hf - tiers.moderate) * 2)
    return max(ZERO, min(HUNDRED, severity))


def assess(metrics: HealthMetrics, tiers: TierThresholds | None = None) -> RiskAssessment:
    """Tier plus a 0-100 severity score and suggested next steps."""
    tiers = tiers or TierThresholds()
    tier = classify(metrics, tiers)
    if metrics.is_empty:
        return RiskAssessment(tier=tier, severity=ZERO, recommended_actions=("No open position",))
    return RiskAssessment(
        tier=tier,
        severity=_severity(metrics.health_factor, tier, tiers),
        time_to_liquidation=_TIME_TO_LIQUIDATION[tier],
        recommended_actions=_ACTIONS[tier],
    )


def sort_accounts_by_risk(reports: Iterable[AccountReport]) -> list[AccountReport]:
    """Riskiest first: by tier, then raw health factor, then account id."""
    return sorted(
        reports,
        key=lambda r: (
            _TIER_ORDER[r.tier],
            r.metrics.health_factor_raw,
            r.account_id,
        ),
    )


def summarize(reports: Sequence[AccountReport]) -> RiskSummary:
    total = len(reports)
    counts = {tier: 0 for tier in RiskTier}
    total_borrowed = ZERO
    at_risk = ZERO
    hf_sum = ZERO

    for report in reports:
        counts[report.tier] += 1
        debt = report.aggregate.total_debt_usd
        total_borrowed += debt
        if report.tier in (RiskTier.LIQUIDATABLE, RiskTier.DANGER):
            at_risk += debt
        hf_sum += report.metrics.health_factor

    distribution = tuple(
        TierBucket(
            tier=tier,
            count=counts[tier],
            percentage=(Decimal(counts[tier]) / total * HUNDRED) if total else ZERO,
        )
        for tier in sorted(RiskTier, key=_TIER_ORDER.__getitem__)
    )

    return RiskSummary(
        total_accounts=total,
        total_borrowed_usd=total_borrowed,
        value_at_risk_usd=at_risk,
        average_health_factor=(hf_sum / total) if total else ZERO,
        distribution=distribution,
    )
