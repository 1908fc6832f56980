"""Plain-text rendering of engine results for the CLI."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from .errors import DomainError
from .models import (
    AccountReport,
    HealthMetrics,
    LiquidationPlan,
    MarketState,
    RiskAssessment,
    RiskSummary,
    RiskTier,
)

_STATUS = {
    RiskTier.LIQUIDATABLE: "🚨 LIQUIDATABLE",
    RiskTier.DANGER: "⚠️ DANGER",
    RiskTier.MODERATE: "🟡 MODERATE",
    RiskTier.SAFE: "✅ SAFE",
}


def _now_str() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def format_health_factor(value: Decimal) -> str:
    """More digits near the liquidation line, fewer far from it."""
    if value.is_infinite():
        return "∞"
    if value < Decimal("0.01"):
        return "0.00"
    if value < 1:
        return f"{value:.3f}"
    if value < 10:
        return f"{value:.2f}"
    return f"{value:.1f}"


def format_usd(value: Decimal) -> str:
    return f"${value:,.2f}"


def format_metrics(metrics: HealthMetrics) -> str:
    if metrics.is_empty:
        return "No open position"
    return (
        f"HF: {format_health_factor(metrics.health_factor)} · "
        f"LTV: {metrics.ltv * 100:.2f}% · "
        f"Margin: {metrics.liquidation_margin_pct:.2f}%"
    )


def format_account_report(report: AccountReport, assessment: RiskAssessment) -> str:
    agg = report.aggregate
    lines = [
        f"📊 {report.account_id or 'account'} · {_STATUS[report.tier]}",
        "",
        f"Collateral: {format_usd(agg.total_collateral_usd)} "
        f"(weighted {format_usd(agg.weighted_collateral_usd)})",
        f"Debt: {format_usd(agg.total_debt_usd)}",
        format_metrics(report.metrics),
        f"Liquidation threshold: {agg.weighted_liquidation_threshold * 100:.2f}%",
        f"Severity: {assessment.severity:.0f}/100",
    ]
    if assessment.time_to_liquidation:
        lines.append(f"Time to liquidation: {assessment.time_to_liquidation}")

    if report.ranked_debt:
        lines += ["", "Debt by risk:"]
        for ranked in report.ranked_debt:
            score = "∞" if ranked.risk_score.is_infinite() else f"{ranked.risk_score:.4f}"
            lines.append(
                f"  {ranked.position.symbol} ({ranked.position.market_id}): "
                f"{format_usd(ranked.value_usd)} · score {score}"
            )

    lines += ["", *(f"• {action}" for action in assessment.recommended_actions)]
    lines += ["", f"{_now_str()} UTC"]
    return "\n".join(lines)


def format_capacity(
    market: MarketState, max_borrow: Decimal | DomainError, max_withdraw: Decimal | DomainError
) -> str:
    def _amount(value: Decimal | DomainError) -> str:
        if isinstance(value, DomainError):
            return f"unavailable ({value})"
        return f"{value:,f} {market.symbol}"

    return (
        f"💧 {market.symbol} ({market.market_id})\n"
        f"Available liquidity: {market.available_liquidity:,f} {market.symbol}\n"
        f"Utilization: {market.utilization * 100:.2f}%\n"
        f"Max borrow: {_amount(max_borrow)}\n"
        f"Max withdraw: {_amount(max_withdraw)}"
    )


def format_preview(action: str, before: HealthMetrics, after: HealthMetrics) -> str:
    return (
        f"🔮 Preview: {action}\n"
        f"Before: {format_metrics(before)}\n"
        f"After:  {format_metrics(after)}"
    )


def format_plan(plan: LiquidationPlan) -> str:
    return (
        f"⚡ Liquidation plan\n"
        f"Repay: {format_usd(plan.repay_usd)} in market {plan.repay_market_id} "
        f"({plan.repay_amount:f} units)\n"
        f"Bonus: {format_usd(plan.bonus_usd)}\n"
        f"Seize: {plan.collateral_amount:f} from market {plan.collateral_market_id}\n"
        f"Projected LTV: {plan.projected_ltv * 100:.2f}%"
    )


def format_summary(summary: RiskSummary, reports: list[AccountReport]) -> str:
    lines = [
        "📋 Accounts by risk",
        "",
        f"Accounts: {summary.total_accounts}",
        f"Total borrowed: {format_usd(summary.total_borrowed_usd)}",
        f"Value at risk: {format_usd(summary.value_at_risk_usd)}",
        f"Average HF: {format_health_factor(summary.average_health_factor)}",
        "",
    ]
    for bucket in summary.distribution:
        lines.append(f"{_STATUS[bucket.tier]}: {bucket.count} ({bucket.percentage:.1f}%)")
    lines.append("")
    for report in reports:
        lines.append(
            f"{report.account_id}: {_STATUS[report.tier]} · "
            f"{format_metrics(report.metrics)} · "
            f"debt {format_usd(report.aggregate.total_debt_usd)}"
        )
    return "\n".join(lines)
