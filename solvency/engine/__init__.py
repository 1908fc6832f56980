"""Pure solvency computations with no I/O and no shared state."""
from .aggregator import aggregate
from .cache import CacheKey, ResultCache, fingerprint
from .capacity import check_borrow, check_withdraw, max_borrow, max_withdraw
from .health import health, health_factor_raw, liquidation_price
from .liquidation import bound_repay, size
from .positions import build_position_set, validate_market, validate_position_set
from .risk import assess, classify, rank, sort_accounts_by_risk, summarize
from .simulator import Borrow, Deposit, Repay, Withdraw, apply_delta, project, project_all
from .staleness import StalenessGuard, Ticket

__all__ = [
    "aggregate",
    "CacheKey",
    "ResultCache",
    "fingerprint",
    "check_borrow",
    "check_withdraw",
    "max_borrow",
    "max_withdraw",
    "health",
    "health_factor_raw",
    "liquidation_price",
    "bound_repay",
    "size",
    "build_position_set",
    "validate_market",
    "validate_position_set",
    "assess",
    "classify",
    "rank",
    "sort_accounts_by_risk",
    "summarize",
    "Borrow",
    "Deposit",
    "Repay",
    "Withdraw",
    "apply_delta",
    "project",
    "project_all",
    "StalenessGuard",
    "Ticket",
]
