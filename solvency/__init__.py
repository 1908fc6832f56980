"""Solvency and liquidation-risk engine for collateralized lending accounts."""
from .config import EngineConfig, load_config
from .errors import DomainError, EngineInvariantError, Err, ErrorKind, Ok, Result
from .models import (
    AccountBalance,
    AccountReport,
    AggregateResult,
    HealthMetrics,
    LiquidationPlan,
    MarketState,
    Position,
    PositionSet,
    RankedDebtPosition,
    RiskTier,
)
from .services import RiskEngine

__version__ = "0.1.0"

__all__ = [
    "AccountBalance",
    "AccountReport",
    "AggregateResult",
    "DomainError",
    "EngineConfig",
    "EngineInvariantError",
    "Err",
    "ErrorKind",
    "HealthMetrics",
    "LiquidationPlan",
    "MarketState",
    "Ok",
    "Position",
    "PositionSet",
    "RankedDebtPosition",
    "Result",
    "RiskEngine",
    "RiskTier",
    "load_config",
]
