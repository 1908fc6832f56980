"""Domain error values and the result type returned by engine operations.

Domain errors are returned, never raised. ``EngineInvariantError`` is the
only exception the engine raises on its own, and only for internal bugs.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    MISSING_MARKET_DATA = "missing_market_data"
    INSUFFICIENT_LIQUIDITY = "insufficient_liquidity"
    INSUFFICIENT_COLLATERAL = "insufficient_collateral"
    DEGENERATE_INPUT = "degenerate_input"
    STALE_RESULT = "stale_result"

    @property
    def recoverable(self) -> bool:
        return self in (
            ErrorKind.INSUFFICIENT_LIQUIDITY,
            ErrorKind.INSUFFICIENT_COLLATERAL,
        )


@dataclass(frozen=True)
class DomainError:
    kind: ErrorKind
    message: str
    market_id: str | None = None

    def __str__(self) -> str:
        if self.market_id is not None:
            return f"{self.kind.value} [{self.market_id}]: {self.message}"
        return f"{self.kind.value}: {self.message}"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: DomainError

    @property
    def ok(self) -> bool:
        return False

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind


Result = Union[Ok[T], Err]


def err(kind: ErrorKind, message: str, market_id: str | None = None) -> Err:
    return Err(DomainError(kind, message, market_id))


class EngineInvariantError(RuntimeError):
    """Raised when an internal invariant is broken; always a bug."""
