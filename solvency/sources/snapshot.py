"""Snapshot documents: markets plus account balances in one YAML/JSON file.

Parsing is pure; the file source reloads the document on every fetch so a
refreshed file is always picked up.
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from ..models import ZERO, AccountBalance, MarketState, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    network: str = ""
    markets: dict[str, MarketState] = field(default_factory=dict)
    accounts: dict[str, tuple[AccountBalance, ...]] = field(default_factory=dict)


def _optional_decimal(raw: dict[str, Any], key: str) -> Decimal | None:
    value = raw.get(key)
    if value is None or value == "":
        return None
    return to_decimal(value)


def parse_market(raw: dict[str, Any]) -> MarketState:
    if "market_id" not in raw:
        raise ValueError(f"Market entry without market_id: {raw}")
    market_id = str(raw["market_id"])
    return MarketState(
        market_id=market_id,
        symbol=str(raw.get("symbol", market_id)),
        total_deposits=to_decimal(raw.get("total_deposits", 0)),
        total_borrows=to_decimal(raw.get("total_borrows", 0)),
        price_usd=_optional_decimal(raw, "price_usd"),
        collateral_factor=to_decimal(raw.get("collateral_factor", 0)),
        liquidation_threshold=to_decimal(raw.get("liquidation_threshold", 0)),
        supply_rate=to_decimal(raw.get("supply_rate", 0)),
        borrow_rate=to_decimal(raw.get("borrow_rate", 0)),
        close_factor=_optional_decimal(raw, "close_factor"),
    )


def parse_balance(raw: dict[str, Any]) -> AccountBalance:
    if "market_id" not in raw:
        raise ValueError(f"Balance entry without market_id: {raw}")
    return AccountBalance(
        market_id=str(raw["market_id"]),
        deposit_balance=to_decimal(raw.get("deposit_balance", 0)),
        debt_balance=to_decimal(raw.get("debt_balance", 0)),
        accrued_interest=to_decimal(raw.get("accrued_interest", ZERO)),
    )


def parse_snapshot(raw: dict[str, Any]) -> Snapshot:
    """Build a Snapshot from a decoded document; raises ValueError if malformed."""
    if not isinstance(raw, dict):
        raise ValueError("Snapshot document must be a mapping")

    markets: dict[str, MarketState] = {}
    for entry in raw.get("markets") or []:
        market = parse_market(entry)
        markets[market.market_id] = market

    accounts: dict[str, tuple[AccountBalance, ...]] = {}
    for account_id, rows in (raw.get("accounts") or {}).items():
        accounts[str(account_id)] = tuple(parse_balance(row) for row in rows or [])

    return Snapshot(
        network=str(raw.get("network") or ""),
        markets=markets,
        accounts=accounts,
    )


def load_snapshot(path: str | Path) -> Snapshot:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {path}")

    with open(path) as f:
        if path.suffix.lower() == ".json":
            raw = json.load(f)
        else:
            raw = yaml.safe_load(f)

    snapshot = parse_snapshot(raw or {})
    logger.info(
        "Loaded snapshot %s: %d markets, %d accounts",
        path,
        len(snapshot.markets),
        len(snapshot.accounts),
    )
    return snapshot


class SnapshotSourceMixin(ABC):
    """Serves the MarketDataSource and BalanceSource protocols from a Snapshot."""

    @abstractmethod
    async def load(self) -> Snapshot:
        """Read the current snapshot document."""

    @staticmethod
    def _network_matches(snapshot: Snapshot, network_id: str) -> bool:
        if network_id and snapshot.network and network_id != snapshot.network:
            logger.warning(
                "Snapshot is for network '%s', not '%s'", snapshot.network, network_id
            )
            return False
        return True

    async def fetch_markets(self, network_id: str = "") -> dict[str, MarketState]:
        snapshot = await self.load()
        if not self._network_matches(snapshot, network_id):
            return {}
        return dict(snapshot.markets)

    async def fetch_balances(
        self, account_id: str, network_id: str = ""
    ) -> list[AccountBalance]:
        snapshot = await self.load()
        if not self._network_matches(snapshot, network_id):
            return []
        return list(snapshot.accounts.get(account_id, ()))

    async def list_accounts(self, network_id: str = "") -> list[str]:
        snapshot = await self.load()
        if not self._network_matches(snapshot, network_id):
            return []
        return sorted(snapshot.accounts)


class FileSnapshotSource(SnapshotSourceMixin):
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    async def load(self) -> Snapshot:
        return load_snapshot(self.path)
