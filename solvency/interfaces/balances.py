"""Balance source protocol: per-account, per-market balances."""
from typing import Protocol

from ..models import AccountBalance


class BalanceSource(Protocol):
    """Abstract interface for fetching an account's decimal-scaled balances."""

    async def fetch_balances(
        self, account_id: str, network_id: str
    ) -> list[AccountBalance]: ...

    async def list_accounts(self, network_id: str) -> list[str]: ...
