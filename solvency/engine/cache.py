"""Explicitly keyed cache for derived results such as max borrow amounts."""
from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheKey:
    account_id: str
    market_id: str
    network_id: str
    input_hash: str


def fingerprint(*values: Any) -> str:
    """Stable hash of the inputs a result was computed from.

    Relies on ``repr`` of frozen dataclasses and Decimals, which is
    deterministic across runs.
    """
    digest = hashlib.sha256()
    for value in values:
        digest.update(repr(value).encode())
        digest.update(b"\x1f")
    return digest.hexdigest()


class ResultCache:
    """TTL cache with a size bound; oldest entries are evicted first."""

    def __init__(
        self,
        ttl_seconds: float = 30.0,
        max_size: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_size = max_size
        self._clock = clock
        self._entries: dict[CacheKey, tuple[float, Any]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, stored_at: float) -> bool:
        return self._clock() - stored_at > self._ttl

    def get(self, key: CacheKey) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._expired(stored_at):
            del self._entries[key]
            return None
        return value

    def put(self, key: CacheKey, value: Any) -> None:
        self._evict_expired()
        self._entries.pop(key, None)
        while len(self._entries) >= self._max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
        self._entries[key] = (self._clock(), value)

    def invalidate(
        self,
        account_id: str | None = None,
        market_id: str | None = None,
        network_id: str | None = None,
    ) -> int:
        """Drop entries matching every given key component; returns the count.

        With no arguments the whole cache is cleared.
        """
        doomed = [
            key
            for key in self._entries
            if (account_id is None or key.account_id == account_id)
            and (market_id is None or key.market_id == market_id)
            and (network_id is None or key.network_id == network_id)
        ]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.debug("Invalidated %d cached results", len(doomed))
        return len(doomed)

    def _evict_expired(self) -> None:
        for key in [k for k, (at, _) in self._entries.items() if self._expired(at)]:
            del self._entries[key]
