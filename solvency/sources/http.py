"""HTTP snapshot source: fetches a JSON snapshot document."""
from __future__ import annotations

import logging
import ssl

import aiohttp
import certifi

from .snapshot import Snapshot, SnapshotSourceMixin, parse_snapshot

logger = logging.getLogger(__name__)


class HttpSnapshotSource(SnapshotSourceMixin):
    """Fetch market and balance snapshots from an HTTP endpoint.

    Retries are left to the caller; a failed request raises.
    """

    def __init__(self, url: str, timeout: int = 30) -> None:
        self.url = url
        self.timeout = timeout

    async def load(self) -> Snapshot:
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.get(
                self.url, timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                if response.status != 200:
                    logger.error(
                        "Error fetching snapshot from %s: HTTP %s",
                        self.url,
                        response.status,
                    )
                    raise RuntimeError(
                        f"Snapshot request failed: HTTP {response.status}"
                    )
                data = await response.json(content_type=None)

        snapshot = parse_snapshot(data)
        logger.info(
            "Fetched snapshot from %s: %d markets, %d accounts",
            self.url,
            len(snapshot.markets),
            len(snapshot.accounts),
        )
        return snapshot
