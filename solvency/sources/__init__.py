"""Snapshot-backed market data and balance sources."""
from __future__ import annotations

from .http import HttpSnapshotSource
from .snapshot import FileSnapshotSource, Snapshot, load_snapshot, parse_snapshot

__all__ = [
    "FileSnapshotSource",
    "HttpSnapshotSource",
    "Snapshot",
    "load_snapshot",
    "open_source",
    "parse_snapshot",
]


def open_source(location: str, timeout: int = 30) -> FileSnapshotSource | HttpSnapshotSource:
    """Pick the snapshot source for a path or an http(s) URL."""
    if location.startswith(("http://", "https://")):
        return HttpSnapshotSource(location, timeout=timeout)
    return FileSnapshotSource(location)
