"""
In-memory cache for the most recent VATSIM snapshot.

Holds exactly one entry: the last successfully parsed snapshot, the ETag
upstream sent with it, and when it was obtained. Readers get an immutable
``CacheEntry`` view so they never observe a half-applied update; writers
swap the whole entry under a lock.

Only the refresh controller writes to the cache.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from vatsim_exporter.models import VatsimStatus, format_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Point-in-time view of the cache."""
    snapshot: Optional[VatsimStatus] = None
    validator: str = ''
    fetched_at: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return self.snapshot is None

    def age_seconds(self, now: datetime) -> Optional[float]:
        """Seconds since the last successful fetch, or None if never fetched."""
        if self.fetched_at is None:
            return None
        return (now - self.fetched_at).total_seconds()


class SnapshotCache:
    """
    Thread-safe holder of the current snapshot.

    ``replace`` installs a new snapshot; ``touch`` records a conditional
    fetch that found the cached snapshot still current.
    """

    def __init__(self):
        self._entry = CacheEntry()
        self._lock = threading.RLock()

        # Statistics
        self._replacements = 0

    def read(self) -> CacheEntry:
        """Return the current entry without waiting on any refresh in progress."""
        with self._lock:
            return self._entry

    def replace(
        self,
        snapshot: VatsimStatus,
        validator: str,
        fetched_at: Optional[datetime] = None,
    ) -> CacheEntry:
        """Atomically install a new snapshot and its validator."""
        entry = CacheEntry(
            snapshot=snapshot,
            validator=validator or '',
            fetched_at=fetched_at or datetime.now(timezone.utc),
        )
        with self._lock:
            self._entry = entry
            self._replacements += 1

        logger.debug(f'Cache replaced with snapshot {format_timestamp(snapshot.update_timestamp)}')
        return entry

    def touch(self, validator: str, fetched_at: Optional[datetime] = None) -> CacheEntry:
        """Keep the snapshot, refresh the validator and fetch time."""
        with self._lock:
            self._entry = CacheEntry(
                snapshot=self._entry.snapshot,
                validator=validator or '',
                fetched_at=fetched_at or datetime.now(timezone.utc),
            )
            return self._entry

    @property
    def stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            entry = self._entry
            replacements = self._replacements

        snapshot = entry.snapshot
        return {
            'has_snapshot': snapshot is not None,
            'update_timestamp': format_timestamp(snapshot.update_timestamp) if snapshot else None,
            'fetched_at': entry.fetched_at.isoformat() if entry.fetched_at else None,
            'has_validator': bool(entry.validator),
            'replacements': replacements,
        }
