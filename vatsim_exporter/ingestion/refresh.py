"""
Refresh-on-read controller.

There is no background poller. Each request handler calls ``refresh()``,
which re-fetches upstream only when the cached snapshot is older than the
staleness window:

1. Fresh: cache is returned as-is
2. Stale or empty: one conditional fetch, under the controller lock
3. Updated: project metrics, then swap the snapshot into the cache
4. NotModified: keep snapshot and metrics (resetting their idle timers),
   refresh validator and fetch time
5. Failed: keep everything, log, retry on the next request

The lock is held across the upstream call, so concurrent stale requests
queue behind the one fetch in flight instead of issuing their own.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from vatsim_exporter.cache import CacheEntry, SnapshotCache
from vatsim_exporter.config import config
from vatsim_exporter.ingestion.vatsim_client import (
    Failed,
    FetchOutcome,
    NotModified,
    Updated,
    VatsimClient,
)
from vatsim_exporter.metrics.projector import MetricsProjector
from vatsim_exporter.models import format_timestamp

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RefreshController:
    """
    Owns the cache write path.

    Coordinates the VATSIM client, the metrics projector and the cache so
    that readers only ever see a whole, projected snapshot.
    """

    def __init__(
        self,
        client: VatsimClient,
        cache: SnapshotCache,
        projector: MetricsProjector,
        staleness_window: Optional[float] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the refresh controller.

        Args:
            client: VATSIM feed client
            cache: Snapshot cache this controller is the only writer of
            projector: Metrics projector run on every new snapshot
            staleness_window: Seconds a snapshot stays fresh (config default if None)
            clock: Source of the current UTC time
        """
        self.client = client
        self.cache = cache
        self.projector = projector
        self.staleness_window = timedelta(
            seconds=staleness_window if staleness_window is not None
            else config.upstream.staleness_window_seconds
        )
        self._clock = clock
        self._lock = threading.Lock()

        # Statistics
        self._fetch_count = 0
        self._update_count = 0
        self._not_modified_count = 0
        self._failure_count = 0
        self._discarded_count = 0
        self._last_failure: Optional[str] = None

    def is_stale(self, entry: CacheEntry, now: datetime) -> bool:
        """True when the entry is empty or at least one staleness window old."""
        if entry.snapshot is None or entry.fetched_at is None:
            return True
        return now - entry.fetched_at >= self.staleness_window

    def refresh(self) -> CacheEntry:
        """
        Bring the cache up to date if it is stale, and return it.

        Never raises on upstream problems; the previous entry is returned.
        """
        with self._lock:
            entry = self.cache.read()
            if not self.is_stale(entry, self._clock()):
                logger.debug('Cached VATSIM data is fresh')
                return entry

            if entry.snapshot is not None:
                logger.debug(
                    f'Trying to fetch new VATSIM data, cached '
                    f'{format_timestamp(entry.snapshot.update_timestamp)}'
                )

            self._fetch_count += 1
            outcome = self.client.fetch(entry.validator)
            return self._apply(entry, outcome, self._clock())

    def _apply(self, entry: CacheEntry, outcome: FetchOutcome, now: datetime) -> CacheEntry:
        if isinstance(outcome, Updated):
            return self._apply_updated(entry, outcome, now)

        if isinstance(outcome, NotModified):
            if entry.snapshot is None:
                # Nothing cached to confirm; retry unconditionally next time
                logger.warning('Upstream reported not modified but no snapshot is cached')
                return entry
            self._not_modified_count += 1
            logger.debug('No new VATSIM data (not modified)')
            self.projector.retain()
            return self.cache.touch(outcome.validator or entry.validator, fetched_at=now)

        if isinstance(outcome, Failed):
            self._failure_count += 1
            self._last_failure = outcome.reason
            logger.warning(f'Keeping cached VATSIM data after failed refresh: {outcome.reason}')
            return entry

        raise TypeError(f'Unexpected fetch outcome: {outcome!r}')

    def _apply_updated(self, entry: CacheEntry, outcome: Updated, now: datetime) -> CacheEntry:
        snapshot = outcome.snapshot
        current = entry.snapshot

        if current is not None and snapshot.update_timestamp <= current.update_timestamp:
            self._discarded_count += 1
            logger.warning(
                f'Discarding VATSIM data {format_timestamp(snapshot.update_timestamp)}, '
                f'not newer than cached {format_timestamp(current.update_timestamp)}'
            )
            self.projector.retain()
            return self.cache.touch(outcome.validator, fetched_at=now)

        self.projector.project(snapshot, now=now)
        self._update_count += 1
        return self.cache.replace(snapshot, outcome.validator, fetched_at=now)

    @property
    def stats(self) -> dict:
        """Get refresh statistics."""
        return {
            'fetch_count': self._fetch_count,
            'update_count': self._update_count,
            'not_modified_count': self._not_modified_count,
            'failure_count': self._failure_count,
            'discarded_count': self._discarded_count,
            'last_failure': self._last_failure,
            'staleness_window_seconds': self.staleness_window.total_seconds(),
        }
