"""
Metric store backed by prometheus_client.

The exporter publishes absolute values computed from a snapshot, not
increments, so it keeps its own sample table and exposes it through a
custom collector on a private CollectorRegistry:

- Gauges are overwritten per label set
- Counters take absolute values and never move backwards
- Label sets not written for ``idle_timeout`` seconds are dropped, so
  pilots who disconnected or airports with no traffic fall out of the
  exposition without the projector having to zero them

prometheus_client exposes every counter family with a ``_total`` suffix.
A counter declared as ``vatsim_controller_online_seconds_count`` is scraped
as ``vatsim_controller_online_seconds_count_total``; dashboards and alerts
written against the bare ``_count`` name must query the ``_total`` name.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Mapping, Optional, Tuple

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from vatsim_exporter.config import config

logger = logging.getLogger(__name__)

GAUGE = 'gauge'
COUNTER = 'counter'

LabelKey = Tuple[Tuple[str, str], ...]


@dataclass
class _Sample:
    value: float
    touched: float


def _label_key(labels: Mapping[str, object]) -> LabelKey:
    return tuple(sorted((str(k), str(v)) for k, v in labels.items()))


class MetricStore(Collector):
    """
    Thread-safe sample table rendered in Prometheus text format.

    Metrics must be declared with ``declare`` before they are written.
    Counters are exposed with the ``_total`` suffix prometheus_client
    adds to every counter family.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(
        self,
        idle_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.idle_timeout = idle_timeout if idle_timeout is not None else config.metrics.idle_timeout_seconds
        self._clock = clock
        self._lock = threading.Lock()

        # name -> (kind, documentation)
        self._families: Dict[str, Tuple[str, str]] = {}
        # name -> label set -> sample
        self._samples: Dict[str, Dict[LabelKey, _Sample]] = {}

        self.registry = CollectorRegistry(auto_describe=False)
        self.registry.register(self)

    def declare(self, name: str, documentation: str, kind: str = GAUGE) -> None:
        """Declare a metric family before writing samples to it."""
        if kind not in (GAUGE, COUNTER):
            raise ValueError(f'Unsupported metric kind: {kind}')
        with self._lock:
            self._families[name] = (kind, documentation)
            self._samples.setdefault(name, {})

    def _check_kind(self, name: str, kind: str) -> None:
        declared = self._families.get(name)
        if declared is None:
            raise KeyError(f'Metric {name} has not been declared')
        if declared[0] != kind:
            raise ValueError(f'Metric {name} is a {declared[0]}, not a {kind}')

    def set_gauge(self, name: str, labels: Mapping[str, object], value: float) -> None:
        """Overwrite the gauge value for one label set."""
        key = _label_key(labels)
        with self._lock:
            self._check_kind(name, GAUGE)
            self._samples[name][key] = _Sample(float(value), self._clock())

    def set_counter(self, name: str, labels: Mapping[str, object], value: float) -> None:
        """
        Record an absolute counter value for one label set.

        Counters are monotonic: a value lower than the stored one only
        refreshes the label set's idle timer.
        """
        key = _label_key(labels)
        with self._lock:
            self._check_kind(name, COUNTER)
            now = self._clock()
            current = self._samples[name].get(key)
            if current is not None and current.value > value:
                current.touched = now
            else:
                self._samples[name][key] = _Sample(float(value), now)

    def get(self, name: str, labels: Mapping[str, object]) -> Optional[float]:
        """Current value for a label set, or None if absent."""
        with self._lock:
            sample = self._samples.get(name, {}).get(_label_key(labels))
            return sample.value if sample else None

    def samples(self, name: str) -> Dict[LabelKey, float]:
        """All current label sets and values of one metric."""
        with self._lock:
            return {key: sample.value for key, sample in self._samples.get(name, {}).items()}

    def touch_all(self) -> int:
        """
        Reset the idle timer of every live label set, keeping values.

        Used when upstream confirms the projected snapshot is still current.
        Returns count of label sets touched.
        """
        now = self._clock()
        touched = 0
        with self._lock:
            for series in self._samples.values():
                for sample in series.values():
                    sample.touched = now
                touched += len(series)
        return touched

    def evict_idle(self) -> int:
        """Drop label sets idle for at least ``idle_timeout``. Returns count removed."""
        if not self.idle_timeout:
            return 0

        cutoff = self._clock() - self.idle_timeout
        removed = 0
        with self._lock:
            for series in self._samples.values():
                stale = [key for key, sample in series.items() if sample.touched <= cutoff]
                for key in stale:
                    del series[key]
                removed += len(stale)

        if removed:
            logger.debug(f'Evicted {removed} idle label sets')
        return removed

    def clear(self) -> None:
        """Remove all samples, keeping metric declarations."""
        with self._lock:
            for series in self._samples.values():
                series.clear()

    def collect(self) -> Iterator[Metric]:
        self.evict_idle()
        with self._lock:
            families = [
                (name, kind, documentation, dict(self._samples[name]))
                for name, (kind, documentation) in sorted(self._families.items())
            ]

        for name, kind, documentation, series in families:
            if not series:
                continue
            family = Metric(name, documentation, kind)
            sample_name = f'{name}_total' if kind == COUNTER else name
            for key, sample in sorted(series.items()):
                family.add_sample(sample_name, dict(key), sample.value)
            yield family

    def render(self) -> bytes:
        """Render all live samples in the Prometheus text exposition format."""
        return generate_latest(self.registry)
