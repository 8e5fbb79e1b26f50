import threading
import time

import pytest

from vatsim_exporter.cache import SnapshotCache
from vatsim_exporter.ingestion import Failed, NotModified, RefreshController, Updated
from vatsim_exporter.metrics.projector import AIRPORT_ARRIVALS, MetricsProjector
from vatsim_exporter.metrics.registry import MetricStore
from vatsim_exporter.models import VatsimStatus
from tests.factories import (
    FakeClock,
    FakeMonotonic,
    make_flight_plan,
    make_payload,
    make_pilot,
)

KJFK_ONLINE = {'icao': 'KJFK', 'state': 'online'}


def _snapshot(arrival='KJFK', update_timestamp='2024-05-01T12:00:00.0000000Z'):
    return VatsimStatus.from_dict(make_payload(
        pilots=[make_pilot(flight_plan=make_flight_plan(arrival=arrival))],
        update_timestamp=update_timestamp,
    ))


class FakeClient:
    """Returns queued fetch outcomes; the last one repeats."""

    def __init__(self, *outcomes, delay=0.0):
        self.outcomes = list(outcomes)
        self.validators = []
        self.delay = delay
        self._lock = threading.Lock()

    def fetch(self, validator=''):
        with self._lock:
            self.validators.append(validator)
        if self.delay:
            time.sleep(self.delay)
        return self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]

    @property
    def calls(self):
        return len(self.validators)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    # Long idle timeout; eviction interplay is covered with the default below
    return MetricStore(idle_timeout=3600, clock=FakeMonotonic())


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def default_store(monotonic):
    return MetricStore(clock=monotonic)


def _controller(client, clock, store):
    return RefreshController(
        client=client,
        cache=SnapshotCache(),
        projector=MetricsProjector(store),
        staleness_window=40,
        clock=clock,
    )


def test_empty_cache_triggers_fetch_and_projection(clock, store):
    snapshot = _snapshot()
    client = FakeClient(Updated(snapshot, '"v1"'))
    controller = _controller(client, clock, store)

    entry = controller.refresh()

    assert client.validators == ['']
    assert entry.snapshot is snapshot
    assert entry.validator == '"v1"'
    assert entry.fetched_at == clock.now
    assert store.get(AIRPORT_ARRIVALS, KJFK_ONLINE) == 1


def test_back_to_back_requests_fetch_once(clock, store):
    client = FakeClient(Updated(_snapshot(), '"v1"'))
    controller = _controller(client, clock, store)

    controller.refresh()
    clock.advance(39)
    controller.refresh()

    assert client.calls == 1


def test_stale_cache_refetches_with_validator(clock, store):
    client = FakeClient(Updated(_snapshot(), '"v1"'), NotModified('"v1"'))
    controller = _controller(client, clock, store)

    controller.refresh()
    clock.advance(40)
    controller.refresh()

    assert client.validators == ['', '"v1"']


def test_not_modified_keeps_snapshot_and_metrics(clock, store):
    first = _snapshot()
    client = FakeClient(Updated(first, '"v1"'), NotModified('"v2"'))
    controller = _controller(client, clock, store)
    controller.refresh()
    metrics_before = store.samples(AIRPORT_ARRIVALS)

    clock.advance(45)
    entry = controller.refresh()

    assert entry.snapshot is first
    assert entry.snapshot.update_timestamp == first.update_timestamp
    assert entry.validator == '"v2"'
    assert entry.fetched_at == clock.now
    assert store.samples(AIRPORT_ARRIVALS) == metrics_before
    assert controller.stats['not_modified_count'] == 1


def test_not_modified_without_etag_keeps_previous_validator(clock, store):
    client = FakeClient(Updated(_snapshot(), '"v1"'), NotModified(''))
    controller = _controller(client, clock, store)
    controller.refresh()

    clock.advance(45)
    entry = controller.refresh()

    assert entry.validator == '"v1"'


def test_failed_fetch_keeps_cache_and_retries_next_request(clock, store):
    first = _snapshot()
    client = FakeClient(Updated(first, '"v1"'), Failed('transport: refused'))
    controller = _controller(client, clock, store)
    controller.refresh()
    fetched_at = controller.cache.read().fetched_at

    clock.advance(45)
    entry = controller.refresh()
    clock.advance(1)
    controller.refresh()

    assert entry.snapshot is first
    assert entry.fetched_at == fetched_at
    assert client.calls == 3
    assert controller.stats['failure_count'] == 2
    assert controller.stats['last_failure'] == 'transport: refused'


def test_failed_fetch_on_empty_cache_serves_nothing(clock, store):
    client = FakeClient(Failed('schema: bad'))
    controller = _controller(client, clock, store)

    entry = controller.refresh()

    assert entry.is_empty
    assert store.samples(AIRPORT_ARRIVALS) == {}


def test_newer_snapshot_replaces_and_reprojects(clock, store):
    client = FakeClient(
        Updated(_snapshot(arrival='KJFK'), '"v1"'),
        Updated(_snapshot(arrival='EGLL', update_timestamp='2024-05-01T12:00:15Z'), '"v2"'),
    )
    controller = _controller(client, clock, store)
    controller.refresh()

    clock.advance(40)
    entry = controller.refresh()

    assert entry.snapshot.pilots[0].flight_plan.arrival == 'EGLL'
    assert store.get(AIRPORT_ARRIVALS, {'icao': 'EGLL', 'state': 'online'}) == 1


def test_snapshot_not_newer_than_cached_is_discarded(clock, store):
    first = _snapshot(arrival='KJFK')
    client = FakeClient(
        Updated(first, '"v1"'),
        Updated(_snapshot(arrival='EGLL'), '"v2"'),
    )
    controller = _controller(client, clock, store)
    controller.refresh()

    clock.advance(40)
    entry = controller.refresh()

    assert entry.snapshot is first
    assert entry.validator == '"v2"'
    assert store.get(AIRPORT_ARRIVALS, {'icao': 'EGLL', 'state': 'online'}) is None
    assert controller.stats['discarded_count'] == 1


def test_concurrent_stale_requests_share_one_fetch(clock, store):
    snapshot = _snapshot()
    client = FakeClient(Updated(snapshot, '"v1"'), delay=0.05)
    controller = _controller(client, clock, store)
    results = []

    def request():
        results.append(controller.refresh())

    threads = [threading.Thread(target=request) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert client.calls == 1
    assert len(results) == 8
    assert all(entry.snapshot is snapshot for entry in results)


def test_not_modified_keeps_metrics_past_idle_timeout(clock, monotonic, default_store):
    client = FakeClient(Updated(_snapshot(), '"v1"'), NotModified('"v1"'))
    controller = _controller(client, clock, default_store)
    controller.refresh()
    rendered = default_store.render()

    clock.advance(40)
    monotonic.advance(40)
    controller.refresh()

    assert client.calls == 2
    assert default_store.get(AIRPORT_ARRIVALS, KJFK_ONLINE) == 1
    assert default_store.render() == rendered
    assert rendered != b''


def test_discarded_snapshot_keeps_metrics_past_idle_timeout(clock, monotonic, default_store):
    client = FakeClient(
        Updated(_snapshot(arrival='KJFK'), '"v1"'),
        Updated(_snapshot(arrival='EGLL'), '"v2"'),
    )
    controller = _controller(client, clock, default_store)
    controller.refresh()
    rendered = default_store.render()

    clock.advance(40)
    monotonic.advance(40)
    controller.refresh()

    assert controller.stats['discarded_count'] == 1
    assert default_store.render() == rendered


def test_failed_fetch_lets_idle_metrics_expire(clock, monotonic, default_store):
    client = FakeClient(Updated(_snapshot(), '"v1"'), Failed('transport: refused'))
    controller = _controller(client, clock, default_store)
    controller.refresh()

    clock.advance(40)
    monotonic.advance(40)
    entry = controller.refresh()

    assert entry.snapshot is not None
    assert default_store.render() == b''
