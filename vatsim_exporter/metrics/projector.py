"""
Projection of a VATSIM snapshot onto Prometheus metrics.

Every call writes absolute values computed from one snapshot:

- Airport traffic: arrivals and departures per ICAO code, split into
  online pilots and prefiled flight plans
- Controller time online, as an absolute counter
- Pilot position and speed gauges

Label sets that disappear from the network are not zeroed here; the
metric store's idle eviction removes them.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, Iterable, Mapping, Optional

from vatsim_exporter.config import config
from vatsim_exporter.metrics.registry import COUNTER, GAUGE, MetricStore
from vatsim_exporter.models import Controller, Facility, FlightPlan, VatsimStatus

logger = logging.getLogger(__name__)

UNKNOWN_FACILITY = 'UNKNOWN'

STATE_ONLINE = 'online'
STATE_PREFILED = 'prefiled'

_NS = config.metrics.namespace

AIRPORT_ARRIVALS = f'{_NS}_airport_arrivals_current'
AIRPORT_DEPARTURES = f'{_NS}_airport_departures_current'
# Scraped as ..._count_total, see metrics.registry
CONTROLLER_ONLINE_SECONDS = f'{_NS}_controller_online_seconds_count'
PILOT_GROUNDSPEED = f'{_NS}_pilot_groundspeed'
PILOT_ALTITUDE = f'{_NS}_pilot_altitude'
PILOT_HEADING = f'{_NS}_pilot_heading'
PILOT_LATITUDE = f'{_NS}_pilot_latitude'
PILOT_LONGITUDE = f'{_NS}_pilot_longitude'

METRIC_DEFINITIONS = (
    (AIRPORT_ARRIVALS, 'Flights with this airport as arrival', GAUGE),
    (AIRPORT_DEPARTURES, 'Flights with this airport as departure', GAUGE),
    (CONTROLLER_ONLINE_SECONDS, 'Seconds the controller has been logged on', COUNTER),
    (PILOT_GROUNDSPEED, 'Pilot ground speed in knots', GAUGE),
    (PILOT_ALTITUDE, 'Pilot altitude in feet', GAUGE),
    (PILOT_HEADING, 'Pilot heading in degrees', GAUGE),
    (PILOT_LATITUDE, 'Pilot latitude in decimal degrees', GAUGE),
    (PILOT_LONGITUDE, 'Pilot longitude in decimal degrees', GAUGE),
)


def count_by_airport(flight_plans: Iterable[FlightPlan], field: str) -> Counter:
    """
    Count flight plans per ICAO code in ``field`` ('arrival' or 'departure').

    Codes are compared exactly as received. Empty codes are skipped.
    """
    counts: Counter = Counter()
    for flight_plan in flight_plans:
        icao = getattr(flight_plan, field)
        if icao:
            counts[icao] += 1
    return counts


def facility_index(facilities: Iterable[Facility]) -> Dict[int, Facility]:
    """Map facility id to facility. Later duplicates win."""
    return {facility.id: facility for facility in facilities}


def resolve_facility(index: Mapping[int, Facility], facility_id: int) -> Optional[Facility]:
    """Look up a controller's facility. Returns None when the id is unknown."""
    return index.get(facility_id)


class MetricsProjector:
    """
    Writes the metric view of a snapshot into a MetricStore.

    Declares its metric families on construction.
    """

    def __init__(self, store: MetricStore):
        self.store = store
        for name, documentation, kind in METRIC_DEFINITIONS:
            store.declare(name, documentation, kind)

    def project(self, snapshot: VatsimStatus, now: Optional[datetime] = None) -> None:
        """Update every metric from ``snapshot``. ``now`` anchors controller online time."""
        now = now or datetime.now(timezone.utc)

        self._project_airports(snapshot)
        self._project_controllers(snapshot, now)
        self._project_pilots(snapshot)

        logger.debug(
            f'Projected {len(snapshot.pilots)} pilots, {len(snapshot.prefiles)} prefiles, '
            f'{len(snapshot.controllers)} controllers'
        )

    def retain(self) -> None:
        """Keep the current projection alive when the snapshot is unchanged."""
        touched = self.store.touch_all()
        logger.debug(f'Retained {touched} label sets for unchanged snapshot')

    def _project_airports(self, snapshot: VatsimStatus) -> None:
        online = [pilot.flight_plan for pilot in snapshot.pilots if pilot.flight_plan is not None]
        prefiled = [prefile.flight_plan for prefile in snapshot.prefiles]

        for metric, field in ((AIRPORT_ARRIVALS, 'arrival'), (AIRPORT_DEPARTURES, 'departure')):
            for state, flight_plans in ((STATE_ONLINE, online), (STATE_PREFILED, prefiled)):
                for icao, count in count_by_airport(flight_plans, field).items():
                    self.store.set_gauge(metric, {'icao': icao, 'state': state}, count)

    def _project_controllers(self, snapshot: VatsimStatus, now: datetime) -> None:
        facilities = facility_index(snapshot.facilities)
        for controller in snapshot.controllers:
            self.store.set_counter(
                CONTROLLER_ONLINE_SECONDS,
                {
                    'callsign': controller.callsign,
                    'cid': controller.numeric_id,
                    'name': controller.name,
                    'facility': self._facility_label(facilities, controller),
                },
                online_seconds(controller, now),
            )

    def _facility_label(self, facilities: Mapping[int, Facility], controller: Controller) -> str:
        facility = resolve_facility(facilities, controller.facility)
        if facility is None:
            logger.warning(
                f'Controller {controller.callsign} references unknown facility {controller.facility}'
            )
            return UNKNOWN_FACILITY
        return facility.short_name

    def _project_pilots(self, snapshot: VatsimStatus) -> None:
        for pilot in snapshot.pilots:
            labels = {'callsign': pilot.callsign, 'cid': pilot.numeric_id, 'name': pilot.name}
            self.store.set_gauge(PILOT_GROUNDSPEED, labels, pilot.groundspeed)
            self.store.set_gauge(PILOT_ALTITUDE, labels, pilot.altitude)
            self.store.set_gauge(PILOT_HEADING, labels, pilot.heading)
            self.store.set_gauge(PILOT_LATITUDE, labels, pilot.latitude)
            self.store.set_gauge(PILOT_LONGITUDE, labels, pilot.longitude)


def online_seconds(controller: Controller, now: datetime) -> int:
    """Whole seconds since logon. Clock skew never yields a negative value."""
    return max(0, int((now - controller.logon_time).total_seconds()))
