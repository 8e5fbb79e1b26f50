"""
Typed model of the VATSIM v3 network status document.

One ``VatsimStatus`` is one snapshot of the network. All types are frozen
dataclasses holding tuples rather than lists, so a parsed snapshot can be
shared between request threads without copying and is only ever replaced
as a whole.

Attribute names follow this project's vocabulary; ``to_dict()`` emits the
upstream key names so the served JSON has the same shape as the feed:

    cid          -> numeric_id
    update       -> update_label
    version      -> schema_version
    long / short -> long_name / short_name (facilities)
    pilot_rating -> rating
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from vatsim_exporter.errors import SchemaError
from vatsim_exporter.models.fields import (
    INT32_MAX,
    INT32_MIN,
    UINT8_MAX,
    UINT16_MAX,
    get_bool,
    get_float,
    get_int,
    get_list,
    get_optional_str,
    get_optional_str_list,
    get_str,
    get_timestamp,
    require_object,
)
from vatsim_exporter.models.timestamps import format_timestamp


class FlightRules(str, Enum):
    """
    Flight rules filed with a flight plan.

    Upstream sends single-letter codes; anything outside this set is
    rejected rather than defaulted.
    """
    IFR = 'IFR'
    VFR = 'VFR'
    SVFR = 'SVFR'
    DVFR = 'DVFR'

    @property
    def code(self) -> str:
        return _RULES_TO_CODE[self]

    @classmethod
    def from_code(cls, code: Any, path: str = '') -> 'FlightRules':
        try:
            return _CODE_TO_RULES[code]
        except (KeyError, TypeError):
            raise SchemaError(f'unknown flight rules code {code!r}', path) from None


_CODE_TO_RULES = {
    'I': FlightRules.IFR,
    'V': FlightRules.VFR,
    'S': FlightRules.SVFR,
    'D': FlightRules.DVFR,
}
_RULES_TO_CODE = {rules: code for code, rules in _CODE_TO_RULES.items()}


@dataclass(frozen=True)
class FlightPlan:
    """
    Filed flight plan, attached to a pilot or a prefile.

    ``departure`` and ``arrival`` are ICAO codes and may be empty strings.
    """
    flight_rules: FlightRules
    aircraft: str
    aircraft_faa: str
    aircraft_short: str
    departure: str
    arrival: str
    alternate: Optional[str]
    cruise_tas: str
    altitude: str
    deptime: str
    enroute_time: str
    fuel_time: str
    remarks: str
    route: str
    revision_id: int
    assigned_transponder: str

    @classmethod
    def from_dict(cls, data: Any, path: str = '') -> 'FlightPlan':
        data = require_object(data, path)
        return cls(
            flight_rules=FlightRules.from_code(
                data.get('flight_rules'),
                f'{path}.flight_rules' if path else 'flight_rules',
            ),
            aircraft=get_str(data, 'aircraft', path),
            aircraft_faa=get_str(data, 'aircraft_faa', path),
            aircraft_short=get_str(data, 'aircraft_short', path),
            departure=get_str(data, 'departure', path),
            arrival=get_str(data, 'arrival', path),
            alternate=get_optional_str(data, 'alternate', path),
            cruise_tas=get_str(data, 'cruise_tas', path),
            altitude=get_str(data, 'altitude', path),
            deptime=get_str(data, 'deptime', path),
            enroute_time=get_str(data, 'enroute_time', path),
            fuel_time=get_str(data, 'fuel_time', path),
            remarks=get_str(data, 'remarks', path),
            route=get_str(data, 'route', path),
            revision_id=get_int(data, 'revision_id', path),
            assigned_transponder=get_str(data, 'assigned_transponder', path),
        )

    def to_dict(self) -> dict:
        return {
            'flight_rules': self.flight_rules.code,
            'aircraft': self.aircraft,
            'aircraft_faa': self.aircraft_faa,
            'aircraft_short': self.aircraft_short,
            'departure': self.departure,
            'arrival': self.arrival,
            'alternate': self.alternate,
            'cruise_tas': self.cruise_tas,
            'altitude': self.altitude,
            'deptime': self.deptime,
            'enroute_time': self.enroute_time,
            'fuel_time': self.fuel_time,
            'remarks': self.remarks,
            'route': self.route,
            'revision_id': self.revision_id,
            'assigned_transponder': self.assigned_transponder,
        }


@dataclass(frozen=True)
class Pilot:
    """Connected pilot with live position data."""
    numeric_id: int
    name: str
    callsign: str
    server: str
    rating: int
    latitude: float
    longitude: float
    altitude: int
    groundspeed: int
    transponder: str
    heading: int
    qnh_i_hg: float
    qnh_mb: float
    flight_plan: Optional[FlightPlan]
    logon_time: datetime
    last_updated: datetime

    @classmethod
    def from_dict(cls, data: Any, path: str = '') -> 'Pilot':
        data = require_object(data, path)
        flight_plan = data.get('flight_plan')
        return cls(
            numeric_id=get_int(data, 'cid', path),
            name=get_str(data, 'name', path),
            callsign=get_str(data, 'callsign', path),
            server=get_str(data, 'server', path),
            rating=get_int(data, 'pilot_rating', path, maximum=UINT8_MAX),
            latitude=get_float(data, 'latitude', path),
            longitude=get_float(data, 'longitude', path),
            altitude=get_int(data, 'altitude', path, minimum=INT32_MIN, maximum=INT32_MAX),
            groundspeed=get_int(data, 'groundspeed', path, minimum=INT32_MIN, maximum=INT32_MAX),
            transponder=get_str(data, 'transponder', path),
            heading=get_int(data, 'heading', path, maximum=UINT16_MAX),
            qnh_i_hg=get_float(data, 'qnh_i_hg', path),
            qnh_mb=get_float(data, 'qnh_mb', path),
            flight_plan=(
                FlightPlan.from_dict(flight_plan, f'{path}.flight_plan')
                if flight_plan is not None else None
            ),
            logon_time=get_timestamp(data, 'logon_time', path),
            last_updated=get_timestamp(data, 'last_updated', path),
        )

    def to_dict(self) -> dict:
        return {
            'cid': self.numeric_id,
            'name': self.name,
            'callsign': self.callsign,
            'server': self.server,
            'pilot_rating': self.rating,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'altitude': self.altitude,
            'groundspeed': self.groundspeed,
            'transponder': self.transponder,
            'heading': self.heading,
            'qnh_i_hg': self.qnh_i_hg,
            'qnh_mb': self.qnh_mb,
            'flight_plan': self.flight_plan.to_dict() if self.flight_plan else None,
            'logon_time': format_timestamp(self.logon_time),
            'last_updated': format_timestamp(self.last_updated),
        }


@dataclass(frozen=True)
class Controller:
    """
    Connected air traffic controller.

    ``facility`` is a foreign key into ``VatsimStatus.facilities`` and is
    not guaranteed to resolve.
    """
    numeric_id: int
    name: str
    callsign: str
    frequency: str
    facility: int
    rating: int
    server: str
    visual_range: int
    text_atis: Optional[Tuple[str, ...]]
    logon_time: datetime
    last_updated: datetime

    @classmethod
    def from_dict(cls, data: Any, path: str = '') -> 'Controller':
        data = require_object(data, path)
        return cls(**_controller_fields(data, path))

    def to_dict(self) -> dict:
        return {
            'cid': self.numeric_id,
            'name': self.name,
            'callsign': self.callsign,
            'frequency': self.frequency,
            'facility': self.facility,
            'rating': self.rating,
            'server': self.server,
            'visual_range': self.visual_range,
            'text_atis': list(self.text_atis) if self.text_atis is not None else None,
            'logon_time': format_timestamp(self.logon_time),
            'last_updated': format_timestamp(self.last_updated),
        }


@dataclass(frozen=True)
class Atis:
    """ATIS station. Same shape as a controller plus the current ATIS letter."""
    numeric_id: int
    name: str
    callsign: str
    frequency: str
    facility: int
    rating: int
    server: str
    visual_range: int
    atis_code: Optional[str]
    text_atis: Optional[Tuple[str, ...]]
    logon_time: datetime
    last_updated: datetime

    @classmethod
    def from_dict(cls, data: Any, path: str = '') -> 'Atis':
        data = require_object(data, path)
        return cls(
            atis_code=get_optional_str(data, 'atis_code', path),
            **_controller_fields(data, path),
        )

    def to_dict(self) -> dict:
        return {
            'cid': self.numeric_id,
            'name': self.name,
            'callsign': self.callsign,
            'frequency': self.frequency,
            'facility': self.facility,
            'rating': self.rating,
            'server': self.server,
            'visual_range': self.visual_range,
            'atis_code': self.atis_code,
            'text_atis': list(self.text_atis) if self.text_atis is not None else None,
            'logon_time': format_timestamp(self.logon_time),
            'last_updated': format_timestamp(self.last_updated),
        }


def _controller_fields(data: Mapping[str, Any], path: str) -> Dict[str, Any]:
    return {
        'numeric_id': get_int(data, 'cid', path),
        'name': get_str(data, 'name', path),
        'callsign': get_str(data, 'callsign', path),
        'frequency': get_str(data, 'frequency', path),
        'facility': get_int(data, 'facility', path, maximum=UINT8_MAX),
        'rating': get_int(data, 'rating', path, maximum=UINT8_MAX),
        'server': get_str(data, 'server', path),
        'visual_range': get_int(data, 'visual_range', path),
        'text_atis': get_optional_str_list(data, 'text_atis', path),
        'logon_time': get_timestamp(data, 'logon_time', path),
        'last_updated': get_timestamp(data, 'last_updated', path),
    }


@dataclass(frozen=True)
class Prefile:
    """Flight plan filed by a user who is not connected yet."""
    numeric_id: int
    name: str
    callsign: str
    flight_plan: FlightPlan
    last_updated: datetime

    @classmethod
    def from_dict(cls, data: Any, path: str = '') -> 'Prefile':
        data = require_object(data, path)
        flight_plan_path = f'{path}.flight_plan'
        if data.get('flight_plan') is None:
            raise SchemaError('missing required field', flight_plan_path)
        return cls(
            numeric_id=get_int(data, 'cid', path),
            name=get_str(data, 'name', path),
            callsign=get_str(data, 'callsign', path),
            flight_plan=FlightPlan.from_dict(data['flight_plan'], flight_plan_path),
            last_updated=get_timestamp(data, 'last_updated', path),
        )

    def to_dict(self) -> dict:
        return {
            'cid': self.numeric_id,
            'name': self.name,
            'callsign': self.callsign,
            'flight_plan': self.flight_plan.to_dict(),
            'last_updated': format_timestamp(self.last_updated),
        }


@dataclass(frozen=True)
class Facility:
    """ATC facility type (ground, tower, approach, ...), keyed by ``id``."""
    id: int
    short_name: str
    long_name: str

    @classmethod
    def from_dict(cls, data: Any, path: str = '') -> 'Facility':
        data = require_object(data, path)
        return cls(
            id=get_int(data, 'id', path, maximum=UINT8_MAX),
            short_name=get_str(data, 'short', path),
            long_name=get_str(data, 'long', path),
        )

    def to_dict(self) -> dict:
        return {'id': self.id, 'short': self.short_name, 'long': self.long_name}


@dataclass(frozen=True)
class PilotRating:
    id: int
    short_name: str
    long_name: str

    @classmethod
    def from_dict(cls, data: Any, path: str = '') -> 'PilotRating':
        data = require_object(data, path)
        return cls(
            id=get_int(data, 'id', path, maximum=UINT8_MAX),
            short_name=get_str(data, 'short_name', path),
            long_name=get_str(data, 'long_name', path),
        )

    def to_dict(self) -> dict:
        return {'id': self.id, 'short_name': self.short_name, 'long_name': self.long_name}


@dataclass(frozen=True)
class Server:
    """FSD server clients connect to."""
    ident: str
    hostname_or_ip: str
    location: str
    name: str
    client_connections_allowed: bool
    is_sweatbox: bool

    @classmethod
    def from_dict(cls, data: Any, path: str = '') -> 'Server':
        data = require_object(data, path)
        return cls(
            ident=get_str(data, 'ident', path),
            hostname_or_ip=get_str(data, 'hostname_or_ip', path),
            location=get_str(data, 'location', path),
            name=get_str(data, 'name', path),
            client_connections_allowed=get_bool(data, 'client_connections_allowed', path),
            is_sweatbox=get_bool(data, 'is_sweatbox', path),
        )

    def to_dict(self) -> dict:
        return {
            'ident': self.ident,
            'hostname_or_ip': self.hostname_or_ip,
            'location': self.location,
            'name': self.name,
            'client_connections_allowed': self.client_connections_allowed,
            'is_sweatbox': self.is_sweatbox,
        }


@dataclass(frozen=True)
class General:
    """Document header. ``update_timestamp`` marks how fresh the snapshot is."""
    schema_version: int
    reload: int
    update_label: str
    update_timestamp: datetime
    connected_clients: int
    unique_users: int

    @classmethod
    def from_dict(cls, data: Any, path: str = '') -> 'General':
        data = require_object(data, path)
        return cls(
            schema_version=get_int(data, 'version', path, maximum=UINT8_MAX),
            reload=get_int(data, 'reload', path, maximum=UINT8_MAX),
            update_label=get_str(data, 'update', path),
            update_timestamp=get_timestamp(data, 'update_timestamp', path),
            connected_clients=get_int(data, 'connected_clients', path),
            unique_users=get_int(data, 'unique_users', path),
        )

    def to_dict(self) -> dict:
        return {
            'version': self.schema_version,
            'reload': self.reload,
            'update': self.update_label,
            'update_timestamp': format_timestamp(self.update_timestamp),
            'connected_clients': self.connected_clients,
            'unique_users': self.unique_users,
        }


@dataclass(frozen=True)
class VatsimStatus:
    """
    One complete, immutable snapshot of the VATSIM network.

    Created only by the ingestion layer and swapped into the cache whole.
    """
    general: General
    pilots: Tuple[Pilot, ...]
    controllers: Tuple[Controller, ...]
    atis: Tuple[Atis, ...]
    servers: Tuple[Server, ...]
    prefiles: Tuple[Prefile, ...]
    facilities: Tuple[Facility, ...]
    pilot_ratings: Tuple[PilotRating, ...]

    @classmethod
    def from_dict(cls, data: Any) -> 'VatsimStatus':
        """
        Parse a decoded status document.

        Raises SchemaError naming the first field that does not match.
        """
        data = require_object(data, '')
        return cls(
            general=General.from_dict(data.get('general'), 'general'),
            pilots=get_list(data, 'pilots', Pilot.from_dict),
            controllers=get_list(data, 'controllers', Controller.from_dict),
            atis=get_list(data, 'atis', Atis.from_dict),
            servers=get_list(data, 'servers', Server.from_dict),
            prefiles=get_list(data, 'prefiles', Prefile.from_dict),
            facilities=get_list(data, 'facilities', Facility.from_dict),
            pilot_ratings=get_list(data, 'pilot_ratings', PilotRating.from_dict),
        )

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dict in the upstream document shape."""
        return {
            'general': self.general.to_dict(),
            'pilots': [pilot.to_dict() for pilot in self.pilots],
            'controllers': [controller.to_dict() for controller in self.controllers],
            'atis': [atis.to_dict() for atis in self.atis],
            'servers': [server.to_dict() for server in self.servers],
            'prefiles': [prefile.to_dict() for prefile in self.prefiles],
            'facilities': [facility.to_dict() for facility in self.facilities],
            'pilot_ratings': [rating.to_dict() for rating in self.pilot_ratings],
        }

    @property
    def update_timestamp(self) -> datetime:
        return self.general.update_timestamp
