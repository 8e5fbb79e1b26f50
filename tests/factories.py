"""Builders for VATSIM status payloads and fake HTTP plumbing used across tests."""

import json
from datetime import datetime, timedelta, timezone

import requests
from requests.structures import CaseInsensitiveDict

UPDATE_TIMESTAMP = '2024-05-01T12:00:00.1234567Z'

DEFAULT_FACILITIES = [
    {'id': 0, 'short': 'OBS', 'long': 'Observer'},
    {'id': 1, 'short': 'FSS', 'long': 'Flight Service Station'},
    {'id': 2, 'short': 'DEL', 'long': 'Clearance Delivery'},
    {'id': 3, 'short': 'GND', 'long': 'Ground'},
    {'id': 4, 'short': 'TWR', 'long': 'Tower'},
    {'id': 5, 'short': 'APP', 'long': 'Approach/Departure'},
    {'id': 6, 'short': 'CTR', 'long': 'Enroute'},
]


def make_flight_plan(arrival='KJFK', departure='KSFO', flight_rules='I', **overrides):
    flight_plan = {
        'flight_rules': flight_rules,
        'aircraft': 'B738/M-SDE2E3FGHIJ1RWXY/LB1',
        'aircraft_faa': 'B738/L',
        'aircraft_short': 'B738',
        'departure': departure,
        'arrival': arrival,
        'alternate': 'KEWR',
        'cruise_tas': '450',
        'altitude': '35000',
        'deptime': '1200',
        'enroute_time': '0530',
        'fuel_time': '0700',
        'remarks': 'PBN/A1B1C1D1 /V/',
        'route': 'OFFSH9 SNS ... LENDY8',
        'revision_id': 1,
        'assigned_transponder': '2200',
    }
    flight_plan.update(overrides)
    return flight_plan


def make_pilot(callsign='ABC123', cid=100, flight_plan=None, **overrides):
    pilot = {
        'cid': cid,
        'name': f'Pilot {cid}',
        'callsign': callsign,
        'server': 'USA-EAST',
        'pilot_rating': 0,
        'latitude': 40.6413,
        'longitude': -73.7781,
        'altitude': 35000,
        'groundspeed': 450,
        'transponder': '2200',
        'heading': 90,
        'qnh_i_hg': 29.92,
        'qnh_mb': 1013,
        'flight_plan': flight_plan,
        'logon_time': '2024-05-01T10:00:00.0000000Z',
        'last_updated': '2024-05-01T11:59:58.1234567Z',
    }
    pilot.update(overrides)
    return pilot


def make_prefile(callsign='DEF456', cid=200, flight_plan=None, **overrides):
    prefile = {
        'cid': cid,
        'name': f'Prefile {cid}',
        'callsign': callsign,
        'flight_plan': flight_plan if flight_plan is not None else make_flight_plan(),
        'last_updated': '2024-05-01T11:00:00.0000000Z',
    }
    prefile.update(overrides)
    return prefile


def make_controller(callsign='JFK_TWR', cid=300, facility=4, logon_time='2024-05-01T11:00:00', **overrides):
    controller = {
        'cid': cid,
        'name': f'Controller {cid}',
        'callsign': callsign,
        'frequency': '119.100',
        'facility': facility,
        'rating': 3,
        'server': 'USA-EAST',
        'visual_range': 50,
        'text_atis': ['Kennedy Tower', 'Monitor 121.9 after landing'],
        'logon_time': logon_time,
        'last_updated': '2024-05-01T11:59:59.0000000Z',
    }
    controller.update(overrides)
    return controller


def make_atis(callsign='KJFK_ATIS', cid=400, **overrides):
    atis = make_controller(callsign=callsign, cid=cid, facility=4, frequency='128.725')
    atis['atis_code'] = 'A'
    atis.update(overrides)
    return atis


def make_payload(
    pilots=(),
    controllers=(),
    prefiles=(),
    atis=(),
    facilities=None,
    update_timestamp=UPDATE_TIMESTAMP,
):
    return {
        'general': {
            'version': 3,
            'reload': 1,
            'update': '20240501120000',
            'update_timestamp': update_timestamp,
            'connected_clients': len(pilots) + len(controllers) + len(atis),
            'unique_users': len(pilots) + len(controllers) + len(atis),
        },
        'pilots': list(pilots),
        'controllers': list(controllers),
        'atis': list(atis),
        'servers': [
            {
                'ident': 'USA-EAST',
                'hostname_or_ip': 'usa-east.vatsim.net',
                'location': 'New York, USA',
                'name': 'USA-EAST',
                'client_connections_allowed': True,
                'is_sweatbox': False,
            },
        ],
        'prefiles': list(prefiles),
        'facilities': list(DEFAULT_FACILITIES if facilities is None else facilities),
        'pilot_ratings': [
            {'id': 0, 'short_name': 'NEW', 'long_name': 'Basic Member'},
            {'id': 1, 'short_name': 'PPL', 'long_name': 'Private Pilot License'},
        ],
    }


def make_response(status_code=200, payload=None, etag=None, body=None):
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response.url = 'https://data.vatsim.net/v3/vatsim-data.json'
    response.encoding = 'utf-8'
    response.headers = CaseInsensitiveDict()
    if etag is not None:
        response.headers['ETag'] = etag
    if body is None:
        body = json.dumps(payload).encode('utf-8') if payload is not None else b''
    response._content = body
    return response


class FakeSession:
    """
    Stand-in for requests.Session.

    Returns (or raises) the queued results in order; the last one repeats.
    """

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append({'url': url, 'headers': dict(headers or {}), 'timeout': timeout})
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 12, 0, 5, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class FakeMonotonic:
    """Controllable monotonic clock for the metric store."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
