"""
Domain model for the VATSIM network status document.

Snapshots are immutable: parsed once by the ingestion layer, never
modified, and replaced whole when newer data arrives.
"""

from vatsim_exporter.models.status import (
    Atis,
    Controller,
    Facility,
    FlightPlan,
    FlightRules,
    General,
    Pilot,
    PilotRating,
    Prefile,
    Server,
    VatsimStatus,
)
from vatsim_exporter.models.timestamps import format_timestamp, parse_timestamp

__all__ = [
    'Atis',
    'Controller',
    'Facility',
    'FlightPlan',
    'FlightRules',
    'General',
    'Pilot',
    'PilotRating',
    'Prefile',
    'Server',
    'VatsimStatus',
    'format_timestamp',
    'parse_timestamp',
]
