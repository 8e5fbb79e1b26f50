"""
Data ingestion module for the VATSIM exporter.

Fetches the network status feed and decides, per request, whether the
cached snapshot needs refreshing.
"""

from vatsim_exporter.ingestion.refresh import RefreshController
from vatsim_exporter.ingestion.vatsim_client import (
    Failed,
    FetchOutcome,
    NotModified,
    Updated,
    VatsimClient,
)

__all__ = [
    'Failed',
    'FetchOutcome',
    'NotModified',
    'RefreshController',
    'Updated',
    'VatsimClient',
]
