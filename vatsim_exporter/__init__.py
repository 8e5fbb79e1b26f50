"""
VATSIM Exporter Package.

Republishes the VATSIM network status feed as Prometheus metrics and as a
cached JSON snapshot, refreshing on demand. Built with Flask, requests and
prometheus_client.

Modules:
    api/         HTTP endpoints (/metrics, /vatsim-data.json)
    models/      Immutable typed model of the VATSIM status document
    ingestion/   Conditional feed client and refresh-on-read controller
    metrics/     Snapshot-to-metrics projector and metric store
    cache.py     Thread-safe holder of the current snapshot
    config.py    Centralized configuration from environment variables
    errors.py    Error taxonomy for fetch and parse failures
"""

__version__ = '1.0.0'
