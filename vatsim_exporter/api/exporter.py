"""
Exporter endpoints.

Provides:
- GET /metrics           - Prometheus text exposition of the latest snapshot
- GET /vatsim-data.json  - The cached snapshot as JSON (404 until one exists)

Both endpoints refresh the cache first when it is stale. Upstream
failures never surface here; the last good data is served instead.
"""

import logging

from flask import Blueprint, Response, current_app, jsonify

logger = logging.getLogger(__name__)

exporter_bp = Blueprint('exporter', __name__)


@exporter_bp.route('/metrics', methods=['GET'])
def get_metrics():
    """Render the metric store after an on-demand refresh."""
    current_app.config['REFRESH_CONTROLLER'].refresh()

    store = current_app.config['METRIC_STORE']
    return Response(store.render(), status=200, content_type=store.content_type)


@exporter_bp.route('/vatsim-data.json', methods=['GET'])
def get_vatsim_data():
    """Serve the cached snapshot in the upstream document shape."""
    entry = current_app.config['REFRESH_CONTROLLER'].refresh()

    if entry.snapshot is None:
        logger.debug('No VATSIM snapshot obtained yet')
        return Response(status=404)

    return jsonify(entry.snapshot.to_dict())
