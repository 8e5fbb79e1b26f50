"""
VATSIM Exporter Flask Application.

Main entry point for the web application. Wires together:
- VATSIM feed client
- Snapshot cache
- Metric store and projector
- Refresh controller
- API routes

Usage:
    python -m vatsim_exporter.app

Or with gunicorn:
    gunicorn 'vatsim_exporter.app:create_app()'
"""

import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS

from vatsim_exporter.api import exporter_bp
from vatsim_exporter.cache import SnapshotCache
from vatsim_exporter.config import config
from vatsim_exporter.ingestion import RefreshController, VatsimClient
from vatsim_exporter.metrics import MetricsProjector, MetricStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(
    client: Optional[VatsimClient] = None,
    store: Optional[MetricStore] = None,
    controller: Optional[RefreshController] = None,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        client: VATSIM feed client (created from config if None).
                Tests pass a client with a fake HTTP session.
        store: Metric store (fresh store if None)
        controller: Refresh controller (built from the above if None)

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Browser dashboards read the JSON snapshot directly
    CORS(app, resources={r'/vatsim-data.json': {'origins': '*'}})

    if controller is None:
        store = store or MetricStore()
        controller = RefreshController(
            client=client or VatsimClient.from_config(),
            cache=SnapshotCache(),
            projector=MetricsProjector(store),
        )
    else:
        store = store or controller.projector.store

    app.config['REFRESH_CONTROLLER'] = controller
    app.config['METRIC_STORE'] = store

    app.register_blueprint(exporter_bp)

    @app.route('/health')
    def health():
        """Health check. Reports cache state without triggering a refresh."""
        return {
            'status': 'ok',
            'cache': controller.cache.stats,
            'refresh': controller.stats,
        }

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def main() -> None:
    """Run the exporter on the configured listen address."""
    app = create_app()
    host, port = config.server.host, config.server.port

    logger.info(f'Starting VATSIM exporter on {config.server.listen}')

    app.run(
        host=host,
        port=port,
        threaded=True,
        use_reloader=False,
    )


if __name__ == '__main__':
    main()
