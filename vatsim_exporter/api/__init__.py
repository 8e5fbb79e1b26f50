"""
API module for the VATSIM exporter.

Provides HTTP endpoints for:
- Prometheus metrics
- The cached VATSIM status document
"""

from vatsim_exporter.api.exporter import exporter_bp

__all__ = ['exporter_bp']
