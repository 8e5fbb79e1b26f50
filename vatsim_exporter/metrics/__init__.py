"""
Prometheus metrics for the VATSIM exporter.

The projector turns a snapshot into absolute metric values; the store
keeps them and renders the text exposition.
"""

from vatsim_exporter.metrics.projector import MetricsProjector
from vatsim_exporter.metrics.registry import MetricStore

__all__ = ['MetricsProjector', 'MetricStore']
