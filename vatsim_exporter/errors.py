"""
Error taxonomy for the exporter.

Both errors are raised inside the ingestion layer and never leave it:
the VATSIM client converts them into a ``Failed`` fetch outcome and the
refresh controller logs them while the previous snapshot keeps being served.
"""


class VatsimExporterError(Exception):
    """Base class for exporter errors."""


class TransportError(VatsimExporterError):
    """Upstream could not be reached, timed out, or answered with an error status."""


class SchemaError(VatsimExporterError):
    """Upstream payload does not match the expected status document structure."""

    def __init__(self, message: str, path: str = ''):
        self.path = path
        if path:
            message = f'{path}: {message}'
        super().__init__(message)
