"""
VATSIM status feed client.

Performs one conditional GET against the v3 data endpoint:
- Sends the cached ETag as If-None-Match so unchanged data is not re-downloaded
- Treats HTTP 304 as "not modified"
- Parses full responses into a VatsimStatus snapshot

``fetch`` never raises. Transport problems and malformed payloads come back
as a ``Failed`` outcome so the caller can keep serving what it already has.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

import requests

from vatsim_exporter.config import config
from vatsim_exporter.errors import SchemaError, TransportError, VatsimExporterError
from vatsim_exporter.models import VatsimStatus, format_timestamp

logger = logging.getLogger(__name__)

HTTP_NOT_MODIFIED = 304


@dataclass(frozen=True)
class Updated:
    """Upstream sent a full document and it parsed."""
    snapshot: VatsimStatus
    validator: str


@dataclass(frozen=True)
class NotModified:
    """Upstream confirmed the cached document is still current."""
    validator: str


@dataclass(frozen=True)
class Failed:
    """Fetch or parse failed; the cached snapshot should be kept."""
    reason: str
    error: Optional[VatsimExporterError] = None


FetchOutcome = Union[Updated, NotModified, Failed]


class VatsimClient:
    """
    Client for the VATSIM network status feed.

    Handles:
    - Conditional GET with ETag validators
    - Bounded request timeout
    - Schema parsing of the response body
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.url = url or config.upstream.url
        self.timeout = timeout or config.upstream.timeout_seconds
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls) -> 'VatsimClient':
        """Create client from application configuration."""
        return cls(
            url=config.upstream.url,
            timeout=config.upstream.timeout_seconds,
        )

    def fetch(self, validator: str = '') -> FetchOutcome:
        """
        Fetch the status document, conditionally on ``validator``.

        Returns Updated, NotModified or Failed.
        """
        try:
            return self._fetch(validator)
        except TransportError as e:
            logger.error(f'Fetching VATSIM data failed: {e}')
            return Failed(reason=f'transport: {e}', error=e)
        except SchemaError as e:
            logger.error(f'Failed to parse VATSIM data: {e}')
            return Failed(reason=f'schema: {e}', error=e)

    def _fetch(self, validator: str) -> FetchOutcome:
        headers = {}
        if validator:
            headers['If-None-Match'] = validator

        logger.debug(f'Fetching {self.url} (validator={validator or "none"})')

        try:
            response = self.session.get(
                self.url,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise TransportError(f'timed out after {self.timeout}s') from e
        except requests.exceptions.RequestException as e:
            raise TransportError(str(e)) from e

        new_validator = _read_validator(response)

        if response.status_code == HTTP_NOT_MODIFIED:
            return NotModified(validator=new_validator)

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise TransportError(f'upstream returned HTTP {response.status_code}') from e

        try:
            payload = response.json()
        except ValueError as e:
            raise SchemaError(f'invalid JSON: {e}') from e
        except requests.exceptions.RequestException as e:
            # Body read can still fail after headers arrived
            raise TransportError(str(e)) from e

        snapshot = VatsimStatus.from_dict(payload)
        logger.info(f'New VATSIM status data {format_timestamp(snapshot.update_timestamp)}')
        return Updated(snapshot=snapshot, validator=new_validator)


def _read_validator(response: requests.Response) -> str:
    """ETag of the response, or '' if absent or not plain text."""
    value = response.headers.get('ETag')
    if not isinstance(value, str):
        return ''
    try:
        value.encode('ascii')
    except UnicodeEncodeError:
        return ''
    return value
