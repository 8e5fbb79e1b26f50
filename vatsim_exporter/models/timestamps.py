"""
Timestamp handling for the VATSIM status document.

Upstream timestamps are ISO 8601 but not consistently so: most carry a
seven-digit fraction and a ``Z`` suffix, some logon times carry neither.
Everything is normalised to an aware UTC datetime.
"""

import re
from datetime import datetime, timedelta, timezone

_TIMESTAMP_RE = re.compile(
    r'^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})'
    r'(?:\.(?P<fraction>\d+))?'
    r'(?P<tz>Z|[+-]\d{2}:?\d{2})?$'
)


def _parse_offset(value: str) -> timezone:
    sign = -1 if value[0] == '-' else 1
    digits = value[1:].replace(':', '')
    offset = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
    return timezone(sign * offset)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an upstream timestamp into an aware UTC datetime.

    A missing timezone suffix means UTC. Fractions beyond microsecond
    precision are truncated.

    Raises ValueError if the string is not a recognisable timestamp.
    """
    if not isinstance(value, str):
        raise ValueError(f'expected timestamp string, got {type(value).__name__}')

    match = _TIMESTAMP_RE.match(value.strip())
    if not match:
        raise ValueError(f'unrecognised timestamp {value!r}')

    fraction = (match.group('fraction') or '0')[:6].ljust(6, '0')
    parsed = datetime.strptime(
        f'{match.group("base")}.{fraction}',
        '%Y-%m-%dT%H:%M:%S.%f',
    )

    tz = match.group('tz')
    if not tz or tz == 'Z':
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.replace(tzinfo=_parse_offset(tz)).astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Format a datetime the way upstream does (UTC, 'Z' suffix)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')
