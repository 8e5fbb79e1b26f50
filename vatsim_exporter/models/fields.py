"""
Typed field accessors used by the status document parsers.

Each accessor pulls one key out of a decoded JSON object and checks its
type, raising SchemaError with the dotted path of the offending field.
"""

from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Tuple, TypeVar

from vatsim_exporter.errors import SchemaError
from vatsim_exporter.models.timestamps import parse_timestamp

T = TypeVar('T')

UINT8_MAX = 0xFF
UINT16_MAX = 0xFFFF
UINT32_MAX = 0xFFFFFFFF
INT32_MIN = -0x80000000
INT32_MAX = 0x7FFFFFFF

_MISSING = object()


def _join(path: str, key: str) -> str:
    return f'{path}.{key}' if path else key


def require_object(value: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise SchemaError(f'expected object, got {type(value).__name__}', path)
    return value


def _get(data: Mapping[str, Any], key: str, path: str) -> Any:
    value = data.get(key, _MISSING)
    if value is _MISSING:
        raise SchemaError('missing required field', _join(path, key))
    return value


def get_int(
    data: Mapping[str, Any],
    key: str,
    path: str = '',
    minimum: int = 0,
    maximum: int = UINT32_MAX,
) -> int:
    value = _get(data, key, path)
    # bool is an int subclass, JSON true/false is never a valid number here
    if isinstance(value, bool) or not isinstance(value, int):
        raise SchemaError(f'expected integer, got {type(value).__name__}', _join(path, key))
    if not minimum <= value <= maximum:
        raise SchemaError(f'{value} outside [{minimum}, {maximum}]', _join(path, key))
    return value


def get_float(data: Mapping[str, Any], key: str, path: str = '') -> float:
    value = _get(data, key, path)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaError(f'expected number, got {type(value).__name__}', _join(path, key))
    return float(value)


def get_bool(data: Mapping[str, Any], key: str, path: str = '') -> bool:
    value = _get(data, key, path)
    if not isinstance(value, bool):
        raise SchemaError(f'expected boolean, got {type(value).__name__}', _join(path, key))
    return value


def get_str(data: Mapping[str, Any], key: str, path: str = '') -> str:
    value = _get(data, key, path)
    if not isinstance(value, str):
        raise SchemaError(f'expected string, got {type(value).__name__}', _join(path, key))
    return value


def get_optional_str(data: Mapping[str, Any], key: str, path: str = '') -> Optional[str]:
    if data.get(key) is None:
        return None
    return get_str(data, key, path)


def get_optional_str_list(
    data: Mapping[str, Any],
    key: str,
    path: str = '',
) -> Optional[Tuple[str, ...]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(line, str) for line in value):
        raise SchemaError('expected list of strings', _join(path, key))
    return tuple(value)


def get_timestamp(data: Mapping[str, Any], key: str, path: str = '') -> datetime:
    value = _get(data, key, path)
    try:
        return parse_timestamp(value)
    except ValueError as e:
        raise SchemaError(str(e), _join(path, key)) from e


def get_list(
    data: Mapping[str, Any],
    key: str,
    parse: Callable[[Any, str], T],
    path: str = '',
) -> Tuple[T, ...]:
    """Parse a JSON array field, applying ``parse(item, item_path)`` to each element."""
    value = _get(data, key, path)
    field_path = _join(path, key)
    if not isinstance(value, list):
        raise SchemaError(f'expected array, got {type(value).__name__}', field_path)

    items: List[T] = []
    for index, item in enumerate(value):
        items.append(parse(item, f'{field_path}[{index}]'))
    return tuple(items)
