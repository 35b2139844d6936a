"""
Compact dictionary form

A JSON-safe projection of an alert, used by the web API and for storage.
Scalars keep their CAP text form (timestamps, geometry, references), enums
become their CAP values and embedded content is base64. Absent fields and
empty lists are left out.

    {'version': '1.2', 'alert': {'identifier': ..., 'info': [...]}}

``from_dict(to_dict(a)) == a`` for every alert. Validation is left to the
dataclass constructors.
"""

import dataclasses
import typing
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Union

from .alert import Alert, VERSION_MODULES
from .constants import CAPVersion
from .errors import ParseError, SchemaError
from .fields import Reference, parse_embedded, format_embedded
from .geo import Circle, Polygon
from .timestamps import parse_timestamp, format_timestamp

# values written as their CAP text
_TEXT_TYPES = {
    Polygon: Polygon.parse,
    Circle: Circle.parse,
    Reference: Reference.parse,
    datetime: parse_timestamp,
    bytes: parse_embedded,
}


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, bytes):
        return format_embedded(value)
    if isinstance(value, (Polygon, Circle, Reference)):
        return str(value)
    if dataclasses.is_dataclass(value):
        result = {}
        for f in dataclasses.fields(value):
            item = getattr(value, f.name)
            if item is None or (isinstance(item, list) and not item):
                continue
            result[f.name] = _encode(item)
        return result
    if isinstance(value, list):
        return [_encode(item) for item in value]
    return value


def to_dict(alert: Union[Alert, Any]) -> Dict[str, Any]:
    """Project an alert (tagged or version-specific) onto plain dicts and lists."""
    if not isinstance(alert, Alert):
        alert = Alert.from_message(alert)
    return {
        'version': alert.version.value,
        'alert': _encode(alert.message),
    }


def _decode(hint, value: Any, path: str) -> Any:
    origin = typing.get_origin(hint)

    if origin is Union:
        if value is None:
            return None
        inner = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        return _decode(inner[0], value, path)

    if origin in (list, List):
        if not isinstance(value, list):
            raise SchemaError('expected a list', path)
        item_hint = typing.get_args(hint)[0]
        return [_decode(item_hint, item, f'{path}[{index}]') for index, item in enumerate(value)]

    if hint in _TEXT_TYPES:
        if not isinstance(value, str):
            raise SchemaError(f'expected a string, got {type(value).__name__}', path)
        try:
            return _TEXT_TYPES[hint](value)
        except ParseError as e:
            e.prefixed(path)
            raise
        except ValueError as e:
            raise SchemaError(str(e), path)

    if isinstance(hint, type) and issubclass(hint, Enum):
        try:
            return hint(value)
        except ValueError:
            raise SchemaError(f'invalid {hint.__name__} {value!r}', path)

    if dataclasses.is_dataclass(hint):
        return _decode_dataclass(hint, value, path)

    return value


def _decode_dataclass(cls, data: Any, path: str, locate: bool = True):
    if not isinstance(data, dict):
        raise SchemaError(f'expected an object for {cls.__name__}', path)

    hints = typing.get_type_hints(cls)
    names = {f.name for f in dataclasses.fields(cls)}
    unknown = set(data) - names
    if unknown:
        raise SchemaError(f'unknown fields for {cls.__name__}: {", ".join(sorted(unknown))}', path)

    kwargs = {
        name: _decode(hints[name], value, f'{path}/{name}')
        for name, value in data.items()
    }
    try:
        return cls(**kwargs)
    except ParseError as e:
        # alerts locate their own errors
        if locate:
            e.prefixed(path)
        raise
    except (TypeError, ValueError) as e:
        raise SchemaError(str(e), path)


def from_dict(data: Dict[str, Any]) -> Alert:
    """
    Rebuild an alert from its compact form.

    Raises:
        SchemaError: If the dict does not describe a valid alert
    """
    if not isinstance(data, dict) or 'version' not in data or 'alert' not in data:
        raise SchemaError("expected {'version': ..., 'alert': {...}}")

    try:
        version = CAPVersion(data['version'])
    except ValueError:
        raise SchemaError(f"unsupported CAP version {data['version']!r}")

    module = VERSION_MODULES[version]
    try:
        message = _decode_dataclass(module.Alert, data['alert'], 'alert', locate=False)
    except ParseError as e:
        if e.version is None:
            e.version = version
        raise
    return Alert(version, message)
