"""
CAP error types

Every failure raised by this package derives from CAPError, which is a
ValueError so callers that already catch ValueError for bad CAP input keep
working. Parse-time failures carry the path of the offending element
(e.g. ``alert/info[0]/area[1]/polygon[0]``) and the schema version.
"""

from contextlib import contextmanager
from enum import Enum
from typing import Optional

from .constants import CAPVersion


class CAPError(ValueError):
    """Base class for all CAP errors."""

    kind = 'cap'

    def to_dict(self) -> dict:
        return {'kind': self.kind, 'error': str(self)}


class ParseError(CAPError):
    """Base class for errors raised while reading or validating an alert."""

    kind = 'parse'

    def __init__(self, message: str, path: Optional[str] = None,
                 version: Optional[CAPVersion] = None):
        super().__init__(message)
        self.message = message
        self.path = path
        self.version = version

    def prefixed(self, prefix: str, version: Optional[CAPVersion] = None) -> 'ParseError':
        """Locate this error under `prefix`, keeping any path it already has."""
        self.path = f'{prefix}/{self.path}' if self.path else prefix
        if self.version is None:
            self.version = version
        return self

    def to_dict(self) -> dict:
        return {
            'kind': self.kind,
            'error': self.message,
            'path': self.path,
            'version': self.version.value if self.version else None,
        }

    def __str__(self):
        location = ''
        if self.path:
            location = f' at {self.path}'
        if self.version is not None:
            location += f' (CAP {self.version.value})'
        return f'{self.message}{location}'


class DocumentProjectionError(ParseError):
    """The document is not well-formed XML or does not have the shape of a CAP alert."""

    kind = 'document'


class SchemaError(ParseError):
    """A field is missing, unknown, or violates a rule of its schema version."""

    kind = 'schema'


class GeometryRule(Enum):
    MALFORMED = 'malformed'
    OUT_OF_RANGE = 'out_of_range'
    TOO_FEW_POINTS = 'too_few_points'
    NOT_CLOSED = 'not_closed'
    RADIUS_OUT_OF_RANGE = 'radius_out_of_range'


class GeometryError(ParseError):
    """A point, polygon or circle violates a geometric rule."""

    kind = 'geometry'

    def __init__(self, rule: GeometryRule, text: str, message: Optional[str] = None,
                 path: Optional[str] = None, version: Optional[CAPVersion] = None):
        super().__init__(message or f'invalid geometry {text!r}: {rule.value}', path, version)
        self.rule = rule
        self.text = text

    def to_dict(self) -> dict:
        result = super().to_dict()
        result['rule'] = self.rule.value
        return result


class ConversionError(CAPError):
    """An upgrade could not build a valid alert of the target version."""

    kind = 'conversion'

    def __init__(self, message: str, source: CAPVersion, target: CAPVersion):
        super().__init__(f'cannot convert CAP {source.value} to {target.value}: {message}')
        self.source = source
        self.target = target


@contextmanager
def located(prefix: str, version: Optional[CAPVersion] = None):
    """Prefix the path of any ParseError raised inside the block."""
    try:
        yield
    except ParseError as e:
        e.prefixed(prefix, version)
        raise
