"""
OASIS Common Alerting Protocol

Typed parsing, validation and generation of CAP 1.0, 1.1 and 1.2 alerts,
and upgrades of older alerts to CAP 1.2.
"""

from .alert import Alert
from .constants import CAPVersion
from .errors import (
    CAPError, ParseError, DocumentProjectionError, SchemaError,
    GeometryError, GeometryRule, ConversionError,
)
from .geo import Point, Polygon, Circle
from . import v1dot0, v1dot1, v1dot2

__version__ = '0.2.0'

__all__ = [
    'Alert', 'CAPVersion',
    'CAPError', 'ParseError', 'DocumentProjectionError', 'SchemaError',
    'GeometryError', 'GeometryRule', 'ConversionError',
    'Point', 'Polygon', 'Circle',
    'v1dot0', 'v1dot1', 'v1dot2',
]
