"""
CAP geometry

WGS-84 points, polygons and circles as used by ``area/polygon`` and
``area/circle``. Values are immutable and can only be constructed in a valid
state; ``str()`` produces the canonical CAP text and is the inverse of
``parse()``.

Text formats:
    point:   "lat,lon"
    polygon: "lat,lon lat,lon lat,lon lat,lon" (closed, at least 4 points)
    circle:  "lat,lon radius" (radius in km)
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

from .constants import (
    MIN_LATITUDE, MAX_LATITUDE, MIN_LONGITUDE, MAX_LONGITUDE,
    MAX_CIRCLE_RADIUS, MIN_POLYGON_POINTS,
)
from .errors import GeometryError, GeometryRule
from .fields import parse_decimal

logger = logging.getLogger(__name__)


def parse_number(token: str, text: str) -> float:
    """Parse one decimal token of a geometry string."""
    try:
        return parse_decimal(token)
    except ValueError as e:
        raise GeometryError(GeometryRule.MALFORMED, text, f'{e} in {text!r}')


def format_number(value: Union[float, int]) -> str:
    """
    Format a number as the shortest positional decimal that reads back exactly.

    No exponent and no trailing zeros: 90.0 -> "90", 0.1 -> "0.1", 1e-7 -> "0.0000001".
    """
    return np.format_float_positional(float(value), unique=True, trim='-')


@dataclass(frozen=True)
class Point:
    """A WGS-84 coordinate pair in decimal degrees."""
    latitude: float
    longitude: float

    def __post_init__(self):
        for name in ('latitude', 'longitude'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise GeometryError(GeometryRule.MALFORMED, repr(value), f'{name} must be a number')
            if not math.isfinite(value):
                raise GeometryError(GeometryRule.MALFORMED, repr(value), f'{name} must be finite')
            object.__setattr__(self, name, float(value))

        if not MIN_LATITUDE <= self.latitude <= MAX_LATITUDE:
            raise GeometryError(
                GeometryRule.OUT_OF_RANGE, str(self),
                f'latitude {format_number(self.latitude)} outside [-90, 90]'
            )
        if not MIN_LONGITUDE <= self.longitude <= MAX_LONGITUDE:
            raise GeometryError(
                GeometryRule.OUT_OF_RANGE, str(self),
                f'longitude {format_number(self.longitude)} outside [-180, 180]'
            )

    @classmethod
    def parse(cls, text: str) -> 'Point':
        """Parse "lat,lon"."""
        parts = text.strip().split(',')
        if len(parts) != 2:
            raise GeometryError(GeometryRule.MALFORMED, text, f'point {text!r} must be "lat,lon"')
        latitude = parse_number(parts[0], text)
        longitude = parse_number(parts[1], text)
        return cls(latitude, longitude)

    def __str__(self):
        return f'{format_number(self.latitude)},{format_number(self.longitude)}'


@dataclass(frozen=True)
class Polygon:
    """
    A closed ring of points.

    The first and last points must be equal, and there must be at least four
    points in total.
    """
    points: Tuple[Point, ...]

    def __post_init__(self):
        points = tuple(self.points)
        for point in points:
            if not isinstance(point, Point):
                raise GeometryError(GeometryRule.MALFORMED, repr(point), 'polygon vertices must be Points')
        object.__setattr__(self, 'points', points)

        if len(points) < MIN_POLYGON_POINTS:
            raise GeometryError(
                GeometryRule.TOO_FEW_POINTS, str(self),
                f'polygon has {len(points)} points, needs at least {MIN_POLYGON_POINTS}'
            )
        if points[0] != points[-1]:
            raise GeometryError(
                GeometryRule.NOT_CLOSED, str(self),
                'polygon first and last points differ'
            )

    @classmethod
    def parse(cls, text: str) -> 'Polygon':
        """Parse whitespace-separated "lat,lon" pairs."""
        points = []
        for token in text.split():
            try:
                points.append(Point.parse(token))
            except GeometryError as e:
                raise GeometryError(e.rule, text, f'invalid polygon vertex: {e.message}')
        return cls(tuple(points))

    def __str__(self):
        return ' '.join(str(point) for point in self.points)

    def __len__(self):
        return len(self.points)


@dataclass(frozen=True)
class Circle:
    """A center point and a radius in kilometers."""
    center: Point
    radius: float

    def __post_init__(self):
        if not isinstance(self.center, Point):
            raise GeometryError(GeometryRule.MALFORMED, repr(self.center), 'circle center must be a Point')
        if isinstance(self.radius, bool) or not isinstance(self.radius, (int, float)):
            raise GeometryError(GeometryRule.MALFORMED, repr(self.radius), 'radius must be a number')
        object.__setattr__(self, 'radius', float(self.radius))

        if not 0 <= self.radius < MAX_CIRCLE_RADIUS:
            raise GeometryError(
                GeometryRule.RADIUS_OUT_OF_RANGE, str(self),
                f'radius {format_number(self.radius)} outside [0, {format_number(MAX_CIRCLE_RADIUS)})'
            )

    @classmethod
    def parse(cls, text: str) -> 'Circle':
        """Parse "lat,lon radius"."""
        parts = text.split()
        if len(parts) != 2:
            raise GeometryError(GeometryRule.MALFORMED, text, f'circle {text!r} must be "lat,lon radius"')
        center = Point.parse(parts[0])
        radius = parse_number(parts[1], text)
        return cls(center, radius)

    def __str__(self):
        return f'{self.center} {format_number(self.radius)}'


def polygon_or_none(text: Optional[str]) -> Optional[Polygon]:
    """
    Read the text of a ``<polygon>`` element.

    An empty element is treated as if it were absent; anything else must be a
    valid polygon.
    """
    if text is None or not text.strip():
        logger.debug('Ignoring empty polygon element')
        return None
    return Polygon.parse(text)
