"""
Elements shared by every CAP version

``resource``, ``area`` and the valueName/value pairs have the same shape in
CAP 1.0, 1.1 and 1.2 apart from a few version flags: 1.0 writes pairs as
``name=value`` text, 1.0 resources cannot embed content and 1.2 requires a
resource MIME type. The version modules pass their own dataclasses and pair
codec to these readers and writers.
"""

import xml.etree.ElementTree as ET
from typing import Callable, List, Type, TypeVar

from .fields import (
    ValuePair, check_digest, parse_embedded, format_embedded, parse_integer, parse_uri,
    parse_v1dot0_pair, format_v1dot0_pair,
)
from .geo import Circle, format_number, polygon_or_none
from .projection import Reader, Writer

T = TypeVar('T')

PairReader = Callable[[Reader, str], List[ValuePair]]
PairWriter = Callable[[Writer, ET.Element, str, List[ValuePair]], None]

RESOURCE_ELEMENTS = ('resourceDesc', 'mimeType', 'size', 'uri', 'derefUri', 'digest')

AREA_ELEMENTS = ('areaDesc', 'polygon', 'circle', 'geocode', 'altitude', 'ceiling')


# value pairs

def _read_pair(reader: Reader) -> ValuePair:
    reader.expect(('valueName', 'value'))
    return reader.build(
        ValuePair,
        value_name=reader.required('valueName'),
        value=reader.text('value') or '',
    )


def read_pairs(reader: Reader, tag: str) -> List[ValuePair]:
    """Read ``<tag><valueName/><value/></tag>`` elements (CAP 1.1 and 1.2)."""
    return [_read_pair(child) for child in reader.children(tag)]


def read_v1dot0_pairs(reader: Reader, tag: str) -> List[ValuePair]:
    # one "name=value" per element, empty elements skipped
    return [
        reader.convert(tag, text, parse_v1dot0_pair, index)
        for index, text in enumerate(reader.texts(tag))
    ]


def write_pairs(writer: Writer, parent: ET.Element, tag: str, pairs: List[ValuePair]) -> None:
    writer.pairs(parent, tag, pairs)


def write_v1dot0_pairs(writer: Writer, parent: ET.Element, tag: str, pairs: List[ValuePair]) -> None:
    writer.repeated(parent, tag, pairs, format_v1dot0_pair)


# resource

def read_resource(reader: Reader, cls: Type[T], embedded: bool = True, mime_required: bool = False) -> T:
    """
    Read a ``resource`` element into `cls`.

    Args:
        reader: Reader positioned on the resource element
        cls: The version's Resource dataclass
        embedded: Whether the version has ``derefUri``
        mime_required: Whether ``mimeType`` must be present
    """
    allowed = RESOURCE_ELEMENTS if embedded else tuple(
        tag for tag in RESOURCE_ELEMENTS if tag != 'derefUri'
    )
    reader.expect(allowed)

    fields = {
        'resource_desc': reader.required('resourceDesc'),
        'mime_type': reader.required('mimeType') if mime_required else reader.text('mimeType'),
        'size': reader.value('size', parse_integer),
        'uri': reader.value('uri', parse_uri),
        'digest': reader.value('digest', check_digest),
    }
    if embedded:
        fields['deref_uri'] = reader.value('derefUri', parse_embedded)
    return reader.build(cls, **fields)


def write_resource(writer: Writer, parent: ET.Element, resource) -> None:
    writer.sub(parent, 'resourceDesc', resource.resource_desc)
    # a required mimeType may be empty, an optional one is None when empty
    if resource.mime_type is not None:
        writer.sub(parent, 'mimeType', resource.mime_type)
    writer.optional(parent, 'size', resource.size)
    writer.optional(parent, 'uri', resource.uri)
    writer.optional(parent, 'derefUri', getattr(resource, 'deref_uri', None), format_embedded)
    writer.optional(parent, 'digest', resource.digest)


# area

def read_area(reader: Reader, cls: Type[T], pair_reader: PairReader = read_pairs) -> T:
    reader.expect(AREA_ELEMENTS)
    return reader.build(
        cls,
        area_desc=reader.required('areaDesc'),
        polygons=reader.values('polygon', polygon_or_none),
        circles=reader.values('circle', Circle.parse),
        geocodes=pair_reader(reader, 'geocode'),
        altitude=reader.number('altitude'),
        ceiling=reader.number('ceiling'),
    )


def write_area(writer: Writer, parent: ET.Element, area, pair_writer: PairWriter = write_pairs) -> None:
    writer.sub(parent, 'areaDesc', area.area_desc)
    writer.repeated(parent, 'polygon', area.polygons)
    writer.repeated(parent, 'circle', area.circles)
    pair_writer(writer, parent, 'geocode', area.geocodes)
    writer.optional(parent, 'altitude', area.altitude, format_number)
    writer.optional(parent, 'ceiling', area.ceiling, format_number)
