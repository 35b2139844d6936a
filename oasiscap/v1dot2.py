"""
CAP v1.2 types

Parses and generates Common Alerting Protocol 1.2 documents.
Reference: http://docs.oasis-open.org/emergency/cap/v1.2/CAP-v1.2.html

Changes from 1.1: the ``Avoid`` and ``AllClear`` response types are added
and ``resource/mimeType`` becomes required. Everything else, including the
enumerations and the valueName/value pairs, is as in 1.1.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from .common import read_area, read_pairs, read_resource, write_area, write_pairs, write_resource
from .constants import CAPVersion, DEFAULT_LANGUAGE
from .errors import DocumentProjectionError, SchemaError, located
from .fields import (
    Reference, ValuePair,
    check_id, check_items, check_language, check_url, check_uri, check_digest,
    check_size, check_text, check_enum, check_instances, check_optional_timestamp,
    check_altitude, check_codes, checked,
    parse_id, parse_items, format_items, parse_references, format_references, parse_url,
)
from .geo import Circle, Polygon
from .projection import Reader, Writer, load
from .timestamps import format_timestamp

VERSION = CAPVersion.V1_2
NAMESPACE = VERSION.namespace


class Status(Enum):
    ACTUAL = 'Actual'
    EXERCISE = 'Exercise'
    SYSTEM = 'System'
    TEST = 'Test'
    DRAFT = 'Draft'


class MessageType(Enum):
    ALERT = 'Alert'
    UPDATE = 'Update'
    CANCEL = 'Cancel'
    ACK = 'Ack'
    ERROR = 'Error'


class Scope(Enum):
    PUBLIC = 'Public'
    RESTRICTED = 'Restricted'
    PRIVATE = 'Private'


class Category(Enum):
    GEO = 'Geo'
    MET = 'Met'
    SAFETY = 'Safety'
    SECURITY = 'Security'
    RESCUE = 'Rescue'
    FIRE = 'Fire'
    HEALTH = 'Health'
    ENV = 'Env'
    TRANSPORT = 'Transport'
    INFRA = 'Infra'
    CBRNE = 'CBRNE'
    OTHER = 'Other'


class ResponseType(Enum):
    SHELTER = 'Shelter'
    EVACUATE = 'Evacuate'
    PREPARE = 'Prepare'
    EXECUTE = 'Execute'
    AVOID = 'Avoid'
    MONITOR = 'Monitor'
    ASSESS = 'Assess'
    ALL_CLEAR = 'AllClear'
    NONE = 'None'


class Urgency(Enum):
    IMMEDIATE = 'Immediate'
    EXPECTED = 'Expected'
    FUTURE = 'Future'
    PAST = 'Past'
    UNKNOWN = 'Unknown'


class Severity(Enum):
    EXTREME = 'Extreme'
    SEVERE = 'Severe'
    MODERATE = 'Moderate'
    MINOR = 'Minor'
    UNKNOWN = 'Unknown'


class Certainty(Enum):
    OBSERVED = 'Observed'
    LIKELY = 'Likely'
    POSSIBLE = 'Possible'
    UNLIKELY = 'Unlikely'
    UNKNOWN = 'Unknown'


# deprecated since CAP 1.1, still seen in 1.2 feeds
CERTAINTY_ALIASES = {'Very Likely': Certainty.LIKELY}


@dataclass
class Resource:
    """Supplemental file (image, audio, ...) referenced or embedded by an info block."""
    resource_desc: str
    mime_type: str
    size: Optional[int] = None
    uri: Optional[str] = None
    deref_uri: Optional[bytes] = None
    digest: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.deref_uri, (bytearray, memoryview)):
            self.deref_uri = bytes(self.deref_uri)
        if self.deref_uri == b'':
            self.deref_uri = None
        self.validate()

    def validate(self):
        self.resource_desc = check_text('resourceDesc', self.resource_desc, required=True)
        self.mime_type = check_text('mimeType', self.mime_type, required=True)
        if self.size is not None:
            checked('size', check_size, self.size)
        if self.uri is not None:
            checked('uri', check_uri, self.uri)
        if self.deref_uri is not None and not isinstance(self.deref_uri, bytes):
            raise SchemaError('derefUri must be bytes', 'derefUri')
        if self.digest is not None:
            self.digest = checked('digest', check_digest, self.digest)


@dataclass
class Area:
    """Geographic area an info block applies to."""
    area_desc: str
    polygons: List[Polygon] = field(default_factory=list)
    circles: List[Circle] = field(default_factory=list)
    geocodes: List[ValuePair] = field(default_factory=list)
    altitude: Optional[float] = None
    ceiling: Optional[float] = None

    def __post_init__(self):
        self.validate()

    def validate(self):
        self.area_desc = check_text('areaDesc', self.area_desc, required=True)
        self.polygons = check_instances('polygon', self.polygons, Polygon)
        self.circles = check_instances('circle', self.circles, Circle)
        self.geocodes = check_instances('geocode', self.geocodes, ValuePair)
        self.altitude, self.ceiling = check_altitude(self.altitude, self.ceiling)


@dataclass
class Info:
    """Alert information block (language-specific)."""
    categories: List[Category]
    event: str
    urgency: Urgency
    severity: Severity
    certainty: Certainty
    language: Optional[str] = None
    response_types: List[ResponseType] = field(default_factory=list)
    audience: Optional[str] = None
    event_codes: List[ValuePair] = field(default_factory=list)
    effective: Optional[datetime] = None
    onset: Optional[datetime] = None
    expires: Optional[datetime] = None
    sender_name: Optional[str] = None
    headline: Optional[str] = None
    description: Optional[str] = None
    instruction: Optional[str] = None
    web: Optional[str] = None
    contact: Optional[str] = None
    parameters: List[ValuePair] = field(default_factory=list)
    resources: List[Resource] = field(default_factory=list)
    areas: List[Area] = field(default_factory=list)

    def __post_init__(self):
        if self.language == '':
            self.language = None
        self.validate()

    @property
    def effective_language(self) -> str:
        return self.language or DEFAULT_LANGUAGE

    def validate(self):
        if self.language is not None:
            checked('language', check_language, self.language)
        self.categories = check_instances('category', self.categories, Category)
        if not self.categories:
            raise SchemaError('at least one category is required', 'category')
        self.event = check_text('event', self.event, required=True)
        self.response_types = check_instances('responseType', self.response_types, ResponseType)
        check_enum('urgency', self.urgency, Urgency)
        check_enum('severity', self.severity, Severity)
        check_enum('certainty', self.certainty, Certainty)
        self.event_codes = check_instances('eventCode', self.event_codes, ValuePair)
        self.effective = check_optional_timestamp('effective', self.effective)
        self.onset = check_optional_timestamp('onset', self.onset)
        self.expires = check_optional_timestamp('expires', self.expires)
        self.audience = check_text('audience', self.audience)
        self.sender_name = check_text('senderName', self.sender_name)
        self.headline = check_text('headline', self.headline)
        self.description = check_text('description', self.description)
        self.instruction = check_text('instruction', self.instruction)
        self.contact = check_text('contact', self.contact)
        if self.web is not None:
            checked('web', check_url, self.web)
        self.parameters = check_instances('parameter', self.parameters, ValuePair)
        self.resources = check_instances('resource', self.resources, Resource)
        self.areas = check_instances('area', self.areas, Area)

        for index, resource in enumerate(self.resources):
            with located(f'resource[{index}]'):
                resource.validate()
        for index, area in enumerate(self.areas):
            with located(f'area[{index}]'):
                area.validate()


@dataclass
class Alert:
    """
    A CAP v1.2 alert message.

    Header elements identify the message and its handling; each info block
    carries language-specific content, and each info block may have multiple
    areas.
    """
    identifier: str
    sender: str
    sent: datetime
    status: Status
    msg_type: MessageType
    scope: Scope
    source: Optional[str] = None
    restriction: Optional[str] = None
    addresses: List[str] = field(default_factory=list)
    codes: List[str] = field(default_factory=list)
    note: Optional[str] = None
    references: List[Reference] = field(default_factory=list)
    incidents: List[str] = field(default_factory=list)
    info: List[Info] = field(default_factory=list)

    def __post_init__(self):
        self.validate()

    def validate(self):
        """
        Check every field, including nested info blocks.

        Raises:
            SchemaError: With the path of the first invalid field
            GeometryError: If a geometry value is invalid
        """
        with located('alert', VERSION):
            checked('identifier', check_id, self.identifier)
            checked('sender', check_id, self.sender)
            if self.sent is None:
                raise SchemaError('sent is required', 'sent')
            self.sent = check_optional_timestamp('sent', self.sent)
            check_enum('status', self.status, Status)
            check_enum('msgType', self.msg_type, MessageType)
            check_enum('scope', self.scope, Scope)
            self.source = check_text('source', self.source)
            self.restriction = check_text('restriction', self.restriction)
            self.note = check_text('note', self.note)
            self.addresses = checked('addresses', check_items, self.addresses)
            self.codes = check_codes(self.codes)
            self.references = check_instances('references', self.references, Reference)
            self.incidents = checked('incidents', check_items, self.incidents)
            self.info = check_instances('info', self.info, Info)

            for index, info in enumerate(self.info):
                with located(f'info[{index}]'):
                    info.validate()

    @classmethod
    def parse(cls, document: Union[str, bytes]) -> 'Alert':
        """
        Parse a CAP v1.2 XML document.

        Raises:
            DocumentProjectionError: If the XML is malformed or not CAP 1.2
            SchemaError: If a field is missing or invalid
            GeometryError: If a polygon or circle is invalid
        """
        root, version = load(document)
        if version is not VERSION:
            raise DocumentProjectionError(
                f'expected a CAP {VERSION.value} document, got CAP {version.value}'
            )
        return read_alert(Reader(root, VERSION, 'alert'))

    def to_xml(self, pretty: bool = True) -> str:
        """Generate a conformant CAP v1.2 XML document."""
        self.validate()
        writer = Writer(VERSION)
        _write_alert(writer, self)
        return writer.to_string(pretty)


_ALERT_ELEMENTS = (
    'identifier', 'sender', 'sent', 'status', 'msgType', 'source', 'scope',
    'restriction', 'addresses', 'code', 'note', 'references', 'incidents', 'info',
)

_INFO_ELEMENTS = (
    'language', 'category', 'event', 'responseType', 'urgency', 'severity',
    'certainty', 'audience', 'eventCode', 'effective', 'onset', 'expires',
    'senderName', 'headline', 'description', 'instruction', 'web', 'contact',
    'parameter', 'resource', 'area',
)


def _parse_info(reader: Reader) -> Info:
    reader.expect(_INFO_ELEMENTS)
    return reader.build(
        Info,
        language=reader.value('language', check_language),
        categories=reader.enums('category', Category),
        event=reader.required('event'),
        response_types=reader.enums('responseType', ResponseType),
        urgency=reader.enum('urgency', Urgency),
        severity=reader.enum('severity', Severity),
        certainty=reader.enum('certainty', Certainty, CERTAINTY_ALIASES),
        audience=reader.text('audience'),
        event_codes=read_pairs(reader, 'eventCode'),
        effective=reader.timestamp('effective'),
        onset=reader.timestamp('onset'),
        expires=reader.timestamp('expires'),
        sender_name=reader.text('senderName'),
        headline=reader.text('headline'),
        description=reader.text('description'),
        instruction=reader.text('instruction'),
        web=reader.value('web', parse_url),
        contact=reader.text('contact'),
        parameters=read_pairs(reader, 'parameter'),
        resources=[
            read_resource(child, Resource, mime_required=True) for child in reader.children('resource')
        ],
        areas=[read_area(child, Area) for child in reader.children('area')],
    )


def read_alert(reader: Reader) -> Alert:
    reader.expect(_ALERT_ELEMENTS)
    # Alert.validate locates its own errors under alert/
    return Alert(
        identifier=reader.convert('identifier', reader.required('identifier'), parse_id),
        sender=reader.convert('sender', reader.required('sender'), parse_id),
        sent=reader.required_timestamp('sent'),
        status=reader.enum('status', Status),
        msg_type=reader.enum('msgType', MessageType),
        scope=reader.enum('scope', Scope),
        source=reader.text('source'),
        restriction=reader.text('restriction'),
        addresses=reader.value('addresses', parse_items) or [],
        codes=reader.texts('code'),
        note=reader.text('note'),
        references=reader.value('references', parse_references) or [],
        incidents=reader.value('incidents', parse_items) or [],
        info=[_parse_info(child) for child in reader.children('info')],
    )


def _write_info(writer: Writer, parent: ET.Element, info: Info):
    writer.optional(parent, 'language', info.language)
    writer.enums(parent, 'category', info.categories)
    writer.sub(parent, 'event', info.event)
    writer.enums(parent, 'responseType', info.response_types)
    writer.enum(parent, 'urgency', info.urgency)
    writer.enum(parent, 'severity', info.severity)
    writer.enum(parent, 'certainty', info.certainty)
    writer.optional(parent, 'audience', info.audience)
    write_pairs(writer, parent, 'eventCode', info.event_codes)
    writer.timestamp(parent, 'effective', info.effective)
    writer.timestamp(parent, 'onset', info.onset)
    writer.timestamp(parent, 'expires', info.expires)
    writer.optional(parent, 'senderName', info.sender_name)
    writer.optional(parent, 'headline', info.headline)
    writer.optional(parent, 'description', info.description)
    writer.optional(parent, 'instruction', info.instruction)
    writer.optional(parent, 'web', info.web)
    writer.optional(parent, 'contact', info.contact)
    write_pairs(writer, parent, 'parameter', info.parameters)

    for resource in info.resources:
        write_resource(writer, writer.sub(parent, 'resource'), resource)
    for area in info.areas:
        write_area(writer, writer.sub(parent, 'area'), area)


def _write_alert(writer: Writer, alert: Alert):
    root = writer.root
    writer.sub(root, 'identifier', alert.identifier)
    writer.sub(root, 'sender', alert.sender)
    writer.sub(root, 'sent', format_timestamp(alert.sent))
    writer.enum(root, 'status', alert.status)
    writer.enum(root, 'msgType', alert.msg_type)
    writer.optional(root, 'source', alert.source)
    writer.enum(root, 'scope', alert.scope)
    writer.optional(root, 'restriction', alert.restriction)
    writer.optional(root, 'addresses', alert.addresses or None, format_items)
    writer.repeated(root, 'code', alert.codes)
    writer.optional(root, 'note', alert.note)
    writer.optional(root, 'references', alert.references or None, format_references)
    writer.optional(root, 'incidents', alert.incidents or None, format_items)

    for info in alert.info:
        _write_info(writer, writer.sub(root, 'info'), info)
