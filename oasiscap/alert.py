"""
Version-tagged CAP alert

``Alert`` wraps exactly one of ``v1dot0.Alert``, ``v1dot1.Alert`` or
``v1dot2.Alert``. The version is chosen from the document's root namespace
on parse and the variant is written back in its own namespace.

Parsing is lenient about well-known producer mistakes (empty polygons,
``http://`` placeholder URLs, ``Z`` offsets and so on); output is always
canonical and conformant.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Union

from . import v1dot0, v1dot1, v1dot2
from .constants import CAPVersion
from .errors import SchemaError
from .projection import Reader, load
from .upgrade import Message, into_latest, version_of

logger = logging.getLogger(__name__)

VERSION_MODULES = {
    CAPVersion.V1_0: v1dot0,
    CAPVersion.V1_1: v1dot1,
    CAPVersion.V1_2: v1dot2,
}


@dataclass(frozen=True)
class Alert:
    """
    A CAP alert of any supported version.

    Attributes:
        version: Schema version of the wrapped message
        message: The version-specific alert
    """
    version: CAPVersion
    message: Message

    def __post_init__(self):
        expected = VERSION_MODULES[self.version].Alert
        if not isinstance(self.message, expected):
            raise SchemaError(
                f'CAP {self.version.value} alert expected, got {type(self.message).__module__}.'
                f'{type(self.message).__name__}',
                'alert', self.version
            )

    @classmethod
    def from_message(cls, message: Message) -> 'Alert':
        """Wrap a version-specific alert."""
        return cls(version_of(message), message)

    @classmethod
    def parse(cls, document: Union[str, bytes]) -> 'Alert':
        """
        Parse a CAP XML document of any supported version.

        Args:
            document: CAP XML content

        Returns:
            Alert tagged with the version named by the root namespace

        Raises:
            DocumentProjectionError: If the XML is malformed, not an alert,
                or in an unknown namespace
            SchemaError: If a field is missing or invalid for that version
            GeometryError: If a polygon or circle is invalid
        """
        root, version = load(document)
        module = VERSION_MODULES[version]
        message = module.read_alert(Reader(root, version, 'alert'))
        logger.debug('Parsed CAP %s alert %s', version.value, message.identifier)
        return cls(version, message)

    @classmethod
    def parse_file(cls, filepath: str) -> 'Alert':
        with open(filepath, 'rb') as f:
            return cls.parse(f.read())

    def to_xml(self, pretty: bool = True) -> str:
        """Generate a conformant document in this alert's own version."""
        return self.message.to_xml(pretty)

    def __str__(self):
        return self.to_xml()

    @property
    def identifier(self) -> str:
        return self.message.identifier

    @property
    def sender(self) -> str:
        return self.message.sender

    @property
    def sent(self) -> datetime:
        return self.message.sent

    @property
    def xml_namespace(self) -> str:
        return self.version.namespace

    @property
    def is_latest(self) -> bool:
        return self.version is CAPVersion.V1_2

    def into_latest(self) -> v1dot2.Alert:
        """
        Upgrade to CAP 1.2.

        Raises:
            ConversionError: If the upgraded alert cannot be built
        """
        return into_latest(self.message)
