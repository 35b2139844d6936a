"""
Document projection

Maps CAP XML onto the version modules' dataclasses with
``xml.etree.ElementTree``. The Reader walks one element of a known version,
tracking its path for error messages; the Writer builds a namespaced tree and
serializes it.
"""

import logging
import xml.etree.ElementTree as ET
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Type, TypeVar, Union

from .constants import CAPVersion
from .errors import DocumentProjectionError, ParseError, SchemaError
from .fields import parse_decimal, parse_integer
from .timestamps import parse_timestamp, format_timestamp

logger = logging.getLogger(__name__)

T = TypeVar('T')
E = TypeVar('E', bound=Enum)


def split_tag(tag: str) -> Tuple[Optional[str], str]:
    """Split ``{namespace}local`` into its parts."""
    if tag.startswith('{'):
        namespace, _, local = tag[1:].partition('}')
        return namespace, local
    return None, tag


def load(document: Union[str, bytes]) -> Tuple[ET.Element, CAPVersion]:
    """
    Parse an XML document and identify its CAP version from the root namespace.

    Raises:
        DocumentProjectionError: If the XML is malformed, the root is not
            ``alert``, or the namespace is not a CAP namespace
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise DocumentProjectionError(f'invalid XML: {e}')

    namespace, local = split_tag(root.tag)
    if local != 'alert':
        raise DocumentProjectionError(f"root element must be 'alert', got '{local}'")
    if namespace is None:
        raise DocumentProjectionError('alert element has no namespace, cannot determine CAP version')

    try:
        version = CAPVersion.from_namespace(namespace)
    except KeyError:
        raise DocumentProjectionError(f'unknown CAP namespace: {namespace}')
    return root, version


class Reader:
    """Read the children of one CAP element."""

    def __init__(self, element: ET.Element, version: CAPVersion, path: str):
        self.node = element
        self.version = version
        self.namespace = version.namespace
        self.path = path

    def _qualify(self, tag: str) -> str:
        return f'{{{self.namespace}}}{tag}'

    def _path(self, tag: str, index: Optional[int] = None) -> str:
        if index is None:
            return f'{self.path}/{tag}'
        return f'{self.path}/{tag}[{index}]'

    def schema_error(self, message: str, tag: Optional[str] = None) -> SchemaError:
        return SchemaError(message, self._path(tag) if tag else self.path, self.version)

    def expect(self, allowed: Iterable[str]) -> None:
        """
        Reject unknown children in this version's namespace.

        Elements from other namespaces, such as an XML signature, are skipped.
        """
        allowed = set(allowed)
        for child in self.node:
            namespace, local = split_tag(child.tag)
            if namespace != self.namespace:
                logger.debug('Skipping foreign element %s in %s', child.tag, self.path)
                continue
            if local not in allowed:
                raise DocumentProjectionError(
                    f"unexpected element '{local}'", self.path, self.version
                )

    def elements(self, tag: str) -> List[ET.Element]:
        return self.node.findall(self._qualify(tag))

    def element(self, tag: str) -> Optional[ET.Element]:
        found = self.elements(tag)
        if len(found) > 1:
            raise DocumentProjectionError(
                f"element '{tag}' may appear only once, found {len(found)}",
                self._path(tag), self.version
            )
        return found[0] if found else None

    def children(self, tag: str) -> List['Reader']:
        return [
            Reader(child, self.version, self._path(tag, index))
            for index, child in enumerate(self.elements(tag))
        ]

    def child(self, tag: str) -> Optional['Reader']:
        found = self.element(tag)
        if found is None:
            return None
        return Reader(found, self.version, self._path(tag))

    def text(self, tag: str) -> Optional[str]:
        """Stripped text of an optional element; empty elements read as absent."""
        found = self.element(tag)
        if found is None or not found.text or not found.text.strip():
            return None
        return found.text.strip()

    def required(self, tag: str) -> str:
        """Stripped text of a required element, which may be empty."""
        found = self.element(tag)
        if found is None:
            raise self.schema_error(f'missing required element: {tag}', tag)
        return (found.text or '').strip()

    def texts(self, tag: str) -> List[str]:
        """Stripped text of a repeated element, skipping empty ones."""
        return [
            child.text.strip() for child in self.elements(tag)
            if child.text and child.text.strip()
        ]

    def convert(self, tag: str, text: str, parser: Callable[[str], T], index: Optional[int] = None) -> T:
        """Run `parser` on element text, locating any error at the element."""
        path = self._path(tag, index)
        try:
            return parser(text)
        except ParseError as e:
            e.prefixed(path, self.version)
            raise
        except ValueError as e:
            raise SchemaError(str(e), path, self.version)

    def value(self, tag: str, parser: Callable[[str], T]) -> Optional[T]:
        text = self.text(tag)
        if text is None:
            return None
        return self.convert(tag, text, parser)

    def values(self, tag: str, parser: Callable[[str], Optional[T]]) -> List[T]:
        """Convert each occurrence of a repeated element, dropping None results."""
        result = []
        for index, child in enumerate(self.elements(tag)):
            converted = self.convert(tag, child.text or '', parser, index)
            if converted is not None:
                result.append(converted)
        return result

    def enum(self, tag: str, enum_cls: Type[E], aliases: Optional[Dict[str, E]] = None) -> E:
        return self.convert(tag, self.required(tag), lambda text: to_enum(enum_cls, text, aliases))

    def enums(self, tag: str, enum_cls: Type[E], aliases: Optional[Dict[str, E]] = None) -> List[E]:
        return [
            self.convert(tag, text, lambda t: to_enum(enum_cls, t, aliases), index)
            for index, text in enumerate(self.texts(tag))
        ]

    def timestamp(self, tag: str):
        return self.value(tag, parse_timestamp)

    def required_timestamp(self, tag: str):
        return self.convert(tag, self.required(tag), parse_timestamp)

    def number(self, tag: str) -> Optional[float]:
        return self.value(tag, parse_decimal)

    def integer(self, tag: str) -> Optional[int]:
        return self.value(tag, parse_integer)

    def build(self, cls: Type[T], **kwargs) -> T:
        """Construct a dataclass, locating validation errors at this element."""
        try:
            return cls(**kwargs)
        except ParseError as e:
            e.prefixed(self.path, self.version)
            raise
        except ValueError as e:
            raise SchemaError(str(e), self.path, self.version)


def to_enum(enum_cls: Type[E], text: str, aliases: Optional[Dict[str, E]] = None) -> E:
    text = text.strip()
    if aliases and text in aliases:
        logger.debug('Reading %s %r as %s', enum_cls.__name__, text, aliases[text].value)
        return aliases[text]
    try:
        return enum_cls(text)
    except ValueError:
        allowed = ', '.join(member.value for member in enum_cls)
        raise ValueError(f'invalid {enum_cls.__name__} {text!r}, expected one of: {allowed}')


class Writer:
    """Build a CAP document in one version's namespace."""

    def __init__(self, version: CAPVersion):
        self.version = version
        self.namespace = version.namespace
        self.root = ET.Element(self._qualify('alert'))

    def _qualify(self, tag: str) -> str:
        return f'{{{self.namespace}}}{tag}'

    def sub(self, parent: ET.Element, tag: str, text: Optional[str] = None) -> ET.Element:
        element = ET.SubElement(parent, self._qualify(tag))
        if text is not None:
            element.text = text
        return element

    def optional(self, parent: ET.Element, tag: str, value, formatter: Callable = str) -> None:
        """Write `value` if present; empty values are never written."""
        if value is None or value == '':
            return
        self.sub(parent, tag, formatter(value))

    def repeated(self, parent: ET.Element, tag: str, values: Iterable, formatter: Callable = str) -> None:
        for value in values:
            self.sub(parent, tag, formatter(value))

    def enum(self, parent: ET.Element, tag: str, value: Enum) -> None:
        self.sub(parent, tag, value.value)

    def enums(self, parent: ET.Element, tag: str, values: Iterable[Enum]) -> None:
        for value in values:
            self.sub(parent, tag, value.value)

    def timestamp(self, parent: ET.Element, tag: str, value) -> None:
        self.optional(parent, tag, value, format_timestamp)

    def pairs(self, parent: ET.Element, tag: str, pairs: Iterable) -> None:
        for pair in pairs:
            element = self.sub(parent, tag)
            self.sub(element, 'valueName', pair.value_name)
            self.sub(element, 'value', pair.value)

    def to_string(self, pretty: bool = True) -> str:
        if pretty:
            ET.indent(self.root)
        return ET.tostring(
            self.root, encoding='unicode', xml_declaration=True,
            default_namespace=self.namespace
        )
