"""
Shared CAP field types

Validators and text codecs for the scalar fields that every CAP version has
in common: identifiers, delimited item lists, references, language tags,
URLs, value pairs, SHA-1 digests and base64 embedded content.

Text codecs raise plain ValueError and the projection Reader attaches the
element path. The ``check_*`` helpers at the bottom are used by dataclass
validation and raise SchemaError directly.
"""

import base64
import binascii
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Type, TypeVar

from .constants import URL_ASSUMED_TLDS
from .errors import ParseError, SchemaError
from .timestamps import parse_timestamp, format_timestamp, check_timestamp

logger = logging.getLogger(__name__)

T = TypeVar('T')

# decimal numbers only: no inf, nan, hex or underscores
_DECIMAL_RE = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')
_INTEGER_RE = re.compile(r'^[+-]?\d+$')
_ID_PROHIBITED = (',', '<', '&')
_SCHEME_RE = re.compile(r'^[A-Za-z][A-Za-z0-9+.-]*:')
_DIGEST_RE = re.compile(r'^[0-9a-fA-F]{40}$')
_VALUE_NAME_PROHIBITED = (' ', '<', '>', '&', ',', '=')


# numbers

def parse_decimal(text: str) -> float:
    token = text.strip()
    if not _DECIMAL_RE.match(token):
        raise ValueError(f'invalid number {token!r}')
    value = float(token)
    if not math.isfinite(value):
        raise ValueError(f'number {token!r} is not finite')
    return value


def parse_integer(text: str) -> int:
    token = text.strip()
    if not _INTEGER_RE.match(token):
        raise ValueError(f'invalid integer {token!r}')
    return int(token)


# identifiers

def check_id(value: str) -> str:
    """
    Validate an identifier (alert identifier, sender, reference parts).

    Must be non-empty, contain no whitespace and none of ``, < &``.
    """
    if not isinstance(value, str):
        raise ValueError(f'identifier must be a string, got {type(value).__name__}')
    if not value:
        raise ValueError('identifier must not be empty')
    if any(c.isspace() for c in value):
        raise ValueError(f'identifier {value!r} must not contain whitespace')
    if any(c in value for c in _ID_PROHIBITED):
        raise ValueError(f'identifier {value!r} must not contain any of , < &')
    return value


def parse_id(text: str) -> str:
    return check_id(text.strip())


# delimited items (addresses, incidents)

def check_item(item: str) -> str:
    if not isinstance(item, str) or not item:
        raise ValueError('items must be non-empty strings')
    if '"' in item:
        raise ValueError(f'item {item!r} must not contain a double quote')
    return item


def parse_items(text: str) -> List[str]:
    """
    Split a whitespace-delimited item list.

    Items containing whitespace are enclosed in double quotes:
    ``'a "b c" d'`` -> ``['a', 'b c', 'd']``.
    """
    items = []
    position = 0
    length = len(text)

    while position < length:
        char = text[position]
        if char.isspace():
            position += 1
            continue

        if char == '"':
            end = text.find('"', position + 1)
            if end < 0:
                raise ValueError(f'unterminated quoted item in {text!r}')
            items.append(text[position + 1:end])
            position = end + 1
            if position < length and not text[position].isspace():
                raise ValueError(f'quoted item must be followed by whitespace in {text!r}')
        else:
            end = position
            while end < length and not text[end].isspace():
                end += 1
            items.append(text[position:end])
            position = end

    for item in items:
        check_item(item)
    return items


def check_items(items: List[str]) -> List[str]:
    if isinstance(items, str) or not isinstance(items, (list, tuple)):
        raise ValueError('expected a list of items')
    return [check_item(item) for item in items]


def format_items(items: List[str]) -> str:
    return ' '.join(
        f'"{item}"' if any(c.isspace() for c in item) else item
        for item in items
    )


# references

@dataclass(frozen=True)
class Reference:
    """A pointer to an earlier alert: ``sender,identifier,sent``."""
    sender: str
    identifier: str
    sent: datetime

    def __post_init__(self):
        check_id(self.sender)
        check_id(self.identifier)
        check_timestamp(self.sent)
        object.__setattr__(self, 'sent', self.sent.replace(microsecond=0))

    @classmethod
    def parse(cls, text: str) -> 'Reference':
        parts = text.strip().split(',')
        if len(parts) != 3:
            raise ValueError(f'reference {text!r} must be "sender,identifier,sent"')
        sender, identifier, sent = parts
        return cls(check_id(sender), check_id(identifier), parse_timestamp(sent))

    def __str__(self):
        return f'{self.sender},{self.identifier},{format_timestamp(self.sent)}'


def parse_references(text: str) -> List[Reference]:
    return [Reference.parse(chunk) for chunk in text.split()]


def format_references(references: List[Reference]) -> str:
    return ' '.join(str(reference) for reference in references)


# language

def check_language(value: str) -> str:
    """
    Validate an RFC 3066 language tag such as ``en-US`` or ``es``.

    The primary subtag is alphabetic, the rest alphanumeric, each 1-8 characters.
    """
    if not isinstance(value, str) or not value:
        raise ValueError('language must be a non-empty string')
    for index, subtag in enumerate(value.split('-')):
        if not 1 <= len(subtag) <= 8 or not subtag.isascii():
            raise ValueError(f'invalid language tag {value!r}')
        if index == 0 and not subtag.isalpha():
            raise ValueError(f'invalid language tag {value!r}: primary subtag must be alphabetic')
        if not subtag.isalnum():
            raise ValueError(f'invalid language tag {value!r}')
    return value


# URLs

def check_url(value: str) -> str:
    """Validate an absolute URL."""
    if not isinstance(value, str) or not value:
        raise ValueError('URL must be a non-empty string')
    if any(c.isspace() for c in value):
        raise ValueError(f'URL {value!r} must not contain whitespace')
    if not _SCHEME_RE.match(value):
        raise ValueError(f'URL {value!r} must be absolute')
    scheme, _, rest = value.partition(':')
    if rest in ('', '//') or (scheme.lower() in ('http', 'https') and not rest.startswith('//')):
        raise ValueError(f'URL {value!r} has no host')
    return value


def _looks_like_domain(text: str) -> bool:
    labels = text.split('/')[0].split('.')
    if not all(label.isascii() and label.isalnum() for label in labels):
        return False
    return len(labels) > 1 and labels[-1] in URL_ASSUMED_TLDS


def check_uri(value: str) -> str:
    """resource/uri may also be relative, naming the content of derefUri."""
    if not isinstance(value, str) or not value:
        raise ValueError('URI must be a non-empty string')
    if any(c.isspace() for c in value):
        raise ValueError(f'URI {value!r} must not contain whitespace')
    if _SCHEME_RE.match(value):
        check_url(value)
    return value


def parse_url(text: str, absolute: bool = True) -> Optional[str]:
    """
    Read a URL element, repairing common mistakes.

    ``http://`` or ``https://`` alone means no URL; a bare domain such as
    ``www.fema.org`` is assumed to be missing ``http://``.
    """
    text = text.strip()
    if text in ('http://', 'https://'):
        logger.debug('Treating empty URL %r as absent', text)
        return None
    if not _SCHEME_RE.match(text) and _looks_like_domain(text):
        logger.debug('Assuming http:// for URL %r', text)
        text = f'http://{text}'
    return check_url(text) if absolute else check_uri(text)


def parse_uri(text: str) -> Optional[str]:
    return parse_url(text, absolute=False)


# value pairs (eventCode, parameter, geocode)

@dataclass(frozen=True)
class ValuePair:
    """One ``valueName``/``value`` entry. Lists of pairs keep order and allow duplicates."""
    value_name: str
    value: str

    def __post_init__(self):
        if not isinstance(self.value_name, str) or not self.value_name.strip():
            raise ValueError('valueName must be a non-empty string')
        if not isinstance(self.value, str):
            raise ValueError('value must be a string')
        # element text is stripped on parse
        object.__setattr__(self, 'value_name', self.value_name.strip())
        object.__setattr__(self, 'value', self.value.strip())


def check_v1dot0_value_name(value_name: str) -> str:
    """CAP 1.0 writes pairs as ``name=value``, so names are restricted."""
    if any(c in value_name for c in _VALUE_NAME_PROHIBITED):
        raise ValueError(f'CAP 1.0 valueName {value_name!r} must not contain any of space < > & , =')
    return value_name


def parse_v1dot0_pair(text: str) -> ValuePair:
    name, separator, value = text.strip().partition('=')
    if not separator:
        raise ValueError(f'CAP 1.0 value {text!r} must be "valueName=value"')
    return ValuePair(check_v1dot0_value_name(name), value)


def format_v1dot0_pair(pair: ValuePair) -> str:
    return f'{pair.value_name}={pair.value}'


# resource payloads

def check_digest(value: str) -> str:
    if not isinstance(value, str) or not _DIGEST_RE.match(value):
        raise ValueError(f'digest {value!r} must be 40 hexadecimal digits (SHA-1)')
    return value.lower()


def parse_embedded(text: str) -> bytes:
    """Decode a ``derefUri`` payload; whitespace inside the base64 is ignored."""
    compact = ''.join(text.split())
    try:
        return base64.b64decode(compact, validate=True)
    except binascii.Error as e:
        raise ValueError(f'derefUri is not valid base64: {e}')


def format_embedded(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')


def check_size(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f'size must be a non-negative integer, got {value!r}')
    return value


# dataclass validation

def checked(name: str, check: Callable[[T], T], value: T) -> T:
    """Run a validator, reporting failures as a SchemaError at `name`."""
    try:
        return check(value)
    except ParseError as e:
        e.prefixed(name)
        raise
    except ValueError as e:
        raise SchemaError(str(e), name)


def check_text(name: str, value: Optional[str], required: bool = False) -> Optional[str]:
    """
    Strip free text the way the parser does.

    Optional text that is empty after stripping becomes None; required text
    may be empty.
    """
    if value is None:
        if required:
            raise SchemaError(f'{name} is required', name)
        return None
    if not isinstance(value, str):
        raise SchemaError(f'{name} must be a string, got {type(value).__name__}', name)
    value = value.strip()
    if not value and not required:
        return None
    return value


def check_codes(codes) -> List[str]:
    codes = [code.strip() for code in check_instances('code', codes, str)]
    for index, code in enumerate(codes):
        if not code:
            raise SchemaError('code must not be empty', f'code[{index}]')
    return codes


def check_enum(name: str, value, enum_cls: Type[Enum]):
    """Enum members from another CAP version are rejected."""
    if not isinstance(value, enum_cls):
        allowed = ', '.join(member.value for member in enum_cls)
        raise SchemaError(f'{name} must be one of: {allowed}, got {value!r}', name)
    return value


def check_instances(name: str, values, cls) -> list:
    if isinstance(values, (str, bytes)) or not isinstance(values, (list, tuple)):
        raise SchemaError(f'{name} must be a list', name)
    for index, value in enumerate(values):
        if not isinstance(value, cls):
            raise SchemaError(
                f'{name} entries must be {cls.__name__}, got {type(value).__name__}',
                f'{name}[{index}]'
            )
    return list(values)


def check_optional_timestamp(name: str, value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    checked(name, check_timestamp, value)
    return value.replace(microsecond=0)


def check_altitude(altitude: Optional[float], ceiling: Optional[float]):
    """altitude and ceiling are in feet; a ceiling needs an altitude at or below it."""
    for name, value in (('altitude', altitude), ('ceiling', ceiling)):
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise SchemaError(f'{name} must be a finite number, got {value!r}', name)

    if ceiling is not None:
        if altitude is None:
            raise SchemaError('ceiling requires altitude', 'ceiling')
        if ceiling < altitude:
            raise SchemaError(f'ceiling {ceiling} is below altitude {altitude}', 'ceiling')

    return (
        None if altitude is None else float(altitude),
        None if ceiling is None else float(ceiling),
    )
