"""
CAP version upgrades

Converts alerts forward one schema version at a time: 1.0 -> 1.1 -> 1.2.
Each step builds a new tree; the source alert is left untouched. There is
no downgrade path.

Rules:
    - fields common to both versions are copied
    - enumerations map by member name
    - 1.0 certainty "Very Likely" becomes "Likely"
    - 1.0 ``password`` has no successor and is dropped
    - 1.2 requires ``mimeType``; missing values become application/octet-stream
"""

import logging
from enum import Enum
from typing import Callable, Dict, Tuple, Type, TypeVar, Union

from . import v1dot0, v1dot1, v1dot2
from .constants import CAPVersion, DEFAULT_MIME_TYPE
from .errors import ConversionError, ParseError

logger = logging.getLogger(__name__)

E = TypeVar('E', bound=Enum)

_CERTAINTY_V1DOT0 = {
    v1dot0.Certainty.VERY_LIKELY: v1dot1.Certainty.LIKELY,
    v1dot0.Certainty.LIKELY: v1dot1.Certainty.LIKELY,
    v1dot0.Certainty.POSSIBLE: v1dot1.Certainty.POSSIBLE,
    v1dot0.Certainty.UNLIKELY: v1dot1.Certainty.UNLIKELY,
    v1dot0.Certainty.UNKNOWN: v1dot1.Certainty.UNKNOWN,
}


def _enum(value: Enum, target: Type[E]) -> E:
    return target[value.name]


def _enums(values, target: Type[E]):
    return [_enum(value, target) for value in values]


def v1dot0_to_v1dot1(alert: v1dot0.Alert) -> v1dot1.Alert:
    """
    Upgrade a CAP 1.0 alert to CAP 1.1.

    Raises:
        ConversionError: If the 1.1 alert cannot be built
    """
    if alert.password is not None:
        logger.debug('Dropping CAP 1.0 password from alert %s', alert.identifier)

    try:
        return v1dot1.Alert(
            identifier=alert.identifier,
            sender=alert.sender,
            sent=alert.sent,
            status=_enum(alert.status, v1dot1.Status),
            msg_type=_enum(alert.msg_type, v1dot1.MessageType),
            scope=_enum(alert.scope, v1dot1.Scope),
            source=alert.source,
            restriction=alert.restriction,
            addresses=list(alert.addresses),
            codes=list(alert.codes),
            note=alert.note,
            references=list(alert.references),
            incidents=list(alert.incidents),
            info=[_info_v1dot0_to_v1dot1(info) for info in alert.info],
        )
    except ParseError as e:
        raise ConversionError(str(e), CAPVersion.V1_0, CAPVersion.V1_1) from e


def _info_v1dot0_to_v1dot1(info: v1dot0.Info) -> v1dot1.Info:
    return v1dot1.Info(
        categories=_enums(info.categories, v1dot1.Category),
        event=info.event,
        urgency=_enum(info.urgency, v1dot1.Urgency),
        severity=_enum(info.severity, v1dot1.Severity),
        certainty=_CERTAINTY_V1DOT0[info.certainty],
        language=info.language,
        response_types=[],
        audience=info.audience,
        event_codes=list(info.event_codes),
        effective=info.effective,
        onset=info.onset,
        expires=info.expires,
        sender_name=info.sender_name,
        headline=info.headline,
        description=info.description,
        instruction=info.instruction,
        web=info.web,
        contact=info.contact,
        parameters=list(info.parameters),
        resources=[
            v1dot1.Resource(
                resource_desc=resource.resource_desc,
                mime_type=resource.mime_type,
                size=resource.size,
                uri=resource.uri,
                deref_uri=None,
                digest=resource.digest,
            )
            for resource in info.resources
        ],
        areas=[
            v1dot1.Area(
                area_desc=area.area_desc,
                polygons=list(area.polygons),
                circles=list(area.circles),
                geocodes=list(area.geocodes),
                altitude=area.altitude,
                ceiling=area.ceiling,
            )
            for area in info.areas
        ],
    )


def v1dot1_to_v1dot2(alert: v1dot1.Alert) -> v1dot2.Alert:
    """
    Upgrade a CAP 1.1 alert to CAP 1.2.

    Raises:
        ConversionError: If the 1.2 alert cannot be built
    """
    try:
        return v1dot2.Alert(
            identifier=alert.identifier,
            sender=alert.sender,
            sent=alert.sent,
            status=_enum(alert.status, v1dot2.Status),
            msg_type=_enum(alert.msg_type, v1dot2.MessageType),
            scope=_enum(alert.scope, v1dot2.Scope),
            source=alert.source,
            restriction=alert.restriction,
            addresses=list(alert.addresses),
            codes=list(alert.codes),
            note=alert.note,
            references=list(alert.references),
            incidents=list(alert.incidents),
            info=[_info_v1dot1_to_v1dot2(info) for info in alert.info],
        )
    except ParseError as e:
        raise ConversionError(str(e), CAPVersion.V1_1, CAPVersion.V1_2) from e


def _resource_v1dot1_to_v1dot2(resource: v1dot1.Resource) -> v1dot2.Resource:
    mime_type = resource.mime_type
    if mime_type is None:
        logger.debug('Resource %r has no mimeType, using %s', resource.resource_desc, DEFAULT_MIME_TYPE)
        mime_type = DEFAULT_MIME_TYPE

    return v1dot2.Resource(
        resource_desc=resource.resource_desc,
        mime_type=mime_type,
        size=resource.size,
        uri=resource.uri,
        deref_uri=resource.deref_uri,
        digest=resource.digest,
    )


def _info_v1dot1_to_v1dot2(info: v1dot1.Info) -> v1dot2.Info:
    return v1dot2.Info(
        categories=_enums(info.categories, v1dot2.Category),
        event=info.event,
        urgency=_enum(info.urgency, v1dot2.Urgency),
        severity=_enum(info.severity, v1dot2.Severity),
        certainty=_enum(info.certainty, v1dot2.Certainty),
        language=info.language,
        response_types=_enums(info.response_types, v1dot2.ResponseType),
        audience=info.audience,
        event_codes=list(info.event_codes),
        effective=info.effective,
        onset=info.onset,
        expires=info.expires,
        sender_name=info.sender_name,
        headline=info.headline,
        description=info.description,
        instruction=info.instruction,
        web=info.web,
        contact=info.contact,
        parameters=list(info.parameters),
        resources=[_resource_v1dot1_to_v1dot2(resource) for resource in info.resources],
        areas=[
            v1dot2.Area(
                area_desc=area.area_desc,
                polygons=list(area.polygons),
                circles=list(area.circles),
                geocodes=list(area.geocodes),
                altitude=area.altitude,
                ceiling=area.ceiling,
            )
            for area in info.areas
        ],
    )


# version -> (next version, converter)
UPGRADES: Dict[CAPVersion, Tuple[CAPVersion, Callable]] = {
    CAPVersion.V1_0: (CAPVersion.V1_1, v1dot0_to_v1dot1),
    CAPVersion.V1_1: (CAPVersion.V1_2, v1dot1_to_v1dot2),
}

_MESSAGE_VERSIONS = (
    (v1dot0.Alert, CAPVersion.V1_0),
    (v1dot1.Alert, CAPVersion.V1_1),
    (v1dot2.Alert, CAPVersion.V1_2),
)

Message = Union[v1dot0.Alert, v1dot1.Alert, v1dot2.Alert]


def version_of(message: Message) -> CAPVersion:
    for cls, version in _MESSAGE_VERSIONS:
        if isinstance(message, cls):
            return version
    raise TypeError(f'not a CAP alert: {type(message).__name__}')


def into_latest(alert) -> v1dot2.Alert:
    """
    Upgrade an alert of any version to CAP 1.2.

    Args:
        alert: A version-specific alert, or a tagged ``oasiscap.Alert``

    Returns:
        The CAP 1.2 alert; a 1.2 input is returned as is
    """
    message = getattr(alert, 'message', alert)
    version = version_of(message)

    while version in UPGRADES:
        target, convert = UPGRADES[version]
        logger.debug('Upgrading alert %s from CAP %s to %s', message.identifier, version.value, target.value)
        message = convert(message)
        version = target

    return message
