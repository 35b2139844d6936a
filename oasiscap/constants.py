"""
CAP constants

Namespaces, schema versions and limits shared by the version modules.
"""

from enum import Enum


NAMESPACE_V1_0 = 'http://www.incident.com/cap/1.0'
NAMESPACE_V1_1 = 'urn:oasis:names:tc:emergency:cap:1.1'
NAMESPACE_V1_2 = 'urn:oasis:names:tc:emergency:cap:1.2'


class CAPVersion(Enum):
    V1_0 = '1.0'
    V1_1 = '1.1'
    V1_2 = '1.2'

    @property
    def namespace(self) -> str:
        return NAMESPACES[self]

    @classmethod
    def from_namespace(cls, namespace: str) -> 'CAPVersion':
        for version, uri in NAMESPACES.items():
            if uri == namespace:
                return version
        raise KeyError(namespace)


NAMESPACES = {
    CAPVersion.V1_0: NAMESPACE_V1_0,
    CAPVersion.V1_1: NAMESPACE_V1_1,
    CAPVersion.V1_2: NAMESPACE_V1_2,
}

LATEST_VERSION = CAPVersion.V1_2

# info/language when the element is absent
DEFAULT_LANGUAGE = 'en-US'

# CAP 1.2 requires resource/mimeType
DEFAULT_MIME_TYPE = 'application/octet-stream'

# WGS-84 bounds, degrees
MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0
MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0

# circle radius, kilometers (exclusive upper bound)
MAX_CIRCLE_RADIUS = 20000.0

# a closed polygon repeats its first point, so a triangle needs four
MIN_POLYGON_POINTS = 4

# bare domains with these suffixes are assumed to be missing http://
URL_ASSUMED_TLDS = ('com', 'org', 'net', 'gov', 'us')
