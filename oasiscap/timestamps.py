"""
CAP date-time values

CAP timestamps are ISO 8601 with an explicit offset and second resolution,
e.g. ``2003-04-02T14:39:01-05:00``. UTC is written ``-00:00`` on output;
``Z``, ``+00:00`` and ``-00:00`` are all accepted on input, as are fractional
seconds (which are discarded).
"""

import re
from datetime import datetime, timedelta

_TIMESTAMP_RE = re.compile(
    r'^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(\.\d+)?(Z|[+-]\d{2}:\d{2})$'
)

_UTC_DESIGNATORS = ('Z', '+00:00', '-00:00')


def parse_timestamp(text: str) -> datetime:
    """
    Parse a CAP timestamp.

    Raises:
        ValueError: If the text is not a timestamp or has no UTC offset
    """
    match = _TIMESTAMP_RE.match(text.strip())
    if not match:
        raise ValueError(f'invalid CAP timestamp {text!r}, expected YYYY-MM-DDThh:mm:ss+hh:mm')

    base, _fraction, offset = match.groups()
    if offset in _UTC_DESIGNATORS:
        offset = '+00:00'

    # fromisoformat rejects out-of-range fields such as month 13
    return datetime.fromisoformat(base + offset)


def check_timestamp(value: datetime) -> None:
    """Raise ValueError unless `value` can be written as a CAP timestamp."""
    if not isinstance(value, datetime):
        raise ValueError(f'expected a datetime, got {type(value).__name__}')
    offset = value.utcoffset()
    if offset is None:
        raise ValueError('timestamp must include a UTC offset')
    if offset % timedelta(minutes=1):
        raise ValueError('timestamp offset must be a whole number of minutes')


def format_timestamp(value: datetime) -> str:
    """Format a datetime as a CAP timestamp, truncating to whole seconds."""
    check_timestamp(value)
    offset = value.utcoffset()
    local = value.replace(tzinfo=None, microsecond=0).isoformat(timespec='seconds')

    if not offset:
        return f'{local}-00:00'

    sign = '-' if offset < timedelta(0) else '+'
    minutes = abs(offset) // timedelta(minutes=1)
    return f'{local}{sign}{minutes // 60:02d}:{minutes % 60:02d}'
