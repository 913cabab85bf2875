"""Metric record and the enumerations shared by mapper, framing and config."""

import enum
from dataclasses import dataclass, field
from datetime import datetime

FieldValue = str | bool | int | float


@dataclass(frozen=True)
class Metric:
    name: str
    timestamp: datetime
    fields: dict[str, FieldValue] = field(default_factory=dict)


class ReservedField(enum.Enum):
    """Metric fields that map to syslog header fields instead of SD-PARAMs."""

    PRI = "PRI"
    HOSTNAME = "HOSTNAME"
    APP_NAME = "APP-NAME"
    PROCID = "PROCID"
    MSGID = "MSGID"
    MSG = "MSG"

    @classmethod
    def is_reserved(cls, name: str) -> bool:
        return name in _RESERVED_NAMES


_RESERVED_NAMES = frozenset(member.value for member in ReservedField)

# Secondary hostname source; not reserved, so it may also land in SD-PARAMs.
SOURCE_FIELD = "SOURCE"


class Framing(enum.Enum):
    """Wire framing technique (RFC 6587 section 3.4)."""

    OCTET_COUNTING = "octet-counting"
    NON_TRANSPARENT = "non-transparent"


class Trailer(enum.Enum):
    """Trailer byte for non-transparent framing."""

    LF = b"\n"
    NUL = b"\x00"
