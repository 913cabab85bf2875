"""RFC 5424 message builder and serializer.

Setters check each value against the RFC 5424 section 6 grammar and quietly
ignore values that do not fit, so a message only ever holds well-formed
parts. Whether the result is sendable is answered by ``valid()``;
``to_string()`` renders it:

    <PRI>1 TIMESTAMP HOSTNAME APP-NAME PROCID MSGID STRUCTURED-DATA [MSG]
"""

import logging
import re

from src.errors import SerializationError

logger = logging.getLogger(__name__)

NILVALUE = "-"
MAX_PRIORITY = 191  # facility 23, severity 7

_HEADER_LIMITS = {
    "hostname": 255,
    "appname": 48,
    "procid": 128,
    "msgid": 32,
}
_SD_NAME_MAX = 32

# full-date "T" full-time, with optional fraction and a Z or numeric offset
_TIMESTAMP_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{1,6})?(Z|[+-]\d{2}:\d{2})$"
)
_SD_ESCAPE_RE = re.compile(r'(["\\\]])')


def _is_printusascii(value: str) -> bool:
    return all(33 <= ord(ch) <= 126 for ch in value)


def _is_sd_name(value: str) -> bool:
    return (
        0 < len(value) <= _SD_NAME_MAX
        and _is_printusascii(value)
        and not any(ch in value for ch in '= ]"')
    )


def escape_param_value(value: str) -> str:
    """Backslash-escape '"', '\\' and ']' inside a PARAM-VALUE."""
    return _SD_ESCAPE_RE.sub(r"\\\1", value)


class SyslogMessage:
    """An RFC 5424 message under construction."""

    def __init__(self):
        self.version = 0
        self.priority: int | None = None
        self.timestamp: str | None = None
        self.hostname: str | None = None
        self.appname: str | None = None
        self.procid: str | None = None
        self.msgid: str | None = None
        self.message: str | None = None
        self.structured_data: dict[str, dict[str, str]] = {}

    def set_version(self, version: int):
        if 1 <= version <= 999:
            self.version = version
        else:
            logger.debug("Ignoring invalid VERSION %r", version)
        return self

    def set_priority(self, priority: int):
        if 0 <= priority <= MAX_PRIORITY:
            self.priority = priority
        else:
            logger.debug("Ignoring out-of-range PRI %r", priority)
        return self

    def set_timestamp(self, timestamp: str):
        if _TIMESTAMP_RE.match(timestamp):
            self.timestamp = timestamp
        else:
            logger.debug("Ignoring malformed TIMESTAMP %r", timestamp)
        return self

    def _set_header(self, name: str, value: str):
        limit = _HEADER_LIMITS[name]
        if 0 < len(value) <= limit and _is_printusascii(value):
            setattr(self, name, value)
        else:
            logger.debug("Ignoring invalid %s %r", name.upper(), value)
        return self

    def set_hostname(self, value: str):
        return self._set_header("hostname", value)

    def set_appname(self, value: str):
        return self._set_header("appname", value)

    def set_procid(self, value: str):
        return self._set_header("procid", value)

    def set_msgid(self, value: str):
        return self._set_header("msgid", value)

    def set_message(self, value: str):
        self.message = value
        return self

    def set_element(self, sdid: str):
        """Ensure an SD-ELEMENT with this SD-ID exists, keeping insertion order."""
        if not _is_sd_name(sdid):
            logger.debug("Ignoring invalid SD-ID %r", sdid)
            return self
        self.structured_data.setdefault(sdid, {})
        return self

    def set_parameter(self, sdid: str, name: str, value: str):
        if not _is_sd_name(sdid) or not _is_sd_name(name):
            logger.debug("Ignoring SD-PARAM %r in %r", name, sdid)
            return self
        self.structured_data.setdefault(sdid, {})[name] = value
        return self

    def valid(self) -> bool:
        """A message can be sent once it has a version and a priority."""
        return self.version != 0 and self.priority is not None

    def _structured_data_text(self) -> str:
        if not self.structured_data:
            return NILVALUE
        parts = []
        for sdid, params in self.structured_data.items():
            pairs = "".join(
                f' {name}="{escape_param_value(value)}"'
                for name, value in params.items()
            )
            parts.append(f"[{sdid}{pairs}]")
        return "".join(parts)

    def to_string(self) -> str:
        if not self.valid():
            raise SerializationError("message must have a version and a priority")

        header = " ".join([
            f"<{self.priority}>{self.version}",
            self.timestamp or NILVALUE,
            self.hostname or NILVALUE,
            self.appname or NILVALUE,
            self.procid or NILVALUE,
            self.msgid or NILVALUE,
        ])
        text = f"{header} {self._structured_data_text()}"
        if self.message:
            text += " " + self.message
        return text

    def __repr__(self):
        return (
            f"SyslogMessage(priority={self.priority!r}, appname={self.appname!r}, "
            f"msgid={self.msgid!r}, hostname={self.hostname!r})"
        )
