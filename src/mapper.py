"""Map a metric onto an RFC 5424 syslog message.

Reserved fields (PRI, HOSTNAME, APP-NAME, PROCID, MSGID, MSG) fill the
header. Every other field becomes an SD-PARAM: the first SD-ID in
``config.sdids`` whose "<sdid><separator>" prefix matches the field key
claims it, otherwise it falls into ``config.default_sdid``, otherwise it is
left out of the message.
"""

import logging
import math
import socket
from datetime import datetime, timezone
from decimal import Decimal

from src.config import TRIM_CUTSET, SyslogConfig
from src.errors import MappingError
from src.models import SOURCE_FIELD, Metric, ReservedField
from src.rfc5424 import SyslogMessage

logger = logging.getLogger(__name__)


def _format_float(value: float) -> str:
    if math.isnan(value) or math.isinf(value):
        return ""
    # repr gives the shortest round-tripping digits; Decimal drops the exponent
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_value(value) -> str:
    """Render a field value as an SD-PARAM/header string. Never raises."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    return ""


def format_timestamp(ts: datetime) -> str:
    """RFC 3339 with second precision; naive datetimes are taken as UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    text = ts.isoformat(timespec="seconds")
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def _parse_uint8(text: str) -> int | None:
    if text.isascii() and text.isdigit():
        number = int(text)
        if number <= 255:
            return number
    return None


def _local_hostname() -> str | None:
    try:
        return socket.gethostname()
    except OSError as e:
        logger.debug("Could not determine local hostname: %s", e)
        return None


def strip_sdid_prefix(key: str, sdid: str, separator: str, trim: str) -> tuple[bool, str]:
    """Return (matched, param_name) for a field key against one SD-ID.

    In "prefix" mode the key matches when it starts with sdid+separator and
    exactly that prefix is removed. In "cutset" mode every leading character
    found in sdid+separator is stripped and any stripping counts as a match,
    so "foo@123_" also eats the leading "1" of "foo@123_1x".
    """
    prefix = sdid + separator
    if trim == TRIM_CUTSET:
        stripped = key.lstrip(prefix)
        return len(stripped) < len(key), stripped
    if key.startswith(prefix):
        return True, key[len(prefix):]
    return False, key


def _assign_sdid(key: str, config: SyslogConfig) -> tuple[str, str] | None:
    for sdid in config.sdids:
        matched, name = strip_sdid_prefix(
            key, sdid, config.sdparam_separator, config.sdparam_trim
        )
        if matched:
            return sdid, name
    if config.default_sdid:
        _, name = strip_sdid_prefix(
            key, config.default_sdid, config.sdparam_separator, config.sdparam_trim
        )
        return config.default_sdid, name
    return None


def _set_headers(msg: SyslogMessage, metric: Metric, config: SyslogConfig):
    fields = metric.fields

    priority = None
    if ReservedField.PRI.value in fields:
        value = fields[ReservedField.PRI.value]
        priority = _parse_uint8(format_value(value))
        if priority is None:
            logger.debug("Unparsable PRI %r in metric %s, using default", value, metric.name)
    msg.set_priority(config.default_priority if priority is None else priority)

    if ReservedField.APP_NAME.value in fields:
        msg.set_appname(format_value(fields[ReservedField.APP_NAME.value]))
    else:
        msg.set_appname(config.default_appname)

    if ReservedField.MSGID.value in fields:
        msg.set_msgid(format_value(fields[ReservedField.MSGID.value]))
    else:
        msg.set_msgid(metric.name)

    if ReservedField.HOSTNAME.value in fields:
        msg.set_hostname(format_value(fields[ReservedField.HOSTNAME.value]))
    elif SOURCE_FIELD in fields:
        msg.set_hostname(format_value(fields[SOURCE_FIELD]))
    else:
        hostname = _local_hostname()
        if hostname:
            msg.set_hostname(hostname)

    if ReservedField.PROCID.value in fields:
        msg.set_procid(format_value(fields[ReservedField.PROCID.value]))

    if ReservedField.MSG.value in fields:
        msg.set_message(format_value(fields[ReservedField.MSG.value]))


def _set_structured_data(msg: SyslogMessage, metric: Metric, config: SyslogConfig):
    buckets: dict[str, dict[str, str]] = {}
    for key, value in metric.fields.items():
        if ReservedField.is_reserved(key):
            continue
        assigned = _assign_sdid(key, config)
        if assigned is None:
            continue
        sdid, name = assigned
        buckets.setdefault(sdid, {})[name] = format_value(value)

    # Elements follow configuration order, default SD-ID last.
    for sdid in (*config.sdids, config.default_sdid):
        params = buckets.pop(sdid, None)
        if params is None:
            continue
        for name, text in params.items():
            msg.set_parameter(sdid, name, text)


def map_metric(metric: Metric, config: SyslogConfig) -> SyslogMessage:
    """Build the syslog message for one metric; raises MappingError if it is not sendable."""
    msg = SyslogMessage()
    msg.set_version(1)
    msg.set_timestamp(format_timestamp(metric.timestamp))

    _set_headers(msg, metric, config)
    _set_structured_data(msg, metric, config)

    if not msg.valid():
        raise MappingError(
            f"not enough information in metric {metric.name!r} "
            "to create a valid syslog message"
        )
    return msg
