"""Configuration module: frozen dataclasses loaded from YAML, env vars and CLI args."""

import logging
import os
import re
from dataclasses import dataclass, field, fields

import yaml

from src.errors import ConfigError
from src.models import Framing, Trailer

logger = logging.getLogger(__name__)

TRIM_PREFIX = "prefix"
TRIM_CUTSET = "cutset"

SAMPLE_CONFIG = """\
## URL to connect to
# address: "tcp://127.0.0.1:8094"
# address: "tcp://example.com:http"
# address: "tcp4://127.0.0.1:8094"
# address: "tcp6://[2001:db8::1]:8094"
# address: "udp://127.0.0.1:8094"
# address: "unix:///var/run/syslog.sock"
address: "tcp://127.0.0.1:6514"

## Optional TLS config
# tls_ca: /etc/syslog-output/ca.pem
# tls_cert: /etc/syslog-output/cert.pem
# tls_key: /etc/syslog-output/key.pem
## Use TLS but skip chain & host verification
# insecure_skip_verify: false

## Period between keep alive probes. Only applies to TCP sockets.
## 0 disables keep alive probes. Defaults to the OS configuration.
# keep_alive_period: 5m

## Framing technique: "octet-counting" (RFC 5425 section 4.3.1,
## RFC 6587 section 3.4.1) or "non-transparent" (RFC 6587 section 3.4.2).
# framing: octet-counting

## Trailer for non-transparent framing: "LF" or "NUL".
# trailer: LF

## SD-PARAMs settings
## Each unrecognised metric field becomes an SD-PARAM.
## Example
##   sdparam_separator: "_"
##   default_sdid: "default@32473"
##   sdids: ["foo@123", "bar@456"]
## input  => name=xyzzy fields: foo@123_value=42 bar@456_value2=84 something_else=1
## output => [foo@123 value="42"][bar@456 value2="84"][default@32473 something_else="1"]

## Separator between the sdid and the field key
sdparam_separator: "_"

## How the "<sdid><separator>" prefix is removed from field keys:
## "prefix" removes exactly that prefix, "cutset" strips every leading
## character that appears in it (legacy behaviour).
# sdparam_trim: prefix

## SD-ID for fields that do not start with one of the explicit sdids below.
## Without a default, such fields are left out of the message.
# default_sdid: "default@32473"

## Explicit prefixes to match against field keys, checked in order.
# sdids: ["foo@123", "bar@456"]

## PRI used when a metric has no "PRI" field (RFC 5424 section 6.2.1)
default_priority: 0

## APP-NAME used when a metric has no "APP-NAME" field (RFC 5424 section 6.2.5)
default_appname: "Telegraf"
"""

DESCRIPTION = "Configuration for Syslog server to send metrics to"

_DURATION_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9, "us": 1e-6, "µs": 1e-6, "ms": 1e-3, "s": 1.0, "m": 60.0, "h": 3600.0,
}


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def parse_duration(value) -> float:
    """Parse "5m", "1h30m", "250ms" or a plain number of seconds into seconds."""
    if isinstance(value, bool):
        raise ConfigError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip()
    try:
        return float(text)
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for m in _DURATION_RE.finditer(text):
        if m.start() != pos:
            break
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    if pos == 0 or pos != len(text):
        raise ConfigError(f"invalid duration: {value!r}")
    return total


@dataclass(frozen=True)
class TLSConfig:
    ca_file: str = ""
    cert_file: str = ""
    key_file: str = ""
    insecure_skip_verify: bool = False

    @property
    def enabled(self) -> bool:
        return bool(
            self.ca_file or self.cert_file or self.key_file or self.insecure_skip_verify
        )


@dataclass(frozen=True)
class SyslogConfig:
    address: str = "tcp://127.0.0.1:6514"
    tls: TLSConfig = field(default_factory=TLSConfig)
    keep_alive_period: float | None = None
    framing: Framing = Framing.OCTET_COUNTING
    trailer: Trailer = Trailer.LF
    sdparam_separator: str = "_"
    sdparam_trim: str = TRIM_PREFIX
    default_sdid: str = ""
    sdids: tuple[str, ...] = ()
    default_priority: int = 0
    default_appname: str = "Telegraf"

    def __post_init__(self):
        if not 0 <= self.default_priority <= 255:
            raise ConfigError(
                f"default_priority must be between 0 and 255, got {self.default_priority}"
            )
        if self.keep_alive_period is not None and self.keep_alive_period < 0:
            raise ConfigError("keep_alive_period must not be negative")
        if self.sdparam_trim not in (TRIM_PREFIX, TRIM_CUTSET):
            raise ConfigError(
                f"sdparam_trim must be {TRIM_PREFIX!r} or {TRIM_CUTSET!r}, "
                f"got {self.sdparam_trim!r}"
            )


def _parse_framing(value) -> Framing:
    if isinstance(value, Framing):
        return value
    normalized = str(value).strip().lower()
    for framing in Framing:
        if framing.value == normalized:
            return framing
    raise ConfigError(
        f"framing must be 'octet-counting' or 'non-transparent', got {value!r}"
    )


def _parse_trailer(value) -> Trailer:
    if isinstance(value, Trailer):
        return value
    try:
        return Trailer[str(value).strip().upper()]
    except KeyError:
        raise ConfigError(f"trailer must be 'LF' or 'NUL', got {value!r}") from None


def _parse_priority(value) -> int:
    try:
        priority = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"default_priority must be an integer, got {value!r}") from None
    return priority


def _parse_sdids(value) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(s.strip() for s in value.split(",") if s.strip())
    return tuple(str(s) for s in value)


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    logger.info("Loaded YAML config from %s", path)
    return data


_ENV_VARS = {
    "SYSLOG_ADDRESS": "address",
    "SYSLOG_FRAMING": "framing",
    "SYSLOG_TRAILER": "trailer",
    "SYSLOG_DEFAULT_APPNAME": "default_appname",
    "SYSLOG_DEFAULT_PRIORITY": "default_priority",
}


def load_config(yaml_data: dict | None = None, overrides: dict | None = None) -> SyslogConfig:
    """Build SyslogConfig from defaults <- YAML <- env vars <- CLI overrides."""
    raw = dict(yaml_data or {})

    for env_name, key in _ENV_VARS.items():
        if env_name in os.environ:
            raw[key] = os.environ[env_name]

    for key, value in (overrides or {}).items():
        if value is not None:
            raw[key] = value

    known = {f.name for f in fields(SyslogConfig)} - {"tls"}
    known |= {"tls_ca", "tls_cert", "tls_key", "insecure_skip_verify"}
    for key in raw:
        if key not in known:
            logger.warning("Ignoring unknown config key %r", key)

    defaults = SyslogConfig()
    keep_alive = raw.get("keep_alive_period")

    return SyslogConfig(
        address=str(raw.get("address", defaults.address)),
        tls=TLSConfig(
            ca_file=str(raw.get("tls_ca") or ""),
            cert_file=str(raw.get("tls_cert") or ""),
            key_file=str(raw.get("tls_key") or ""),
            insecure_skip_verify=_parse_bool(raw.get("insecure_skip_verify", False)),
        ),
        keep_alive_period=None if keep_alive is None else parse_duration(keep_alive),
        framing=_parse_framing(raw.get("framing", defaults.framing)),
        trailer=_parse_trailer(raw.get("trailer", defaults.trailer)),
        sdparam_separator=str(raw.get("sdparam_separator", defaults.sdparam_separator)),
        sdparam_trim=str(raw.get("sdparam_trim", defaults.sdparam_trim)).lower(),
        default_sdid=str(raw.get("default_sdid") or ""),
        sdids=_parse_sdids(raw.get("sdids")),
        default_priority=_parse_priority(raw.get("default_priority", defaults.default_priority)),
        default_appname=str(raw.get("default_appname", defaults.default_appname)),
    )
