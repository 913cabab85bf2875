"""Syslog output: maps metrics to RFC 5424 messages, frames them and writes them out.

The output is either Disconnected or Connected to one Connection. It
connects lazily on the first write, and goes back to Disconnected when
closed or when a write fails permanently, so the next write reconnects.
Calls are expected from a single thread; nothing here locks.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from src.config import SyslogConfig
from src.errors import MappingError, PermanentSendError, SerializationError, TransientSendError
from src.mapper import map_metric
from src.models import Metric
from src.protocol import frame_message
from src.tls_context import build_client_context
from src.transport import Connection, dial, is_temporary, parse_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Disconnected:
    pass


@dataclass(frozen=True)
class Connected:
    connection: Connection


DISCONNECTED = Disconnected()


class SyslogOutput:
    """Sends metrics to a syslog collector over one persistent connection."""

    def __init__(self, config: SyslogConfig, dialer: Callable[..., Connection] = dial):
        self._config = config
        self._dial = dialer
        self._state: Disconnected | Connected = DISCONNECTED
        self._written = 0
        self._dropped = 0

    @property
    def config(self) -> SyslogConfig:
        return self._config

    @property
    def state(self) -> Disconnected | Connected:
        return self._state

    @property
    def connected(self) -> bool:
        return isinstance(self._state, Connected)

    def connect(self):
        """Dial the configured address and make it the current connection."""
        ssl_context = build_client_context(self._config.tls)
        connection = self._dial(self._config.address, ssl_context)
        self._configure_keep_alive(connection)
        # A handle still held here is replaced, not closed; callers write sequentially.
        self._state = Connected(connection)
        logger.info("Connected to %s%s", self._config.address,
                    " (TLS)" if ssl_context is not None else "")

    def _configure_keep_alive(self, connection: Connection):
        period = self._config.keep_alive_period
        if period is None:
            return
        if not connection.supports_keep_alive():
            network, _ = parse_address(self._config.address)
            logger.warning(
                "unable to configure keep alive (%s): cannot set keep alive on a %s socket",
                self._config.address, network,
            )
            return
        try:
            connection.set_keep_alive(period)
        except OSError as e:
            logger.warning("unable to configure keep alive (%s): %s", self._config.address, e)

    def close(self):
        """Close the current connection, if any. Safe to call repeatedly."""
        state = self._state
        if not isinstance(state, Connected):
            return
        self._state = DISCONNECTED
        state.connection.close()
        logger.info("Closed connection to %s", self._config.address)

    def encode(self, metric: Metric) -> bytes:
        """Map, serialize and frame one metric. Raises MappingError or SerializationError."""
        msg = map_metric(metric, self._config)
        try:
            payload = msg.to_string().encode("utf-8")
        except UnicodeEncodeError as e:
            raise SerializationError(f"message is not valid UTF-8: {e}") from e
        return frame_message(payload, self._config.framing, self._config.trailer)

    def write(self, metrics: Iterable[Metric]) -> int:
        """Send each metric as one framed message. Returns how many were written.

        Metrics that cannot be turned into a valid message are logged and
        skipped. A temporary write failure raises TransientSendError and
        keeps the connection; any other write failure closes it and raises
        PermanentSendError.
        """
        if not isinstance(self._state, Connected):
            # previous write failed permanently, or nothing was sent yet
            self.connect()

        written = 0
        for metric in metrics:
            try:
                framed = self.encode(metric)
            except (MappingError, SerializationError) as e:
                self._dropped += 1
                logger.warning("Dropping metric %s: %s", metric.name, e)
                continue

            self._send(framed)
            written += 1
            self._written += 1
            logger.debug("Wrote %d bytes for metric %s", len(framed), metric.name)
        return written

    def _send(self, framed: bytes):
        connection = self._state.connection
        try:
            connection.write(framed)
        except OSError as e:
            if is_temporary(e):
                raise TransientSendError(f"temporary write failure: {e}") from e
            self._state = DISCONNECTED
            try:
                connection.close()
            except OSError as close_err:
                logger.debug("Error closing failed connection: %s", close_err)
            raise PermanentSendError(f"closing connection: {e}") from e

    def stats(self) -> dict:
        return {
            "written": self._written,
            "dropped": self._dropped,
            "connected": self.connected,
        }

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
