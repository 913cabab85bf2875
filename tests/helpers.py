"""Test doubles and small builders shared by the output, mapper and CLI tests."""

from datetime import datetime, timezone

from src.models import Metric

TS = datetime(2024, 1, 15, 8, 23, 45, tzinfo=timezone.utc)


def make_metric(name: str = "cpu", **fields) -> Metric:
    return Metric(name=name, timestamp=TS, fields=fields)


def split_octet_frames(data: bytes) -> list[bytes]:
    """Split an octet-counted stream into message payloads."""
    frames = []
    while data:
        length, _, rest = data.partition(b" ")
        size = int(length)
        frames.append(rest[:size])
        data = rest[size:]
    return frames


class FakeConnection:
    """Stands in for transport.Connection; records writes and can fail on demand."""

    def __init__(self, keep_alive: bool = True, fail_with: BaseException | None = None):
        self.writes: list[bytes] = []
        self.closed = False
        self.keep_alive_periods: list[float] = []
        self.keep_alive_error: OSError | None = None
        self.fail_with = fail_with
        self._keep_alive = keep_alive

    def supports_keep_alive(self) -> bool:
        return self._keep_alive

    def set_keep_alive(self, period: float):
        if self.keep_alive_error:
            raise self.keep_alive_error
        self.keep_alive_periods.append(period)

    def write(self, data: bytes):
        if self.fail_with is not None:
            raise self.fail_with
        self.writes.append(data)

    def close(self):
        self.closed = True


class FakeDialer:
    """Hands out prepared connections in order and records each dial."""

    def __init__(self, *connections):
        self._connections = list(connections)
        self.calls: list[tuple] = []

    def __call__(self, address, ssl_context=None):
        self.calls.append((address, ssl_context))
        if not self._connections:
            raise ConnectionRefusedError("no connection prepared")
        conn = self._connections.pop(0)
        if isinstance(conn, BaseException):
            raise conn
        return conn
