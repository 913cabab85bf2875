"""Dial scheme://endpoint addresses into connected sockets, optionally TLS-wrapped."""

import errno
import logging
import math
import socket
import ssl

from src.errors import InvalidAddressError

logger = logging.getLogger(__name__)

_NETWORKS = {
    "tcp": (socket.AF_UNSPEC, socket.SOCK_STREAM),
    "tcp4": (socket.AF_INET, socket.SOCK_STREAM),
    "tcp6": (socket.AF_INET6, socket.SOCK_STREAM),
    "udp": (socket.AF_UNSPEC, socket.SOCK_DGRAM),
    "udp4": (socket.AF_INET, socket.SOCK_DGRAM),
    "udp6": (socket.AF_INET6, socket.SOCK_DGRAM),
}
if hasattr(socket, "AF_UNIX"):
    _NETWORKS["unix"] = (socket.AF_UNIX, socket.SOCK_STREAM)
    _NETWORKS["unixgram"] = (socket.AF_UNIX, socket.SOCK_DGRAM)

_TEMPORARY_ERRNOS = frozenset(
    code for code in (
        errno.EAGAIN, errno.EWOULDBLOCK, errno.EINTR, getattr(errno, "ENOBUFS", None),
    ) if code is not None
)


def parse_address(address: str) -> tuple[str, str]:
    """Split "scheme://endpoint" into (network, endpoint)."""
    parts = address.split("://", 1)
    if len(parts) != 2:
        raise InvalidAddressError(f"invalid address: {address}")
    network, endpoint = parts
    if network not in _NETWORKS:
        raise InvalidAddressError(f"unknown network {network!r} in address {address}")
    if not endpoint:
        raise InvalidAddressError(f"missing endpoint in address {address}")
    return network, endpoint


def split_host_port(endpoint: str) -> tuple[str | None, str]:
    """Split "host:port" or "[v6addr]:port". An empty host means the local system."""
    if endpoint.startswith("["):
        close = endpoint.find("]")
        if close == -1 or endpoint[close + 1:close + 2] != ":":
            raise InvalidAddressError(f"invalid endpoint: {endpoint}")
        host, port = endpoint[1:close], endpoint[close + 2:]
    else:
        host, sep, port = endpoint.rpartition(":")
        if not sep or ":" in host:
            raise InvalidAddressError(f"invalid endpoint: {endpoint}")
    if not port:
        raise InvalidAddressError(f"missing port in endpoint: {endpoint}")
    return host or None, port


def is_temporary(exc: BaseException) -> bool:
    """True when a failed write may succeed if retried on the same connection."""
    if isinstance(exc, (TimeoutError, BlockingIOError, InterruptedError,
                        ssl.SSLWantReadError, ssl.SSLWantWriteError)):
        return True
    return isinstance(exc, OSError) and exc.errno in _TEMPORARY_ERRNOS


class Connection:
    """One connected socket: a byte stream, or a datagram socket with a fixed peer."""

    def __init__(self, sock: socket.socket, network: str, endpoint: str):
        self._sock = sock
        self._network = network
        self._endpoint = endpoint

    @property
    def network(self) -> str:
        return self._network

    @property
    def socket(self) -> socket.socket:
        return self._sock

    def supports_keep_alive(self) -> bool:
        """Keep-alive probes only exist for TCP streams."""
        return (
            self._sock.type == socket.SOCK_STREAM
            and self._sock.family in (socket.AF_INET, socket.AF_INET6)
        )

    def set_keep_alive(self, period: float):
        """Enable probes every ``period`` seconds (rounded up), or disable them for 0."""
        if period == 0:
            self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 0)
            return
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
        seconds = max(1, math.ceil(period))
        if hasattr(socket, "TCP_KEEPIDLE"):
            self._sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, seconds)
        elif hasattr(socket, "TCP_KEEPALIVE"):
            # macOS spelling of TCP_KEEPIDLE
            self._sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPALIVE, seconds)
        if hasattr(socket, "TCP_KEEPINTVL"):
            self._sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, seconds)

    def write(self, data: bytes):
        self._sock.sendall(data)

    def close(self):
        self._sock.close()

    def __repr__(self):
        return f"Connection({self._network}://{self._endpoint})"


def _connect_inet(host: str | None, port: str, family: int, socktype: int) -> socket.socket:
    err = None
    for af, st, proto, _, sockaddr in socket.getaddrinfo(host, port, family, socktype):
        sock = socket.socket(af, st, proto)
        try:
            sock.connect(sockaddr)
            return sock
        except OSError as e:
            err = e
            sock.close()
    if err is not None:
        raise err
    raise OSError(f"no addresses found for {host}:{port}")


def dial(address: str, ssl_context: ssl.SSLContext | None = None) -> Connection:
    """Connect to ``address``. With an SSL context the socket is TLS-wrapped."""
    network, endpoint = parse_address(address)
    family, socktype = _NETWORKS[network]
    if ssl_context is not None and socktype != socket.SOCK_STREAM:
        raise InvalidAddressError(f"TLS requires a stream transport, not {network}")

    server_hostname = None
    if family == getattr(socket, "AF_UNIX", None):
        sock = socket.socket(family, socktype)
        try:
            sock.connect(endpoint)
        except OSError:
            sock.close()
            raise
    else:
        server_hostname, port = split_host_port(endpoint)
        sock = _connect_inet(server_hostname, port, family, socktype)

    if ssl_context is not None:
        try:
            sock = ssl_context.wrap_socket(sock, server_hostname=server_hostname)
        except (OSError, ValueError):
            sock.close()
            raise
        logger.debug("TLS session established with %s (%s)", endpoint, sock.version())

    return Connection(sock, network, endpoint)
