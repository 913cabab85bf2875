import socket
import threading
import time

import pytest


class TCPCollector:
    """Mini TCP syslog collector that records every byte it receives."""

    def __init__(self):
        self._srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._srv.settimeout(1.0)
        self._srv.bind(("127.0.0.1", 0))
        self._srv.listen(5)
        self.host, self.port = self._srv.getsockname()
        self._shutdown = threading.Event()
        self._lock = threading.Lock()
        self._data = b""
        self.connections = 0
        self._thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._thread.start()

    @property
    def address(self) -> str:
        return f"tcp://{self.host}:{self.port}"

    def _accept_loop(self):
        while not self._shutdown.is_set():
            try:
                conn, _ = self._srv.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            with self._lock:
                self.connections += 1
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()
        self._srv.close()

    def _handle(self, conn):
        conn.settimeout(1.0)
        while not self._shutdown.is_set():
            try:
                chunk = conn.recv(4096)
            except socket.timeout:
                continue
            except OSError:
                break
            if not chunk:
                break
            with self._lock:
                self._data += chunk
        conn.close()

    def wait_for(self, num_bytes: int, timeout: float = 5.0) -> bytes:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            with self._lock:
                if len(self._data) >= num_bytes:
                    return self._data
            time.sleep(0.01)
        with self._lock:
            return self._data

    def stop(self):
        self._shutdown.set()


@pytest.fixture
def tcp_collector():
    collector = TCPCollector()
    try:
        yield collector
    finally:
        collector.stop()
