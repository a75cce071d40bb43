"""
pytest configuration and fixtures.
"""

import os
import socket
import threading
from pathlib import Path
from typing import Callable, Dict, Generator, Tuple

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reactorserver import HTTPServer, ServerConfig


INDEX_HTML = b"<!DOCTYPE html><html><body><h1>Hello</h1></body></html>\n"


@pytest.fixture
def web_root(tmp_path: Path) -> Path:
    """A document root with one file per content type."""
    root = tmp_path / "www"
    root.mkdir()

    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "style.css").write_bytes(b"body { color: #333; }\n")
    (root / "app.js").write_bytes(b"console.log('hi');\n")
    (root / "photo.jpeg").write_bytes(b"\xff\xd8\xff\xe0" + bytes(range(256)) * 4)
    (root / "image.png").write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 64)
    (root / "README").write_bytes(b"no extension here\n")
    (root / "empty.html").write_bytes(b"")

    # Many read chunks long, and bigger than a socket buffer
    (root / "large.bin").write_bytes(os.urandom(300 * 1024))

    sub = root / "docs"
    sub.mkdir()
    (sub / "page.html").write_bytes(b"<p>nested</p>")

    return root


class RunningServer:
    """Server running in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread and wait for it to listen."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    @property
    def stopped(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()

    def connect(self) -> socket.socket:
        """Open a client connection to the server."""
        sock = socket.create_connection(("127.0.0.1", self.port), timeout=5.0)
        return sock


@pytest.fixture
def server_config(web_root: Path) -> ServerConfig:
    """Test server configuration (OS-assigned port)."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        root=str(web_root),
        log_level="WARNING",
    )


@pytest.fixture
def running_server(server_config: ServerConfig) -> Generator[RunningServer, None, None]:
    """Start a server on a free port; stop it after the test."""
    srv = RunningServer(HTTPServer(server_config))
    srv.start()

    yield srv

    srv.stop()


def read_response(sock: socket.socket) -> Tuple[str, Dict[str, str], bytes]:
    """
    Read exactly one response from a socket.

    Headers are terminated by bare LF, and the body is read up to
    Content-Length, so back-to-back responses on one socket can be read
    one at a time.

    Returns:
        (status_line, headers, body)
    """
    data = b""
    while b"\n\n" not in data:
        chunk = sock.recv(4096)
        if not chunk:
            raise ConnectionError(f"Connection closed before headers: {data!r}")
        data += chunk

    head, _, body = data.partition(b"\n\n")
    lines = head.decode("latin-1").split("\n")
    status_line = lines[0]
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value

    length = int(headers["Content-Length"])
    while len(body) < length:
        chunk = sock.recv(65536)
        if not chunk:
            raise ConnectionError("Connection closed mid-body")
        body += chunk

    return status_line, headers, body


@pytest.fixture
def fetch(running_server: RunningServer) -> Callable[[bytes], Tuple[str, Dict[str, str], bytes]]:
    """Send one raw request on a fresh connection and read the response."""
    def _fetch(raw_request: bytes):
        with running_server.connect() as sock:
            sock.sendall(raw_request)
            return read_response(sock)
    return _fetch


@pytest.fixture
def response_reader() -> Callable[[socket.socket], Tuple[str, Dict[str, str], bytes]]:
    """The read_response helper, for tests that manage their own sockets."""
    return read_response
