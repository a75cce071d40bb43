"""
Integration tests for the HTTP server.

These tests start a real server on a free port and talk to it over TCP.
"""

import socket
import time

import pytest

from reactorserver import HTTPServer, ServerConfig
from reactorserver.http.response import error_response

from conftest import INDEX_HTML, RunningServer


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def recv_exactly(sock: socket.socket, length: int) -> bytes:
    data = b""
    while len(data) < length:
        chunk = sock.recv(length - len(data))
        if not chunk:
            break
        data += chunk
    return data


class TestServerBasics:
    """Basic server functionality tests."""

    def test_server_starts(self, running_server):
        """Test that server starts and accepts connections."""
        with running_server.connect():
            pass

    def test_bound_port_reported(self, running_server):
        """Test that port 0 is replaced by the OS-assigned port."""
        assert running_server.port != 0

    def test_simple_get(self, fetch, web_root):
        """Test a GET for an existing file."""
        status, headers, body = fetch(b"GET /style.css HTTP/1.1\r\nHost: localhost\r\n\r\n")

        assert status == "HTTP/1.1 200 OK"
        assert headers == {
            "Content-Length": str((web_root / "style.css").stat().st_size),
            "Content-Type": "text/css",
        }
        assert body == (web_root / "style.css").read_bytes()

    def test_exact_wire_bytes(self, running_server, web_root):
        """Test the exact bytes of a 200 response, bare LF included."""
        body = (web_root / "README").read_bytes()
        expected = (
            f"HTTP/1.1 200 OK\nContent-Length: {len(body)}\n"
            f"Content-Type: text/plain\n\n"
        ).encode() + body

        with running_server.connect() as sock:
            sock.sendall(b"GET /README HTTP/1.1\r\n\r\n")
            assert recv_exactly(sock, len(expected)) == expected

    def test_root_serves_index(self, fetch):
        """Test that "/" is answered exactly like "/index.html"."""
        slash = fetch(b"GET / HTTP/1.1\r\n\r\n")
        index = fetch(b"GET /index.html HTTP/1.1\r\n\r\n")

        assert slash == index
        assert slash[2] == INDEX_HTML

    def test_large_file(self, fetch, web_root):
        """Test a file spanning many read chunks and socket buffers."""
        status, headers, body = fetch(b"GET /large.bin HTTP/1.1\r\n\r\n")

        expected = (web_root / "large.bin").read_bytes()
        assert status == "HTTP/1.1 200 OK"
        assert headers["Content-Length"] == str(len(expected))
        assert body == expected

    def test_empty_file(self, fetch):
        """Test a zero-length file."""
        status, headers, body = fetch(b"GET /empty.html HTTP/1.1\r\n\r\n")

        assert status == "HTTP/1.1 200 OK"
        assert headers["Content-Length"] == "0"
        assert body == b""

    def test_nested_file(self, fetch):
        """Test a file in a subdirectory of the root."""
        status, _, body = fetch(b"GET /docs/page.html HTTP/1.1\r\n\r\n")
        assert status == "HTTP/1.1 200 OK"
        assert body == b"<p>nested</p>"

    @pytest.mark.parametrize("target,content_type", [
        ("/index.html", "text/html"),
        ("/photo.jpeg", "image/jpeg"),
        ("/image.png", "image/png"),
        ("/style.css", "text/css"),
        ("/app.js", "text/javascript"),
        ("/README", "text/plain"),
        ("/large.bin", "text/plain"),
    ])
    def test_content_types(self, fetch, target, content_type):
        """Test Content-Type for each known extension and the fallback."""
        _, headers, _ = fetch(f"GET {target} HTTP/1.1\r\n\r\n".encode())
        assert headers["Content-Type"] == content_type


class TestErrorResponses:
    """Error handling over the wire."""

    def exchange(self, running_server, raw: bytes, status: int) -> bytes:
        expected = error_response(status)
        with running_server.connect() as sock:
            sock.sendall(raw)
            return recv_exactly(sock, len(expected))

    @pytest.mark.parametrize("raw", [
        b"\r\n\r\n",
        b"GET\r\n\r\n",
        b"GET /index.html\r\n\r\n",
        b"GET /index.html \r\n\r\n",
    ])
    def test_missing_tokens(self, running_server, raw):
        """Test that a request line missing a token gets 400."""
        assert self.exchange(running_server, raw, 400) == error_response(400)

    @pytest.mark.parametrize("raw", [
        b"POST /index.html HTTP/1.1\r\n\r\n",
        b"DELETE /index.html HTTP/1.1\r\n\r\n",
        b"get /index.html HTTP/1.1\r\n\r\n",
        b"GET /index.html HTTP/1.0\r\n\r\n",
        b"GET /index.html HTTP/2\r\n\r\n",
    ])
    def test_unsupported_method_or_version(self, running_server, raw):
        """Test that anything but GET over HTTP/1.1 gets 400."""
        assert self.exchange(running_server, raw, 400) == error_response(400)

    def test_not_found(self, running_server):
        """Test the canned 404 response."""
        raw = b"GET /does-not-exist.html HTTP/1.1\r\n\r\n"
        assert self.exchange(running_server, raw, 404) == error_response(404)

    def test_directory_target(self, running_server):
        """Test that a directory target gets 500."""
        raw = b"GET /docs HTTP/1.1\r\n\r\n"
        assert self.exchange(running_server, raw, 500) == error_response(500)

    def test_connection_survives_error(self, running_server, response_reader):
        """Test that an error response keeps the connection open."""
        with running_server.connect() as sock:
            sock.sendall(b"GET /nope HTTP/1.1\r\n\r\n")
            status, _, body = response_reader(sock)
            assert status == "HTTP/1.1 404 Not Found"
            assert body == b"<h1>404 Not Found</h1>"

            sock.sendall(b"GET /index.html HTTP/1.1\r\n\r\n")
            status, _, body = response_reader(sock)
            assert status == "HTTP/1.1 200 OK"
            assert body == INDEX_HTML


class TestConnections:
    """Connection lifecycle over the reactor."""

    def test_sequential_requests_same_connection(self, running_server, response_reader, web_root):
        """Test two requests in a row on one connection."""
        with running_server.connect() as sock:
            sock.sendall(b"GET /style.css HTTP/1.1\r\n\r\n")
            _, headers, body = response_reader(sock)
            assert headers["Content-Type"] == "text/css"
            assert body == (web_root / "style.css").read_bytes()

            sock.sendall(b"GET /app.js HTTP/1.1\r\n\r\n")
            _, headers, body = response_reader(sock)
            assert headers["Content-Type"] == "text/javascript"
            assert body == (web_root / "app.js").read_bytes()

    def test_connection_stays_open(self, running_server, response_reader):
        """Test that the server keeps the connection after responding."""
        with running_server.connect() as sock:
            sock.sendall(b"GET / HTTP/1.1\r\n\r\n")
            response_reader(sock)

            assert wait_for(lambda: running_server.server.connection_count == 1)

    def test_peer_close_releases_connection(self, running_server, response_reader):
        """Test that a client hang-up only releases that client."""
        keep = running_server.connect()
        gone = running_server.connect()
        try:
            assert wait_for(lambda: running_server.server.connection_count == 2)

            gone.close()
            assert wait_for(lambda: running_server.server.connection_count == 1)

            keep.sendall(b"GET /README HTTP/1.1\r\n\r\n")
            status, _, body = response_reader(keep)
            assert status == "HTTP/1.1 200 OK"
            assert body == b"no extension here\n"
        finally:
            keep.close()

    def test_interleaved_connections(self, running_server, response_reader, web_root):
        """Test requests sent in reverse order over several connections."""
        targets = ["/index.html", "/style.css", "/app.js", "/photo.jpeg", "/image.png"]
        socks = [running_server.connect() for _ in targets]
        try:
            for sock, target in reversed(list(zip(socks, targets))):
                sock.sendall(f"GET {target} HTTP/1.1\r\n\r\n".encode())

            for sock, target in zip(socks, targets):
                status, _, body = response_reader(sock)
                assert status == "HTTP/1.1 200 OK"
                assert body == (web_root / target.lstrip("/")).read_bytes()
        finally:
            for sock in socks:
                sock.close()

    def test_many_concurrent_connections(self, running_server, response_reader, web_root):
        """Test 150 open connections, each answered for its own target."""
        targets = ["/style.css", "/nope", "/app.js", "/index.html", "/missing.png"]
        plan = [targets[i % len(targets)] for i in range(150)]
        socks = [running_server.connect() for _ in plan]
        try:
            assert wait_for(lambda: running_server.server.connection_count == len(plan))

            for sock, target in reversed(list(zip(socks, plan))):
                sock.sendall(f"GET {target} HTTP/1.1\r\n\r\n".encode())

            for sock, target in zip(socks, plan):
                status, _, body = response_reader(sock)
                path = web_root / target.lstrip("/")
                if path.exists():
                    assert status == "HTTP/1.1 200 OK"
                    assert body == path.read_bytes()
                else:
                    assert status == "HTTP/1.1 404 Not Found"
                    assert body == b"<h1>404 Not Found</h1>"
        finally:
            for sock in socks:
                sock.close()

        assert wait_for(lambda: running_server.server.connection_count == 0)

    def test_idle_connection_does_not_block_others(self, running_server, fetch):
        """Test that a silent client does not stall the loop."""
        with running_server.connect():
            status, _, _ = fetch(b"GET / HTTP/1.1\r\n\r\n")
            assert status == "HTTP/1.1 200 OK"

    def test_abrupt_disconnect_mid_response(self, running_server, fetch):
        """Test that a client vanishing mid-body does not hurt the server."""
        sock = running_server.connect()
        sock.sendall(b"GET /large.bin HTTP/1.1\r\n\r\n")
        sock.recv(100)
        sock.close()

        status, _, _ = fetch(b"GET /index.html HTTP/1.1\r\n\r\n")
        assert status == "HTTP/1.1 200 OK"


class TestPathTraversal:
    """Targets that climb out of the document root."""

    def test_traversal_served_verbatim_by_default(self, running_server, web_root):
        """Test that ".." targets are used as sent by default."""
        (web_root.parent / "outside.txt").write_bytes(b"outside")

        with running_server.connect() as sock:
            sock.sendall(b"GET /../outside.txt HTTP/1.1\r\n\r\n")
            data = recv_exactly(sock, len(b"HTTP/1.1 200 OK"))

        assert data == b"HTTP/1.1 200 OK"

    def test_traversal_blocked_when_confined(self, server_config, web_root, response_reader):
        """Test that confinement rejects escapes but allows inner ".."."""
        (web_root.parent / "outside.txt").write_bytes(b"outside")
        server_config.confine_to_root = True

        srv = RunningServer(HTTPServer(server_config))
        srv.start()
        try:
            with srv.connect() as sock:
                sock.sendall(b"GET /../outside.txt HTTP/1.1\r\n\r\n")
                status, _, body = response_reader(sock)
                assert status == "HTTP/1.1 404 Not Found"
                assert body == b"<h1>404 Not Found</h1>"

                sock.sendall(b"GET /docs/../style.css HTTP/1.1\r\n\r\n")
                status, _, _ = response_reader(sock)
                assert status == "HTTP/1.1 200 OK"
        finally:
            srv.stop()


class TestLifecycle:
    """Server start and shutdown."""

    def test_shutdown_stops_server(self, server_config):
        """Test that shutdown closes clients and the listening socket."""
        srv = RunningServer(HTTPServer(server_config))
        srv.start()
        port = srv.port

        with srv.connect() as sock:
            assert wait_for(lambda: srv.server.connection_count == 1)
            srv.stop()

            assert srv.stopped
            assert sock.recv(1024) == b""

        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", port), timeout=1.0)

    def test_shutdown_before_run(self, server_config):
        """Test that run() returns at once after an early shutdown()."""
        server = HTTPServer(server_config)
        server.shutdown()
        server.run()

        assert server.is_running is False

    def test_invalid_config_rejected(self, tmp_path):
        """Test that the server refuses an invalid config."""
        with pytest.raises(ValueError):
            HTTPServer(ServerConfig(root=str(tmp_path / "missing")))

    def test_custom_buffer_size(self, server_config, web_root, response_reader):
        """Test streaming with a small buffer size."""
        server_config.buffer_size = 256
        srv = RunningServer(HTTPServer(server_config))
        srv.start()
        try:
            with srv.connect() as sock:
                sock.sendall(b"GET /large.bin HTTP/1.1\r\n\r\n")
                _, _, body = response_reader(sock)
                assert body == (web_root / "large.bin").read_bytes()
        finally:
            srv.stop()

    def test_json_access_log(self, server_config, caplog, response_reader):
        """Test the JSON access log line for a request."""
        import json
        import logging

        server_config.log_format = "json"
        srv = RunningServer(HTTPServer(server_config))
        srv.start()
        try:
            with caplog.at_level(logging.INFO, logger="reactorserver.access"):
                with srv.connect() as sock:
                    sock.sendall(b"GET /style.css HTTP/1.1\r\n\r\n")
                    response_reader(sock)
                assert wait_for(lambda: any(
                    r.name == "reactorserver.access" for r in caplog.records
                ))
        finally:
            srv.stop()

        entry = json.loads(next(
            r.getMessage() for r in caplog.records if r.name == "reactorserver.access"
        ))
        assert entry["method"] == "GET"
        assert entry["target"] == "/style.css"
        assert entry["status_code"] == 200
