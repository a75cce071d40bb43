"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

The connection handler: turns one read's bytes into exactly one response
on the same connection.

=============================================================================
FLOW
=============================================================================

    bytes from recv()
        │
        ├──► parse request line ─────────── missing token ──► 400
        │
        ├──► GET and HTTP/1.1? ──────────── no ─────────────► 400
        │
        ├──► root + target ("/" → "/index.html")
        │
        ├──► stat() ─────────────────────── fails ──────────► 404
        │
        ├──► open() ─────────────────────── fails ──────────► 500
        │
        ├──► header: 200, Content-Length = st_size, Content-Type
        │
        └──► stream file in buffer_size chunks until EOF

The header is always written as one buffer before any body bytes. The
file is opened in a ``with`` block, so it is closed on every path,
including a peer that disappears mid-stream.

=============================================================================
RETURN VALUE
=============================================================================

handle() returns whether the connection is still usable:

    True   Response written (any status). Keep waiting for more requests.
    False  A write failed, or the file broke mid-stream after the header
           promised a length. The event loop tears the connection down.

=============================================================================
"""

import time
import logging
from typing import BinaryIO, Optional

from .files import FileResolver, ResolvedFile
from ..access_log import AccessLogger
from ..core.connection import Connection
from ..http.request import HTTPRequest, RequestParser, HTTPParseError
from ..http.response import HTTPResponse, ERROR_BODIES, send_error
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Serves files from a FileResolver, one request per call.

    Usage:
        handler = StaticFileHandler(FileResolver("/var/www"))
        loop = EventLoop(listen_socket, handler.handle)
    """

    def __init__(
        self,
        resolver: FileResolver,
        buffer_size: int = 2048,
        parser: Optional[RequestParser] = None,
        access_logger: Optional[AccessLogger] = None,
    ):
        """
        Args:
            resolver: Maps targets to files under the root.
            buffer_size: Chunk size for streaming file bodies.
            parser: Request parser (a default one if not given).
            access_logger: Access log sink (text format if not given).
        """
        self.resolver = resolver
        self.buffer_size = buffer_size
        self._parser = parser or RequestParser()
        self._access = access_logger or AccessLogger()

    def handle(self, conn: Connection, data: bytes) -> bool:
        """
        Produce exactly one response for ``data`` on ``conn``.

        Returns:
            False if the connection should be torn down.
        """
        start_time = time.perf_counter()

        try:
            request = self._parser.parse(data)
        except HTTPParseError as e:
            logger.debug(f"[{conn.id}] Bad request: {e}")
            return self._error(conn, e.status_code, None, start_time)

        if not request.is_supported:
            logger.debug(f"[{conn.id}] Unsupported request: {request.request_line!r}")
            return self._error(conn, HTTPStatus.BAD_REQUEST, request, start_time)

        resolved = self.resolver.resolve(request.target)
        if not resolved.exists:
            return self._error(conn, HTTPStatus.NOT_FOUND, request, start_time)

        try:
            file = open(resolved.path, "rb")
        except OSError as e:
            # stat() succeeded but open() did not: permissions, a
            # directory, or the file vanished in between
            logger.warning(f"[{conn.id}] Cannot open {resolved.path}: {e}")
            return self._error(conn, HTTPStatus.INTERNAL_SERVER_ERROR, request, start_time)

        with file:
            ok = self._send_file(conn, file, resolved)

        self._access.log(
            conn, request.method, request.target,
            HTTPStatus.OK, resolved.size, start_time,
        )
        return ok

    def _send_file(self, conn: Connection, file: BinaryIO, resolved: ResolvedFile) -> bool:
        """Write the 200 header, then the file body chunk by chunk."""
        header = HTTPResponse(
            status=HTTPStatus.OK,
            content_length=resolved.size,
            content_type=resolved.content_type,
        ).header_bytes()

        if not conn.send(header):
            return False

        while True:
            try:
                chunk = file.read(self.buffer_size)
            except OSError as e:
                logger.error(f"[{conn.id}] Read of {resolved.path} failed mid-stream: {e}")
                return False

            if not chunk:
                return True

            if not conn.send(chunk):
                return False

    def _error(
        self,
        conn: Connection,
        status: int,
        request: Optional[HTTPRequest],
        start_time: float,
    ) -> bool:
        """Send a canned error response and log it."""
        status = HTTPStatus(status)
        sent = send_error(conn, status)

        self._access.log(
            conn,
            request.method if request else None,
            request.target if request else None,
            status,
            len(ERROR_BODIES[status]),
            start_time,
        )
        return sent
