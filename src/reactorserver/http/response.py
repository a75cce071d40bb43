"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

Formats status lines and headers, and writes the canned error responses.

=============================================================================
WIRE FORMAT
=============================================================================

Every response has exactly two headers, and every header line ends with a
bare LF (not CRLF). Existing clients of this server depend on the exact
bytes, so the format is fixed:

    HTTP/1.1 200 OK\\n                    ← Status line
    Content-Length: 1024\\n               ← Body size in bytes
    Content-Type: text/html\\n            ← From the file extension
    \\n                                   ← Empty line (separator)
    <file bytes>                         ← Body

Error responses use the same header with a fixed HTML body:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  400 → <h1>400 Bad Request</h1>                                     │
    │  404 → <h1>404 Not Found</h1>                                       │
    │  500 → <h1>500 Internal Server Error</h1>                           │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Tuple

from .status_codes import HTTPStatus

if TYPE_CHECKING:
    from ..core.connection import Connection


HEADER_FORMAT = "HTTP/1.1 {code} {reason}\nContent-Length: {length}\nContent-Type: {content_type}\n\n"

ERROR_CONTENT_TYPE = "text/html"

ERROR_BODIES = {
    HTTPStatus.BAD_REQUEST: "<h1>400 Bad Request</h1>",
    HTTPStatus.NOT_FOUND: "<h1>404 Not Found</h1>",
    HTTPStatus.INTERNAL_SERVER_ERROR: "<h1>500 Internal Server Error</h1>",
}


@dataclass
class HTTPResponse:
    """
    Represents the head of an HTTP response.

    The body is not stored here: a 200 body is streamed from the file and
    an error body is one of ERROR_BODIES.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        HTTPResponse(            header_bytes()           conn.send()
          status=200,    ─────►  b"HTTP/1.1 200 OK\\n  ─────►  header first,
          content_length=5,        Content-Length: 5\\n        then body
          content_type=...)        Content-Type: ...\\n\\n"

    =========================================================================
    """

    status: HTTPStatus = HTTPStatus.OK
    content_length: int = 0
    content_type: str = "text/plain"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Example: "HTTP/1.1 200 OK"
        """
        return f"HTTP/1.1 {int(self.status)} {self.status.phrase}"

    def header(self) -> str:
        """Format the full header block, blank separator line included."""
        return build_header(self.status, self.content_length, self.content_type)

    def header_bytes(self) -> bytes:
        """
        Header block as bytes, ready to be written in one call.

        Content types are ASCII. latin-1 keeps any stray byte one-to-one
        instead of failing.
        """
        return self.header().encode("latin-1")


def build_header(status: int, content_length: int, content_type: str) -> str:
    """
    Format a status line plus Content-Length and Content-Type headers.

    Args:
        status: 200, 400, 404 or 500.
        content_length: Body size in bytes.
        content_type: Value for the Content-Type header.

    Returns:
        The header block, terminated by an empty line.

    Example:
        >>> build_header(200, 5, "text/plain")
        'HTTP/1.1 200 OK\\nContent-Length: 5\\nContent-Type: text/plain\\n\\n'
    """
    status = HTTPStatus(status)
    return HEADER_FORMAT.format(
        code=int(status),
        reason=status.phrase,
        length=content_length,
        content_type=content_type,
    )


def _error_parts(status: int) -> Tuple[bytes, bytes]:
    """Return (header, body) bytes for a canned error response."""
    status = HTTPStatus(status)
    if status not in ERROR_BODIES:
        raise ValueError(f"No error body for status {int(status)}")

    body = ERROR_BODIES[status].encode("ascii")
    head = HTTPResponse(status, len(body), ERROR_CONTENT_TYPE).header_bytes()
    return head, body


def error_response(status: int) -> bytes:
    """
    Build the complete bytes of a canned error response.

    Raises:
        ValueError: If status is not 400, 404 or 500.
    """
    head, body = _error_parts(status)
    return head + body


def send_error(conn: "Connection", status: int) -> bool:
    """
    Write a canned error response to a connection.

    The header is written first as one buffer, then the body.

    Returns:
        True if both writes succeeded, False if the peer is gone.
    """
    head, body = _error_parts(status)
    return conn.send(head) and conn.send(body)
