"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

This module turns the bytes of ONE socket read into a structured request.

=============================================================================
WHAT WE PARSE
=============================================================================

Only the request line matters. Headers (and anything else after the first
line terminator) are ignored:

    GET /images/logo.png HTTP/1.1\r\n      ← parsed
    Host: localhost:8080\r\n               ← ignored
    User-Agent: curl/8.4.0\r\n             ← ignored
    \r\n

The line is split into three tokens:

    ┌─────────────────────────────────────────────────────────────────┐
    │  GET /images/logo.png HTTP/1.1\r\n                               │
    │  └─┘ └──────────────┘ └──────┘                                   │
    │  method    target     protocol                                   │
    │                                                                   │
    │  method   = skip spaces, read up to the next space               │
    │  target   = skip spaces, read up to the next space (consumed)    │
    │  protocol = skip CR/LF, read up to the next CR or LF             │
    └─────────────────────────────────────────────────────────────────┘

Any missing token is a parse error (400 Bad Request). Note that the
protocol token runs to the end of the line, so "GET / HTTP/1.1 x" yields
the protocol "HTTP/1.1 x", which the handler later rejects.

=============================================================================
NO REASSEMBLY
=============================================================================

Each read is parsed on its own. A request line split across two TCP
segments is NOT stitched back together: the first fragment is parsed (and
usually rejected) and the second fragment is parsed as a new request.
Browsers and curl send the request line in one segment, so in practice
this holds.

=============================================================================
"""

import os
import re
from dataclasses import dataclass


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the HTTP status code that should be returned to the client.
    For this server it is always 400 Bad Request.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code  # HTTP status to return


@dataclass
class HTTPRequest:
    """
    Represents a parsed HTTP request line.

    Attributes:
        method: Request method token (e.g., "GET").
        target: Request target, used verbatim as a path under the root.
        version: Protocol token (e.g., "HTTP/1.1").
    """

    method: str
    target: str
    version: str = "HTTP/1.1"

    SUPPORTED_METHOD = "GET"
    SUPPORTED_VERSION = "HTTP/1.1"

    @property
    def is_supported(self) -> bool:
        """True only for exactly "GET" over exactly "HTTP/1.1"."""
        return (
            self.method == self.SUPPORTED_METHOD
            and self.version == self.SUPPORTED_VERSION
        )

    @property
    def request_line(self) -> str:
        """The request line as it would appear on the wire (no CRLF)."""
        return f"{self.method} {self.target} {self.version}"


class RequestParser:
    """
    Parser for the request line of an HTTP request.

    The parser is stateless: every call handles one read's worth of bytes
    and nothing is carried over to the next call.

    Usage:
        parser = RequestParser()
        try:
            request = parser.parse(data)
        except HTTPParseError as e:
            send_error(conn, e.status_code)
    """

    # ─────────────────────────────────────────────────────────────────────
    # TOKEN PATTERNS
    # ─────────────────────────────────────────────────────────────────────
    # Compiled once at class load time. Both operate on raw bytes so the
    # target reaches the filesystem exactly as the client sent it.
    #
    # WORD:     leading spaces, the token, then at most one delimiter
    # PROTOCOL: leading CR/LF, then everything up to the line end
    WORD_PATTERN = re.compile(rb" *([^ ]+) ?")
    PROTOCOL_PATTERN = re.compile(rb"[\r\n]*([^\r\n]+)")

    def parse(self, data: bytes) -> HTTPRequest:
        """
        Parse raw request bytes into an HTTPRequest.

        Args:
            data: Bytes from a single socket read.

        Returns:
            Parsed HTTPRequest. Method and version are NOT validated here;
            see HTTPRequest.is_supported.

        Raises:
            HTTPParseError: If the method, target or protocol is missing.
        """
        method, pos = self._match(self.WORD_PATTERN, data, 0)
        if method is None:
            raise HTTPParseError("Missing method")

        target, pos = self._match(self.WORD_PATTERN, data, pos)
        if target is None:
            raise HTTPParseError("Missing request target")

        version, _ = self._match(self.PROTOCOL_PATTERN, data, pos)
        if version is None:
            raise HTTPParseError("Missing protocol version")

        return HTTPRequest(
            method=method.decode("latin-1"),
            # fsdecode keeps undecodable bytes (surrogateescape) so the
            # path round-trips back to the same bytes in os.stat/open
            target=os.fsdecode(target),
            version=version.decode("latin-1"),
        )

    @staticmethod
    def _match(pattern: "re.Pattern[bytes]", data: bytes, pos: int):
        """Return (token, next_position), or (None, pos) when absent."""
        match = pattern.match(data, pos)
        if not match:
            return None, pos
        return match.group(1), match.end()


_default_parser = RequestParser()


def parse_request(data: bytes) -> HTTPRequest:
    """
    Convenience function to parse a request with the default parser.

    Example:
        >>> parse_request(b"GET /index.html HTTP/1.1\\r\\n\\r\\n").target
        '/index.html'
    """
    return _default_parser.parse(data)
