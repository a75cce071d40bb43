"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

    request.py       Request line parsing (bytes → HTTPRequest)
    response.py      Header formatting and canned error responses
    status_codes.py  The four status codes this server emits
    mime_types.py    Extension → Content-Type mapping

=============================================================================
"""

from .status_codes import HTTPStatus
from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ERROR_BODIES,
    build_header,
    error_response,
    send_error,
)
from .mime_types import get_content_type, MIME_TYPES, DEFAULT_MIME_TYPE

__all__ = [
    # Status codes
    "HTTPStatus",

    # Request handling
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Response handling
    "HTTPResponse",
    "ERROR_BODIES",
    "build_header",
    "error_response",
    "send_error",

    # MIME types
    "get_content_type",
    "MIME_TYPES",
    "DEFAULT_MIME_TYPE",
]
