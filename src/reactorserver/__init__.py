"""
=============================================================================
REACTORSERVER - Event-Driven Static File Server
=============================================================================

A single-process HTTP/1.1 server that serves files from a root directory.
One thread drives every connection through a readiness-based multiplexer
(epoll on Linux) instead of one thread per client.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    reactorserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m reactorserver)
    ├── server.py            # HTTPServer: wires everything together
    ├── config.py            # ServerConfig dataclass
    ├── access_log.py        # Per-request access logging
    ├── core/                # Low-level components
    │   ├── socket_server.py # Listening socket
    │   ├── event_loop.py    # The reactor
    │   └── connection.py    # Client socket wrapper
    ├── http/                # HTTP protocol components
    │   ├── request.py       # Request line parsing
    │   ├── response.py      # Headers and error responses
    │   ├── status_codes.py  # HTTP status enum
    │   └── mime_types.py    # Content-Type detection
    └── handlers/
        ├── files.py         # Target → file resolution
        └── static.py        # The connection handler

=============================================================================
QUICK START
=============================================================================

    from reactorserver import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(port=8080, root="./public"))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "__version__"]
