"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration management for the static file server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m reactorserver 8080 ./public                     │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=8080 HTTP_ROOT=./public                         │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
import socket
from dataclasses import dataclass
from pathlib import Path


LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size

    FILE SERVING
    - root, index_file, confine_to_root

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces (default)
    - "127.0.0.1" - Localhost only
    """

    port: int = 8080
    """
    The port number to listen on. 0 lets the OS pick a free port.
    """

    backlog: int = socket.SOMAXCONN
    """
    Maximum number of queued connections waiting for accept().
    """

    buffer_size: int = 2048
    """
    Bytes read per readiness event, and the chunk size used when
    streaming a file. A request line longer than this is cut short.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILE SERVING
    # ─────────────────────────────────────────────────────────────────────

    root: str = "."
    """
    Directory files are served from. The request target is appended to
    it verbatim.
    """

    index_file: str = "index.html"
    """
    File served for the target "/".
    """

    confine_to_root: bool = False
    """
    Reject targets that resolve outside root (e.g. "/../etc/passwd") with
    404. Off by default: the target is used exactly as sent.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR).
    """

    log_format: str = "text"
    """
    Access log format: 'text' or 'json'.
    """

    server_name: str = "reactorserver/1.0"

    @property
    def root_path(self) -> str:
        """Absolute form of root, without a trailing separator."""
        return os.path.abspath(self.root)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST         Server host (default: 0.0.0.0)
        HTTP_PORT         Server port (default: 8080)
        HTTP_ROOT         Directory to serve (default: .)
        HTTP_BUFFER_SIZE  Read/stream chunk size (default: 2048)
        HTTP_LOG_LEVEL    Logging level (default: INFO)
        HTTP_LOG_FORMAT   text or json (default: text)
        HTTP_CONFINE      1/true/yes to confine targets to the root

        =====================================================================
        """
        return cls(
            host=os.getenv("HTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            root=os.getenv("HTTP_ROOT", "."),
            buffer_size=int(os.getenv("HTTP_BUFFER_SIZE", "2048")),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
            confine_to_root=os.getenv("HTTP_CONFINE", "").lower() in ("1", "true", "yes"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup so a bad value fails before any socket exists.

        Raises:
            ValueError: On the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not Path(self.root).is_dir():
            raise ValueError(f"Root is not a directory: {self.root}")

        if self.buffer_size < 256:
            raise ValueError("buffer_size must be >= 256")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}")
