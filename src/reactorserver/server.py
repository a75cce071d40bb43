"""
=============================================================================
MAIN HTTP SERVER
=============================================================================

Ties the components together: configuration, listening socket, file
resolver, connection handler and event loop.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          HTTPServer                                  │
    │                                                                      │
    │   ServerConfig ──► create_listen_socket() ──► listen socket         │
    │                                                   │                  │
    │   FileResolver ──► StaticFileHandler              │                  │
    │                          │                        │                  │
    │                          ▼                        ▼                  │
    │                    EventLoop(listen_socket, handler.handle)          │
    │                          │                                           │
    │                          └──► run()  (blocks until shutdown)         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd, kill) stop the event
loop. The loop closes every client connection, then the listening socket
is closed and the original handlers are restored. Signal handlers can
only be installed from the main thread; a server run from another thread
(tests, embedding) is stopped with shutdown() instead.

=============================================================================
"""

import signal
import socket
import logging
import threading
from typing import Optional, Tuple

from .config import ServerConfig
from .access_log import AccessLogger
from .core import EventLoop, create_listen_socket
from .handlers import FileResolver, StaticFileHandler


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Single-threaded static file server.

    Usage:
        server = HTTPServer(ServerConfig(port=8080, root="./public"))
        server.run()    # Blocks until SIGINT/SIGTERM or shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Initialize the HTTP server.

        Args:
            config: Server configuration. Uses defaults if not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._socket: Optional[socket.socket] = None
        self._loop: Optional[EventLoop] = None

        # Set once the listening socket exists and the loop is built
        self._ready_event = threading.Event()
        self._shutdown_requested = False

        # Save original signal handlers so we can restore them
        self._original_handlers: dict = {}

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._loop is not None and self._loop.is_running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port). With port 0 this is the port the OS chose,
        once the server is ready.
        """
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    @property
    def connection_count(self) -> int:
        """Number of open client connections."""
        return self._loop.connection_count if self._loop else 0

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Raises:
            OSError: If the listening socket cannot be set up.
            ReactorError: If the multiplexer fails.
        """
        self._setup_logging()

        self._socket = create_listen_socket(self.config)

        try:
            resolver = FileResolver(
                self.config.root_path,
                index_file=self.config.index_file,
                confine_to_root=self.config.confine_to_root,
            )
            handler = StaticFileHandler(
                resolver,
                buffer_size=self.config.buffer_size,
                access_logger=AccessLogger(log_format=self.config.log_format),
            )
            self._loop = EventLoop(
                self._socket,
                handler.handle,
                buffer_size=self.config.buffer_size,
            )

            self._setup_signals()
            self._ready_event.set()

            host, port = self.address
            logger.info(f"{self.config.server_name} serving {resolver.root} on http://{host}:{port}")

            if self._shutdown_requested:
                # shutdown() raced ahead of the loop being built
                self._loop.close()
            else:
                self._loop.run()
        finally:
            self._cleanup()

    def shutdown(self):
        """
        Stop the server.

        Safe to call from a signal handler, from another thread, or more
        than once.
        """
        logger.info("Shutting down server...")
        self._shutdown_requested = True
        if self._loop is not None:
            self._loop.stop()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the server is accepting connections.

        Returns:
            True if ready, False if the timeout expired first.
        """
        return self._ready_event.wait(timeout)

    # =========================================================================
    # SETUP / TEARDOWN
    # =========================================================================

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("reactorserver").setLevel(level)

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers that stop the loop.

        Only possible from the main thread; elsewhere this is a no-op.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def _cleanup(self):
        """Release the listening socket and restore signal handlers."""
        self._restore_signals()

        if self._loop is not None:
            self._loop.close()

        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

        logger.info("Server stopped")
