"""
=============================================================================
EVENT LOOP (REACTOR)
=============================================================================

The single-threaded control loop of the server. It owns the selector, and
turns readiness notifications into accepts or handler calls.

=============================================================================
ONE THREAD, MANY SOCKETS
=============================================================================

Instead of one thread per connection, every socket is registered with the
operating system's readiness multiplexer (epoll on Linux, through the
`selectors` module). The thread sleeps in ONE place, select(), and wakes
up with the list of sockets that can make progress:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         Reactor Flow                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   register(listen_socket, EVENT_READ)                                │
    │       │                                                              │
    │       ▼                                                              │
    │   ┌──────────────┐                                                   │
    │   │   select()   │ ◄── blocks here, no timeout                       │
    │   └──────┬───────┘                                                   │
    │          │ ready keys, in the order the OS reports them              │
    │          ▼                                                           │
    │   for key in ready:                                                  │
    │       listen socket? ──► ACCEPT  (one accept per notification)      │
    │       wakeup socket? ──► stop requested                              │
    │       otherwise      ──► SERVICE (one recv, one response)           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Level-triggered semantics make "one accept per notification" safe: if more
connections are still queued, the listen socket is reported ready again
on the next select().

=============================================================================
SERVICE OUTCOMES
=============================================================================

    recv() → b""          Peer closed: unregister + close
    recv() → data         Hand to the connection handler
    recv() raises         Send 500, keep the connection registered
    write to peer fails   Unregister + close

Nothing else ever closes a connection. There is no idle timeout: a quiet
client keeps its socket until it hangs up.

=============================================================================
FAIRNESS
=============================================================================

Everything except select() runs to completion: accept, recv, stat, file
reads and socket writes. A client that reads its response slowly holds
the thread until its data is in the kernel, and every other client waits.
This is the accepted trade-off of a single-threaded reactor.

=============================================================================
"""

import socket
import logging
import selectors
from typing import Callable, Dict

from .connection import Connection
from ..http.response import send_error
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


# Handler signature: (connection, bytes read) -> keep connection?
ConnectionHandler = Callable[[Connection, bytes], bool]

# Selector key markers for the two non-client sockets
_LISTENER = object()
_WAKEUP = object()


class ReactorError(Exception):
    """
    Fatal multiplexer failure.

    Raised when the selector cannot be created or select() itself fails.
    These are process-level faults, not request errors, and are never
    retried.
    """


class EventLoop:
    """
    Single-threaded readiness-based event loop.

    Usage:
        loop = EventLoop(listen_socket, handler.handle)
        loop.run()      # Blocks until stop() is called

        # From a signal handler or another thread:
        loop.stop()

    The selector and the fd → Connection table belong to this object
    alone. Only the loop thread touches them. stop() is the one method
    that is safe to call from elsewhere.
    """

    def __init__(
        self,
        listen_socket: socket.socket,
        handler: ConnectionHandler,
        buffer_size: int = 2048,
        selector_factory: Callable[[], selectors.BaseSelector] = selectors.DefaultSelector,
    ):
        """
        Initialize the event loop.

        Args:
            listen_socket: Bound, listening, non-blocking server socket.
            handler: Called with (connection, data) for every non-empty
                     read. Returns False when the connection is unusable.
            buffer_size: Maximum bytes read per readiness event.
            selector_factory: Creates the multiplexer. Injectable for tests.

        Raises:
            ReactorError: If the multiplexer cannot be created.
        """
        self._listen_socket = listen_socket
        self._handler = handler
        self.buffer_size = buffer_size

        try:
            self._selector = selector_factory()
        except OSError as e:
            raise ReactorError(f"Failed to create multiplexer: {e}") from e

        # Registered client connections, keyed by file descriptor
        self._connections: Dict[int, Connection] = {}

        # Self-pipe: stop() writes one byte here so select() returns
        self._wakeup_reader, self._wakeup_writer = socket.socketpair()
        self._wakeup_reader.setblocking(False)
        self._wakeup_writer.setblocking(False)

        self._running = False
        self._stop_requested = False
        self._closed = False

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def connection_count(self) -> int:
        """Number of client connections currently registered."""
        return len(self._connections)

    # =========================================================================
    # MAIN LOOP
    # =========================================================================

    def run(self):
        """
        Run the loop until stop() is called.

        Raises:
            ReactorError: If select() fails.
        """
        if self._closed:
            raise RuntimeError("Event loop is closed")

        self._selector.register(self._listen_socket, selectors.EVENT_READ, data=_LISTENER)
        self._selector.register(self._wakeup_reader, selectors.EVENT_READ, data=_WAKEUP)
        self._running = True

        try:
            while not self._stop_requested:
                try:
                    events = self._selector.select(timeout=None)
                except OSError as e:
                    raise ReactorError(f"Multiplexer wait failed: {e}") from e

                for key, _mask in events:
                    if self._stop_requested:
                        break

                    if key.data is _LISTENER:
                        self._accept()
                    elif key.data is _WAKEUP:
                        self._drain_wakeup()
                    else:
                        self._service(key.data)
        finally:
            self._running = False
            self.close()

    def stop(self):
        """
        Ask the loop to exit after the current event.

        Safe to call from a signal handler or another thread, and more
        than once.
        """
        self._stop_requested = True
        try:
            self._wakeup_writer.send(b"\0")
        except BlockingIOError:
            pass  # Buffer full: a wakeup is already pending
        except OSError:
            pass  # Loop already closed its end

    def close(self):
        """Tear down every connection and release the selector."""
        if self._closed:
            return
        self._closed = True

        for conn in list(self._connections.values()):
            self._teardown(conn)

        self._selector.close()
        self._wakeup_reader.close()
        self._wakeup_writer.close()
        logger.debug("Event loop closed")

    # =========================================================================
    # ACCEPT
    # =========================================================================

    def _accept(self):
        """
        Accept ONE pending connection and register it for reading.
        """
        try:
            client_socket, client_address = self._listen_socket.accept()
        except (BlockingIOError, InterruptedError, ConnectionAbortedError):
            # Readiness was stale (client gave up before we got to it)
            return
        except OSError as e:
            # e.g. EMFILE: out of descriptors. Retry on the next event.
            logger.warning(f"Accept failed: {e}")
            return

        conn = Connection(socket=client_socket, address=client_address)

        try:
            self._selector.register(client_socket, selectors.EVENT_READ, data=conn)
        except (OSError, ValueError, KeyError) as e:
            logger.warning(f"[{conn.id}] Failed to register connection: {e}")
            conn.close()
            return

        self._connections[conn.fileno] = conn
        logger.debug(f"[{conn.id}] Accepted connection from {conn.client_ip}:{conn.client_port}")

    # =========================================================================
    # SERVICE
    # =========================================================================

    def _service(self, conn: Connection):
        """
        Read one chunk from a ready connection and act on it.
        """
        if conn.is_closed:
            # Torn down earlier in this same batch of events
            return

        try:
            data = conn.recv(self.buffer_size)
        except BlockingIOError:
            return
        except OSError as e:
            logger.warning(f"[{conn.id}] Read failed: {e}")
            if not send_error(conn, HTTPStatus.INTERNAL_SERVER_ERROR):
                self._teardown(conn)
            return

        if not data:
            # Orderly shutdown by the peer
            self._teardown(conn)
            return

        conn.requests_handled += 1

        try:
            keep = self._handler(conn, data)
        except Exception:
            # Response state is unknown; drop this connection only
            logger.exception(f"[{conn.id}] Unhandled error in connection handler")
            keep = False

        if not keep:
            self._teardown(conn)

    def _teardown(self, conn: Connection):
        """Unregister and close a connection in one step."""
        try:
            self._selector.unregister(conn.socket)
        except (KeyError, ValueError):
            pass  # Never registered (failed registration path)

        self._connections.pop(conn.fileno, None)
        conn.close()

    def _drain_wakeup(self):
        try:
            while self._wakeup_reader.recv(64):
                pass
        except BlockingIOError:
            pass

    def __repr__(self) -> str:
        return (
            f"EventLoop(running={self._running}, "
            f"connections={len(self._connections)})"
        )
