"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one accepted client socket with the small API the event
loop and the handler need: read one chunk, write everything, close.

=============================================================================
ONE READ, ONE REQUEST
=============================================================================

The event loop only calls recv() after the selector has reported the
socket readable, so a read never blocks. Each read is handled on its own.
No bytes are buffered here between events:

    select() ──► readable ──► recv(2048) ──► handler ──► response written
        ▲                                                       │
        └───────────────────────────────────────────────────────┘
                      back to select() for the next event

A peer that keeps the socket open can send request after request. Each
one is served on its own readiness event.

=============================================================================
BLOCKING WRITES
=============================================================================

Accepted sockets stay in BLOCKING mode. sendall() therefore returns only
after the whole buffer is handed to the kernel, so a response is always
complete before the loop moves on. The price is that a slow reader stalls
the single thread until it catches up.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    REGISTERED ──► READING ──► WRITING ──┐
        ▲                                │
        └────────────────────────────────┘
        │
        └──────────────► CLOSED   (peer closed, or a write failed)

=============================================================================
"""

import socket
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Tuple


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    Used for logging and to make close() idempotent.
    """
    REGISTERED = "registered"  # Watched by the selector, waiting for data
    READING = "reading"        # Inside recv()
    WRITING = "writing"        # Sending a response
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Unique connection identifier (for logging).
        state: Current connection state.
        requests_handled: Number of reads handed to the handler.
        bytes_sent: Total bytes written to the peer.
    """

    # Required parameters
    socket: socket.socket
    address: Tuple[str, int]

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.REGISTERED
    requests_handled: int = 0
    bytes_sent: int = 0

    def __post_init__(self):
        # Blocking writes: a response is fully sent before we return
        self.socket.setblocking(True)
        # Cached so it stays valid as a registration key after close()
        self._fileno = self.socket.fileno()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def fileno(self) -> int:
        """The socket's file descriptor, also its selector key."""
        return self._fileno

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def client_port(self) -> int:
        """Get the client port."""
        return self.address[1]

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def recv(self, size: int) -> bytes:
        """
        Read at most ``size`` bytes from the socket.

        Returns:
            The bytes read. Empty bytes mean the peer closed its side.

        Raises:
            BlockingIOError: Readiness was spurious, nothing to read.
            OSError: The read failed.
        """
        self.state = ConnectionState.READING
        try:
            return self.socket.recv(size)
        finally:
            if self.state == ConnectionState.READING:
                self.state = ConnectionState.REGISTERED

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Send all of ``data`` to the client.

        Uses sendall() to ensure ALL data is sent. Regular send() might
        only send part of the data if the buffer is full.

        Returns:
            True if send succeeded, False if connection lost.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        finally:
            if self.state == ConnectionState.WRITING:
                self.state = ConnectionState.REGISTERED

        self.bytes_sent += len(data)
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Release the socket. Safe to call more than once.

        The peer has usually closed already (a zero-byte read), so there
        is nothing to drain: close() just returns the descriptor to the OS.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.close()
        except OSError:
            pass  # Already gone

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Connection from {self.client_ip}:{self.client_port} "
            f"closed after {self.requests_handled} requests"
        )
