"""
=============================================================================
LISTENING SOCKET
=============================================================================

Creates the one TCP socket the server listens on. The event loop watches
it for read-readiness, which for a listening socket means "a connection
is waiting to be accepted".

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a socket file descriptor
    2. bind()      Associate the socket with an IP:PORT
    3. listen()    Mark socket as a "listening" socket
                   └─ backlog = max queue size before refusing
    4. accept()    Done by the event loop, once per readiness event
    5. close()     Done by the server at shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    │   (non-blocking)      │     Registered with selector
                    └───────────┬───────────┘
                                │  accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Client 1  │         │ Client 2  │         │ Client 3  │
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
WHY NON-BLOCKING?
=============================================================================

Readiness is a hint, not a promise. Between select() reporting the socket
readable and our accept() call, the client may have given up (RST), and
the kernel drops it from the queue. On a blocking socket accept() would
then hang the whole server. Non-blocking, it raises BlockingIOError and
the loop simply moves on.

=============================================================================
"""

import socket
import logging

from ..config import ServerConfig


logger = logging.getLogger(__name__)


def create_listen_socket(config: ServerConfig) -> socket.socket:
    """
    Create, bind and start listening on the server socket.

    Args:
        config: Server configuration (host, port, backlog).

    Returns:
        A non-blocking listening socket.

    Raises:
        OSError: If the socket cannot be created, bound or put in
                 listening mode. These are fatal for the process.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

    try:
        # SO_REUSEADDR: Allow reuse of local addresses
        # Avoids "Address already in use" while old sockets sit in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # TCP_NODELAY: Disable Nagle's algorithm. Accepted sockets inherit
        # it, so a short header write goes out without waiting for the body.
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        try:
            sock.bind((config.host, config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {config.host}:{config.port}: {e}")
            raise

        sock.listen(config.backlog)
        sock.setblocking(False)
    except OSError:
        sock.close()
        raise

    host, port = sock.getsockname()[:2]
    logger.info(f"Listening on {host}:{port}")
    return sock
