"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The low-level networking infrastructure: the listening socket, the
single-threaded event loop, and the per-client connection wrapper.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        LISTENING SOCKET                              │
    │  • Bound to IP:PORT, non-blocking                                   │
    │  • Reported "readable" when a client is waiting to be accepted      │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          EVENT LOOP                                  │
    │  • Owns the selector (epoll) and the connection table               │
    │  • select() → accept new clients / service readable clients         │
    │  • One thread, no locks                                             │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  • Wraps an accepted client socket                                  │
    │  • recv() one chunk, send() everything, close() once                │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import create_listen_socket
from .connection import Connection, ConnectionState
from .event_loop import EventLoop, ReactorError, ConnectionHandler

__all__ = [
    "create_listen_socket",  # Bound, listening, non-blocking server socket
    "Connection",            # Wrapper for client socket - handles I/O
    "ConnectionState",       # Enum for connection lifecycle states
    "EventLoop",             # The reactor
    "ReactorError",          # Fatal multiplexer failure
    "ConnectionHandler",     # Handler callable signature
]
