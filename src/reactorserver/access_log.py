"""
=============================================================================
ACCESS LOGGING
=============================================================================

One log line per request, written to the "reactorserver.access" logger.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT FORMAT (default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [18/Oct/2026:10:55:36 +0000] "GET /" 200 1234 0.41ms │
    │ ───────────────────────────────────────────────────────────────────│
    │ IP          Timestamp          Request       Status Size Duration  │
    └─────────────────────────────────────────────────────────────────────┘

    JSON FORMAT (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"connection_id": "a1b2c3d4", "method": "GET", "target": "/",     │
    │  "client_ip": "127.0.0.1", "status_code": 200, ...}               │
    └─────────────────────────────────────────────────────────────────────┘

Access logging only observes. It never changes what goes on the wire.

=============================================================================
"""

import time
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .core.connection import Connection


# ═══════════════════════════════════════════════════════════════════════════
# LOGGER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════
# A namespaced logger so access lines can be routed or silenced on their own:
#   logging.getLogger("reactorserver.access").setLevel(logging.WARNING)
# ═══════════════════════════════════════════════════════════════════════════

logger = logging.getLogger("reactorserver.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one request.

    method and target are "-" when the request line could not be parsed.
    """

    connection_id: str
    method: str
    target: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "connection_id": self.connection_id,
            "method": self.method,
            "target": self.target,
            "client_ip": self.client_ip,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        """Format as an Apache-style access line."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLogger:
    """
    Emits one RequestLog per handled request.

    Usage:
        access = AccessLogger(log_format="json")
        start = time.perf_counter()
        ...
        access.log(conn, "GET", "/index.html", 200, 1234, start)
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        """
        Args:
            log_format: "text" (human readable) or "json" (machine parseable).
            log_level: Level access lines are emitted at.
        """
        self.log_format = log_format
        self.log_level = log_level

    def log(
        self,
        conn: Connection,
        method: Optional[str],
        target: Optional[str],
        status_code: int,
        content_length: int,
        start_time: float,
    ) -> RequestLog:
        """
        Build and emit the entry for a finished request.

        Args:
            conn: Connection the request arrived on.
            method: Parsed method, or None if parsing failed.
            target: Parsed target, or None if parsing failed.
            status_code: Status sent to the client.
            content_length: Body bytes announced in Content-Length.
            start_time: time.perf_counter() value taken before handling.

        Returns:
            The RequestLog that was emitted.
        """
        entry = RequestLog(
            connection_id=conn.id,
            method=method or "-",
            target=target or "-",
            client_ip=conn.client_ip,
            status_code=status_code,
            content_length=content_length,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            timestamp=datetime.now(timezone.utc).strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if logger.isEnabledFor(self.log_level):
            if self.log_format == "json":
                logger.log(self.log_level, json.dumps(entry.to_dict()))
            else:
                logger.log(self.log_level, entry.to_text())

        return entry
