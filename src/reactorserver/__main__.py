"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    # Serve ./public on port 8080
    python -m reactorserver 8080 ./public

    # Localhost only, verbose
    python -m reactorserver 8080 ./public --host 127.0.0.1 --log-level DEBUG

    # JSON access logs, refuse targets that escape the root
    python -m reactorserver 8080 ./public --log-format json --confine

Missing or malformed PORT/ROOT arguments exit with status 2 before any
socket is opened. Startup or runtime failures exit with status 1.

=============================================================================
"""

import argparse
import os
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig, LOG_FORMATS
from .server import HTTPServer


def port_number(value: str) -> int:
    """argparse type: a TCP port in 0-65535."""
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}")
    if not 0 <= port < 65536:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def directory(value: str) -> str:
    """argparse type: an existing directory."""
    if not os.path.isdir(value):
        raise argparse.ArgumentTypeError(f"not a directory: {value!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reactorserver",
        description="Single-threaded, event-driven static file server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m reactorserver 8080 ./public
  python -m reactorserver 8080 ./public --host 127.0.0.1
  python -m reactorserver 8080 ./public --log-format json
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # POSITIONAL ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("port", type=port_number, help="TCP port to listen on")
    parser.add_argument("root", type=directory, help="Directory to serve files from")

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)"
    )

    parser.add_argument(
        "--backlog",
        type=int,
        default=None,
        help="Listen backlog (default: SOMAXCONN)"
    )

    parser.add_argument(
        "--buffer-size",
        type=int,
        default=2048,
        help="Bytes read per event and per file chunk (default: 2048)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILE SERVING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--confine",
        action="store_true",
        help="Answer 404 for targets that resolve outside ROOT"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default="text",
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"reactorserver {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Translate parsed CLI arguments to a ServerConfig."""
    config = ServerConfig(
        host=args.host,
        port=args.port,
        root=args.root,
        buffer_size=args.buffer_size,
        confine_to_root=args.confine,
        log_level=args.log_level,
        log_format=args.log_format,
    )
    if args.backlog is not None:
        config.backlog = args.backlog
    return config


def main(argv: Optional[List[str]] = None):
    """
    Main CLI entry point.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        server = HTTPServer(config_from_args(args))
    except ValueError as e:
        parser.error(str(e))

    try:
        server.run()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
