"""
=============================================================================
REQUEST HANDLERS
=============================================================================

    files.py    Target → filesystem path, stat(), content type
    static.py   The connection handler: parse, resolve, respond

=============================================================================
"""

from .files import FileResolver, ResolvedFile
from .static import StaticFileHandler

__all__ = [
    "FileResolver",
    "ResolvedFile",
    "StaticFileHandler",
]
