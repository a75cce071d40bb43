"""
=============================================================================
FILE RESOLUTION
=============================================================================

Maps a request target to a filesystem path and looks it up.

    target "/"             →  <root>/index.html
    target "/css/app.css"  →  <root>/css/app.css
    target "/../secret"    →  <root>/../secret    (see confine_to_root)

The target is appended to the root as-is, with no decoding or
normalization. Whether the result may leave the root is controlled by
``confine_to_root``: off, the path is used verbatim; on, anything whose
real path lies outside the root is reported as missing.

=============================================================================
"""

import os
import logging
from dataclasses import dataclass

from ..http.mime_types import get_content_type, DEFAULT_MIME_TYPE


logger = logging.getLogger(__name__)


@dataclass
class ResolvedFile:
    """
    Result of resolving one request target.

    Attributes:
        path: Absolute filesystem path (root + target).
        exists: Whether stat() succeeded.
        size: File size in bytes (0 when missing).
        content_type: MIME type from the path's extension.
    """

    path: str
    exists: bool
    size: int = 0
    content_type: str = DEFAULT_MIME_TYPE


class FileResolver:
    """
    Resolves request targets against a root directory.

    Usage:
        resolver = FileResolver("/var/www")
        resolved = resolver.resolve("/index.html")
        if resolved.exists:
            ...
    """

    def __init__(
        self,
        root: str,
        index_file: str = "index.html",
        confine_to_root: bool = False,
    ):
        """
        Args:
            root: Directory to serve. Made absolute once, here.
            index_file: Served in place of the target "/".
            confine_to_root: Treat targets escaping the root as missing.
        """
        self.root = os.path.abspath(root)
        self.index_file = index_file
        self.confine_to_root = confine_to_root

    def target_path(self, target: str) -> str:
        """Concatenate root and target, mapping "/" to the index file."""
        if target == "/":
            target = "/" + self.index_file
        return self.root + target

    def resolve(self, target: str) -> ResolvedFile:
        """
        Resolve a target and query the file's metadata.

        Never raises for a bad target: anything stat() cannot handle,
        including paths with embedded NUL bytes, is reported as missing.
        """
        path = self.target_path(target)

        if self.confine_to_root and not self._is_inside_root(path):
            logger.warning(f"Target escapes root: {target!r}")
            return ResolvedFile(path=path, exists=False)

        try:
            stat = os.stat(path)
        except (OSError, ValueError):
            return ResolvedFile(path=path, exists=False)

        return ResolvedFile(
            path=path,
            exists=True,
            size=stat.st_size,
            content_type=get_content_type(path),
        )

    def _is_inside_root(self, path: str) -> bool:
        # realpath() follows symlinks and collapses ".." components
        try:
            real_root = os.path.realpath(self.root)
            real_path = os.path.realpath(path)
            return os.path.commonpath([real_root, real_path]) == real_root
        except ValueError:
            return False
