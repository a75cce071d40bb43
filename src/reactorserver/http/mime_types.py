"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps a file path's extension to the Content-Type sent with a 200 response.

=============================================================================
MATCHING RULES
=============================================================================

    ┌────────────────────────────────────────────────────────────────────┐
    │  .html          → text/html                                        │
    │  .jpg / .jpeg   → image/jpeg                                       │
    │  .png           → image/png                                        │
    │  .css           → text/css                                         │
    │  .js            → text/javascript                                  │
    │  anything else  → text/plain                                       │
    └────────────────────────────────────────────────────────────────────┘

The extension is everything after the LAST "." in the whole path, and it
is matched exactly (case-sensitive). So:

    /www/index.html       → ".html"        → text/html
    /www/PHOTO.JPG        → ".JPG"         → text/plain
    /www/v1.2/README      → ".2/README"    → text/plain
    /www/README           → (no ".")       → text/plain

A path with no "." at all is a normal input, not an error.

=============================================================================
"""

from pathlib import Path
from typing import Union


MIME_TYPES = {
    ".html": "text/html",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".css": "text/css",
    ".js": "text/javascript",
}

DEFAULT_MIME_TYPE = "text/plain"


def get_extension(path: Union[str, Path]) -> str:
    """
    Return the suffix after the last "." in the path, dot included.

    Returns an empty string when the path contains no ".".

    Examples:
        >>> get_extension("/srv/www/app.min.js")
        '.js'
        >>> get_extension("README")
        ''
    """
    path = str(path)
    dot = path.rfind(".")
    if dot == -1:
        return ""
    return path[dot:]


def get_content_type(path: Union[str, Path]) -> str:
    """
    Get the Content-Type for a file based on its extension.

    Args:
        path: File path or name.

    Returns:
        The MIME type string, text/plain when the extension is unknown
        or missing.

    Examples:
        >>> get_content_type("style.css")
        'text/css'
        >>> get_content_type("photo.jpeg")
        'image/jpeg'
        >>> get_content_type("README")
        'text/plain'
    """
    return MIME_TYPES.get(get_extension(path), DEFAULT_MIME_TYPE)
