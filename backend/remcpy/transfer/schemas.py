"""Wire formats for the transfer endpoints.

The relay speaks plaintext, not JSON:
- parse_identifier: turns the ``@identifier`` path segment into a store key
- format_confirmation: body returned after a successful upload
- INDEX_HTML: static usage page served at ``/``
"""
from remcpy.store.errors import InvalidIdentifier
from remcpy.store.service import IDENTIFIER_MARKER

UPLOAD_FIELD = "file"
DOWNLOAD_MEDIA_TYPE = "application/octet-stream"

INDEX_HTML = """
<!DOCTYPE html>
<html>
<head><title>remcpy - Remote Copy Service</title></head>
<body>
	<h1>remcpy - Remote Copy Service</h1>
	<p>Upload: POST /@{identifier}</p>
	<p>Download: GET /@{identifier}</p>
</body>
</html>"""

# Characters that would escape the flat store directory.
_FORBIDDEN = ("/", "\\", "\x00")


def parse_identifier(segment: str) -> str:
    """Strip the leading ``@`` marker and validate what is left.

    Args:
        segment: Request path without the leading slash, e.g. ``"@report"``.

    Returns:
        The identifier (``"report"``).

    Raises:
        InvalidIdentifier: If the marker is missing, nothing follows it, or the
            identifier contains a path separator or NUL byte.

    Examples:
        >>> parse_identifier("@report")
        'report'
    """
    if not segment.startswith(IDENTIFIER_MARKER) or len(segment) <= len(IDENTIFIER_MARKER):
        raise InvalidIdentifier()
    identifier = segment[len(IDENTIFIER_MARKER):]
    if any(ch in identifier for ch in _FORBIDDEN):
        raise InvalidIdentifier()
    return identifier


def download_path(identifier: str) -> str:
    return f"/{IDENTIFIER_MARKER}{identifier}"


def format_confirmation(filename: str, bytes_written: int, identifier: str) -> str:
    """Build the plaintext body returned for a successful upload."""
    return (
        "Temporary remote copy made successfully.\n"
        f"File: {filename}\n"
        f"Bytes Written: {bytes_written}\n"
        f"Access at: GET {download_path(identifier)}"
    )
