"""Utility functions for LiveDB."""

import base64
import logging
import math
import mimetypes
import re
import time
from collections.abc import Iterator, Mapping
from typing import Any, Optional

# =============================================================================
# Constants for upload operations
# =============================================================================

# Default chunk size for chunked uploads (512 KB)
DEFAULT_CHUNK_SIZE: int = 512 * 1024

# Files at or above this size go through the chunked upload (5 MB)
SMART_UPLOAD_THRESHOLD: int = 5 * 1024 * 1024

# Default remote folder and device names attached to uploads
DEFAULT_FOLDER_NAME: str = "uploads"
DEFAULT_DEVICE_NAME: str = "python_app"

DEFAULT_MIME_TYPE: str = "application/octet-stream"

# Prefix of every key written to the local response cache
CACHE_KEY_PREFIX: str = "livedb_cache_"

_FOLDER_NAME_PATTERN = re.compile(r"[^a-zA-Z0-9_-]")


# =============================================================================
# Upload helpers
# =============================================================================


def sanitize_folder_name(name: str) -> str:
    """Replace every character the server does not accept in folder names.

    Examples:
        >>> sanitize_folder_name("my photos/2024")
        'my_photos_2024'
        >>> sanitize_folder_name("demo_uploads")
        'demo_uploads'
    """
    return _FOLDER_NAME_PATTERN.sub("_", name)


def generate_file_id() -> str:
    """Generate the identifier that ties the chunks of one upload together.

    Returns:
        String of the form ``"<epoch milliseconds>_<microsecond>"``
    """
    now = time.time()
    millis = int(now * 1000)
    micros = int(now * 1_000_000) % 1_000_000
    return f"{millis}_{micros}"


def detect_mime_type(name: str) -> str:
    """Guess the MIME type of a file from its name.

    Args:
        name: File name or path

    Returns:
        MIME type string (defaults to 'application/octet-stream')
    """
    mime_type, _ = mimetypes.guess_type(name)
    return mime_type or DEFAULT_MIME_TYPE


def to_data_uri(data: bytes, mime_type: str) -> str:
    """Encode bytes as a base64 data URI.

    Examples:
        >>> to_data_uri(b"hi", "text/plain")
        'data:text/plain;base64,aGk='
    """
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def split_chunks(total_size: int, chunk_size: int) -> Iterator[tuple[int, int, int]]:
    """Yield ``(index, start, end)`` slices covering ``total_size`` bytes.

    The last slice may be shorter than ``chunk_size``. A size of zero yields
    nothing.

    Raises:
        ValueError: If chunk_size is not positive

    Examples:
        >>> list(split_chunks(10, 4))
        [(0, 0, 4), (1, 4, 8), (2, 8, 10)]
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    total_chunks = math.ceil(total_size / chunk_size)
    for index in range(total_chunks):
        start = index * chunk_size
        end = min(start + chunk_size, total_size)
        yield index, start, end


# =============================================================================
# Request helpers
# =============================================================================


def _query_value(value: Any) -> str:
    """Render a query value the way httpx encodes it on the wire."""
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return ""
    return str(value)


def build_cache_key(
    path: str, query_parameters: Optional[Mapping[str, Any]] = None
) -> str:
    """Build the local cache key for a GET request.

    Query parameters keep their insertion order. Booleans and None are
    rendered as httpx sends them (true, false and an empty value).

    Examples:
        >>> build_cache_key("/api/db/index/app/users", {"_limit": 5})
        'livedb_cache_/api/db/index/app/users__limit=5'
        >>> build_cache_key("/api/db/index/projects")
        'livedb_cache_/api/db/index/projects_'
    """
    query_string = ""
    if query_parameters:
        query_string = "&".join(
            f"{k}={_query_value(v)}" for k, v in query_parameters.items()
        )
    return f"{CACHE_KEY_PREFIX}{path}_{query_string}"


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


# =============================================================================
# Logging
# =============================================================================

_LOG_HANDLER_NAME = "pylivedb-debug"


def configure_logging(enabled: bool) -> None:
    """Attach (or remove) a debug handler on the ``pylivedb`` logger.

    Calling this repeatedly never stacks handlers.
    """
    package_logger = logging.getLogger("pylivedb")
    existing = [h for h in package_logger.handlers if h.get_name() == _LOG_HANDLER_NAME]

    if not enabled:
        for handler in existing:
            package_logger.removeHandler(handler)
        return

    if existing:
        return

    handler = logging.StreamHandler()
    handler.set_name(_LOG_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG)
