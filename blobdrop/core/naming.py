"""
Blob naming.

Uploaded file names are untrusted: they can contain path separators,
whitespace, unicode and control characters. Everything outside a small
allowed set is replaced before the name becomes part of a blob key.
"""

import re
import time
from typing import Optional

_DISALLOWED = re.compile(r"[^A-Za-z0-9.\-]")
_WHITESPACE = re.compile(r"\s+")
_UNDERSCORES = re.compile(r"_+")
_SEPARATOR_UNDERSCORES = re.compile(r"_*([.\-])_*")


def sanitize_filename(name: str) -> str:
    """
    Normalize an arbitrary file name into a safe key segment.

    >>> sanitize_filename("My Photo (1).PNG")
    'My_Photo_1.PNG'

    Returns an empty string when nothing allowed is left; callers must
    handle that case (see build_blob_name).
    """
    cleaned = _DISALLOWED.sub("_", name)
    cleaned = _WHITESPACE.sub("_", cleaned)
    cleaned = _UNDERSCORES.sub("_", cleaned)
    # no underscore next to a dot or dash
    cleaned = _SEPARATOR_UNDERSCORES.sub(r"\1", cleaned)
    return cleaned.strip("_")


def current_millis() -> int:
    """Wall clock time in milliseconds."""
    return time.time_ns() // 1_000_000


def build_blob_name(original_name: str, timestamp_ms: Optional[int] = None) -> str:
    """
    Build a unique blob name: ``<timestamp_ms>-<sanitized name>``.

    Falls back to the bare timestamp when the name sanitizes to nothing.
    Two uploads of the same name within one millisecond share a key.
    """
    if timestamp_ms is None:
        timestamp_ms = current_millis()

    safe_name = sanitize_filename(original_name or "")
    if not safe_name:
        return str(timestamp_ms)
    return f"{timestamp_ms}-{safe_name}"
