"""
Folder and file naming helpers for Google Drive objects
"""

import re
import time
from typing import Optional

MAX_NAME_LENGTH = 200

# Characters Drive accepts but that break paths when trees are synced to disk
_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|]')


def sanitize_name(value: Optional[str]) -> str:
    """
    Strip unsafe path characters, trim and cap a Drive object name.

    Args:
        value: Raw name supplied by a caller

    Returns:
        The cleaned name, possibly empty. Callers treat an empty result as a
        validation failure rather than substituting a default.
    """
    if not value:
        return ""
    cleaned = _UNSAFE_CHARS.sub("", str(value)).strip()
    # Trim again after truncation so that sanitize(sanitize(x)) == sanitize(x)
    return cleaned[:MAX_NAME_LENGTH].strip()


def build_stored_name(
    original_name: str,
    prefix: Optional[str] = None,
    timestamp_ms: Optional[int] = None
) -> str:
    """
    Build the name an uploaded file is stored under: [prefix_]timestamp_name

    Args:
        original_name: Client-side filename
        prefix: Optional label such as a document type
        timestamp_ms: Epoch milliseconds, defaults to now

    Returns:
        Sanitized stored name, or an empty string if the original name has
        nothing usable left after sanitization
    """
    safe_original = sanitize_name(original_name)
    if not safe_original:
        return ""

    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)

    parts = []
    safe_prefix = sanitize_name(prefix)
    if safe_prefix:
        parts.append(safe_prefix)
    parts.append(str(timestamp_ms))
    parts.append(safe_original)
    return sanitize_name("_".join(parts))
