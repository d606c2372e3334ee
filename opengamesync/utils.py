"""Utility functions for opengamesync."""

import os
from pathlib import PurePosixPath
from typing import Optional

# =============================================================================
# Constants for remote operations
# =============================================================================

DEFAULT_API_URL: str = "https://api.opengamesync.dev/v1"

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds

# Request timeout for the HTTP backend
DEFAULT_TIMEOUT: float = 30.0  # seconds


# =============================================================================
# Path utilities
# =============================================================================


def normalize_relative_path(
    path: str, backslash_separators: Optional[bool] = None
) -> str:
    """Normalize a file path relative to a sync root.

    Leading slashes and ``.`` components are removed. Backslashes are
    converted to forward slashes only where they separate path components;
    on POSIX a backslash is an ordinary filename character.

    Args:
        path: Relative path as produced by a scan or a remote listing
        backslash_separators: Treat backslashes as separators
            (default: only when the platform separator is a backslash)

    Returns:
        POSIX-style relative path

    Raises:
        ValueError: If the path is empty or escapes the root

    Examples:
        >>> normalize_relative_path("saves\\\\slot1.sav", backslash_separators=True)
        'saves/slot1.sav'
        >>> normalize_relative_path("/profile.dat")
        'profile.dat'
    """
    if backslash_separators is None:
        backslash_separators = os.sep == "\\"
    if backslash_separators:
        path = path.replace("\\", "/")

    parts = [
        part
        for part in PurePosixPath(path.lstrip("/")).parts
        if part != "."
    ]
    if not parts:
        raise ValueError(f"Empty relative path: {path!r}")
    if ".." in parts:
        raise ValueError(f"Relative path escapes the sync root: {path!r}")
    return "/".join(parts)


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
