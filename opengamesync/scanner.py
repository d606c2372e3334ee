"""Directory scanning utilities for sync operations."""

import fnmatch
import logging
from pathlib import Path
from typing import Optional

from .exceptions import LocalIOError

logger = logging.getLogger(__name__)


class DirectoryScanner:
    """Scans directories and lists the regular files below them.

    Results are sorted by relative path so the same tree always yields the
    same order. Directories are descended into but never listed themselves.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> paths = scanner.scan(Path("/games/saves"))

        >>> # With ignore patterns
        >>> scanner = DirectoryScanner(ignore_patterns=["*.tmp", "cache"])
        >>> paths = scanner.scan(Path("/games/saves"))
    """

    def __init__(
        self,
        ignore_patterns: Optional[list[str]] = None,
        exclude_dot_files: bool = False,
    ):
        """Initialize directory scanner.

        Args:
            ignore_patterns: Glob patterns to ignore, matched against both the
                relative path and the name (e.g., ["*.log", "cache/*"])
            exclude_dot_files: Whether to exclude files/folders starting with dot
        """
        self.ignore_patterns = ignore_patterns or []
        self.exclude_dot_files = exclude_dot_files

    def should_ignore(self, relative_path: str) -> bool:
        """Check if a path should be ignored based on patterns.

        Args:
            relative_path: POSIX path relative to the scanned directory

        Returns:
            True if path should be ignored
        """
        name = relative_path.rsplit("/", 1)[-1]
        if self.exclude_dot_files and name.startswith("."):
            return True

        for pattern in self.ignore_patterns:
            if fnmatch.fnmatchcase(relative_path, pattern) or fnmatch.fnmatchcase(
                name, pattern
            ):
                logger.debug("Ignoring %s (pattern %s)", relative_path, pattern)
                return True
        return False

    def scan(self, directory: Path) -> list[str]:
        """Recursively list the regular files under a directory.

        Args:
            directory: Directory to scan

        Returns:
            Sorted list of relative paths using forward slashes

        Raises:
            LocalIOError: If directory does not exist or is not a directory
        """
        if not directory.exists():
            raise LocalIOError(f"Directory does not exist: {directory}", directory)
        if not directory.is_dir():
            raise LocalIOError(f"Path is not a directory: {directory}", directory)

        files = self._scan_dir(directory, directory)
        files.sort()
        logger.debug("Scanned %s: %d file(s)", directory, len(files))
        return files

    def _scan_dir(self, directory: Path, base_path: Path) -> list[str]:
        files: list[str] = []

        try:
            entries = list(directory.iterdir())
        except OSError as e:
            # Unreadable or removed while scanning
            logger.warning("Cannot read directory, skipping %s: %s", directory, e)
            return files

        for item in entries:
            relative_path = item.relative_to(base_path).as_posix()
            if self.should_ignore(relative_path):
                continue

            if item.is_file():
                files.append(relative_path)
            elif item.is_dir() and not item.is_symlink():
                # Symlinked directories are not followed to avoid cycles
                files.extend(self._scan_dir(item, base_path))

        return files
