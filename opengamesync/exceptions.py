"""Custom exceptions for opengamesync."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .files import SyncFile


class SyncError(Exception):
    """Base exception for all opengamesync errors."""

    pass


class ConfigError(SyncError):
    """Raised when configuration is missing or invalid."""

    pass


class LocalIOError(SyncError):
    """Raised when reading or writing a local file fails."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class PreconditionError(SyncError):
    """Raised when an operation is called in a state it does not support.

    This signals a bug in the caller (for example saving a file whose
    content was never loaded), not a condition to retry.
    """

    pass


class SyncBusyError(PreconditionError):
    """Raised when an engine is used while another operation is running."""

    pass


class RemoteError(SyncError):
    """Base exception for failures reported by a remote backend."""

    pass


class RemoteAuthenticationError(RemoteError):
    """Raised when the backend rejects the credentials."""

    pass


class RemotePermissionError(RemoteError):
    """Raised when the backend denies access to a resource."""

    pass


class RemoteNotFoundError(RemoteError):
    """Raised when a remote file or store does not exist."""

    pass


class RemoteRateLimitError(RemoteError):
    """Raised when the backend rate limit is exceeded."""

    pass


class RemoteNetworkError(RemoteError):
    """Raised when the backend cannot be reached."""

    pass


class RemoteInvalidResponseError(RemoteError):
    """Raised when the backend returns a response that cannot be parsed."""

    pass


class SyncTransferError(SyncError):
    """Raised when one or more transfers of a directional sync failed.

    Attributes:
        failures: ``(file, exception)`` pairs in the order of the source
            collection. Every scheduled transfer has settled by the time
            this is raised.
    """

    def __init__(self, failures: list[tuple[SyncFile, BaseException]]):
        self.failures = failures
        shown = ", ".join(
            f"{file.relative_path} ({type(exc).__name__}: {exc})"
            for file, exc in failures[:3]
        )
        more = len(failures) - 3
        if more > 0:
            shown += f" and {more} more"
        super().__init__(f"{len(failures)} transfer(s) failed: {shown}")

    @property
    def paths(self) -> list[str]:
        """Relative paths of the files that failed."""
        return [file.relative_path for file, _ in self.failures]
