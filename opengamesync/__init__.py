"""OpenGameSync - synchronize a local directory tree with a remote file store."""

__version__ = "0.1.0"

from .api import HttpBackend
from .backend import BackendFile, BackendSyncManager, RemoteBackend, RemoteEntry
from .backends import LocalDirectoryBackend
from .engine import SyncDirection, SyncManager, SyncResult
from .exceptions import (
    ConfigError,
    LocalIOError,
    PreconditionError,
    RemoteAuthenticationError,
    RemoteError,
    RemoteInvalidResponseError,
    RemoteNetworkError,
    RemoteNotFoundError,
    RemotePermissionError,
    RemoteRateLimitError,
    SyncBusyError,
    SyncError,
    SyncTransferError,
)
from .files import SyncFile
from .scanner import DirectoryScanner

__all__ = [
    "BackendFile",
    "BackendSyncManager",
    "ConfigError",
    "DirectoryScanner",
    "HttpBackend",
    "LocalDirectoryBackend",
    "LocalIOError",
    "PreconditionError",
    "RemoteAuthenticationError",
    "RemoteBackend",
    "RemoteEntry",
    "RemoteError",
    "RemoteInvalidResponseError",
    "RemoteNetworkError",
    "RemoteNotFoundError",
    "RemotePermissionError",
    "RemoteRateLimitError",
    "SyncBusyError",
    "SyncDirection",
    "SyncError",
    "SyncFile",
    "SyncManager",
    "SyncResult",
    "SyncTransferError",
]
