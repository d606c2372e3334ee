"""Remote backend interface and the engine bound to it.

A backend knows one remote storage protocol. It lists entries and fetches,
stores and clears bytes. ``BackendSyncManager`` wires a backend into the
generic engine, so most applications never subclass ``SyncManager``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Callable, Optional, Union

from .engine import SyncManager
from .files import BytesLike, SyncFile
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteEntry:
    """A file listed by a backend."""

    path: str
    """Relative path of the file in the remote store"""

    size: Optional[int] = None
    """File size in bytes, if the backend reports it"""

    updated_at: Optional[str] = None
    """Last modification time (ISO 8601), if the backend reports it"""


class RemoteBackend(ABC):
    """Abstract remote storage backend.

    Implementations raise ``RemoteError`` (or a subclass) for failures.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name."""

    @abstractmethod
    async def list_remote(self) -> list[RemoteEntry]:
        """List every file in the remote store."""

    @abstractmethod
    async def fetch_remote_bytes(self, path: str) -> bytes:
        """Return the content of one remote file.

        Args:
            path: Relative path of the file
        """

    @abstractmethod
    async def store_remote_bytes(self, path: str, data: BytesLike) -> None:
        """Create or replace one remote file.

        ``data`` is the caller's buffer and may be zeroed once this returns,
        so implementations must not keep a reference to it.

        Args:
            path: Relative path of the file
            data: New content
        """

    @abstractmethod
    async def clear_remote(self) -> None:
        """Delete every file in the remote store."""

    async def aclose(self) -> None:
        """Release connections held by the backend."""

    async def __aenter__(self) -> RemoteBackend:
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()


class BackendFile(SyncFile):
    """A sync file whose remote side is a ``RemoteBackend``."""

    def __init__(
        self, root: Union[str, Path], relative_path: str, backend: RemoteBackend
    ):
        super().__init__(root, relative_path)
        self.backend = backend

    async def load_remote(self) -> None:
        data = await self.backend.fetch_remote_bytes(self.relative_path)
        self.content = data
        logger.debug(
            "Fetched %s from %s (%d bytes)",
            self.relative_path,
            self.backend.name,
            len(data),
        )

    async def save_remote(self) -> None:
        data = self._require_content()
        await self.backend.store_remote_bytes(self.relative_path, data)
        logger.debug(
            "Stored %s on %s (%d bytes)",
            self.relative_path,
            self.backend.name,
            len(data),
        )


class BackendSyncManager(SyncManager[BackendFile]):
    """Sync manager whose remote side is a ``RemoteBackend``.

    Examples:
        >>> backend = LocalDirectoryBackend(Path("/mnt/usb/saves"))
        >>> manager = BackendSyncManager(Path("~/.local/share/game"), backend)
        >>> manager.fetch_local()
        >>> await manager.sync_to_remote()
    """

    def __init__(
        self,
        root: Union[str, Path],
        backend: RemoteBackend,
        file_factory: Optional[Callable[[Path, str], BackendFile]] = None,
        max_concurrency: Optional[int] = None,
        scanner: Optional[DirectoryScanner] = None,
        release_content: bool = True,
        progress_callback: Optional[Callable[[BackendFile], None]] = None,
    ):
        """Initialize backend sync manager.

        Args:
            root: Local root directory
            backend: Remote backend
            file_factory: Builds a file from (root, relative_path).
                Defaults to a BackendFile bound to backend.
            max_concurrency: Maximum number of transfers running at once
            scanner: Scanner used by fetch_local
            release_content: Unload each file once its transfer finished
            progress_callback: Called with each file after its transfer
                succeeded
        """
        super().__init__(
            root,
            file_factory=file_factory or self._new_backend_file,
            max_concurrency=max_concurrency,
            scanner=scanner,
            release_content=release_content,
            progress_callback=progress_callback,
        )
        self.backend = backend

    def _new_backend_file(self, root: Path, relative_path: str) -> BackendFile:
        return BackendFile(root, relative_path, self.backend)

    async def _fetch_remote(self) -> None:
        entries = await self.backend.list_remote()
        self._clear_remote_files()
        for entry in entries:
            self._add_remote_file(self._init_local_file(self.root, entry.path))

    async def _clear_remote(self) -> None:
        logger.info("Clearing remote store on %s", self.backend.name)
        await self.backend.clear_remote()
