"""Core sync engine for executing sync operations.

The engine keeps two independent snapshots, the local set and the remote
set. ``fetch_local`` and ``fetch_remote`` rebuild them; the directional syncs
never refresh them, so callers must fetch before syncing.

Each directional sync starts one task per file of the source set at once and
waits for all of them. There is no ordering between files. Concurrency is
unbounded unless ``max_concurrency`` is given.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Generic, Optional, TypeVar, Union, cast

from .exceptions import LocalIOError, SyncBusyError, SyncTransferError
from .files import SyncFile
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SyncFile)

FileFactory = Callable[[Path, str], T]


class SyncDirection(str, Enum):
    """Direction of a sync operation."""

    TO_REMOTE = "to_remote"
    TO_LOCAL = "to_local"


@dataclass
class SyncResult:
    """Statistics of a completed directional sync."""

    direction: SyncDirection
    files: int
    bytes_transferred: int
    elapsed: float


class SyncManager(Generic[T]):
    """Manages the local and remote file sets of one sync root.

    Remote access is left to subclasses: override ``_fetch_remote`` to fill
    the remote set (with ``_clear_remote_files`` and ``_add_remote_file``) and
    ``_clear_remote`` to empty the remote store. File subclasses provide
    ``load_remote`` and ``save_remote``.

    An instance must not run two operations at the same time; doing so
    raises ``SyncBusyError``. Separate instances share no state.
    """

    def __init__(
        self,
        root: Union[str, Path],
        file_factory: Optional[FileFactory[T]] = None,
        max_concurrency: Optional[int] = None,
        scanner: Optional[DirectoryScanner] = None,
        release_content: bool = True,
        progress_callback: Optional[Callable[[T], None]] = None,
    ):
        """Initialize sync manager.

        Args:
            root: Local root directory
            file_factory: Builds a file from (root, relative_path).
                Defaults to SyncFile.
            max_concurrency: Maximum number of transfers running at once
                (default: unbounded)
            scanner: Scanner used by fetch_local (default: scans everything)
            release_content: Unload each file once its transfer finished
            progress_callback: Called with each file after its transfer
                succeeded; exceptions it raises are logged and ignored
        """
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self._root = Path(root).expanduser().resolve()
        self._file_factory = file_factory
        self.max_concurrency = max_concurrency
        self.scanner = scanner or DirectoryScanner()
        self.release_content = release_content
        self.progress_callback = progress_callback

        self._local_files: list[T] = []
        self._remote_files: list[T] = []
        self._staged_remote: Optional[list[T]] = None
        self._running: Optional[str] = None

    @property
    def root(self) -> Path:
        """Absolute local root directory."""
        return self._root

    @property
    def local_files(self) -> tuple[T, ...]:
        """Files found by the last fetch_local."""
        return tuple(self._local_files)

    @property
    def remote_files(self) -> tuple[T, ...]:
        """Files found by the last fetch_remote."""
        return tuple(self._remote_files)

    @property
    def busy(self) -> bool:
        """Whether an operation is in progress."""
        return self._running is not None

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        if self._running is not None:
            raise SyncBusyError(
                f"Cannot run {name} while {self._running} is in progress"
            )
        self._running = name
        try:
            yield
        finally:
            self._running = None

    # =========================
    # Enumeration
    # =========================

    def fetch_local(self) -> tuple[T, ...]:
        """Rebuild the local set from the files under root.

        Returns:
            The new local set

        Raises:
            LocalIOError: If root is missing or not a directory
        """
        with self._operation("fetch_local"):
            paths = self.scanner.scan(self._root)
            self._local_files = [
                self._init_local_file(self._root, path) for path in paths
            ]
        logger.debug("Local set of %s: %d file(s)", self._root, len(paths))
        return self.local_files

    async def fetch_remote(self) -> tuple[T, ...]:
        """Rebuild the remote set from the remote store.

        The previous set is kept if the listing fails.

        Returns:
            The new remote set
        """
        with self._operation("fetch_remote"):
            self._staged_remote = []
            try:
                await self._fetch_remote()
                self._remote_files = self._staged_remote
            finally:
                self._staged_remote = None
        logger.debug("Remote set: %d file(s)", len(self._remote_files))
        return self.remote_files

    def _init_local_file(self, root: Path, relative_path: str) -> T:
        """Create a file for a path found under root.

        Override this, or pass file_factory, when the file class needs more
        than (root, relative_path) to be constructed.
        """
        if self._file_factory is not None:
            return self._file_factory(root, relative_path)
        return cast(T, SyncFile(root, relative_path))

    def _clear_remote_files(self) -> None:
        """Empty the remote set."""
        if self._staged_remote is not None:
            self._staged_remote.clear()
        else:
            self._remote_files.clear()

    def _add_remote_file(self, file: T) -> None:
        """Add a file to the remote set."""
        if self._staged_remote is not None:
            self._staged_remote.append(file)
        else:
            self._remote_files.append(file)

    async def _fetch_remote(self) -> None:
        """List the remote store into the remote set (needs to be overridden)."""
        raise NotImplementedError(
            f"{type(self).__name__} has no remote backend; override _fetch_remote"
        )

    async def _clear_remote(self) -> None:
        """Delete every file in the remote store (needs to be overridden)."""
        raise NotImplementedError(
            f"{type(self).__name__} has no remote backend; override _clear_remote"
        )

    # =========================
    # Directional sync
    # =========================

    async def sync_to_remote(self) -> SyncResult:
        """Replace the remote store with the local set.

        The remote store is cleared first, so remote files that are not in
        the local set are deleted. Call fetch_local before this method.

        Returns:
            Sync statistics

        Raises:
            SyncTransferError: If any upload failed, after all have settled
        """
        with self._operation("sync_to_remote"):
            logger.info(
                "Syncing %d local file(s) to remote", len(self._local_files)
            )
            await self._clear_remote()
            return await self._run_transfers(
                list(self._local_files),
                self._upload_to_remote,
                SyncDirection.TO_REMOTE,
            )

    async def sync_to_local(self) -> SyncResult:
        """Write every file of the remote set to local storage.

        Call fetch_remote before this method.

        Returns:
            Sync statistics

        Raises:
            SyncTransferError: If any download failed, after all have settled
        """
        with self._operation("sync_to_local"):
            logger.info(
                "Syncing %d remote file(s) to %s",
                len(self._remote_files),
                self._root,
            )
            return await self._run_transfers(
                list(self._remote_files),
                self._download_to_local,
                SyncDirection.TO_LOCAL,
            )

    async def _upload_to_remote(self, file: T) -> int:
        """Upload a file from local to remote."""
        try:
            await file.load_local()
            size = len(file.content) if file.content is not None else 0
            await file.save_remote()
        finally:
            if self.release_content:
                file.unload()
        return size

    async def _download_to_local(self, file: T) -> int:
        """Download a file from remote to local."""
        try:
            await file.load_remote()
            size = len(file.content) if file.content is not None else 0
            await asyncio.to_thread(self._ensure_parent, file)
            await file.save_local()
        finally:
            if self.release_content:
                file.unload()
        return size

    @staticmethod
    def _ensure_parent(file: SyncFile) -> None:
        parent = file.local_path.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LocalIOError(f"Cannot create directory {parent}: {e}", parent) from e

    async def _run_transfers(
        self,
        files: list[T],
        transfer: Callable[[T], Awaitable[int]],
        direction: SyncDirection,
    ) -> SyncResult:
        """Run one transfer task per file and wait for all of them.

        Args:
            files: Files to transfer
            transfer: Coroutine function doing load-then-save for one file
            direction: Direction for the result

        Returns:
            Sync statistics

        Raises:
            SyncTransferError: If any transfer failed
        """
        start = time.monotonic()
        semaphore = (
            asyncio.Semaphore(self.max_concurrency)
            if self.max_concurrency is not None
            else None
        )

        async def run_one(file: T) -> int:
            if semaphore is None:
                size = await transfer(file)
            else:
                async with semaphore:
                    size = await transfer(file)
            logger.debug("Transferred %s (%d bytes)", file.relative_path, size)
            if self.progress_callback is not None:
                try:
                    self.progress_callback(file)
                except Exception as e:
                    # The transfer itself succeeded
                    logger.warning(
                        "Progress callback failed for %s: %s", file.relative_path, e
                    )
            return size

        tasks = [asyncio.ensure_future(run_one(file)) for file in files]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        failures: list[tuple[SyncFile, BaseException]] = []
        transferred = 0
        for file, result in zip(files, results):
            if isinstance(result, BaseException):
                logger.error("Error syncing %s: %s", file.relative_path, result)
                failures.append((file, result))
            else:
                transferred += result

        elapsed = time.monotonic() - start
        if failures:
            raise SyncTransferError(failures)

        logger.info(
            "Synced %d file(s) %s in %.2fs", len(files), direction.value, elapsed
        )
        return SyncResult(
            direction=direction,
            files=len(files),
            bytes_transferred=transferred,
            elapsed=elapsed,
        )
