"""Filesystem backend: a directory acting as the remote store.

Useful for USB drives, NAS mounts or any directory another tool replicates.
"""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Union

from .backend import RemoteBackend, RemoteEntry
from .exceptions import LocalIOError, RemoteError, RemoteNotFoundError
from .files import BytesLike
from .scanner import DirectoryScanner
from .utils import normalize_relative_path

logger = logging.getLogger(__name__)


class LocalDirectoryBackend(RemoteBackend):
    """Remote store kept in a local directory."""

    def __init__(self, directory: Union[str, Path]):
        """Initialize the backend, creating the directory if needed.

        Args:
            directory: Directory holding the remote files
        """
        self.directory = Path(directory).expanduser()
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RemoteError(f"Cannot create {self.directory}: {e}") from e
        self._scanner = DirectoryScanner()

    @property
    def name(self) -> str:
        return f"local:{self.directory}"

    def _path(self, path: str) -> Path:
        try:
            relative_path = normalize_relative_path(path)
        except ValueError as e:
            raise RemoteError(str(e)) from e
        return self.directory.joinpath(*relative_path.split("/"))

    def _list(self) -> list[RemoteEntry]:
        try:
            paths = self._scanner.scan(self.directory)
        except LocalIOError as e:
            raise RemoteError(str(e)) from e
        entries = []
        for path in paths:
            try:
                st = self.directory.joinpath(*path.split("/")).stat()
            except OSError as e:
                raise RemoteError(f"Cannot stat remote file {path}: {e}") from e
            entries.append(RemoteEntry(path=path, size=st.st_size))
        return entries

    def _read(self, path: str) -> bytes:
        target = self._path(path)
        try:
            return target.read_bytes()
        except FileNotFoundError as e:
            raise RemoteNotFoundError(f"Remote file not found: {path}") from e
        except OSError as e:
            raise RemoteError(f"Cannot read remote file {path}: {e}") from e

    def _write(self, path: str, data: BytesLike) -> None:
        target = self._path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise RemoteError(f"Cannot write remote file {path}: {e}") from e

    def _clear(self) -> None:
        try:
            for item in self.directory.iterdir():
                if item.is_dir() and not item.is_symlink():
                    shutil.rmtree(item)
                else:
                    item.unlink()
        except OSError as e:
            raise RemoteError(f"Cannot clear {self.directory}: {e}") from e

    async def list_remote(self) -> list[RemoteEntry]:
        return await asyncio.to_thread(self._list)

    async def fetch_remote_bytes(self, path: str) -> bytes:
        return await asyncio.to_thread(self._read, path)

    async def store_remote_bytes(self, path: str, data: BytesLike) -> None:
        await asyncio.to_thread(self._write, path, data)

    async def clear_remote(self) -> None:
        await asyncio.to_thread(self._clear)
        logger.debug("Cleared %s", self.directory)
