"""File entity shared by local and remote sync sets."""

import asyncio
import logging
import os
import stat
from pathlib import Path
from typing import Optional, Union

from .exceptions import LocalIOError, PreconditionError
from .utils import normalize_relative_path

logger = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]


class SyncFile:
    """One file addressable by a relative path under a local root.

    The file owns a transient binary ``content`` buffer. ``load_*`` methods
    fill the buffer from a storage medium and ``save_*`` methods write it to
    one, so a transfer is always "load from A, then save to B".

    The base class only knows local storage. ``load_remote`` and
    ``save_remote`` must be provided by a subclass bound to a backend.
    """

    def __init__(self, root: Union[str, Path], relative_path: str):
        """Initialize a sync file.

        Args:
            root: Absolute local root directory
            relative_path: Path of the file under root

        Raises:
            PreconditionError: If relative_path is empty or escapes root
        """
        try:
            self._relative_path = normalize_relative_path(relative_path)
        except ValueError as e:
            raise PreconditionError(str(e)) from e
        self._root = Path(root)
        self._content: Optional[bytearray] = None

    def __repr__(self) -> str:
        loaded = f", {len(self._content)} bytes" if self._content is not None else ""
        return f"{type(self).__name__}({self._relative_path!r}{loaded})"

    @property
    def root(self) -> Path:
        """Local root directory."""
        return self._root

    @property
    def relative_path(self) -> str:
        """POSIX path of the file under root."""
        return self._relative_path

    @property
    def local_path(self) -> Path:
        """Absolute local path of the file."""
        return self._root.joinpath(*self._relative_path.split("/"))

    @property
    def content(self) -> Optional[bytearray]:
        """Loaded content, or None if nothing is loaded."""
        return self._content

    @content.setter
    def content(self, value: Optional[BytesLike]) -> None:
        if value is None:
            self.unload()
            return
        self._replace_content(bytearray(value))

    @property
    def is_loaded(self) -> bool:
        """Whether content is currently held in memory."""
        return self._content is not None

    def exists(self) -> Optional[os.stat_result]:
        """Query the local file.

        Returns:
            The stat result if a regular file exists at local_path,
            None otherwise
        """
        try:
            st = self.local_path.stat()
        except (FileNotFoundError, NotADirectoryError):
            return None
        if not stat.S_ISREG(st.st_mode):
            return None
        return st

    def unload(self) -> None:
        """Zero and release the content buffer. Safe to call repeatedly."""
        if self._content is not None:
            self._content[:] = bytes(len(self._content))
            self._content.clear()
        self._content = None

    def _replace_content(self, buffer: bytearray) -> None:
        """Zero the current buffer and take ownership of buffer."""
        self.unload()
        self._content = buffer

    def _require_content(self) -> bytearray:
        if self._content is None:
            raise PreconditionError(
                f"No content loaded for {self._relative_path}; load before saving"
            )
        return self._content

    def _read_local(self) -> bytearray:
        path = self.local_path
        try:
            with open(path, "rb") as f:
                size = os.fstat(f.fileno()).st_size
                buf = bytearray(size)
                n = f.readinto(buf)
                # The file may have changed size since fstat
                extra = f.read()
            del buf[n:]
            buf += extra
            return buf
        except OSError as e:
            raise LocalIOError(f"Cannot read {path}: {e}", path) from e

    def _write_local(self, data: bytearray) -> None:
        path = self.local_path
        try:
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise LocalIOError(f"Cannot write {path}: {e}", path) from e

    async def load_local(self) -> None:
        """Read the local file into content.

        Raises:
            LocalIOError: If the file is missing, a directory, or unreadable
        """
        data = await asyncio.to_thread(self._read_local)
        self._replace_content(data)
        logger.debug("Loaded %s (%d bytes)", self.local_path, len(data))

    async def save_local(self) -> None:
        """Write content to the local file, replacing any existing file.

        Parent directories are not created.

        Raises:
            PreconditionError: If no content is loaded
            LocalIOError: If the file cannot be written
        """
        data = self._require_content()
        await asyncio.to_thread(self._write_local, data)
        logger.debug("Saved %s (%d bytes)", self.local_path, len(data))

    async def load_remote(self) -> None:
        """Fill content from the remote store (needs to be overridden)."""
        raise NotImplementedError(
            f"{type(self).__name__} has no remote backend; override load_remote"
        )

    async def save_remote(self) -> None:
        """Write content to the remote store (needs to be overridden)."""
        raise NotImplementedError(
            f"{type(self).__name__} has no remote backend; override save_remote"
        )
