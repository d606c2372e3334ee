"""Shared fixtures for opengamesync tests."""

import asyncio
from pathlib import Path
from typing import Optional

import pytest

from opengamesync.backend import RemoteBackend, RemoteEntry
from opengamesync.exceptions import RemoteError, RemoteNotFoundError
from opengamesync.files import BytesLike


class MemoryBackend(RemoteBackend):
    """In-memory backend recording every call."""

    def __init__(
        self,
        files: Optional[dict[str, bytes]] = None,
        fail_store: Optional[set[str]] = None,
        fail_clear: bool = False,
        delay: float = 0.0,
    ):
        self.files = dict(files or {})
        self.fail_store = fail_store or set()
        self.fail_clear = fail_clear
        self.delay = delay
        self.calls: list[tuple[str, ...]] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "memory"

    async def list_remote(self) -> list[RemoteEntry]:
        self.calls.append(("list",))
        await asyncio.sleep(self.delay)
        return [
            RemoteEntry(path=path, size=len(data))
            for path, data in sorted(self.files.items())
        ]

    async def fetch_remote_bytes(self, path: str) -> bytes:
        self.calls.append(("fetch", path))
        await asyncio.sleep(self.delay)
        if path not in self.files:
            raise RemoteNotFoundError(f"Remote file not found: {path}")
        return self.files[path]

    async def store_remote_bytes(self, path: str, data: BytesLike) -> None:
        self.calls.append(("store", path))
        await asyncio.sleep(self.delay)
        if path in self.fail_store:
            raise RemoteError(f"Store failed for {path}")
        self.files[path] = bytes(data)

    async def clear_remote(self) -> None:
        self.calls.append(("clear",))
        if self.fail_clear:
            raise RemoteError("Clear failed")
        self.files.clear()

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def memory_backend():
    """Provide an empty in-memory backend."""
    return MemoryBackend()


@pytest.fixture
def save_dir(tmp_path: Path) -> Path:
    """Create a local save directory with nested files."""
    root = tmp_path / "saves"
    (root / "slot1").mkdir(parents=True)
    (root / "slot2" / "screens").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "profile.dat").write_bytes(b"profile")
    (root / "slot1" / "game.sav").write_bytes(b"\x00\x01slot1")
    (root / "slot2" / "game.sav").write_bytes(b"\x00\x02slot2")
    (root / "slot2" / "screens" / "shot.png").write_bytes(b"\x89PNG" + bytes(100))
    return root
