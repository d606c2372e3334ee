"""Tests for backend-bound files and the backend sync manager."""


from unittest.mock import Mock

import pytest

from opengamesync.backend import BackendFile, BackendSyncManager, RemoteEntry
from opengamesync.backends import LocalDirectoryBackend
from opengamesync.exceptions import (
    PreconditionError,
    RemoteError,
    RemoteNotFoundError,
    SyncTransferError,
)
from opengamesync.scanner import DirectoryScanner

from tests.conftest import MemoryBackend


class TestBackendFile:
    """Test BackendFile remote operations."""

    @pytest.mark.asyncio
    async def test_load_remote_fills_content(self, tmp_path):
        """Test load_remote fetches bytes from the backend."""
        backend = MemoryBackend({"a.sav": b"remote bytes"})
        file = BackendFile(tmp_path, "a.sav", backend)

        await file.load_remote()

        assert file.content == b"remote bytes"
        assert backend.calls == [("fetch", "a.sav")]

    @pytest.mark.asyncio
    async def test_save_remote_stores_content(self, tmp_path):
        """Test save_remote stores bytes on the backend."""
        backend = MemoryBackend()
        file = BackendFile(tmp_path, "dir/a.sav", backend)
        file.content = b"local bytes"

        await file.save_remote()

        assert backend.files == {"dir/a.sav": b"local bytes"}

    @pytest.mark.asyncio
    async def test_save_remote_passes_own_buffer(self, tmp_path):
        """Test the backend receives the buffer that unload zeroes."""
        received = []

        class RecordingBackend(MemoryBackend):
            async def store_remote_bytes(self, path, data):
                received.append(data)
                await super().store_remote_bytes(path, data)

        backend = RecordingBackend()
        file = BackendFile(tmp_path, "a.sav", backend)
        file.content = b"secret"

        await file.save_remote()

        assert received[0] is file.content
        assert backend.files == {"a.sav": b"secret"}
        file.unload()
        assert received[0] == bytearray()

    @pytest.mark.asyncio
    async def test_save_remote_without_content_raises(self, tmp_path):
        """Test save_remote before loading is a precondition error."""
        backend = MemoryBackend()
        with pytest.raises(PreconditionError):
            await BackendFile(tmp_path, "a.sav", backend).save_remote()
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_remote_errors_propagate_unchanged(self, tmp_path):
        """Test backend errors reach the caller as raised."""
        file = BackendFile(tmp_path, "missing.sav", MemoryBackend())
        with pytest.raises(RemoteNotFoundError):
            await file.load_remote()


class TestBackendSyncManager:
    """Test BackendSyncManager with an in-memory backend."""

    def test_default_factory_binds_backend(self, save_dir, memory_backend):
        """Test local files are BackendFiles bound to the backend."""
        manager = BackendSyncManager(save_dir, memory_backend)
        files = manager.fetch_local()
        assert len(files) == 4
        assert all(isinstance(f, BackendFile) for f in files)
        assert all(f.backend is memory_backend for f in files)

    def test_custom_factory(self, save_dir, memory_backend):
        """Test an explicit factory replaces the default one."""

        class TaggedFile(BackendFile):
            pass

        manager = BackendSyncManager(
            save_dir,
            memory_backend,
            file_factory=lambda root, rel: TaggedFile(root, rel, memory_backend),
        )
        assert all(isinstance(f, TaggedFile) for f in manager.fetch_local())

    @pytest.mark.asyncio
    async def test_fetch_remote_lists_backend(self, tmp_path):
        """Test the remote set mirrors the backend listing."""
        backend = MemoryBackend({"x/1.sav": b"1", "2.sav": b"2"})
        manager = BackendSyncManager(tmp_path, backend)

        files = await manager.fetch_remote()

        assert [f.relative_path for f in files] == ["2.sav", "x/1.sav"]
        assert all(f.root == manager.root for f in files)

    @pytest.mark.asyncio
    async def test_round_trip_between_directories(self, save_dir, tmp_path):
        """Test push from one directory and pull into another."""
        backend = MemoryBackend()
        pusher = BackendSyncManager(save_dir, backend)
        pusher.fetch_local()
        await pusher.sync_to_remote()

        target = tmp_path / "restored"
        puller = BackendSyncManager(target, backend)
        await puller.fetch_remote()
        await puller.sync_to_local()

        for path in DirectoryScanner().scan(save_dir):
            assert (target / path).read_bytes() == (save_dir / path).read_bytes()

    @pytest.mark.asyncio
    async def test_sync_to_remote_clears_backend(self, save_dir):
        """Test the backend clear is the first call of sync_to_remote."""
        backend = MemoryBackend({"stale.sav": b"stale"})
        manager = BackendSyncManager(save_dir, backend)
        manager.fetch_local()

        await manager.sync_to_remote()

        assert backend.calls[0] == ("clear",)
        assert "stale.sav" not in backend.files
        assert len(backend.files) == 4

    @pytest.mark.asyncio
    async def test_failed_store_fails_sync(self, save_dir):
        """Test a backend store failure fails the sync."""
        backend = MemoryBackend(fail_store={"slot1/game.sav"})
        manager = BackendSyncManager(save_dir, backend, max_concurrency=2)
        manager.fetch_local()

        with pytest.raises(SyncTransferError) as exc_info:
            await manager.sync_to_remote()

        assert exc_info.value.paths == ["slot1/game.sav"]

    @pytest.mark.asyncio
    async def test_backend_context_manager_closes(self, memory_backend):
        """Test async with closes the backend."""
        async with memory_backend as backend:
            assert backend is memory_backend
        assert memory_backend.closed


class TestLocalDirectoryBackend:
    """Test the directory-backed remote store."""

    def test_creates_directory(self, tmp_path):
        """Test the store directory is created."""
        LocalDirectoryBackend(tmp_path / "remote" / "store")
        assert (tmp_path / "remote" / "store").is_dir()

    def test_name(self, tmp_path):
        """Test the backend name includes the directory."""
        assert str(tmp_path) in LocalDirectoryBackend(tmp_path).name

    @pytest.mark.asyncio
    async def test_list_remote(self, save_dir):
        """Test listing returns every file with its size."""
        entries = await LocalDirectoryBackend(save_dir).list_remote()
        assert [e.path for e in entries] == [
            "profile.dat",
            "slot1/game.sav",
            "slot2/game.sav",
            "slot2/screens/shot.png",
        ]
        assert entries[0] == RemoteEntry(path="profile.dat", size=7)

    @pytest.mark.asyncio
    async def test_list_remote_file_removed_during_listing(self, tmp_path):
        """Test a file vanishing between scan and stat raises RemoteError."""
        backend = LocalDirectoryBackend(tmp_path)
        backend._scanner = Mock(scan=Mock(return_value=["gone.sav"]))

        with pytest.raises(RemoteError, match="gone.sav") as exc_info:
            await backend.list_remote()

        assert isinstance(exc_info.value.__cause__, FileNotFoundError)

    @pytest.mark.asyncio
    async def test_store_and_fetch(self, tmp_path):
        """Test stored bytes can be fetched back."""
        backend = LocalDirectoryBackend(tmp_path)
        await backend.store_remote_bytes("deep/dir/a.sav", b"payload")

        assert (tmp_path / "deep" / "dir" / "a.sav").read_bytes() == b"payload"
        assert await backend.fetch_remote_bytes("deep/dir/a.sav") == b"payload"

    @pytest.mark.asyncio
    async def test_fetch_missing_raises(self, tmp_path):
        """Test fetching a missing file."""
        with pytest.raises(RemoteNotFoundError):
            await LocalDirectoryBackend(tmp_path).fetch_remote_bytes("missing.sav")

    @pytest.mark.asyncio
    async def test_path_escaping_store_raises(self, tmp_path):
        """Test paths outside the store are rejected."""
        backend = LocalDirectoryBackend(tmp_path / "store")
        with pytest.raises(RemoteError):
            await backend.store_remote_bytes("../escape.sav", b"x")
        assert not (tmp_path / "escape.sav").exists()

    @pytest.mark.asyncio
    async def test_clear_remote_keeps_directory(self, save_dir):
        """Test clear removes files and folders but not the store itself."""
        backend = LocalDirectoryBackend(save_dir)

        await backend.clear_remote()

        assert save_dir.is_dir()
        assert list(save_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_sync_through_directory_backend(self, save_dir, tmp_path):
        """Test a full push into a directory store replaces its content."""
        remote = tmp_path / "usb"
        remote.mkdir()
        (remote / "old.sav").write_bytes(b"old")
        backend = LocalDirectoryBackend(remote)
        manager = BackendSyncManager(save_dir, backend)
        manager.fetch_local()

        result = await manager.sync_to_remote()

        assert result.files == 4
        assert not (remote / "old.sav").exists()
        assert DirectoryScanner().scan(remote) == DirectoryScanner().scan(save_dir)
        assert (remote / "slot2" / "screens" / "shot.png").read_bytes() == (
            save_dir / "slot2" / "screens" / "shot.png"
        ).read_bytes()
