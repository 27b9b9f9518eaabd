"""Tests for LocalBlobStore — filesystem blobs with metadata sidecars."""

import os
from datetime import datetime, timezone

import pytest

from healthhub.errors import PersistenceError
from healthhub.persistence.blobs import LocalBlobStore


@pytest.fixture
def store(tmp_path):
    return LocalBlobStore(str(tmp_path / "storage"))


class TestLocalBlobStore:
    @pytest.mark.asyncio
    async def test_put_blob_writes_file_and_metadata(self, store, tmp_path):
        info = await store.put_blob(
            "backups/HealthHub/2024-06-01-healthhub-data.json",
            b'{"ok": true}',
            metadata={"type": "automatic"},
        )

        file_path = tmp_path / "storage" / "backups" / "HealthHub" / "2024-06-01-healthhub-data.json"
        assert file_path.read_bytes() == b'{"ok": true}'
        assert info.size_bytes == len(b'{"ok": true}')
        assert info.metadata == {"type": "automatic"}
        assert info.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_list_blobs_filters_prefix_and_hides_sidecars(self, store):
        await store.put_blob("backups/HealthHub/a.json", b"1")
        await store.put_blob("backups/HealthHub/b.json", b"2")
        await store.put_blob("drive/folder/c.json", b"3")

        blobs = await store.list_blobs("backups/HealthHub/")

        assert [blob.path for blob in blobs] == ["backups/HealthHub/a.json", "backups/HealthHub/b.json"]

    @pytest.mark.asyncio
    async def test_list_blobs_on_missing_root(self, tmp_path):
        store = LocalBlobStore(str(tmp_path / "nowhere"))
        assert await store.list_blobs("backups/") == []

    @pytest.mark.asyncio
    async def test_created_at_falls_back_to_mtime(self, store, tmp_path):
        await store.put_blob("backups/HealthHub/a.json", b"1")
        file_path = tmp_path / "storage" / "backups" / "HealthHub" / "a.json"
        os.remove(str(file_path) + ".meta.json")
        stamp = datetime(2023, 1, 1, tzinfo=timezone.utc).timestamp()
        os.utime(file_path, (stamp, stamp))

        blobs = await store.list_blobs("backups/")

        assert blobs[0].created_at == datetime(2023, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_delete_blob_removes_sidecar(self, store, tmp_path):
        await store.put_blob("backups/HealthHub/a.json", b"1")
        await store.delete_blob("backups/HealthHub/a.json")

        assert await store.list_blobs("backups/") == []
        assert not (tmp_path / "storage" / "backups" / "HealthHub" / "a.json.meta.json").exists()

    @pytest.mark.asyncio
    async def test_delete_missing_blob_raises(self, store):
        with pytest.raises(PersistenceError):
            await store.delete_blob("backups/HealthHub/missing.json")

    @pytest.mark.asyncio
    async def test_parent_segments_rejected(self, store):
        with pytest.raises(ValueError):
            await store.put_blob("backups/../escape.json", b"x")
