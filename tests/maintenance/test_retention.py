"""Tests for RetentionManager and ScheduledBackupJob."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from healthhub.errors import UploadFailure
from healthhub.layout.repository import LayoutRepository
from healthhub.maintenance.backup import BackupBuilder
from healthhub.maintenance.retention import RetentionManager, ScheduledBackupJob
from healthhub.schemas import CardLayout
from healthhub.textcards.store import TextCardStore
from healthhub.users import UserDirectory

NOW = datetime(2024, 6, 1, 3, 0, tzinfo=timezone.utc)
PREFIX = "backups/HealthHub/"


def _make_config(retention_days=90, project="HealthHub"):
    """Create a mock config with backup retention settings."""
    config = MagicMock()
    config.backup_retention_days = retention_days
    config.backup_project_name = project
    return config


def _seed_blob(gateway, days_old, name=None):
    created = NOW - timedelta(days=days_old)
    path = f"{PREFIX}{name or created.date().isoformat()}-healthhub-data.json"
    gateway.add_blob(path, created)
    return path


class TestCleanupOldBackups:
    @pytest.mark.asyncio
    async def test_deletes_old_when_recent_exists(self, gateway):
        old = [_seed_blob(gateway, 120), _seed_blob(gateway, 95)]
        recent = _seed_blob(gateway, 1)

        manager = RetentionManager(gateway, _make_config())
        summary = await manager.cleanup_old_backups(now=NOW)

        assert summary["found"] == 3
        assert summary["recent"] == 1
        assert summary["old"] == 2
        assert summary["deleted"] == 2
        assert summary["skipped_reason"] is None
        assert recent in gateway.blobs
        assert all(path not in gateway.blobs for path in old)

    @pytest.mark.asyncio
    async def test_safety_rule_keeps_everything_without_recent_backup(self, gateway):
        """Five stale blobs and no recent one: nothing is deleted."""
        paths = [_seed_blob(gateway, 100 + day) for day in range(5)]

        manager = RetentionManager(gateway, _make_config())
        summary = await manager.cleanup_old_backups(now=NOW)

        assert summary["deleted"] == 0
        assert summary["old"] == 5
        assert summary["skipped_reason"] == "no_recent_backups"
        assert all(path in gateway.blobs for path in paths)
        assert gateway.writes == []

    @pytest.mark.asyncio
    async def test_no_backups(self, gateway):
        manager = RetentionManager(gateway, _make_config())
        summary = await manager.cleanup_old_backups(now=NOW)
        assert summary["found"] == 0
        assert summary["skipped_reason"] == "no_backups"

    @pytest.mark.asyncio
    async def test_individual_delete_failure_does_not_stop_the_pass(self, gateway):
        _seed_blob(gateway, 1)
        failing = _seed_blob(gateway, 200, name="2023-11-14")
        deleted = _seed_blob(gateway, 150, name="2024-01-03")
        gateway.fail("delete_blob", failing)

        manager = RetentionManager(gateway, _make_config())
        summary = await manager.cleanup_old_backups(now=NOW)

        assert summary["failed"] == 1
        assert summary["deleted"] == 1
        assert failing in gateway.blobs
        assert deleted not in gateway.blobs

    @pytest.mark.asyncio
    async def test_only_lists_the_project_prefix(self, gateway):
        gateway.add_blob("backups/Other/2020-01-01-healthhub-data.json", NOW - timedelta(days=900))
        _seed_blob(gateway, 1)

        manager = RetentionManager(gateway, _make_config())
        summary = await manager.cleanup_old_backups(now=NOW)

        assert summary["found"] == 1
        assert "backups/Other/2020-01-01-healthhub-data.json" in gateway.blobs

    @pytest.mark.asyncio
    async def test_custom_retention_window(self, gateway):
        _seed_blob(gateway, 1)
        old = _seed_blob(gateway, 10)

        manager = RetentionManager(gateway, _make_config(retention_days=7))
        await manager.cleanup_old_backups(now=NOW)

        assert old not in gateway.blobs


class TestScheduledBackupJob:
    def _job(self, gateway):
        layouts = LayoutRepository(gateway)
        text_cards = TextCardStore(gateway)
        builder = BackupBuilder(gateway, layouts, text_cards)
        return ScheduledBackupJob(gateway, builder, UserDirectory(gateway), _make_config()), layouts

    @pytest.mark.asyncio
    async def test_uploads_one_blob_for_all_users(self, gateway, admin_user, viewer_user):
        job, layouts = self._job(gateway)
        users = UserDirectory(gateway)
        await users.register(admin_user)
        await users.register(viewer_user)
        await layouts.save_page(admin_user.user_id, "dashboard", [CardLayout(id="readiness", order=0, size="large")])

        result = await job.run(now=NOW)

        assert result["path"] == f"{PREFIX}2024-06-01-healthhub-data.json"
        assert result["users"] == 2
        data, _ = gateway.blobs[result["path"]]
        payload = json.loads(data)
        assert payload["metadata"]["totalUsers"] == 2
        assert payload["metadata"]["backupDate"] == "2024-06-01"
        assert {backup["userId"] for backup in payload["backups"]} == {"admin-1", "viewer-1"}
        assert result["cleanup"]["recent"] == 1

    @pytest.mark.asyncio
    async def test_upload_failure_raises_and_skips_cleanup(self, gateway):
        job, _ = self._job(gateway)
        stale = _seed_blob(gateway, 200)
        _seed_blob(gateway, 2)
        gateway.fail("put_blob", PREFIX)

        with pytest.raises(UploadFailure):
            await job.run(now=NOW)
        assert stale in gateway.blobs

    @pytest.mark.asyncio
    async def test_one_unreadable_user_does_not_stop_the_others(self, gateway, admin_user, viewer_user):
        """A corrupt preset for one user skips that user; everyone else is still backed up."""
        job, layouts = self._job(gateway)
        users = UserDirectory(gateway)
        await users.register(admin_user)
        await users.register(viewer_user)
        gateway.documents["layouts/viewer-1/presets/preset-1"] = {
            "name": "Broken",
            "layouts": [{"id": "readiness", "order": -3}],
        }

        result = await job.run(now=NOW)

        assert result["users"] == 1
        assert result["failed"] == ["viewer-1"]
        payload = json.loads(gateway.blobs[result["path"]][0])
        assert [backup["userId"] for backup in payload["backups"]] == ["admin-1"]
        assert payload["metadata"]["failedUsers"] == ["viewer-1"]

    @pytest.mark.asyncio
    async def test_store_failure_for_one_user_is_reported(self, gateway, admin_user, viewer_user):
        job, _ = self._job(gateway)
        users = UserDirectory(gateway)
        await users.register(admin_user)
        await users.register(viewer_user)
        gateway.fail("get_document", "layouts/admin-1/")

        result = await job.run(now=NOW)

        assert result["failed"] == ["admin-1"]
        assert result["users"] == 1
