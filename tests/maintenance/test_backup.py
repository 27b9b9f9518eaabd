"""Tests for BackupBuilder — snapshots, stats, serialization and upload."""

import json
import re

import pytest

from healthhub.errors import PersistenceError, UploadFailure
from healthhub.layout.repository import LayoutRepository
from healthhub.maintenance.backup import (
    BACKUP_VERSION,
    BackupBuilder,
    backup_filename,
    get_backup_stats,
    scheduled_backup_path,
    serialize_backup,
)
from healthhub.maintenance.validator import validate_backup
from healthhub.schemas import CardLayout, TextCardInput
from healthhub.textcards.store import TextCardStore


@pytest.fixture
def layouts(gateway):
    return LayoutRepository(gateway)


@pytest.fixture
def text_cards(gateway):
    return TextCardStore(gateway)


@pytest.fixture
def builder(gateway, layouts, text_cards):
    return BackupBuilder(gateway, layouts, text_cards)


async def _seed(layouts, text_cards, user_id="u1"):
    await layouts.save_page(user_id, "dashboard", [
        CardLayout(id="readiness", order=0, size="large"),
        CardLayout(id="text-card-1", order=1),
    ])
    await text_cards.save_text_card(user_id, "text-card-1", TextCardInput(title="Notes"))
    await text_cards.save_text_card(user_id, "text-card-2", TextCardInput(title="Goal", page="goals"))


class TestCreateBackup:
    @pytest.mark.asyncio
    async def test_backup_contains_layouts_and_text_cards(self, builder, layouts, text_cards, gateway):
        await _seed(layouts, text_cards)
        gateway.documents["system/settings"] = {"navigationItems": []}

        backup = await builder.create_backup("u1", "u1@example.com")

        assert backup.version == BACKUP_VERSION
        assert backup.user_id == "u1"
        assert backup.user_email == "u1@example.com"
        assert [card.id for card in backup.data.layouts.current] == ["readiness", "text-card-1"]
        assert sorted(card.id for card in backup.data.text_cards) == ["text-card-1", "text-card-2"]
        assert backup.data.system_settings == {"navigationItems": []}

    @pytest.mark.asyncio
    async def test_empty_user_backup(self, builder):
        backup = await builder.create_backup("nobody", "")
        assert backup.data.layouts.current == []
        assert backup.data.layouts.presets == []
        assert backup.data.text_cards == []

    @pytest.mark.asyncio
    async def test_settings_failure_is_best_effort(self, builder, layouts, text_cards, gateway):
        await _seed(layouts, text_cards)
        gateway.fail("get_document", "system/settings")

        backup = await builder.create_backup("u1", "u1@example.com")

        assert backup.data.system_settings is None
        assert len(backup.data.layouts.current) == 2

    @pytest.mark.asyncio
    async def test_layout_read_failure_propagates(self, builder, gateway):
        gateway.fail("get_document", "layouts/")
        with pytest.raises(PersistenceError):
            await builder.create_backup("u1", "u1@example.com")

    @pytest.mark.asyncio
    async def test_backup_round_trips_through_validator(self, builder, layouts, text_cards):
        """Every backup this service produces passes its own validation."""
        await _seed(layouts, text_cards)
        backup = await builder.create_backup("u1", "u1@example.com")

        result = validate_backup(json.loads(serialize_backup(backup)))

        assert result.valid is True
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_goals_page_is_included(self, builder, layouts, text_cards):
        await _seed(layouts, text_cards)
        await layouts.save_page("u1", "goals", [
            CardLayout(id="challenge", order=0, size="large"),
            CardLayout(id="long-term-goal", order=1, size="large"),
        ])

        backup = await builder.create_backup("u1", "u1@example.com")

        assert [card.id for card in backup.data.layouts.pages["goals"]] == ["challenge", "long-term-goal"]
        assert len(backup.data.layouts.current) == 2
        assert get_backup_stats(backup).layouts_count == 2

    @pytest.mark.asyncio
    async def test_pages_without_stored_layout_are_omitted(self, builder, layouts, text_cards):
        await _seed(layouts, text_cards)
        backup = await builder.create_backup("u1", "u1@example.com")
        assert backup.data.layouts.pages == {}


class TestSerialization:
    @pytest.mark.asyncio
    async def test_serialized_backup_uses_camel_case(self, builder):
        backup = await builder.create_backup("u1", "u1@example.com")
        document = json.loads(serialize_backup(backup))

        assert set(document) == {"version", "backupDate", "userId", "userEmail", "data"}
        assert "textCards" in document["data"]
        assert serialize_backup(backup).startswith("{\n  ")

    @pytest.mark.asyncio
    async def test_backup_filename(self, builder):
        backup = await builder.create_backup("u1", "")
        assert re.fullmatch(r"health-hub-backup-\d{4}-\d{2}-\d{2}\.json", backup_filename(backup))

    def test_scheduled_backup_path(self):
        from datetime import datetime, timezone

        when = datetime(2024, 3, 5, 2, 0, tzinfo=timezone.utc)
        path = scheduled_backup_path("backups/HealthHub/", when)
        assert path == "backups/HealthHub/2024-03-05-healthhub-data.json"


class TestBackupStats:
    def test_pages_are_first_seen_and_deduplicated(self):
        document = {
            "version": "1.0.0",
            "backupDate": "2024-01-01T00:00:00Z",
            "userId": "u1",
            "data": {
                "layouts": {"current": [{"id": "a", "order": 0}], "presets": []},
                "textCards": [
                    {"id": "text-card-1", "page": "dashboard"},
                    {"id": "text-card-2", "page": "goals"},
                    {"id": "text-card-3", "page": "dashboard"},
                ],
            },
        }
        stats = get_backup_stats(document)

        assert stats.pages == ["dashboard", "goals"]
        assert stats.text_cards_count == 3
        assert stats.layouts_count == 1
        assert stats.presets_count == 0

    def test_missing_page_counts_as_dashboard(self):
        document = {"data": {"layouts": {}, "textCards": [{"id": "text-card-1"}]}}
        assert get_backup_stats(document).pages == ["dashboard"]

    def test_total_size_is_compact_json_kilobytes(self):
        document = {"data": {"layouts": {}, "textCards": []}}
        size = len(json.dumps(document, separators=(",", ":")).encode("utf-8"))
        assert get_backup_stats(document).total_size == f"{size / 1024:.2f} KB"

    @pytest.mark.asyncio
    async def test_stats_from_model(self, builder, layouts, text_cards):
        await _seed(layouts, text_cards)
        backup = await builder.create_backup("u1", "")
        stats = get_backup_stats(backup)
        assert stats.text_cards_count == 2
        assert stats.total_size.endswith(" KB")


class TestUploadBackup:
    @pytest.mark.asyncio
    async def test_upload_writes_blob_under_folder(self, builder, gateway):
        backup = await builder.create_backup("u1", "")
        info = await builder.upload_backup(backup, "folder-1")

        assert re.fullmatch(r"drive/folder-1/health-hub-backup-\d{4}-\d{2}-\d{2}-\d+\.json", info.path)
        data, _ = gateway.blobs[info.path]
        assert json.loads(data)["userId"] == "u1"

    @pytest.mark.asyncio
    async def test_upload_failure_leaves_backup_intact(self, builder, gateway):
        """A failed upload raises UploadFailure; the built backup stays valid."""
        backup = await builder.create_backup("u1", "")
        gateway.fail("put_blob", "drive/")

        with pytest.raises(UploadFailure):
            await builder.upload_backup(backup, "folder-1")
        assert validate_backup(backup.to_document()).valid

    @pytest.mark.asyncio
    async def test_invalid_folder_rejected(self, builder):
        backup = await builder.create_backup("u1", "")
        with pytest.raises(UploadFailure):
            await builder.upload_backup(backup, "")
