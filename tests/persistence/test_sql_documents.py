"""Tests for SQLDocumentStore against an in-memory SQLite database."""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from healthhub.errors import PersistenceError
from healthhub.models.base import Base
from healthhub.persistence.documents import SQLDocumentStore


@pytest_asyncio.fixture
async def store():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield SQLDocumentStore(async_sessionmaker(engine, expire_on_commit=False))
    await engine.dispose()


class TestSQLDocumentStore:
    @pytest.mark.asyncio
    async def test_missing_document_is_none(self, store):
        assert await store.get_document("layouts/u1/pages/dashboard") is None

    @pytest.mark.asyncio
    async def test_set_and_get(self, store):
        await store.set_document("layouts/u1/pages/dashboard", {"layouts": [{"id": "a", "order": 0}]})
        assert await store.get_document("layouts/u1/pages/dashboard") == {
            "layouts": [{"id": "a", "order": 0}]
        }

    @pytest.mark.asyncio
    async def test_replace_write_drops_old_keys(self, store):
        await store.set_document("system/settings", {"a": 1, "b": 2})
        await store.set_document("system/settings", {"b": 3})
        assert await store.get_document("system/settings") == {"b": 3}

    @pytest.mark.asyncio
    async def test_merge_write_keeps_other_keys(self, store):
        await store.set_document("system/settings", {"a": 1, "b": 2})
        await store.set_document("system/settings", {"b": 3}, merge=True)
        assert await store.get_document("system/settings") == {"a": 1, "b": 3}

    @pytest.mark.asyncio
    async def test_list_documents_returns_direct_children_only(self, store):
        await store.set_document("textCards/u1/dashboard/text-card-2", {"title": "b"})
        await store.set_document("textCards/u1/dashboard/text-card-1", {"title": "a"})
        await store.set_document("textCards/u1/goals/text-card-3", {"title": "c"})

        snapshots = await store.list_documents("textCards/u1/dashboard")

        assert [snapshot.id for snapshot in snapshots] == ["text-card-1", "text-card-2"]
        assert snapshots[0].path == "textCards/u1/dashboard/text-card-1"
        assert snapshots[0].data == {"title": "a"}

    @pytest.mark.asyncio
    async def test_delete_document(self, store):
        await store.set_document("layouts/u1/presets/p1", {"name": "x"})
        await store.delete_document("layouts/u1/presets/p1")
        assert await store.get_document("layouts/u1/presets/p1") is None

    @pytest.mark.asyncio
    async def test_delete_missing_document_is_noop(self, store):
        await store.delete_document("layouts/u1/presets/none")

    @pytest.mark.asyncio
    async def test_database_errors_become_persistence_errors(self):
        """A missing table surfaces as PersistenceError, not a driver exception."""
        engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        store = SQLDocumentStore(async_sessionmaker(engine, expire_on_commit=False))
        try:
            with pytest.raises(PersistenceError) as exc_info:
                await store.get_document("system/settings")
            assert exc_info.value.operation == "get_document"
        finally:
            await engine.dispose()
