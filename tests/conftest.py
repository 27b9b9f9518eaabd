"""Shared test fixtures."""

import copy
from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from healthhub.errors import PersistenceError
from healthhub.persistence.gateway import BlobInfo, DocumentSnapshot, PersistenceGateway, split_path
from healthhub.schemas import UserContext


class MemoryGateway(PersistenceGateway):
    """In-memory gateway with per-operation failure injection and a write log.

    ``fail(operation, prefix)`` makes every call of ``operation`` on a path
    starting with ``prefix`` raise ``PersistenceError``.
    """

    def __init__(self):
        self.documents: dict[str, dict[str, Any]] = {}
        self.blobs: dict[str, tuple[bytes, BlobInfo]] = {}
        self.writes: list[tuple[str, str]] = []
        self._failures: list[tuple[str, str]] = []

    def fail(self, operation: str, prefix: str = "") -> None:
        self._failures.append((operation, prefix))

    def heal(self) -> None:
        self._failures.clear()

    def _check(self, operation: str, path: str) -> None:
        for failing_op, prefix in self._failures:
            if failing_op == operation and path.startswith(prefix):
                raise PersistenceError(operation, path, RuntimeError("injected failure"))

    async def get_document(self, path: str) -> Optional[dict[str, Any]]:
        self._check("get_document", path)
        document = self.documents.get(path)
        return copy.deepcopy(document) if document is not None else None

    async def set_document(self, path: str, value: dict[str, Any], merge: bool = False) -> None:
        self._check("set_document", path)
        split_path(path)
        data = copy.deepcopy(self.documents.get(path, {})) if merge else {}
        data.update(copy.deepcopy(value))
        self.documents[path] = data
        self.writes.append(("set_document", path))

    async def delete_document(self, path: str) -> None:
        self._check("delete_document", path)
        self.documents.pop(path, None)
        self.writes.append(("delete_document", path))

    async def list_documents(self, collection_path: str) -> list[DocumentSnapshot]:
        self._check("list_documents", collection_path)
        snapshots = []
        for path in sorted(self.documents):
            collection, doc_id = split_path(path)
            if collection == collection_path:
                snapshots.append(DocumentSnapshot(doc_id, path, copy.deepcopy(self.documents[path])))
        return snapshots

    async def put_blob(
        self,
        path: str,
        data: bytes,
        content_type: str = "application/json",
        metadata: Optional[dict[str, str]] = None,
    ) -> BlobInfo:
        self._check("put_blob", path)
        info = BlobInfo(
            path=path,
            created_at=datetime.now(timezone.utc),
            size_bytes=len(data),
            metadata=dict(metadata or {}),
        )
        self.blobs[path] = (data, info)
        self.writes.append(("put_blob", path))
        return info

    def add_blob(self, path: str, created_at: datetime, data: bytes = b"{}") -> None:
        """Seed a blob with an explicit creation time."""
        self.blobs[path] = (data, BlobInfo(path=path, created_at=created_at, size_bytes=len(data)))

    async def list_blobs(self, prefix: str) -> list[BlobInfo]:
        self._check("list_blobs", prefix)
        return [info for path, (_, info) in sorted(self.blobs.items()) if path.startswith(prefix)]

    async def delete_blob(self, path: str) -> None:
        self._check("delete_blob", path)
        self.blobs.pop(path, None)
        self.writes.append(("delete_blob", path))


@pytest.fixture
def gateway():
    return MemoryGateway()


@pytest.fixture
def admin_user():
    return UserContext(user_id="admin-1", role="admin", email="admin@example.com")


@pytest.fixture
def viewer_user():
    return UserContext(user_id="viewer-1", role="viewer", email="viewer@example.com")
