"""Persistence gateway contract — document store plus blob store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


def join_path(*segments: str) -> str:
    """Join path segments with '/', rejecting empty or slash-bearing segments."""
    for segment in segments:
        if not segment or "/" in segment:
            raise ValueError(f"Invalid path segment: {segment!r}")
    return "/".join(segments)


def split_path(path: str) -> tuple[str, str]:
    """Split a document path into (collection path, document id)."""
    collection, _, doc_id = path.rpartition("/")
    if not collection or not doc_id:
        raise ValueError(f"Not a document path: {path!r}")
    return collection, doc_id


@dataclass
class DocumentSnapshot:
    id: str
    path: str
    data: dict[str, Any]


@dataclass
class BlobInfo:
    path: str
    created_at: datetime
    size_bytes: int
    metadata: dict[str, str] = field(default_factory=dict)


class PersistenceGateway(ABC):
    """Abstract document + blob storage used by every core service.

    Implementations raise ``PersistenceError`` for any storage failure;
    absence of a document is not a failure and is reported as ``None``.
    """

    @abstractmethod
    async def get_document(self, path: str) -> Optional[dict[str, Any]]:
        ...

    @abstractmethod
    async def set_document(self, path: str, value: dict[str, Any], merge: bool = False) -> None:
        ...

    @abstractmethod
    async def delete_document(self, path: str) -> None:
        ...

    @abstractmethod
    async def list_documents(self, collection_path: str) -> list[DocumentSnapshot]:
        ...

    @abstractmethod
    async def put_blob(
        self,
        path: str,
        data: bytes,
        content_type: str = "application/json",
        metadata: Optional[dict[str, str]] = None,
    ) -> BlobInfo:
        ...

    @abstractmethod
    async def list_blobs(self, prefix: str) -> list[BlobInfo]:
        ...

    @abstractmethod
    async def delete_blob(self, path: str) -> None:
        ...
