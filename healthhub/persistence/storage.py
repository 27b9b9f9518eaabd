"""StorageGateway — SQL documents and filesystem blobs behind one interface."""

from typing import Any, Optional

from .blobs import LocalBlobStore
from .documents import SQLDocumentStore
from .gateway import BlobInfo, DocumentSnapshot, PersistenceGateway


class StorageGateway(PersistenceGateway):
    def __init__(self, documents: SQLDocumentStore, blobs: LocalBlobStore):
        self._documents = documents
        self._blobs = blobs

    async def get_document(self, path: str) -> Optional[dict[str, Any]]:
        return await self._documents.get_document(path)

    async def set_document(self, path: str, value: dict[str, Any], merge: bool = False) -> None:
        await self._documents.set_document(path, value, merge=merge)

    async def delete_document(self, path: str) -> None:
        await self._documents.delete_document(path)

    async def list_documents(self, collection_path: str) -> list[DocumentSnapshot]:
        return await self._documents.list_documents(collection_path)

    async def put_blob(
        self,
        path: str,
        data: bytes,
        content_type: str = "application/json",
        metadata: Optional[dict[str, str]] = None,
    ) -> BlobInfo:
        return await self._blobs.put_blob(path, data, content_type, metadata)

    async def list_blobs(self, prefix: str) -> list[BlobInfo]:
        return await self._blobs.list_blobs(prefix)

    async def delete_blob(self, path: str) -> None:
        await self._blobs.delete_blob(path)
