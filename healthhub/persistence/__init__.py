"""Persistence gateway and its SQL/filesystem implementation."""

from .blobs import LocalBlobStore
from .documents import SQLDocumentStore
from .gateway import BlobInfo, DocumentSnapshot, PersistenceGateway, join_path, split_path
from .storage import StorageGateway

__all__ = [
    "BlobInfo",
    "DocumentSnapshot",
    "LocalBlobStore",
    "PersistenceGateway",
    "SQLDocumentStore",
    "StorageGateway",
    "join_path",
    "split_path",
]
