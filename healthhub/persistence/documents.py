"""SQL-backed document store — JSON documents addressed by slash paths."""

import json
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors import PersistenceError
from ..models.document import StoredDocument
from ..utils.logging import get_logger
from .gateway import DocumentSnapshot, split_path

logger = get_logger("persistence.documents")


class SQLDocumentStore:
    """Stores each document as one row keyed by its full path."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_document(self, path: str) -> Optional[dict[str, Any]]:
        try:
            async with self._session_factory() as session:
                row = (
                    await session.execute(
                        select(StoredDocument).where(StoredDocument.path == path)
                    )
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("document_read_failed", path=path, error=str(e))
            raise PersistenceError("get_document", path, e) from e

        if row is None:
            return None
        return json.loads(row.data_json)

    async def set_document(self, path: str, value: dict[str, Any], merge: bool = False) -> None:
        """Write a document. ``merge`` keeps top-level keys not present in ``value``."""
        collection, doc_id = split_path(path)
        now = datetime.now(timezone.utc)
        try:
            async with self._session_factory() as session:
                row = (
                    await session.execute(
                        select(StoredDocument).where(StoredDocument.path == path)
                    )
                ).scalar_one_or_none()

                if row is None:
                    session.add(StoredDocument(
                        path=path,
                        collection=collection,
                        doc_id=doc_id,
                        data_json=json.dumps(value),
                        created_at=now,
                        updated_at=now,
                    ))
                else:
                    data = json.loads(row.data_json) if merge else {}
                    data.update(value)
                    row.data_json = json.dumps(data)
                    row.updated_at = now

                await session.commit()
        except SQLAlchemyError as e:
            logger.error("document_write_failed", path=path, error=str(e))
            raise PersistenceError("set_document", path, e) from e

    async def delete_document(self, path: str) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    delete(StoredDocument).where(StoredDocument.path == path)
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("document_delete_failed", path=path, error=str(e))
            raise PersistenceError("delete_document", path, e) from e

    async def list_documents(self, collection_path: str) -> list[DocumentSnapshot]:
        try:
            async with self._session_factory() as session:
                rows = (
                    await session.execute(
                        select(StoredDocument)
                        .where(StoredDocument.collection == collection_path)
                        .order_by(StoredDocument.doc_id)
                    )
                ).scalars().all()
        except SQLAlchemyError as e:
            logger.error("document_list_failed", collection=collection_path, error=str(e))
            raise PersistenceError("list_documents", collection_path, e) from e

        return [
            DocumentSnapshot(id=row.doc_id, path=row.path, data=json.loads(row.data_json))
            for row in rows
        ]
