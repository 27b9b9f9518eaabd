"""Filesystem blob store — backup files with JSON metadata sidecars."""

import json
import os
from datetime import datetime, timezone
from typing import Optional

from ..errors import PersistenceError
from ..utils.logging import get_logger
from .gateway import BlobInfo

logger = get_logger("persistence.blobs")

_META_SUFFIX = ".meta.json"


class LocalBlobStore:
    """Stores blobs as files under a root directory, keyed by relative path."""

    def __init__(self, root_dir: str = "storage"):
        self._root_dir = root_dir

    def _resolve(self, path: str) -> str:
        parts = path.split("/")
        if not path or any(part in ("", ".", "..") for part in parts):
            raise ValueError(f"Invalid blob path: {path!r}")
        return os.path.join(self._root_dir, *parts)

    def _read_meta(self, file_path: str) -> dict:
        meta_path = file_path + _META_SUFFIX
        if not os.path.exists(meta_path):
            return {}
        with open(meta_path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _info(self, path: str, file_path: str) -> BlobInfo:
        stat = os.stat(file_path)
        meta = self._read_meta(file_path)
        created = meta.get("timeCreated")
        if created:
            created_at = datetime.fromisoformat(created)
        else:
            created_at = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        return BlobInfo(
            path=path,
            created_at=created_at,
            size_bytes=stat.st_size,
            metadata=meta.get("metadata", {}),
        )

    async def put_blob(
        self,
        path: str,
        data: bytes,
        content_type: str = "application/json",
        metadata: Optional[dict[str, str]] = None,
    ) -> BlobInfo:
        file_path = self._resolve(path)
        try:
            os.makedirs(os.path.dirname(file_path), exist_ok=True)
            with open(file_path, "wb") as f:
                f.write(data)
            with open(file_path + _META_SUFFIX, "w", encoding="utf-8") as f:
                json.dump({
                    "contentType": content_type,
                    "timeCreated": datetime.now(timezone.utc).isoformat(),
                    "metadata": metadata or {},
                }, f)
            info = self._info(path, file_path)
        except OSError as e:
            logger.error("blob_write_failed", path=path, error=str(e))
            raise PersistenceError("put_blob", path, e) from e

        logger.info("blob_written", path=path, size=info.size_bytes)
        return info

    async def list_blobs(self, prefix: str) -> list[BlobInfo]:
        if not os.path.isdir(self._root_dir):
            return []

        blobs = []
        try:
            for dirpath, _dirnames, filenames in os.walk(self._root_dir):
                for filename in filenames:
                    if filename.endswith(_META_SUFFIX):
                        continue
                    file_path = os.path.join(dirpath, filename)
                    rel = os.path.relpath(file_path, self._root_dir).replace(os.sep, "/")
                    if rel.startswith(prefix):
                        blobs.append(self._info(rel, file_path))
        except (OSError, ValueError) as e:
            logger.error("blob_list_failed", prefix=prefix, error=str(e))
            raise PersistenceError("list_blobs", prefix, e) from e

        blobs.sort(key=lambda b: b.path)
        return blobs

    async def delete_blob(self, path: str) -> None:
        file_path = self._resolve(path)
        try:
            os.remove(file_path)
            if os.path.exists(file_path + _META_SUFFIX):
                os.remove(file_path + _META_SUFFIX)
        except OSError as e:
            logger.error("blob_delete_failed", path=path, error=str(e))
            raise PersistenceError("delete_blob", path, e) from e
