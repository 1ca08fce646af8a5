"""Object storage for uploaded document files.

Files are keyed by a path of the form ``documents/{user_id}/{timestamp}_{name}``.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from gridfs.errors import NoFile
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorGridFSBucket
from pymongo.errors import PyMongoError

from ..utils.exceptions import StorageError

logger = logging.getLogger(__name__)

BUCKET_NAME = "medical_files"


def build_file_path(user_id: str, file_name: str, folder: str = "documents") -> str:
    """Unique object key for an upload."""
    timestamp = int(time.time() * 1000)
    return f"{folder}/{user_id}/{timestamp}_{file_name}"


class FileStorage(ABC):
    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: Optional[str]) -> str:
        """Store ``data`` under ``path`` and return the path."""

    @abstractmethod
    async def delete(self, path: str) -> None:
        pass

    @abstractmethod
    async def open(self, path: str) -> Optional[Tuple[bytes, Optional[str]]]:
        """Return (data, content_type), or None if nothing is stored at path."""


class GridFSFileStorage(FileStorage):
    """File storage in a MongoDB GridFS bucket."""

    def __init__(self, db: AsyncIOMotorDatabase, bucket_name: str = BUCKET_NAME):
        self._bucket = AsyncIOMotorGridFSBucket(db, bucket_name=bucket_name)

    async def upload(self, path: str, data: bytes, content_type: Optional[str]) -> str:
        try:
            await self._bucket.upload_from_stream(
                path, data, metadata={"contentType": content_type}
            )
        except PyMongoError as e:
            logger.error(f"Upload of {path} failed: {e}")
            raise StorageError(f"Failed to store file: {e}") from e
        return path

    async def delete(self, path: str) -> None:
        try:
            cursor = self._bucket.find({"filename": path})
            async for grid_out in cursor:
                await self._bucket.delete(grid_out._id)
        except PyMongoError as e:
            logger.error(f"Delete of {path} failed: {e}")
            raise StorageError(f"Failed to delete file: {e}") from e

    async def open(self, path: str) -> Optional[Tuple[bytes, Optional[str]]]:
        try:
            stream = await self._bucket.open_download_stream_by_name(path)
        except NoFile:
            return None
        data = await stream.read()
        content_type = (stream.metadata or {}).get("contentType")
        return data, content_type


class InMemoryFileStorage(FileStorage):
    def __init__(self):
        self._files: Dict[str, Tuple[bytes, Optional[str]]] = {}

    async def upload(self, path: str, data: bytes, content_type: Optional[str]) -> str:
        self._files[path] = (bytes(data), content_type)
        return path

    async def delete(self, path: str) -> None:
        self._files.pop(path, None)

    async def open(self, path: str) -> Optional[Tuple[bytes, Optional[str]]]:
        return self._files.get(path)
