"""Share link persistence.

The registry is the single writer of ``view_count`` and ``access_logs``.
``record_view`` applies the quota/expiry check and the increment as one
indivisible operation so that concurrent viewers cannot push a link past
its quota.
"""

import asyncio
import logging
import secrets
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING, ReturnDocument

from ..models.share import AccessLogEntry, ShareLink

logger = logging.getLogger(__name__)

SHARE_LINK_COLLECTION = "share_links"


def generate_link_id() -> str:
    """Unguessable id; possession of the URL is the only credential."""
    return secrets.token_urlsafe(15)


class ShareLinkRegistry(ABC):
    """Storage interface for share links."""

    @abstractmethod
    async def create(self, link: ShareLink) -> str:
        """Persist a new link and return its assigned id."""

    @abstractmethod
    async def get(self, link_id: str) -> Optional[ShareLink]:
        """Fetch a link by id, None if absent."""

    @abstractmethod
    async def record_view(
        self, link_id: str, entry: AccessLogEntry, now: datetime
    ) -> Optional[ShareLink]:
        """Increment the view count and append ``entry`` in one step.

        This is the registry's only update of ``view_count`` and
        ``access_logs``.

        Applied only while the link is unexpired at ``now`` and has quota
        left. Returns the updated link, or None if the condition did not
        hold (or the link is gone).
        """

    @abstractmethod
    async def list_for_document(self, owner_id: str, document_id: str) -> List[ShareLink]:
        """Links an owner created for a document, newest first."""


class MongoShareLinkRegistry(ShareLinkRegistry):
    """Registry backed by a MongoDB collection."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self._collection = collection

    async def ensure_indexes(self) -> None:
        await self._collection.create_index([("owner_id", 1), ("document_id", 1)])
        await self._collection.create_index("expires_at")

    async def create(self, link: ShareLink) -> str:
        link_id = link.id or generate_link_id()
        record = link.model_dump(by_alias=True)
        record["_id"] = link_id
        await self._collection.insert_one(record)
        return link_id

    async def get(self, link_id: str) -> Optional[ShareLink]:
        doc = await self._collection.find_one({"_id": link_id})
        return ShareLink(**doc) if doc else None

    async def record_view(
        self, link_id: str, entry: AccessLogEntry, now: datetime
    ) -> Optional[ShareLink]:
        doc = await self._collection.find_one_and_update(
            {
                "_id": link_id,
                "expires_at": {"$gt": now},
                "$or": [
                    {"max_views": 0},
                    {"$expr": {"$lt": ["$view_count", "$max_views"]}},
                ],
            },
            {
                "$inc": {"view_count": 1},
                "$push": {"access_logs": entry.model_dump()},
            },
            return_document=ReturnDocument.AFTER,
        )
        return ShareLink(**doc) if doc else None

    async def list_for_document(self, owner_id: str, document_id: str) -> List[ShareLink]:
        cursor = self._collection.find(
            {"owner_id": owner_id, "document_id": document_id}
        ).sort("created_at", DESCENDING)
        return [ShareLink(**doc) async for doc in cursor]


class InMemoryShareLinkRegistry(ShareLinkRegistry):
    """Process-local registry for demo mode and tests.

    A single lock serializes writes so ``record_view`` behaves like the
    conditional update of the MongoDB registry.
    """

    def __init__(self):
        self._links: Dict[str, ShareLink] = {}
        self._lock = asyncio.Lock()

    async def create(self, link: ShareLink) -> str:
        async with self._lock:
            link_id = link.id or generate_link_id()
            self._links[link_id] = link.model_copy(update={"id": link_id}, deep=True)
            return link_id

    async def get(self, link_id: str) -> Optional[ShareLink]:
        link = self._links.get(link_id)
        return link.model_copy(deep=True) if link else None

    async def record_view(
        self, link_id: str, entry: AccessLogEntry, now: datetime
    ) -> Optional[ShareLink]:
        async with self._lock:
            link = self._links.get(link_id)
            if link is None or link.is_expired(now) or link.is_view_limit_reached():
                return None
            updated = link.model_copy(
                update={
                    "view_count": link.view_count + 1,
                    "access_logs": [*link.access_logs, entry],
                },
                deep=True,
            )
            self._links[link_id] = updated
            return updated.model_copy(deep=True)

    async def list_for_document(self, owner_id: str, document_id: str) -> List[ShareLink]:
        links = [
            link.model_copy(deep=True)
            for link in self._links.values()
            if link.owner_id == owner_id and link.document_id == document_id
        ]
        return sorted(links, key=lambda link: link.created_at, reverse=True)
