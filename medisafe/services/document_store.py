"""Persistence for medical documents and health profiles."""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING

from ..models.document import HealthProfile, MedicalDocument

logger = logging.getLogger(__name__)

DOCUMENT_COLLECTION = "documents"
PROFILE_COLLECTION = "profiles"


class DocumentStore(ABC):
    """Storage interface for document metadata."""

    @abstractmethod
    async def get(self, document_id: str) -> Optional[MedicalDocument]:
        pass

    @abstractmethod
    async def list_for_owner(self, user_id: str) -> List[MedicalDocument]:
        """Owner's documents, newest upload first."""

    @abstractmethod
    async def insert(self, document: MedicalDocument) -> str:
        """Persist a document and return its id."""

    @abstractmethod
    async def delete(self, document_id: str, user_id: str) -> bool:
        """Delete an owner's document. False if nothing matched."""


class ProfileStore(ABC):
    """Storage interface for health profiles, keyed by user id."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[HealthProfile]:
        pass

    @abstractmethod
    async def upsert(self, profile: HealthProfile) -> HealthProfile:
        pass


class MongoDocumentStore(DocumentStore):
    def __init__(self, collection: AsyncIOMotorCollection):
        self._collection = collection

    async def ensure_indexes(self) -> None:
        await self._collection.create_index([("user_id", 1), ("uploaded_at", -1)])

    async def get(self, document_id: str) -> Optional[MedicalDocument]:
        doc = await self._collection.find_one({"_id": document_id})
        return MedicalDocument(**doc) if doc else None

    async def list_for_owner(self, user_id: str) -> List[MedicalDocument]:
        cursor = self._collection.find({"user_id": user_id}).sort("uploaded_at", DESCENDING)
        return [MedicalDocument(**doc) async for doc in cursor]

    async def insert(self, document: MedicalDocument) -> str:
        document_id = document.id or str(uuid.uuid4())
        record = document.model_dump(by_alias=True)
        record["_id"] = document_id
        await self._collection.insert_one(record)
        return document_id

    async def delete(self, document_id: str, user_id: str) -> bool:
        result = await self._collection.delete_one({"_id": document_id, "user_id": user_id})
        return result.deleted_count > 0


class MongoProfileStore(ProfileStore):
    def __init__(self, collection: AsyncIOMotorCollection):
        self._collection = collection

    async def get(self, user_id: str) -> Optional[HealthProfile]:
        doc = await self._collection.find_one({"_id": user_id})
        return HealthProfile(**doc) if doc else None

    async def upsert(self, profile: HealthProfile) -> HealthProfile:
        await self._collection.replace_one(
            {"_id": profile.user_id},
            {"_id": profile.user_id, **profile.model_dump()},
            upsert=True,
        )
        return profile


class InMemoryDocumentStore(DocumentStore):
    def __init__(self):
        self._documents: Dict[str, MedicalDocument] = {}
        self._lock = asyncio.Lock()

    async def get(self, document_id: str) -> Optional[MedicalDocument]:
        document = self._documents.get(document_id)
        return document.model_copy(deep=True) if document else None

    async def list_for_owner(self, user_id: str) -> List[MedicalDocument]:
        documents = [d.model_copy(deep=True) for d in self._documents.values() if d.user_id == user_id]
        return sorted(documents, key=lambda d: d.uploaded_at, reverse=True)

    async def insert(self, document: MedicalDocument) -> str:
        async with self._lock:
            document_id = document.id or str(uuid.uuid4())
            self._documents[document_id] = document.model_copy(update={"id": document_id}, deep=True)
            return document_id

    async def delete(self, document_id: str, user_id: str) -> bool:
        async with self._lock:
            document = self._documents.get(document_id)
            if document is None or document.user_id != user_id:
                return False
            del self._documents[document_id]
            return True


class InMemoryProfileStore(ProfileStore):
    def __init__(self):
        self._profiles: Dict[str, HealthProfile] = {}

    async def get(self, user_id: str) -> Optional[HealthProfile]:
        profile = self._profiles.get(user_id)
        return profile.model_copy(deep=True) if profile else None

    async def upsert(self, profile: HealthProfile) -> HealthProfile:
        self._profiles[profile.user_id] = profile.model_copy(deep=True)
        return profile
