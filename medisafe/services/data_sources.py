"""
Read-only data sources for documents and health profiles.

Two implementations exist: one backed by the real stores and one backed by
the built-in fixtures. ``DataSourceResolver`` picks one per account, so demo
accounts never touch the stores and regular accounts never see fixtures.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional

from ..models.document import HealthProfile, MedicalDocument
from .document_store import DocumentStore, ProfileStore

logger = logging.getLogger(__name__)


class DataSource(ABC):
    """Read access to documents and profiles."""

    read_only: bool = False

    @abstractmethod
    async def get_document(self, document_id: str) -> Optional[MedicalDocument]:
        pass

    @abstractmethod
    async def list_documents(self, owner_id: str) -> List[MedicalDocument]:
        pass

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[HealthProfile]:
        pass

    async def search_documents(self, owner_id: str, query: str) -> List[MedicalDocument]:
        """Case-insensitive keyword match on file name, tags and summary."""
        needle = query.lower().strip()
        documents = await self.list_documents(owner_id)
        if not needle:
            return documents
        return [
            doc
            for doc in documents
            if needle in doc.file_name.lower()
            or any(needle in tag.lower() for tag in doc.tags)
            or needle in (doc.summary or "").lower()
        ]


class StoreDataSource(DataSource):
    """Data source reading from the document and profile stores."""

    def __init__(self, documents: DocumentStore, profiles: ProfileStore):
        self._documents = documents
        self._profiles = profiles

    async def get_document(self, document_id: str) -> Optional[MedicalDocument]:
        return await self._documents.get(document_id)

    async def list_documents(self, owner_id: str) -> List[MedicalDocument]:
        return await self._documents.list_for_owner(owner_id)

    async def get_profile(self, user_id: str) -> Optional[HealthProfile]:
        return await self._profiles.get(user_id)


class FixtureDataSource(DataSource):
    """Data source serving fixed, in-memory records."""

    read_only = True

    def __init__(
        self,
        documents: Iterable[MedicalDocument],
        profiles: Iterable[HealthProfile],
    ):
        self._documents = {doc.id: doc for doc in documents}
        self._profiles = {profile.user_id: profile for profile in profiles}

    async def get_document(self, document_id: str) -> Optional[MedicalDocument]:
        doc = self._documents.get(document_id)
        return doc.model_copy(deep=True) if doc else None

    async def list_documents(self, owner_id: str) -> List[MedicalDocument]:
        docs = [d.model_copy(deep=True) for d in self._documents.values() if d.user_id == owner_id]
        return sorted(docs, key=lambda d: d.uploaded_at, reverse=True)

    async def get_profile(self, user_id: str) -> Optional[HealthProfile]:
        profile = self._profiles.get(user_id)
        return profile.model_copy(deep=True) if profile else None


class DataSourceResolver:
    """Chooses the data source for an account."""

    def __init__(
        self,
        store_source: DataSource,
        fixture_source: DataSource,
        is_demo_user: Callable[[Optional[str]], bool],
    ):
        self._store_source = store_source
        self._fixture_source = fixture_source
        self._is_demo_user = is_demo_user

    def for_user(self, user_id: Optional[str]) -> DataSource:
        if self._is_demo_user(user_id):
            logger.debug(f"Serving fixture data for demo account {user_id}")
            return self._fixture_source
        return self._store_source
