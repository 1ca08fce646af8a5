"""Storage backend wiring and dependency injection helpers."""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from .config.settings import Settings
from .fixtures import DEMO_DOCUMENTS, DEMO_PROFILE
from .services.data_sources import DataSourceResolver, FixtureDataSource, StoreDataSource
from .services.document_store import (
    DOCUMENT_COLLECTION,
    PROFILE_COLLECTION,
    DocumentStore,
    InMemoryDocumentStore,
    InMemoryProfileStore,
    MongoDocumentStore,
    MongoProfileStore,
    ProfileStore,
)
from .services.file_storage import FileStorage, GridFSFileStorage, InMemoryFileStorage
from .services.share_registry import (
    SHARE_LINK_COLLECTION,
    InMemoryShareLinkRegistry,
    MongoShareLinkRegistry,
    ShareLinkRegistry,
)

logger = logging.getLogger(__name__)


def attach_backends(
    app: FastAPI, settings: Settings, db: Optional[AsyncIOMotorDatabase] = None
) -> None:
    """Create the stores for the configured backend and put them on app.state.

    Args:
        app: FastAPI application
        settings: Application settings
        db: MongoDB database, required when STORAGE_BACKEND is "mongo"
    """
    if settings.STORAGE_BACKEND == "memory":
        registry = InMemoryShareLinkRegistry()
        documents = InMemoryDocumentStore()
        profiles = InMemoryProfileStore()
        files = InMemoryFileStorage()
    else:
        if db is None:
            raise RuntimeError("MongoDB backend selected but no database given")
        registry = MongoShareLinkRegistry(db[SHARE_LINK_COLLECTION])
        documents = MongoDocumentStore(db[DOCUMENT_COLLECTION])
        profiles = MongoProfileStore(db[PROFILE_COLLECTION])
        files = GridFSFileStorage(db)

    app.state.db = db
    app.state.share_registry = registry
    app.state.document_store = documents
    app.state.profile_store = profiles
    app.state.file_storage = files
    app.state.data_sources = DataSourceResolver(
        store_source=StoreDataSource(documents, profiles),
        fixture_source=FixtureDataSource(DEMO_DOCUMENTS, [DEMO_PROFILE]),
        is_demo_user=settings.is_demo_user,
    )
    logger.info(f"Storage backend: {settings.STORAGE_BACKEND}")


async def ensure_indexes(app: FastAPI) -> None:
    for store in (app.state.share_registry, app.state.document_store):
        if hasattr(store, "ensure_indexes"):
            await store.ensure_indexes()


def _state(request: Request, name: str):
    if not hasattr(request.app.state, name):
        raise RuntimeError(f"{name} not initialized. Check lifespan events in main.py")
    return getattr(request.app.state, name)


def get_share_registry(request: Request) -> ShareLinkRegistry:
    return _state(request, "share_registry")


def get_document_store(request: Request) -> DocumentStore:
    return _state(request, "document_store")


def get_profile_store(request: Request) -> ProfileStore:
    return _state(request, "profile_store")


def get_file_storage(request: Request) -> FileStorage:
    return _state(request, "file_storage")


def get_data_sources(request: Request) -> DataSourceResolver:
    return _state(request, "data_sources")
